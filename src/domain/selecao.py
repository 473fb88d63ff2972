"""
domain/selecao.py — Escolha de item em listas dinâmicas
========================================================
SEM Redis. SEM I/O. Determinístico.

Usado quando o usuário responde a uma lista (eventos, categorias,
camisetas) com texto livre em vez do número da opção.

Regra de ranking:
    score = acertos / max(3, tokens do rótulo)
    vence o maior score > 0; empate fica com o primeiro da lista.
"""
from __future__ import annotations
import re
from collections.abc import Callable, Sequence
from typing import TypeVar

from src.domain.entities import CategoriaOpcao, TamanhoCamiseta
from src.domain.texto import normalizar, tokens

T = TypeVar("T")

_INTEIRO = re.compile(r"^\d+$")


def indice_por_numero(raw: str, total: int) -> int | None:
    """'3' com total=5 → 2. Fora de [1, total] ou não numérico → None."""
    t = (raw or "").strip()
    if not _INTEIRO.match(t):
        return None
    n = int(t)
    return n - 1 if 1 <= n <= total else None


def escolher_indice_por_texto(
    consulta: str,
    itens: Sequence[T],
    rotulo: Callable[[T], str],
) -> int:
    q_tokens = tokens(consulta)
    if not q_tokens or not itens:
        return -1

    melhor, melhor_score = -1, 0.0
    for i, item in enumerate(itens):
        l_tokens = tokens(rotulo(item))
        acertos = sum(1 for t in q_tokens if t in l_tokens)
        score = acertos / max(3, len(l_tokens))
        if score > melhor_score:
            melhor, melhor_score = i, score
    return melhor if melhor_score > 0 else -1


def _contem_todos(consulta_tokens: list[str], texto: str) -> bool:
    alvo = normalizar(texto)
    return all(t in alvo for t in consulta_tokens)


# =============================================================================
# Categorias
# =============================================================================

def casar_categoria_estrito(consulta: str, categorias: Sequence[CategoriaOpcao]) -> int:
    """Primeira categoria cujo texto contém todos os tokens da consulta."""
    q_tokens = tokens(consulta)
    if not q_tokens:
        return -1
    for i, c in enumerate(categorias):
        if _contem_todos(q_tokens, c.texto_busca):
            return i
    return -1


def casar_categoria_aproximado(consulta: str, categorias: Sequence[CategoriaOpcao]) -> int:
    return escolher_indice_por_texto(consulta, categorias, lambda c: c.texto_busca)


# =============================================================================
# Camisetas: "baby look", "babylook" e "bl" são a mesma coisa
# =============================================================================

_BABY_LOOK = re.compile(r"\bbaby\s*look\b")
_BABYLOOK = re.compile(r"\bbabylook\b")


def texto_busca_camiseta(item: TamanhoCamiseta) -> str:
    base = normalizar(f"{item.label} {item.tamanho}")
    variantes = " ".join([
        base,
        _BABY_LOOK.sub("babylook", base),
        _BABYLOOK.sub("baby look", base),
        _BABY_LOOK.sub("bl", base),
        _BABYLOOK.sub("bl", base),
    ])
    # Tokens repetidos inflariam o denominador do ranking
    return " ".join(dict.fromkeys(variantes.split()))


def _canonico(texto: str) -> str:
    return normalizar(texto).replace(" ", "")


def casar_camiseta(consulta: str, mapa: dict[int, TamanhoCamiseta]) -> TamanhoCamiseta | None:
    """
    Resolve texto livre contra o mapa índice → tamanho, em três tentativas:
      1. ranking por tokens sobre o texto expandido com sinônimos
      2. todos os tokens da consulta contidos no texto expandido
      3. comparação canônica (sem espaços) com o código do tamanho / label
    """
    itens = [mapa[k] for k in sorted(mapa)]
    q = normalizar(consulta)
    if not q or not itens:
        return None

    idx = escolher_indice_por_texto(q, itens, texto_busca_camiseta)
    if idx >= 0:
        return itens[idx]

    q_tokens = q.split()
    for item in itens:
        if _contem_todos(q_tokens, texto_busca_camiseta(item)):
            return item

    so_tamanho = q.replace(" ", "")
    for item in itens:
        if _canonico(item.tamanho) == so_tamanho or so_tamanho in _canonico(item.label):
            return item
    return None
