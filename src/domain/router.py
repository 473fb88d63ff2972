"""
domain/router.py — Classificação de assunto por palavras-chave (stateless)
===========================================================================
SEM Redis. SEM I/O. Puro regex.
Usado quando o classificador do LLM está indisponível ou não decidiu:
    assert classificar_por_palavras("esqueci minha senha") == Assunto.SENHA
"""
from __future__ import annotations
import re

from src.domain.entities import Assunto
from src.domain.texto import normalizar

# =============================================================================
# Padrões avaliados em ordem. O primeiro que casar decide.
# "evento" fica por último: "cancelar inscrição do evento" é CANCELAMENTO.
# =============================================================================

_PADROES: list[tuple[Assunto, re.Pattern]] = [
    (Assunto.SENHA, re.compile(r"senha|login|acess(o|ar)|redefinir")),
    (Assunto.CATEGORIA, re.compile(r"categoria|modalidade|distancia")),
    (Assunto.CAMISETA, re.compile(r"camis|tamanho|baby\s*look")),
    (Assunto.EQUIPE, re.compile(r"equipe|\btime\b|assessoria")),
    (Assunto.CANCELAMENTO, re.compile(r"cancel|estorno|reembolso|desist")),
    (Assunto.TRANSFERENCIA, re.compile(r"transfer|titular")),
    (Assunto.FAQ, re.compile(r"duvida|pergunta|kit|tempo (bruto|liquido)")),
    (Assunto.ESCOLHER_EVENTO, re.compile(r"evento")),
]


def classificar_por_palavras(texto: str) -> Assunto:
    """
    Determina o Assunto de um texto livre.
    Pura, sem I/O, testável com assert direto.
    """
    txt = normalizar(texto)
    if not txt:
        return Assunto.DESCONHECIDO

    for assunto, pattern in _PADROES:
        if pattern.search(txt):
            return assunto

    return Assunto.DESCONHECIDO

