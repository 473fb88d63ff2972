"""
application/flows/categoria.py — Troca de categoria
====================================================
lista → escolha → PUT inscricao_put.php (inscricaoID)

Texto livre na escolha, em ordem:
  1. número da opção
  2. todos os tokens contidos no texto da categoria
  3. escolha pelo LLM (quando ativo)
  4. ranking por tokens
"""
from __future__ import annotations
import logging

from src.application.flows.base import (
    Conversa, Handler, oferecer_mais_ajuda, tratar_sem_opcoes,
)
from src.application.flows.cpf import exigir_cadastro
from src.application.flows.eventos import exigir_evento, trocar_evento
from src.domain.entities import Assunto, CategoriaOpcao, Etapa
from src.domain.menu import MENU_SEM_OPCOES, montar_menu_categorias
from src.domain.selecao import (
    casar_categoria_aproximado, casar_categoria_estrito, indice_por_numero,
)
from src.domain.texto import e_trocar_evento
from src.infrastructure.observability import obs
from src.services.inscricoes_service import BackendError

logger = logging.getLogger(__name__)


async def iniciar_categoria(conv: Conversa) -> None:
    if not await exigir_cadastro(conv):
        return
    if not await exigir_evento(conv, Assunto.CATEGORIA):
        return

    try:
        categorias = await conv.ctx.inscricoes.listar_categorias(conv.evento.id, conv.usuario.id)
    except BackendError as e:
        obs.warn(conv.chave, "categoria", f"listagem falhou: {e}")
        conv.etapa = Etapa.AWAITING_NO_CATEGORY
        await conv.dizer(f"Não consegui listar as categorias agora.\n\n{MENU_SEM_OPCOES}")
        return

    if not categorias:
        conv.etapa = Etapa.AWAITING_NO_CATEGORY
        await conv.dizer(f"Não encontrei opções de categoria disponíveis para este evento.\n\n{MENU_SEM_OPCOES}")
        return

    conv.sessao.pendente.categorias = categorias
    conv.etapa = Etapa.AWAITING_CATEGORY_CHOICE
    await conv.dizer("Estas são as categorias disponíveis. Selecione a opção desejada:")
    await conv.dizer(montar_menu_categorias(conv.evento.titulo, categorias), amigavel=False)


async def _resolver_escolha(conv: Conversa, texto: str, categorias: list[CategoriaOpcao]) -> int:
    idx = indice_por_numero(texto, len(categorias))
    if idx is not None:
        return idx
    idx = casar_categoria_estrito(texto, categorias)
    if idx >= 0:
        return idx
    idx = await conv.ctx.enhancer.escolher_indice(texto, [c.texto_busca for c in categorias])
    if 0 <= idx < len(categorias):
        return idx
    return casar_categoria_aproximado(texto, categorias)


async def aplicar_categoria(conv: Conversa, categoria: CategoriaOpcao) -> None:
    try:
        await conv.ctx.inscricoes.atualizar_inscricao(
            conv.usuario.id, conv.evento.id, inscricaoID=categoria.id,
        )
    except BackendError as e:
        obs.error(conv.chave, "categoria", f"troca falhou: {e}")
        await conv.dizer("Algo não deu certo ao solicitar a troca. Vamos repetir o processo?")
        await iniciar_categoria(conv)
        return

    await conv.dizer(
        f"Prontinho! Solicitei a **troca de categoria** no evento **{conv.evento.titulo}**. 🎉"
    )
    conv.sessao.pendente.categorias = None
    await oferecer_mais_ajuda(conv)


async def ao_escolher_categoria(conv: Conversa, texto: str) -> None:
    if e_trocar_evento(texto):
        await trocar_evento(conv, Assunto.CATEGORIA)
        return

    categorias = conv.sessao.pendente.categorias or []
    idx = await _resolver_escolha(conv, texto, categorias)
    if idx >= 0:
        await aplicar_categoria(conv, categorias[idx])
        return

    await conv.dizer("Não consegui entender. Pode repetir? Você pode digitar parte do nome da categoria.")
    await iniciar_categoria(conv)


HANDLERS: dict[Etapa, Handler] = {
    Etapa.AWAITING_CATEGORY_CHOICE: ao_escolher_categoria,
    Etapa.AWAITING_NO_CATEGORY:     tratar_sem_opcoes,
}
