"""
application/flows/equipe.py — Troca do nome da equipe
======================================================
Sem lista: pede o nome, confirma com sim/não e grava.
"""
from __future__ import annotations
import logging

from src.application.flows.base import Conversa, Handler, oferecer_mais_ajuda
from src.application.flows.cpf import exigir_cadastro
from src.application.flows.eventos import exigir_evento, trocar_evento
from src.domain.entities import Assunto, Etapa
from src.domain.texto import e_nao, e_sim, e_trocar_evento
from src.infrastructure.observability import obs
from src.services.inscricoes_service import BackendError

logger = logging.getLogger(__name__)


async def iniciar_equipe(conv: Conversa) -> None:
    if not await exigir_cadastro(conv):
        return
    if not await exigir_evento(conv, Assunto.EQUIPE):
        return
    conv.sessao.pendente.nome_equipe = None
    conv.etapa = Etapa.AWAITING_TEAM_NAME
    await conv.dizer(
        f"Evento selecionado: **{conv.evento.titulo}**\n"
        "Antes de confirmar, me informe o **nome da equipe** como deve aparecer."
    )


async def ao_receber_nome(conv: Conversa, texto: str) -> None:
    nome = texto.strip()
    if e_trocar_evento(nome):
        await trocar_evento(conv, Assunto.EQUIPE)
        return
    if not nome:
        await conv.dizer("Me envie o **nome da equipe**, por favor.")
        return
    conv.sessao.pendente.nome_equipe = nome
    conv.etapa = Etapa.AWAITING_TEAM_CONFIRM
    await conv.dizer(
        f"Você informou **{nome}** como nome da equipe no evento **{conv.evento.titulo}**. Está correto?"
    )


async def ao_confirmar_nome(conv: Conversa, texto: str) -> None:
    if e_sim(texto):
        await aplicar_equipe(conv)
        return
    if e_nao(texto):
        await iniciar_equipe(conv)
        return
    await conv.dizer("Não entendi, pode repetir?")


async def aplicar_equipe(conv: Conversa) -> None:
    nome = conv.sessao.pendente.nome_equipe or ""
    if not nome:
        await iniciar_equipe(conv)
        return
    try:
        await conv.ctx.inscricoes.atualizar_inscricao(conv.usuario.id, conv.evento.id, equipe=nome)
    except BackendError as e:
        obs.error(conv.chave, "equipe", f"gravação falhou: {e}")
        conv.etapa = Etapa.AWAITING_TEAM_NAME
        await conv.dizer(
            "Não consegui salvar o nome da equipe agora. "
            "Quer tentar novamente me enviando o nome outra vez?"
        )
        return

    conv.sessao.pendente.nome_equipe = None
    await conv.dizer(
        f"Perfeito! Atualizei o **nome da equipe** para **{nome}** no evento **{conv.evento.titulo}**. ✅"
    )
    await oferecer_mais_ajuda(conv)


HANDLERS: dict[Etapa, Handler] = {
    Etapa.AWAITING_TEAM_NAME:    ao_receber_nome,
    Etapa.AWAITING_TEAM_CONFIRM: ao_confirmar_nome,
}
