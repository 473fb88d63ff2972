"""
application/flows/eventos.py — Seleção de evento
=================================================
Etapa única: awaiting_event.

A lista mostrada fica em pendente.eventos; a resposta é resolvida contra
esse snapshot (número primeiro, depois ranking por tokens) e, sem
correspondência, a mesma lista é reapresentada sem nova busca.

Quem precisa de evento chama exigir_evento(): a intenção fica guardada em
pendente.assunto_desejado até o evento ser escolhido.
"""
from __future__ import annotations
import logging

from src.application.flows.base import Conversa, pedir_assunto
from src.domain.entities import Assunto, Etapa
from src.domain.menu import montar_menu_eventos
from src.domain.selecao import escolher_indice_por_texto, indice_por_numero
from src.infrastructure.observability import obs
from src.services.inscricoes_service import BackendError

logger = logging.getLogger(__name__)

PERGUNTA_EVENTO = "Legal! Em qual **evento** você quer atendimento?"
NAO_ENCONTREI = "Não encontrei. Pode digitar parte do nome do evento ou escolher pelo número?"


async def pedir_evento(conv: Conversa) -> None:
    try:
        eventos = await conv.ctx.inscricoes.listar_eventos_abertos()
    except BackendError as e:
        obs.warn(conv.chave, "eventos", f"listagem falhou: {e}")
        # IDLE com assunto_desejado guardado: a próxima mensagem tenta de novo
        conv.etapa = Etapa.IDLE
        await conv.dizer("Não consegui carregar os eventos agora. Me manda uma mensagem em instantes que eu tento de novo.")
        return

    if not eventos:
        conv.sessao.pendente.assunto_desejado = None
        await conv.dizer(
            "No momento não encontrei eventos abertos. "
            "Se quiser, posso te avisar quando abrirem novas inscrições."
        )
        await pedir_assunto(conv)
        return

    conv.sessao.pendente.eventos = eventos
    conv.etapa = Etapa.AWAITING_EVENT
    await conv.dizer(PERGUNTA_EVENTO)
    await conv.dizer(montar_menu_eventos(eventos), amigavel=False)


async def reexibir_eventos(conv: Conversa) -> None:
    eventos = conv.sessao.pendente.eventos
    if not eventos:
        await pedir_evento(conv)
        return
    conv.etapa = Etapa.AWAITING_EVENT
    await conv.dizer(NAO_ENCONTREI)
    await conv.dizer(montar_menu_eventos(eventos), amigavel=False)


async def selecionar_evento(conv: Conversa, texto: str) -> bool:
    """Resolve a resposta contra a lista mostrada. True se um evento foi anotado."""
    eventos = conv.sessao.pendente.eventos or []
    idx = indice_por_numero(texto, len(eventos))
    if idx is None:
        idx = escolher_indice_por_texto(texto, eventos, lambda ev: ev.rotulo)
        if idx < 0:
            return False

    evento = eventos[idx].para_evento()
    conv.sessao.selecionar_evento(evento)
    logger.info("📅 [%s] evento %s selecionado", conv.chave, evento.id)
    await conv.dizer(f"Perfeito! Anotei o evento **{evento.titulo}**.")
    return True


async def exigir_evento(conv: Conversa, assunto: Assunto, aviso: str | None = None) -> bool:
    """
    True se já há evento em contexto. Senão guarda `assunto` como intenção,
    descarta as listas do evento anterior e abre a seleção de evento.
    """
    if conv.evento and conv.evento.id:
        return True
    await trocar_evento(conv, assunto, aviso)
    return False


async def trocar_evento(conv: Conversa, assunto: Assunto, aviso: str | None = None) -> None:
    conv.sessao.pendente.assunto_desejado = assunto
    conv.sessao.limpar_contexto_evento(manter_desejado=True)
    if aviso:
        await conv.dizer(aviso)
    await pedir_evento(conv)
