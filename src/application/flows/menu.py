"""
application/flows/menu.py — Menu de assuntos, seleção de evento e "mais ajuda"
===============================================================================
awaiting_issue     → número / apelido → classificador LLM → palavras-chave
awaiting_event     → anota o evento e retoma a intenção guardada
awaiting_more_help → ponto de encontro de todo fluxo concluído

iniciar_assunto() é a única porta de entrada dos fluxos: cada um confere
sozinho se tem cadastro e evento antes de começar.
"""
from __future__ import annotations
import logging
from collections.abc import Awaitable, Callable

from src.application.flows import camiseta, cancelamento, categoria, equipe, faq, senha, transferencia
from src.application.flows.base import Conversa, Handler, pedir_assunto
from src.application.flows.eventos import pedir_evento, reexibir_eventos, selecionar_evento
from src.domain.entities import Assunto, Etapa
from src.domain.menu import resolver_assunto_direto
from src.domain.router import classificar_por_palavras
from src.domain.texto import e_despedida, e_ir_menu, quer_mais_ajuda

logger = logging.getLogger(__name__)

_CHAVES_LLM = [a.value for a in Assunto if a not in (Assunto.DESCONHECIDO, Assunto.FAQ_CONTATO)]

ENTRADAS: dict[Assunto, Callable[[Conversa], Awaitable[None]]] = {
    Assunto.SENHA:           senha.iniciar_senha,
    Assunto.CATEGORIA:       categoria.iniciar_categoria,
    Assunto.CAMISETA:        camiseta.iniciar_camiseta,
    Assunto.EQUIPE:          equipe.iniciar_equipe,
    Assunto.CANCELAMENTO:    cancelamento.iniciar_cancelamento,
    Assunto.TRANSFERENCIA:   transferencia.iniciar_transferencia,
    Assunto.FAQ:             faq.iniciar_faq,
    Assunto.FAQ_CONTATO:     faq.enviar_link_organizador,
    Assunto.ESCOLHER_EVENTO: pedir_evento,
}


async def iniciar_assunto(conv: Conversa, assunto: Assunto) -> None:
    logger.info("🧭 [%s] assunto=%s", conv.chave, assunto.value)
    await ENTRADAS[assunto](conv)


async def classificar_assunto(conv: Conversa, texto: str) -> Assunto:
    direto = resolver_assunto_direto(texto)
    if direto:
        return direto
    chave = await conv.ctx.enhancer.classificar(texto, _CHAVES_LLM)
    if chave in _CHAVES_LLM:
        return Assunto(chave)
    return classificar_por_palavras(texto)


async def ao_escolher_assunto(conv: Conversa, texto: str) -> None:
    assunto = await classificar_assunto(conv, texto)
    if assunto == Assunto.DESCONHECIDO:
        await conv.dizer(
            "Pode me dizer em poucas palavras o que você precisa? Ex.: trocar categoria, "
            "cancelar inscrição, recuperar senha, transferir titularidade."
        )
        await pedir_assunto(conv)
        return
    await iniciar_assunto(conv, assunto)


async def ao_escolher_evento(conv: Conversa, texto: str) -> None:
    if not await selecionar_evento(conv, texto):
        if e_ir_menu(texto):
            conv.sessao.pendente.assunto_desejado = None
            await pedir_assunto(conv)
            return
        await reexibir_eventos(conv)
        return

    desejado = conv.sessao.consumir_assunto_desejado()
    if desejado and desejado in ENTRADAS and desejado != Assunto.ESCOLHER_EVENTO:
        await iniciar_assunto(conv, desejado)
        return
    await pedir_assunto(conv)


async def ao_responder_mais_ajuda(conv: Conversa, texto: str) -> None:
    if quer_mais_ajuda(texto):
        await pedir_assunto(conv)
        return
    despedida = (
        "Por nada! Se precisar, é só chamar. 👋" if e_despedida(texto)
        else "Qualquer coisa, estou por aqui. Até mais! 👋"
    )
    conv.sessao.resetar()
    await conv.dizer(despedida)


HANDLERS: dict[Etapa, Handler] = {
    Etapa.AWAITING_ISSUE:     ao_escolher_assunto,
    Etapa.AWAITING_EVENT:     ao_escolher_evento,
    Etapa.AWAITING_MORE_HELP: ao_responder_mais_ajuda,
}
