"""
application/flows/faq.py — Dúvidas sobre o evento
==================================================
Menu fixo de respostas prontas (domain/menu.py). A opção 4 precisa de um
evento para montar o link da página: entra na seleção de evento com a
intenção iss_faq_contact.
"""
from __future__ import annotations
import logging

from src.application.flows.base import Conversa, Handler, oferecer_mais_ajuda, pedir_assunto
from src.application.flows.eventos import exigir_evento, trocar_evento
from src.domain.entities import Assunto, Etapa
from src.domain.menu import MENU_FAQ, OPCAO_FAQ_CONTATO, RESPOSTAS_FAQ
from src.domain.texto import e_ir_menu, normalizar
from src.infrastructure.settings import settings

logger = logging.getLogger(__name__)


async def iniciar_faq(conv: Conversa) -> None:
    conv.etapa = Etapa.AWAITING_FAQ_MENU
    await conv.dizer(MENU_FAQ)


async def ao_escolher_duvida(conv: Conversa, texto: str) -> None:
    if e_ir_menu(texto):
        await pedir_assunto(conv)
        return

    opcao = normalizar(texto)
    if opcao in RESPOSTAS_FAQ:
        resposta, pergunta = RESPOSTAS_FAQ[opcao]
        await conv.dizer(resposta)
        await oferecer_mais_ajuda(conv, pergunta)
        return

    if opcao == OPCAO_FAQ_CONTATO:
        await trocar_evento(
            conv,
            Assunto.FAQ_CONTATO,
            "Show! Me informa de qual evento você quer o link/contato do organizador.\n"
            "Você pode escolher pelo número da lista ou digitar parte do nome do evento.",
        )
        return

    await conv.dizer(
        "Não entendi essa opção. Responda com 1, 2, 3, 4 ou 5.\n"
        "Se quiser, também pode digitar *menu* para voltar ao início."
    )


async def enviar_link_organizador(conv: Conversa) -> None:
    aviso = "Antes, me diz de qual evento você quer falar, assim já te mando o link certinho. 🙂"
    if not await exigir_evento(conv, Assunto.FAQ_CONTATO, aviso):
        return

    slug = (conv.evento.slug or "").lstrip("/")
    link = f"{settings.site_v2_url}/{slug}" if slug else settings.site_v2_url
    await conv.dizer(
        f"Aqui está a página oficial do evento **{conv.evento.titulo}**:\n{link}\n\n"
        "Por lá você encontra mais detalhes e contatos da organização. 😉"
    )
    await oferecer_mais_ajuda(conv, "Posso te ajudar com mais alguma dúvida?")


HANDLERS: dict[Etapa, Handler] = {
    Etapa.AWAITING_FAQ_MENU: ao_escolher_duvida,
}
