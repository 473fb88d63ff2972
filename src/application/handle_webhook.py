"""
application/handle_webhook.py — Extração e validação do payload (Evolution API v2)
===================================================================================
Recebe o payload bruto do FastAPI, valida com DevGuard,
converte para Mensagem (domain entity) e chama handle_message.
"""
from __future__ import annotations
import logging

from src.application.contexto import Contexto
from src.application.handle_message import handle_message
from src.domain.entities import Mensagem
from src.middleware.dev_guard import DevGuard

logger = logging.getLogger(__name__)


async def handle_webhook(payload: dict, guard: DevGuard, ctx: Contexto) -> dict:
    """
    Ponto de entrada de toda mensagem recebida.

    Retorna:
      {"status": "ok"} quando a mensagem seguiu para o roteador,
      {"status": "blocked", "reason": ...} quando o DevGuard barrou.
    """
    ok, resultado = await guard.validar(payload)

    if not ok:
        logger.debug("🛑 DevGuard bloqueou: %s", resultado)
        return {"status": "blocked", "reason": resultado}

    identity: dict = resultado

    mensagem = Mensagem(
        user_id   = identity["sender_phone"],
        chat_id   = identity["chat_id"],
        body      = identity.get("body", ""),
        has_media = identity.get("has_media", False),
        msg_type  = identity.get("msg_type", "conversation"),
        push_name = identity.get("push_name", ""),
    )

    await handle_message(mensagem, ctx)
    return {"status": "ok"}
