"""
================================================================================
dev_guard.py — Middleware de Validação e Segurança (Evolution API v2)
================================================================================

RESUMO:
  Porteiro do sistema. Todo evento recebido pelo /webhook passa aqui primeiro.
  Só libera para o handler o que for mensagem de texto válida, deduplicada
  e autorizada.

FLUXO DE VALIDAÇÃO (em ordem):
  1. Evento deve ser "messages.upsert"
  2. Não pode ser mensagem própria (key.fromMe)
  3. remoteJid deve existir
  4. Não pode ser grupo (@g.us) ou status broadcast
  5. Se DEV_MODE ativo: telefone deve estar na DEV_WHITELIST
  6. Deduplicação via Redis (TTL 5 min) pelo key.id, quando houver Redis
  7. Texto vem de message.conversation ou message.extendedTextMessage.text
  8. Retorna identity pronta para o handler
================================================================================
"""
from __future__ import annotations
import logging

import redis

from src.domain.texto import digitos_telefone
from src.infrastructure.settings import settings

logger = logging.getLogger(__name__)

_EVENTOS_MENSAGEM = {"messages.upsert", "MESSAGES_UPSERT"}
_DEDUP_TTL_S = 300


class DevGuard:
    def __init__(self, redis_client: redis.Redis | None = None):
        """
        Parâmetros:
          redis_client : Redis já conectado, ou None para rodar sem deduplicação
        """
        self.r = redis_client
        self.dev_mode = settings.DEV_MODE
        self.dev_whitelist = {digitos_telefone(n) for n in settings.dev_whitelist_list}

        logger.info(
            "🛡️  DevGuard iniciado | dev_mode=%s | whitelist=%s",
            self.dev_mode,
            self.dev_whitelist,
        )

    def _duplicado(self, event_id: str) -> bool:
        if not self.r or not event_id:
            return False
        chave_evt = f"evt:{event_id}"
        try:
            # SET NX: só o primeiro webhook com esse id passa
            return not self.r.set(chave_evt, "1", ex=_DEDUP_TTL_S, nx=True)
        except redis.RedisError as e:
            logger.warning("⚠️  Deduplicação indisponível: %s", e)
            return False

    async def validar(self, data: dict) -> tuple[bool, dict | str]:
        """
        Valida o evento recebido no /webhook.

        Retorno:
          (True,  identity: dict) → aprovado, segue para o handler
          (False, motivo: str)    → bloqueado

        identity contém:
          chat_id      : JID completo (ex: "5598...@s.whatsapp.net")
          sender_phone : só os dígitos (ex: "5598...")
          body         : texto da mensagem
          push_name    : nome do contato no WhatsApp
          has_media    : bool
          msg_type     : messageType da Evolution ("conversation", ...)
        """

        # ── 1. Filtro de evento ────────────────────────────────────────────────
        if data.get("event") not in _EVENTOS_MENSAGEM:
            logger.debug("⏭️  Evento ignorado: %s", data.get("event"))
            return False, "ignored_event"

        payload = data.get("data") or {}
        key = payload.get("key") or {}

        # ── 2. Ignora mensagens próprias ──────────────────────────────────────
        if not payload or key.get("fromMe"):
            return False, "ignored_self"

        # ── 3. Extração do chat_id ────────────────────────────────────────────
        chat_id = key.get("remoteJid", "")
        if not chat_id:
            logger.warning("⚠️  Payload sem remoteJid: %s", str(payload)[:200])
            return False, "invalid_payload"

        # ── 4. Filtro de grupos e status broadcast ────────────────────────────
        if chat_id.endswith("@g.us") or "status@broadcast" in chat_id:
            logger.debug("⏭️  Grupo/broadcast ignorado: %s", chat_id)
            return False, "ignored_group_status"

        sender_phone = digitos_telefone(chat_id)

        # ── 5. Modo DEV: whitelist ────────────────────────────────────────────
        if self.dev_mode and sender_phone not in self.dev_whitelist:
            logger.info("🚧 DevGuard bloqueou: %s (fora da whitelist)", sender_phone)
            return False, "not_in_whitelist"

        # ── 6. Deduplicação ───────────────────────────────────────────────────
        if self._duplicado(key.get("id", "")):
            logger.debug("🔁 Evento duplicado ignorado: %s", key.get("id"))
            return False, "duplicate"

        # ── 7. Texto ──────────────────────────────────────────────────────────
        message = payload.get("message") or {}
        body = (
            message.get("conversation")
            or (message.get("extendedTextMessage") or {}).get("text")
            or ""
        ).strip()
        msg_type = payload.get("messageType") or ("conversation" if body else "unknown")

        if not body:
            logger.debug("⏭️  Sem texto (%s) de %s", msg_type, sender_phone)
            return False, "ignored_content"

        # ── 8. Monta identity aprovada ────────────────────────────────────────
        identity = {
            "chat_id":      chat_id,
            "sender_phone": sender_phone,
            "body":         body,
            "push_name":    payload.get("pushName") or "",
            "has_media":    msg_type not in ("conversation", "extendedTextMessage"),
            "msg_type":     msg_type,
        }

        logger.debug("✅ DevGuard aprovado: %s | body: '%s'", sender_phone, body[:60])
        return True, identity
