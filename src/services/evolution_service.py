"""
src/services/evolution_service.py — Integração com Evolution API v2
===================================================================
Envio de texto e configuração do webhook da instância.
Pareamento por QR fica fora: a instância já deve estar conectada.
"""
from __future__ import annotations
import logging
import httpx

from src.domain.texto import digitos_telefone
from src.infrastructure.settings import settings

logger = logging.getLogger(__name__)


class EvolutionService:
    def __init__(self, transport: httpx.AsyncBaseTransport | None = None):
        self.base_url    = settings.EVOLUTION_BASE_URL.rstrip("/")
        self.api_key     = settings.EVOLUTION_API_KEY
        self.instance    = settings.EVOLUTION_INSTANCE_NAME
        self.headers     = {
            "Content-Type": "application/json",
            "apikey":       self.api_key,
        }
        self.webhook_url = settings.WHATSAPP_HOOK_URL
        self.transport   = transport

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self.transport)

    # ------------------------------------------------------------------
    # STATUS E WEBHOOK
    # ------------------------------------------------------------------

    async def verificar_instancia(self) -> str | None:
        """Estado da conexão da instância ("open", "close", "NOT_FOUND"...)."""
        url = f"{self.base_url}/instance/connectionState/{self.instance}"
        async with self._client(10.0) as client:
            try:
                r = await client.get(url, headers=self.headers)
                if r.status_code == 200:
                    estado = r.json().get("instance", {}).get("state", "UNKNOWN")
                    logger.info("ℹ️  Evolution Instância '%s': %s", self.instance, estado)
                    return estado
                if r.status_code == 404:
                    return "NOT_FOUND"
                logger.warning("⚠️  Status Evolution: %s | %s", r.status_code, r.text)
                return None
            except httpx.HTTPError as e:
                logger.error("❌ Erro ao verificar Evolution API: %s", e)
                return None

    async def configurar_webhook(self) -> bool:
        url = f"{self.base_url}/webhook/set/{self.instance}"
        payload = {
            "webhook": {
                "enabled": True,
                "url": self.webhook_url,
                "webhookByEvents": False,
                "events": ["MESSAGES_UPSERT"],
            }
        }
        async with self._client(10.0) as client:
            try:
                r = await client.post(url, json=payload, headers=self.headers)
                if r.status_code in (200, 201):
                    logger.info("✅ Webhook Evolution configurado → %s", self.webhook_url)
                    return True
                logger.warning("⚠️  Falha no Webhook: %s | %s", r.status_code, r.text)
            except httpx.HTTPError as e:
                logger.error("❌ Erro ao configurar webhook: %s", e)
        return False

    async def inicializar(self) -> None:
        """Chamado no startup do main.py."""
        logger.info("🚀 Inicializando EvolutionService...")
        status = await self.verificar_instancia()
        if status in (None, "NOT_FOUND"):
            logger.warning("⚠️  Instância '%s' indisponível (%s). Webhook não configurado.", self.instance, status)
            return
        await self.configurar_webhook()

    # ------------------------------------------------------------------
    # ENVIO DE MENSAGENS
    # ------------------------------------------------------------------

    async def enviar_texto(self, destino: str, texto: str) -> bool:
        """
        Envia texto para um telefone. `destino` pode vir como JID, E.164
        ou com máscara: só os dígitos seguem para a Evolution.
        Retorna True quando a Evolution aceitou a mensagem.
        """
        numero = digitos_telefone(destino)
        if not numero or not texto:
            return False

        url = f"{self.base_url}/message/sendText/{self.instance}"
        payload = {
            "number": numero,
            "text": texto,
            "delay": 1200,  # "digitando..." por 1.2s
        }
        async with self._client(15.0) as client:
            try:
                r = await client.post(url, json=payload, headers=self.headers)
                if r.status_code in (200, 201):
                    logger.info("✅ Mensagem enviada para %s", numero)
                    return True
                logger.warning("⚠️  Falha ao enviar. Status %s | %s", r.status_code, r.text)
            except httpx.HTTPError as e:
                logger.exception("❌ Erro inesperado ao enviar mensagem: %s", e)
        return False
