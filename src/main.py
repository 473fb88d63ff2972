"""
main.py — Aplicação FastAPI do BRO
===================================
Rotas:
  POST /webhook      → eventos da Evolution API (messages.upsert)
  GET  /health       → estado do Redis, LLM e pedidos de troca pendentes
  GET  /logs/errors  → últimos erros espelhados no Redis (OBS_REDIS_ENABLED)

No startup monta o Contexto (sessões, backend, transporte, LLM opcional),
configura o webhook da instância e sobe a varredura de autorizações
de troca de titularidade expiradas.
"""
from __future__ import annotations
import asyncio
import logging
from contextlib import asynccontextmanager

import redis
from fastapi import FastAPI, Request

from src.api.schemas import HealthResponse, WebhookPayload
from src.application.contexto import Contexto
from src.application.flows.transferencia import notificar_expiradas
from src.application.handle_webhook import handle_webhook
from src.infrastructure.observability import obs
from src.infrastructure.redis_client import get_redis, redis_ok
from src.infrastructure.settings import settings
from src.memory.session_store import criar_session_store
from src.middleware.dev_guard import DevGuard
from src.providers.text_enhancer import criar_text_enhancer
from src.services.evolution_service import EvolutionService
from src.services.inscricoes_service import InscricoesService

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)-7s %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# --- SILENCIADOR DE LOG DO WEBHOOK ---
class EndpointFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return "/webhook" not in record.getMessage()


logging.getLogger("uvicorn.access").addFilter(EndpointFilter())


# =============================================================================
# VARREDURA DE AUTORIZAÇÕES
# =============================================================================
async def varrer_autorizacoes(ctx: Contexto, intervalo_s: float) -> None:
    while True:
        await asyncio.sleep(intervalo_s)
        try:
            await notificar_expiradas(ctx)
        except Exception as e:
            obs.error("sistema", "varredura_autorizacoes", f"{type(e).__name__}: {e}")


def _redis_para_dedup() -> redis.Redis | None:
    if not settings.usa_redis:
        return None
    try:
        return get_redis()
    except redis.RedisError:
        logger.warning("⚠️  DevGuard sem deduplicação: Redis indisponível.")
        return None


# =============================================================================
# STARTUP / SHUTDOWN
# =============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    evolution = EvolutionService()
    ctx = Contexto(
        transporte=evolution,
        inscricoes=InscricoesService(),
        sessoes=criar_session_store(),
        enhancer=criar_text_enhancer(),
    )
    app.state.ctx = ctx
    app.state.guard = DevGuard(_redis_para_dedup())

    logger.info("🚀 BRO iniciado | dev_mode=%s | llm=%s", settings.DEV_MODE, ctx.enhancer.ativo)
    await evolution.inicializar()

    varredura = asyncio.create_task(varrer_autorizacoes(ctx, settings.AUTH_SWEEP_INTERVAL_S))
    try:
        yield
    finally:
        varredura.cancel()
        try:
            await varredura
        except asyncio.CancelledError:
            pass
        logger.info("👋 BRO encerrado.")


app = FastAPI(title="BRO — Atendimento Sportbro", lifespan=lifespan)


# =============================================================================
# ROTAS
# =============================================================================
@app.post("/webhook")
async def webhook(request: Request):
    # ValidationError também é ValueError: JSON quebrado ou fora do formato da Evolution
    try:
        payload = WebhookPayload.model_validate(await request.json())
    except ValueError:
        return {"status": "invalid_payload"}
    return await handle_webhook(payload.model_dump(), request.app.state.guard, request.app.state.ctx)


@app.get("/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    ctx: Contexto = request.app.state.ctx
    return HealthResponse(
        status="ok",
        redis=redis_ok(),
        llm=ctx.enhancer.ativo,
        sessoes=settings.SESSION_BACKEND,
        autorizacoes=len(ctx.autorizacoes),
        dev_mode=settings.DEV_MODE,
    )


@app.get("/logs/errors")
async def logs_errors(limit: int = 20):
    return {"errors": obs.get_recent_errors(limit)}
