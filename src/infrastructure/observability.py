"""
infrastructure/observability.py — Logs estruturados do atendimento
==================================================================
Todo erro/aviso relevante de um fluxo passa por aqui: vai para o logger
e, com OBS_REDIS_ENABLED, é espelhado numa lista curta no Redis para
consulta rápida via GET /logs/errors.
"""
from __future__ import annotations
import json
import logging
from datetime import datetime

import redis

from src.infrastructure.redis_client import get_redis
from src.infrastructure.settings import settings

logger = logging.getLogger(__name__)

_PREFIXOS = {
    "error": "system_logs:error",
    "warn":  "system_logs:warn",
    "info":  "system_logs:info",
}
_MAX_ENTRIES = 100


class Observability:
    """Singleton de observabilidade — logs por usuário e contexto."""

    def __init__(self, espelhar_redis: bool | None = None):
        self.espelhar_redis = settings.OBS_REDIS_ENABLED if espelhar_redis is None else espelhar_redis

    def _salvar(self, nivel: str, user_id: str, context: str, msg: str) -> None:
        if not self.espelhar_redis:
            return
        try:
            r = get_redis()
            entrada = json.dumps({
                "ts":      datetime.now().isoformat(),
                "user_id": user_id,
                "context": context,
                "msg":     str(msg)[:300],
            }, ensure_ascii=False)
            chave = _PREFIXOS.get(nivel, "system_logs:info")
            r.lpush(chave, entrada)
            r.ltrim(chave, 0, _MAX_ENTRIES - 1)
        except redis.RedisError as e:
            # o espelho nunca quebra o fluxo principal
            logger.debug("🔇 Espelho de log no Redis falhou: %s", e)

    def error(self, user_id: str, context: str, msg: str) -> None:
        logger.error("❌ [%s] %s | %s", user_id, context, str(msg)[:200])
        self._salvar("error", user_id, context, msg)

    def warn(self, user_id: str, context: str, msg: str) -> None:
        logger.warning("⚠️  [%s] %s | %s", user_id, context, str(msg)[:200])
        self._salvar("warn", user_id, context, msg)

    def info(self, user_id: str, context: str, msg: str) -> None:
        logger.info("ℹ️  [%s] %s | %s", user_id, context, str(msg)[:200])
        self._salvar("info", user_id, context, msg)

    def get_recent_errors(self, limit: int = 20) -> list[dict]:
        if not self.espelhar_redis:
            return []
        try:
            raw = get_redis().lrange("system_logs:error", 0, limit - 1)
            return [json.loads(e) for e in raw]
        except redis.RedisError:
            return []


# Singleton para importação direta
obs = Observability()
