"""
memory/session_store.py — Sessões de conversa por telefone
==========================================================
Chave: somente os dígitos do telefone do remetente
    "5598912345678@s.whatsapp.net" → "5598912345678"

Implementações:
  - MemorySessionStore : dict do processo (padrão). Reiniciar o processo
                         perde as conversas em andamento.
  - RedisSessionStore  : JSON em "sessao:<digitos>" com TTL, para quando
                         o bot roda com mais de um worker.

O chamador sempre devolve a sessão com salvar() depois de mexer nela;
no MemorySessionStore isso é um no-op, no Redis é o que persiste.

TravasPorChave serializa mensagens do mesmo telefone: duas mensagens
rápidas do mesmo usuário nunca rodam o mesmo passo em paralelo.
"""
from __future__ import annotations
import asyncio
import json
import logging
from abc import ABC, abstractmethod

import redis

from src.domain.entities import Sessao
from src.domain.texto import digitos_telefone
from src.infrastructure.settings import settings

logger = logging.getLogger(__name__)


class SessionStoreError(Exception):
    """Erro ao persistir ou recuperar sessão."""


def chave_sessao(remetente: str) -> str:
    return digitos_telefone(remetente)


class SessionStore(ABC):
    """Contrato de armazenamento de Sessao por chave (dígitos do telefone)."""

    @abstractmethod
    def obter(self, chave: str) -> Sessao | None:
        ...

    @abstractmethod
    def salvar(self, chave: str, sessao: Sessao) -> None:
        ...

    @abstractmethod
    def apagar(self, chave: str) -> bool:
        ...

    def obter_ou_criar(self, chave: str) -> Sessao:
        sessao = self.obter(chave)
        if sessao is None:
            sessao = Sessao()
            self.salvar(chave, sessao)
            logger.debug("🆕 Sessão criada [%s]", chave)
        return sessao


class MemorySessionStore(SessionStore):
    def __init__(self) -> None:
        self._sessoes: dict[str, Sessao] = {}

    def obter(self, chave: str) -> Sessao | None:
        return self._sessoes.get(chave)

    def salvar(self, chave: str, sessao: Sessao) -> None:
        self._sessoes[chave] = sessao

    def apagar(self, chave: str) -> bool:
        return self._sessoes.pop(chave, None) is not None

    def __len__(self) -> int:
        return len(self._sessoes)


class RedisSessionStore(SessionStore):
    _PREFIXO = "sessao:"

    def __init__(self, redis_client: redis.Redis, ttl_s: int | None = None) -> None:
        self.r = redis_client
        self.ttl_s = ttl_s or settings.SESSION_TTL_S

    def _chave(self, chave: str) -> str:
        return f"{self._PREFIXO}{chave}"

    def obter(self, chave: str) -> Sessao | None:
        try:
            raw = self.r.get(self._chave(chave))
        except redis.RedisError as e:
            raise SessionStoreError(f"falha ao ler sessão {chave}") from e
        if not raw:
            return None
        try:
            return Sessao.from_dict(json.loads(raw))
        except (ValueError, TypeError, KeyError) as e:
            logger.warning("⚠️  Sessão corrompida [%s], recomeçando: %s", chave, e)
            return None

    def salvar(self, chave: str, sessao: Sessao) -> None:
        payload = json.dumps(sessao.to_dict(), ensure_ascii=False)
        try:
            self.r.setex(self._chave(chave), self.ttl_s, payload)
        except redis.RedisError as e:
            raise SessionStoreError(f"falha ao salvar sessão {chave}") from e

    def apagar(self, chave: str) -> bool:
        try:
            return bool(self.r.delete(self._chave(chave)))
        except redis.RedisError as e:
            raise SessionStoreError(f"falha ao apagar sessão {chave}") from e


class TravasPorChave:
    """Um asyncio.Lock por chave, criado sob demanda."""

    def __init__(self) -> None:
        self._travas: dict[str, asyncio.Lock] = {}

    def __call__(self, chave: str) -> asyncio.Lock:
        trava = self._travas.get(chave)
        if trava is None:
            trava = self._travas[chave] = asyncio.Lock()
        return trava


def criar_session_store() -> SessionStore:
    if settings.SESSION_BACKEND.lower() == "redis":
        from src.infrastructure.redis_client import get_redis
        logger.info("🗄️  Sessões no Redis (TTL %ss)", settings.SESSION_TTL_S)
        return RedisSessionStore(get_redis())
    logger.info("🗄️  Sessões em memória")
    return MemorySessionStore()
