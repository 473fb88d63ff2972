"""
infrastructure/settings.py — Configurações centralizadas
=========================================================
Única fonte da verdade para variáveis de ambiente.

Importe em qualquer lugar:
    from src.infrastructure.settings import settings
"""
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict
import os

from src.domain.texto import normalizar


def _lista(valor: str) -> list[str]:
    return [v.strip() for v in valor.split(",") if v.strip()]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=os.getenv("ENV_FILE_PATH", ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Backend de inscrições ─────────────────────────────────────────────────
    # Base única: endpoints da API ficam em SITE_URL + API_PREFIX,
    # reembolso e links públicos direto em SITE_URL.
    SITE_URL:          str   = "https://sportbro.com.br"
    API_PREFIX:        str   = "/api"
    SITE_URL_V2:       str   = ""
    BACKEND_TIMEOUT_S: float = 15.0

    # ── Conversa ──────────────────────────────────────────────────────────────
    TRIGGER_PHRASE:        str = "Olá Bro"
    EXTRA_TRIGGERS:        str = "iniciar atendimento bro"
    END_TRIGGERS:          str = "fim,encerrar,finalizar,sair"
    CANCEL_WINDOW_DAYS:    int = 7
    TRANSFER_AUTH_TTL_MIN: int = 30
    AUTH_SWEEP_INTERVAL_S: int = 60

    # ── Sessões ───────────────────────────────────────────────────────────────
    SESSION_BACKEND: str = "memory"   # "memory" | "redis"
    SESSION_TTL_S:   int = 86400

    # ── LLM (Groq) ────────────────────────────────────────────────────────────
    # Sem GROQ_API_KEY o bot responde com os textos originais e
    # classifica só por palavras-chave.
    GROQ_API_KEY:        str   = ""
    GROQ_MODEL:          str   = "llama-3.1-8b-instant"
    GROQ_TEMP:           float = 0.5
    GROQ_MAX_TOKENS:     int   = 512
    LLM_REWRITE_ENABLED: bool  = True

    # ── Redis ─────────────────────────────────────────────────────────────────
    REDIS_URL: str = "redis://localhost:6379/0"

    # ── EVOLUTION (WhatsApp) ──────────────────────────────────────────────────
    EVOLUTION_BASE_URL:      str = "http://evolution:8080"
    EVOLUTION_API_KEY:       str = ""
    EVOLUTION_INSTANCE_NAME: str = "default"
    WHATSAPP_HOOK_URL:       str = "http://bro-bot:8000/webhook"

    # ── Dev / Debug ───────────────────────────────────────────────────────────
    DEV_MODE:          bool = False
    DEV_WHITELIST:     str  = ""
    LOG_LEVEL:         str  = "INFO"
    OBS_REDIS_ENABLED: bool = False

    @property
    def dev_whitelist_list(self) -> list[str]:
        return _lista(self.DEV_WHITELIST)

    @property
    def gatilhos_inicio(self) -> list[str]:
        return [normalizar(g) for g in [self.TRIGGER_PHRASE, *_lista(self.EXTRA_TRIGGERS)] if normalizar(g)]

    @property
    def gatilhos_fim(self) -> list[str]:
        return [normalizar(g) for g in _lista(self.END_TRIGGERS)]

    @property
    def api_url(self) -> str:
        return self.SITE_URL.rstrip("/") + self.API_PREFIX

    @property
    def site_v2_url(self) -> str:
        return (self.SITE_URL_V2 or f"{self.SITE_URL.rstrip('/')}/v2").rstrip("/")

    @property
    def usa_redis(self) -> bool:
        return self.SESSION_BACKEND.lower() == "redis" or self.OBS_REDIS_ENABLED

    @property
    def llm_ativo(self) -> bool:
        return bool(self.GROQ_API_KEY)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
