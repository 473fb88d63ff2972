"""
api/schemas.py — Pydantic models de request/response
"""
from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field
from typing import Any


class WebhookPayload(BaseModel):
    """Payload bruto da Evolution — validação mínima (o DevGuard faz o resto)."""
    model_config = ConfigDict(extra="allow")

    event:    str            = ""
    instance: str            = ""
    data:     dict[str, Any] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    status:       str
    redis:        bool
    llm:          bool
    sessoes:      str
    autorizacoes: int
    dev_mode:     bool
    version:      str = "1.0"
