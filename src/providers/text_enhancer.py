"""
providers/text_enhancer.py — Camada opcional de texto (reescrita e classificação)
=================================================================================
Interface usada pelos fluxos:
    reescrever(texto)                -> texto mais natural para WhatsApp
    classificar(texto, chaves)       -> uma das chaves ou "unknown"
    escolher_indice(texto, rotulos)  -> índice do rótulo mais parecido ou -1

TextEnhancer (esta classe) é o passthrough: devolve o texto original e
nunca decide nada. É o padrão dos testes e de quando não há GROQ_API_KEY;
o atendimento funciona inteiro sem ele.
"""
from __future__ import annotations
from collections.abc import Sequence


class TextEnhancer:
    ativo = False

    async def reescrever(self, texto: str) -> str:
        return texto

    async def classificar(self, texto: str, chaves: Sequence[str]) -> str:
        return "unknown"

    async def escolher_indice(self, texto: str, rotulos: Sequence[str]) -> int:
        return -1


def criar_text_enhancer() -> TextEnhancer:
    from src.infrastructure.settings import settings
    if settings.llm_ativo:
        from src.providers.groq_provider import GroqTextEnhancer
        return GroqTextEnhancer(reescrita=settings.LLM_REWRITE_ENABLED)
    return TextEnhancer()
