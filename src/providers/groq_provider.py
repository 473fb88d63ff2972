"""
providers/groq_provider.py — Groq LLM com retry
================================================
Encapsula:
  - Instanciação do ChatGroq
  - Retry automático em 429 (rate limit) com backoff exponencial
  - GroqTextEnhancer: reescrita amigável, classificação de assunto e
    escolha em lista, sempre com fallback para o comportamento passthrough

Nunca deixa erro do LLM vazar para os fluxos — trata aqui.
"""
from __future__ import annotations
import asyncio
import logging
import re
import time
from collections.abc import Sequence
from functools import lru_cache

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_groq import ChatGroq

from src.domain.texto import normalizar
from src.infrastructure.settings import settings
from src.providers.text_enhancer import TextEnhancer

logger = logging.getLogger(__name__)

_MAX_RETRIES  = 3
_BACKOFF_BASE = 2.0   # segundos — dobra a cada tentativa

PROMPT_REESCRITA = (
    "Reescreva a mensagem para WhatsApp de forma simpática, natural e objetiva. "
    "Evite soar robótico. Não adicione saudações se não houver, não remova links, "
    "números de opções, códigos ou valores, e evite repetir informações desnecessárias."
)

PROMPT_CLASSIFICACAO = (
    "Classifique a solicitação do usuário em UMA destas chaves:\n"
    "{chaves}\n"
    "Responda APENAS com a chave exata, ou unknown se nenhuma servir."
)

PROMPT_ESCOLHA = (
    "O usuário quer escolher um item desta lista numerada:\n"
    "{lista}\n"
    "Responda APENAS com o número do item mais compatível, ou 0 se nenhum servir."
)

_NUMERO = re.compile(r"\d+")


@lru_cache(maxsize=4)
def get_llm(
    model: str | None = None,
    temperature: float | None = None,
    max_tokens: int | None = None,
) -> ChatGroq:
    """
    Retorna uma instância singleton do ChatGroq por combinação de parâmetros.
    Os parâmetros padrão vêm de settings — substituíveis para testes.
    """
    return ChatGroq(
        api_key=settings.GROQ_API_KEY,
        model=model or settings.GROQ_MODEL,
        temperature=temperature if temperature is not None else settings.GROQ_TEMP,
        max_tokens=max_tokens or settings.GROQ_MAX_TOKENS,
    )


def invocar_com_retry(llm: ChatGroq, messages: list, **kwargs) -> str:
    """
    Chama o LLM com retry automático em 429.
    Retorna o conteúdo de texto da resposta.

    Raises:
        RuntimeError: após esgotar os retries em 429.
        Exception:    qualquer erro não-429, sem retry.
    """
    for tentativa in range(1, _MAX_RETRIES + 1):
        try:
            resposta = llm.invoke(messages, **kwargs)
            return resposta.content
        except Exception as e:
            err = str(e)
            is_429 = "429" in err or "rate_limit" in err.lower() or "too many requests" in err.lower()

            if is_429 and tentativa < _MAX_RETRIES:
                espera = _BACKOFF_BASE ** tentativa
                logger.warning(
                    "⏳ Rate limit Groq (tentativa %d/%d). Aguardando %.0fs...",
                    tentativa, _MAX_RETRIES, espera,
                )
                time.sleep(espera)
                continue

            if is_429:
                logger.error("❌ Rate limit Groq esgotado após %d tentativas.", _MAX_RETRIES)
                raise RuntimeError("rate_limit_esgotado") from e

            raise
    raise RuntimeError("rate_limit_esgotado")


class GroqTextEnhancer(TextEnhancer):
    ativo = True

    def __init__(self, reescrita: bool = True):
        self.reescrita = reescrita

    async def _perguntar(self, sistema: str, usuario: str, temperatura: float) -> str:
        llm = get_llm(temperature=temperatura)
        mensagens = [SystemMessage(content=sistema), HumanMessage(content=usuario)]
        # ChatGroq.invoke é bloqueante; o retry dorme entre tentativas
        return await asyncio.to_thread(invocar_com_retry, llm, mensagens)

    async def reescrever(self, texto: str) -> str:
        if not self.reescrita or not texto.strip():
            return texto
        try:
            saida = (await self._perguntar(PROMPT_REESCRITA, texto, settings.GROQ_TEMP)).strip()
            return saida or texto
        except Exception as e:
            logger.warning("⚠️  Reescrita Groq falhou, mantendo texto original: %s", e)
            return texto

    async def classificar(self, texto: str, chaves: Sequence[str]) -> str:
        try:
            bruto = await self._perguntar(
                PROMPT_CLASSIFICACAO.format(chaves="\n".join(f"- {c}" for c in chaves)),
                texto,
                0.0,
            )
        except Exception as e:
            logger.warning("⚠️  Classificação Groq falhou: %s", e)
            return "unknown"
        chave = normalizar(bruto).replace(" ", "_")
        return chave if chave in chaves else "unknown"

    async def escolher_indice(self, texto: str, rotulos: Sequence[str]) -> int:
        if not rotulos:
            return -1
        lista = "\n".join(f"{n}. {r}" for n, r in enumerate(rotulos, start=1))
        try:
            bruto = await self._perguntar(PROMPT_ESCOLHA.format(lista=lista), texto, 0.0)
        except Exception as e:
            logger.warning("⚠️  Escolha em lista via Groq falhou: %s", e)
            return -1
        m = _NUMERO.search(bruto or "")
        if not m:
            return -1
        n = int(m.group())
        return n - 1 if 1 <= n <= len(rotulos) else -1
