"""
application/handle_message.py — Roteador de mensagens
======================================================
Toda mensagem de texto passa por aqui, sob a trava do telefone.

Fluxo:
  Mensagem
    → resposta de autorização de troca ("1234 1")?
         └─ SIM → transferencia.tentar_resolver_autorizacao() e fim
    → gatilho de encerramento ("fim", "sair"...)?
         └─ SIM → reseta a sessão e avisa
    → sessão ainda não iniciada?
         ├─ gatilho de início → saudação + CPF
         └─ outra coisa       → silêncio
    → HANDLERS[sessao.etapa](conv, texto)
    → sem handler (idle) → retoma a seleção de evento ou responde genérico
    → sessions.salvar()

Qualquer exceção vira um aviso de instabilidade para o usuário e um
obs.error(): o webhook nunca devolve 500 para a Evolution.
"""
from __future__ import annotations
import logging

from src.application.contexto import Contexto
from src.application.flows import (
    camiseta, cancelamento, categoria, cpf, equipe, faq, menu, senha, transferencia,
)
from src.application.flows.base import Conversa, Handler
from src.application.flows.cpf import pedir_confirmacao_cpf, pedir_cpf
from src.application.flows.eventos import pedir_evento
from src.domain.entities import Etapa, Mensagem
from src.domain.menu import SAUDACAO
from src.domain.texto import contem_gatilho, normalizar
from src.infrastructure.observability import obs
from src.infrastructure.settings import settings
from src.memory.session_store import chave_sessao

logger = logging.getLogger(__name__)

HANDLERS: dict[Etapa, Handler] = {
    **cpf.HANDLERS,
    **menu.HANDLERS,
    **categoria.HANDLERS,
    **camiseta.HANDLERS,
    **equipe.HANDLERS,
    **cancelamento.HANDLERS,
    **senha.HANDLERS,
    **transferencia.HANDLERS,
    **faq.HANDLERS,
}

ENCERRADA = 'Sessão encerrada. Envie "Olá Bro" ou "Iniciar atendimento BRO" para começar de novo.'
FALLBACK = (
    "Estou aqui para ajudar! Você pode me dizer o que precisa ou responder ao menu. "
    'Se preferir, digite "fim" para reiniciar.'
)
INSTABILIDADE = "Estou com uma instabilidade momentânea. Tente novamente em 1 minuto. 🙏"


def _e_encerramento(texto: str) -> bool:
    return normalizar(texto) in settings.gatilhos_fim


async def handle_message(mensagem: Mensagem, ctx: Contexto) -> None:
    """
    Processa uma mensagem recebida e responde pelo transporte do Contexto.

    Parâmetros:
      mensagem : Mensagem (domain entity)
      ctx      : Contexto (injetado pelo main.py ou pelos testes)
    """
    body = (mensagem.body or "").strip()
    if not body:
        logger.debug("🔇 Mensagem vazia ignorada [%s].", mensagem.user_id)
        return

    chave = chave_sessao(mensagem.user_id)
    logger.info("📨 [%s] '%s'", chave, body[:80])

    async with ctx.travas(chave):
        try:
            await _rotear(ctx, chave, mensagem.chat_id or mensagem.user_id, body)
        except Exception as e:
            obs.error(chave, "handle_message", f"{type(e).__name__}: {e}")
            logger.exception("❌ Falha ao processar mensagem de %s", chave)
            if not await ctx.transporte.enviar_texto(mensagem.chat_id or mensagem.user_id, INSTABILIDADE):
                logger.warning("⚠️  Aviso de instabilidade não entregue para %s", chave)


async def _rotear(ctx: Contexto, chave: str, destino: str, texto: str) -> None:
    # ── 1. Resposta do titular a um pedido de troca ───────────────────────────
    if await transferencia.tentar_resolver_autorizacao(ctx, destino, texto):
        return

    sessao = ctx.sessoes.obter_ou_criar(chave)
    conv = Conversa(ctx=ctx, chave=chave, destino=destino, sessao=sessao)

    # ── 2. Encerramento vale em qualquer etapa ────────────────────────────────
    if _e_encerramento(texto):
        sessao.resetar()
        ctx.sessoes.salvar(chave, sessao)
        logger.info("🔚 [%s] sessão encerrada pelo usuário", chave)
        await conv.dizer(ENCERRADA, amigavel=False)
        return

    # ── 3. Sessão parada só acorda com o gatilho ──────────────────────────────
    if not sessao.started:
        if not contem_gatilho(texto, settings.gatilhos_inicio):
            logger.debug("💤 [%s] sessão não iniciada, mensagem ignorada", chave)
            return
        sessao.started = True
        logger.info("👋 [%s] atendimento iniciado", chave)
        await conv.dizer(SAUDACAO)
        if sessao.usuario and sessao.usuario.cpf:
            await pedir_confirmacao_cpf(conv)
        else:
            await pedir_cpf(conv)
        ctx.sessoes.salvar(chave, sessao)
        return

    # ── 4. Etapa pendente ─────────────────────────────────────────────────────
    handler = HANDLERS.get(sessao.etapa)
    if handler:
        logger.debug("➡️  [%s] etapa=%s", chave, sessao.etapa.value)
        await handler(conv, texto)
    elif sessao.pendente.assunto_desejado and not sessao.evento:
        await pedir_evento(conv)
    else:
        await conv.dizer(FALLBACK)

    ctx.sessoes.salvar(chave, sessao)
