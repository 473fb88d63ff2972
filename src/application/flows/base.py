"""
application/flows/base.py — Peças comuns a todos os fluxos
===========================================================
Conversa amarra a sessão de um telefone aos colaboradores do Contexto.
Todo handler de etapa tem a mesma forma:

    async def handler(conv: Conversa, texto: str) -> None

e só fala com o usuário por conv.dizer(), que passa o texto pela
reescrita amigável (quando houver LLM) antes de enviar.
"""
from __future__ import annotations
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from src.application.contexto import Contexto
from src.domain.entities import Etapa, Evento, Sessao, Usuario
from src.domain.menu import MENU_ASSUNTOS
from src.domain.texto import e_ir_menu, normalizar, quer_atendente
from src.infrastructure.observability import obs

logger = logging.getLogger(__name__)

MAIS_AJUDA = "Posso te ajudar em **mais alguma coisa**?"
ATENDENTE_HUMANO = "Certo! Vou acionar um atendente humano e repassar sua solicitação. 🙂"
ATENDENTE = "Certo! Vou acionar um atendente e repassar sua solicitação."
ATENDENTE_OU_MENU = "Quer falar com *atendente* ou voltar ao *Menu*?"
RETRY_OU_ATENDENTE = "Responda com 1 (Tentar novamente), 2 (Falar com atendente) ou 3 (Voltar ao menu)."


@dataclass
class Conversa:
    ctx:     Contexto
    chave:   str      # dígitos do telefone (chave da sessão)
    destino: str      # remetente como chegou no webhook
    sessao:  Sessao

    @property
    def usuario(self) -> Usuario | None:
        return self.sessao.usuario

    @property
    def evento(self) -> Evento | None:
        return self.sessao.evento

    @property
    def etapa(self) -> Etapa:
        return self.sessao.etapa

    @etapa.setter
    def etapa(self, valor: Etapa) -> None:
        self.sessao.etapa = valor

    async def dizer(self, texto: str, amigavel: bool = True) -> None:
        """Envia para o próprio remetente. Listas numeradas vão com amigavel=False."""
        await self.enviar_para(self.destino, texto, amigavel)

    async def enviar_para(self, destino: str, texto: str, amigavel: bool = True) -> None:
        if amigavel:
            texto = await self.ctx.enhancer.reescrever(texto)
        entregue = await self.ctx.transporte.enviar_texto(destino, texto)
        if not entregue:
            obs.warn(self.chave, "envio", f"mensagem não entregue para {destino}")


Handler = Callable[[Conversa, str], Awaitable[None]]


# =============================================================================
# Passos compartilhados
# =============================================================================

async def pedir_assunto(conv: Conversa) -> None:
    conv.etapa = Etapa.AWAITING_ISSUE
    await conv.dizer(MENU_ASSUNTOS)


async def oferecer_mais_ajuda(conv: Conversa, pergunta: str = MAIS_AJUDA) -> None:
    conv.etapa = Etapa.AWAITING_MORE_HELP
    await conv.dizer(pergunta)


async def encaminhar_atendente(conv: Conversa, texto: str = ATENDENTE) -> None:
    """Handoff humano: a sessão continua ativa, sem etapa pendente."""
    conv.etapa = Etapa.IDLE
    obs.info(conv.chave, "handoff", f"atendente solicitado (evento={conv.evento.id if conv.evento else '-'})")
    await conv.dizer(texto)


async def tratar_sem_opcoes(conv: Conversa, texto: str) -> None:
    """
    Etapas "sem opções" (categoria, camiseta, cancelamento):
        1 / atendente → handoff
        2 / menu      → menu de assuntos sem evento
    """
    t = normalizar(texto)
    if t == "1" or quer_atendente(texto):
        conv.sessao.pendente.limpar_listas()
        conv.sessao.pendente.assunto_desejado = None
        await encaminhar_atendente(conv, ATENDENTE_HUMANO)
        return
    if t == "2" or e_ir_menu(texto):
        conv.sessao.limpar_contexto_evento()
        await pedir_assunto(conv)
        return
    await conv.dizer(ATENDENTE_OU_MENU)
