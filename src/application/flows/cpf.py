"""
application/flows/cpf.py — Identificação pelo CPF
==================================================
Etapas:
  awaiting_cpf        → recebe o CPF (ou, com pendente.menu_cpf, a escolha
                        entre corrigir o CPF e fazer cadastro)
  awaiting_cpf_verify → CPF já conhecido: sim / não / outro CPF digitado

Falha do backend nunca muda a etapa: o usuário só tenta de novo.
"""
from __future__ import annotations
import logging

from src.application.flows.base import Conversa, Handler, pedir_assunto
from src.domain.entities import Etapa, Usuario
from src.domain.texto import (
    e_corrigir_cpf, e_criar_conta, e_nao, e_sim, extrair_cpf, formatar_cpf,
)
from src.infrastructure.observability import obs
from src.infrastructure.settings import settings
from src.services.inscricoes_service import BackendError

logger = logging.getLogger(__name__)

PEDIR_CPF = (
    "Para começar, pode me informar **seu CPF de cadastro**? "
    "Pode digitar com ou sem pontos e traço, eu organizo por aqui. 🙂"
)
CPF_INCOMPLETO = "Esse CPF parece incompleto. Me envie com 11 dígitos, por favor."
CPF_NAO_ENCONTRADO = "Não encontrei cadastro com esse CPF. Prefere **corrigir** o CPF ou **fazer cadastro**?"
CONSULTA_FALHOU = "Não consegui consultar agora. Pode tentar novamente em instantes?"


async def pedir_cpf(conv: Conversa) -> None:
    conv.etapa = Etapa.AWAITING_CPF
    conv.sessao.pendente.menu_cpf = False
    await conv.dizer(PEDIR_CPF)


async def pedir_confirmacao_cpf(conv: Conversa) -> None:
    if not conv.usuario or not conv.usuario.cpf:
        await pedir_cpf(conv)
        return
    conv.etapa = Etapa.AWAITING_CPF_VERIFY
    await conv.dizer(f"Encontrei seu CPF como **{formatar_cpf(conv.usuario.cpf)}**. Está correto?")


async def exigir_cadastro(conv: Conversa) -> bool:
    """True se o usuário já foi identificado; senão volta para o CPF."""
    if conv.usuario and conv.usuario.id:
        return True
    await conv.dizer("Antes, preciso confirmar seu CPF/cadastro.")
    await pedir_cpf(conv)
    return False


async def _identificar(conv: Conversa, usuario: Usuario) -> None:
    conv.sessao.usuario = usuario
    conv.sessao.pendente.menu_cpf = False
    logger.info("🪪 [%s] identificado como user=%s", conv.chave, usuario.id)
    nome = usuario.nome or "por aqui"
    await conv.dizer(
        f"Oi, {nome}! Que bom te ver por aqui — encontrei seu cadastro certinho. "
        "Vamos seguir com o atendimento?"
    )
    await pedir_assunto(conv)


async def _consultar(conv: Conversa, cpf: str, aviso_falha: str) -> Usuario | None | bool:
    """Usuario encontrado, None se não existe, False se a consulta falhou."""
    try:
        return await conv.ctx.inscricoes.buscar_usuario_por_cpf(cpf)
    except BackendError as e:
        obs.warn(conv.chave, "cpf", f"consulta falhou: {e}")
        await conv.dizer(aviso_falha)
        return False


# =============================================================================
# Handlers
# =============================================================================

async def _menu_corrigir_ou_cadastrar(conv: Conversa, texto: str) -> None:
    pendente = conv.sessao.pendente
    cpf = extrair_cpf(texto)
    if cpf:
        pendente.menu_cpf = False
        await conv.dizer("Beleza! Vou tentar com esse CPF novo.")
        usuario = await _consultar(
            conv, cpf,
            "Não consegui consultar agora. Tenta me enviar o CPF novamente ou diga *cadastro* para criar sua conta.",
        )
        if usuario is False:
            return
        if usuario is None:
            pendente.menu_cpf = True
            await conv.dizer(
                "Ainda não encontrei cadastro com esse CPF. Prefere **corrigir** de novo ou **fazer cadastro**?"
            )
            return
        await _identificar(conv, usuario)
        return

    if e_corrigir_cpf(texto):
        pendente.menu_cpf = False
        await conv.dizer("Sem problema! Me envia o CPF correto, por favor.")
        return

    if e_criar_conta(texto):
        pendente.menu_cpf = False
        link = f"{settings.SITE_URL.rstrip('/')}/v2/login.php"
        await conv.dizer(f"Perfeito! Você pode criar sua conta aqui: {link}. Quando terminar, me avisa.")
        return

    await conv.dizer(
        "Não entendi bem. Você quer **corrigir o CPF** ou **fazer cadastro**? "
        "Pode responder com as palavras ou mandar o CPF novo."
    )


async def ao_receber_cpf(conv: Conversa, texto: str) -> None:
    if conv.sessao.pendente.menu_cpf:
        await _menu_corrigir_ou_cadastrar(conv, texto)
        return

    cpf = extrair_cpf(texto)
    if not cpf:
        await conv.dizer(CPF_INCOMPLETO)
        return

    usuario = await _consultar(conv, cpf, CONSULTA_FALHOU)
    if usuario is False:
        return
    if usuario is None:
        conv.sessao.pendente.menu_cpf = True
        await conv.dizer(CPF_NAO_ENCONTRADO)
        return
    await _identificar(conv, usuario)


async def ao_verificar_cpf(conv: Conversa, texto: str) -> None:
    conhecido = conv.usuario.cpf if conv.usuario else ""
    digitado = extrair_cpf(texto)

    # Outro CPF digitado direto substitui o lembrado
    if digitado and digitado != conhecido:
        usuario = await _consultar(conv, digitado, CONSULTA_FALHOU)
        if usuario is False:
            return
        if usuario is None:
            conv.etapa = Etapa.AWAITING_CPF
            conv.sessao.pendente.menu_cpf = True
            await conv.dizer(
                "Não encontrei cadastro com esse novo CPF. Você prefere **corrigir** de novo ou **fazer cadastro**?"
            )
            return
        await _identificar(conv, usuario)
        return

    if digitado or e_sim(texto):
        usuario = await _consultar(conv, conhecido, CONSULTA_FALHOU)
        if usuario is False:
            return
        if usuario is None:
            await conv.dizer("Não consegui confirmar seu cadastro com esse CPF. Me envie o CPF novamente?")
            await pedir_cpf(conv)
            return
        await _identificar(conv, usuario)
        return

    if e_nao(texto):
        await pedir_cpf(conv)
        return

    await conv.dizer(
        "Se estiver certo, diga *sim*. Se quiser corrigir, diga *corrigir* ou me envie o CPF correto."
    )


HANDLERS: dict[Etapa, Handler] = {
    Etapa.AWAITING_CPF:        ao_receber_cpf,
    Etapa.AWAITING_CPF_VERIFY: ao_verificar_cpf,
}
