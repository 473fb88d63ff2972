"""
application/flows/cancelamento.py — Cancelamento de inscrição (reembolso)
==========================================================================
Etapas:
  awaiting_cancel_redirect  → nenhuma inscrição com status permitido
                              (1 trocar de evento / 2 atendente / 3 menu)
  awaiting_no_cancel_action → nenhuma dentro da janela (1 atendente / 2 menu)
  awaiting_cancel_choice    → escolhe a referência pelo número
  awaiting_cancel_confirm   → sim / não
  awaiting_refund_name      → cadastro sem nome
  awaiting_refund_email     → cadastro sem e-mail
  awaiting_cancel_retry     → reembolso falhou (1 tentar / 2 atendente / 3 menu)
"""
from __future__ import annotations
import logging
import re

from src.application.flows.base import (
    ATENDENTE, RETRY_OU_ATENDENTE, Conversa, Handler, encaminhar_atendente,
    oferecer_mais_ajuda, pedir_assunto, tratar_sem_opcoes,
)
from src.application.flows.cpf import exigir_cadastro
from src.application.flows.eventos import exigir_evento, pedir_evento, trocar_evento
from src.domain.cancelamento import avaliar_inscricoes
from src.domain.entities import Assunto, Etapa
from src.domain.menu import MENU_RETRY, MENU_SEM_OPCOES, montar_menu_cancelamentos
from src.domain.selecao import indice_por_numero
from src.domain.texto import e_ir_menu, e_nao, e_sim, e_trocar_evento, normalizar, quer_atendente
from src.infrastructure.observability import obs
from src.infrastructure.settings import settings
from src.services.inscricoes_service import BackendError

logger = logging.getLogger(__name__)

_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


async def iniciar_cancelamento(conv: Conversa) -> None:
    if not await exigir_cadastro(conv):
        return
    if not await exigir_evento(conv, Assunto.CANCELAMENTO, "Para cancelar, preciso saber o **evento**."):
        return

    titulo = conv.evento.titulo
    try:
        inscricoes = await conv.ctx.inscricoes.listar_inscricoes(conv.usuario.id, conv.evento.id)
    except BackendError as e:
        obs.warn(conv.chave, "cancelamento", f"listagem falhou: {e}")
        conv.etapa = Etapa.AWAITING_NO_CANCEL
        await conv.dizer(f"Não consegui listar suas inscrições agora.\n\n{MENU_SEM_OPCOES}")
        return

    avaliacao = avaliar_inscricoes(
        inscricoes, janela_dias=settings.CANCEL_WINDOW_DAYS, titulo_evento=titulo,
    )

    if avaliacao.todas_bloqueadas:
        conv.etapa = Etapa.AWAITING_CANCEL_REDIRECT
        await conv.dizer(
            f"Parece que suas inscrições no evento **{titulo}** não estão com status elegível "
            "para cancelamento (Pago/Disponível).\n\n"
            "Sugiro **trocar de evento** ou falar com um atendente:\n"
            "1. Trocar de evento\n2. Falar com atendente\n3. Voltar ao menu"
        )
        return

    if not avaliacao.elegiveis:
        conv.etapa = Etapa.AWAITING_NO_CANCEL
        await conv.dizer(
            f"Não encontrei inscrições **elegíveis** para cancelamento no evento **{titulo}** "
            f"(precisa ter até {settings.CANCEL_WINDOW_DAYS} dias da compra e status Pago/Disponível)."
            f"\n\n{MENU_SEM_OPCOES}"
        )
        return

    mapa = {n: it for n, it in enumerate(avaliacao.elegiveis, start=1)}
    conv.sessao.pendente.cancelamentos = mapa
    conv.etapa = Etapa.AWAITING_CANCEL_CHOICE
    await conv.dizer("Atenção: ao prosseguir, vamos solicitar o **cancelamento** desta inscrição.")
    await conv.dizer(montar_menu_cancelamentos(titulo, mapa), amigavel=False)


async def ao_redirecionar(conv: Conversa, texto: str) -> None:
    t = normalizar(texto)
    if t == "1" or "evento" in t.split():
        conv.sessao.pendente.assunto_desejado = Assunto.CANCELAMENTO
        conv.sessao.limpar_contexto_evento(manter_desejado=True)
        await pedir_evento(conv)
        return
    if t == "2" or quer_atendente(texto):
        await encaminhar_atendente(conv, "Ok! Vou acionar um atendente e repassar sua solicitação.")
        return
    if t == "3" or e_ir_menu(texto):
        conv.sessao.limpar_contexto_evento()
        await pedir_assunto(conv)
        return
    await conv.dizer("Responda com 1 (Trocar de evento), 2 (Falar com atendente) ou 3 (Voltar ao menu).")


async def ao_escolher_inscricao(conv: Conversa, texto: str) -> None:
    if e_trocar_evento(texto):
        await trocar_evento(conv, Assunto.CANCELAMENTO)
        return

    mapa = conv.sessao.pendente.cancelamentos or {}
    n = indice_por_numero(texto, max(mapa, default=0))
    if n is None or (n + 1) not in mapa:
        await conv.dizer("Não consegui entender. Pode repetir?")
        await iniciar_cancelamento(conv)
        return

    ref = mapa[n + 1].referencia
    conv.sessao.pendente.ref_cancelamento = ref
    conv.etapa = Etapa.AWAITING_CANCEL_CONFIRM
    await conv.dizer(
        f"Confirma que deseja **solicitar o cancelamento** da inscrição **{ref}** "
        f"no evento **{conv.evento.titulo}**?\n\n1. Sim\n2. Não"
    )


async def ao_confirmar_cancelamento(conv: Conversa, texto: str) -> None:
    if e_sim(texto):
        await aplicar_cancelamento(conv)
        return
    if e_nao(texto):
        conv.sessao.pendente.ref_cancelamento = None
        conv.sessao.pendente.cancelamentos = None
        await conv.dizer("Sem problemas! Não realizei o cancelamento.")
        await pedir_assunto(conv)
        return
    await conv.dizer("Não consegui entender, pode repetir?")


async def aplicar_cancelamento(conv: Conversa) -> None:
    ref = conv.sessao.pendente.ref_cancelamento
    if not ref:
        await iniciar_cancelamento(conv)
        return

    nome = (conv.usuario.nome or "").strip()
    email = (conv.usuario.email or "").strip()
    if not nome:
        conv.etapa = Etapa.AWAITING_REFUND_NAME
        await conv.dizer("Para concluir o cancelamento, me diga seu **nome completo** (como no cadastro).")
        return
    if not email:
        conv.etapa = Etapa.AWAITING_REFUND_EMAIL
        await conv.dizer("Perfeito! Agora me informe seu **e-mail de cadastro** (ex.: nome@exemplo.com).")
        return

    try:
        await conv.ctx.inscricoes.solicitar_reembolso(ref, nome, email)
    except BackendError as e:
        obs.error(conv.chave, "cancelamento", f"reembolso {ref} falhou: {e}")
        conv.etapa = Etapa.AWAITING_CANCEL_RETRY
        await conv.dizer(
            "Não consegui solicitar o cancelamento agora. "
            f"Você quer tentar novamente ou falar com um atendente?\n{MENU_RETRY}"
        )
        return

    conv.sessao.pendente.ref_cancelamento = None
    conv.sessao.pendente.cancelamentos = None
    await conv.dizer(
        f"Prontinho! Solicitei o **cancelamento** da inscrição **{ref}** no evento **{conv.evento.titulo}**."
    )
    await oferecer_mais_ajuda(conv)


async def ao_receber_nome_reembolso(conv: Conversa, texto: str) -> None:
    nome = " ".join(texto.split())
    if len(nome) < 3:
        await conv.dizer("Me diga seu **nome completo**, por favor.")
        return
    conv.usuario.nome = nome
    await aplicar_cancelamento(conv)


async def ao_receber_email_reembolso(conv: Conversa, texto: str) -> None:
    email = texto.strip()
    if not _EMAIL.match(email):
        await conv.dizer("Esse e-mail não parece válido. Pode enviar no formato nome@exemplo.com?")
        return
    conv.usuario.email = email
    await aplicar_cancelamento(conv)


async def ao_tentar_novamente(conv: Conversa, texto: str) -> None:
    t = normalizar(texto)
    if t == "1" or "tentar" in t:
        await iniciar_cancelamento(conv)
        return
    if t == "2" or quer_atendente(texto):
        await encaminhar_atendente(conv, ATENDENTE)
        return
    if t == "3" or e_ir_menu(texto):
        conv.sessao.limpar_contexto_evento()
        await pedir_assunto(conv)
        return
    await conv.dizer(RETRY_OU_ATENDENTE)


HANDLERS: dict[Etapa, Handler] = {
    Etapa.AWAITING_CANCEL_REDIRECT: ao_redirecionar,
    Etapa.AWAITING_NO_CANCEL:       tratar_sem_opcoes,
    Etapa.AWAITING_CANCEL_CHOICE:   ao_escolher_inscricao,
    Etapa.AWAITING_CANCEL_CONFIRM:  ao_confirmar_cancelamento,
    Etapa.AWAITING_REFUND_NAME:     ao_receber_nome_reembolso,
    Etapa.AWAITING_REFUND_EMAIL:    ao_receber_email_reembolso,
    Etapa.AWAITING_CANCEL_RETRY:    ao_tentar_novamente,
}
