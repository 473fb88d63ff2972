"""
application/flows/transferencia.py — Troca de titularidade
===========================================================
Sequência no chat do solicitante:

  awaiting_holder_role      → "você é o titular?" (1 sim / 2 não)
  awaiting_holder_cpf       → CPF do titular atual (quando não é ele)
  awaiting_holder_confirm   → confirma / corrige o titular atual
  awaiting_transfer_cpf     → CPF do novo titular
  awaiting_transfer_confirm → confirma / corrige o novo titular
                              ↓ ponto de decisão
  telefone do solicitante == telefone do titular atual?
    SIM → awaiting_transfer_self_confirm (AUTORIZO / NÃO) → aplica
          falha → awaiting_transfer_retry (1 tentar / 2 atendente / 3 menu)
    NÃO → token de 4 dígitos enviado ao telefone do titular atual,
          solicitante fica em awaiting_transfer_result

A resposta do titular ("1234", "1234 1", "1234 2", "1234 não") é
interceptada por tentar_resolver_autorizacao() antes de qualquer outra
regra do roteador, e só vale vinda do telefone cadastrado do titular.

O token tem só 10.000 valores e 30 minutos de validade, sem limite de
tentativas: aceitável porque só o telefone do titular consegue usá-lo.
"""
from __future__ import annotations
import logging
import re
from datetime import datetime, timedelta

from src.application.contexto import Contexto
from src.application.flows.base import (
    ATENDENTE, RETRY_OU_ATENDENTE, Conversa, Handler, encaminhar_atendente,
    oferecer_mais_ajuda, pedir_assunto,
)
from src.application.flows.cpf import exigir_cadastro
from src.application.flows.eventos import exigir_evento
from src.domain.entities import (
    Assunto, AutorizacaoTransferencia, Etapa, RascunhoTransferencia, Titular,
)
from src.domain.menu import MENU_RETRY
from src.domain.texto import (
    digitos_telefone, e_autorizo, e_ir_menu, e_nao, e_sim, extrair_cpf,
    formatar_cpf, gerar_token, normalizar, quer_atendente, telefones_conferem,
)
from src.infrastructure.observability import obs
from src.infrastructure.settings import settings
from src.memory.session_store import chave_sessao
from src.services.inscricoes_service import BackendError

logger = logging.getLogger(__name__)

_RESPOSTA_TOKEN = re.compile(r"^(\d{4})(?:\s+(.+))?$")

PERGUNTA_PAPEL = (
    "Você é o titular atual da inscrição?\n"
    "1. Sim, sou o titular.\n"
    "2. Não, estou pedindo em nome do titular."
)
PEDIR_CPF_NOVO = "Perfeito! Agora me informe o **CPF do novo titular** (apenas números)."
EXPIROU_SOLICITANTE = "A autorização expirou. Você pode solicitar novamente a transferência."


def _rascunho(conv: Conversa) -> RascunhoTransferencia:
    pendente = conv.sessao.pendente
    if pendente.transferencia is None:
        pendente.transferencia = RascunhoTransferencia()
    return pendente.transferencia


def _confirmacao(titulo: str, nome: str, cpf: str) -> str:
    return f"{titulo}\nNome: {nome or 'Não informado'}\nCPF: {formatar_cpf(cpf)}\n\n1. Confirmar\n2. Corrigir CPF"


# =============================================================================
# Início e coleta
# =============================================================================

async def iniciar_transferencia(conv: Conversa) -> None:
    if not await exigir_cadastro(conv):
        return
    if not await exigir_evento(conv, Assunto.TRANSFERENCIA, "Para transferir a titularidade, informe o **evento**."):
        return
    conv.sessao.pendente.transferencia = RascunhoTransferencia()
    conv.etapa = Etapa.AWAITING_HOLDER_ROLE
    await conv.dizer(PERGUNTA_PAPEL)


async def ao_informar_papel(conv: Conversa, texto: str) -> None:
    if e_sim(texto):
        u = conv.usuario
        _rascunho(conv).titular_atual = Titular(id=u.id, nome=u.nome, telefone=u.telefone, cpf=u.cpf)
        conv.etapa = Etapa.AWAITING_TRANSFER_CPF
        await conv.dizer(PEDIR_CPF_NOVO)
        return
    if e_nao(texto):
        conv.etapa = Etapa.AWAITING_HOLDER_CPF
        await conv.dizer(
            "Sem problemas! Me informe o **CPF do titular atual da inscrição** (11 dígitos, apenas números)."
        )
        return
    await conv.dizer(PERGUNTA_PAPEL)


async def ao_receber_cpf_titular(conv: Conversa, texto: str) -> None:
    cpf = extrair_cpf(texto)
    if not cpf:
        await conv.dizer("CPF inválido. Me envie o CPF do titular atual com 11 dígitos (apenas números).")
        return
    try:
        titular = await conv.ctx.inscricoes.buscar_usuario_por_cpf(cpf)
    except BackendError as e:
        obs.warn(conv.chave, "transferencia", f"consulta do titular falhou: {e}")
        await conv.dizer("Tive um problema ao consultar esse CPF. Tente novamente em instantes.")
        return

    if titular is None:
        await conv.dizer(
            "Não encontrei cadastro para esse CPF como titular. "
            "Peça para o titular se cadastrar no site e me avise."
        )
        conv.etapa = Etapa.AWAITING_MORE_HELP
        return

    _rascunho(conv).titular_atual_temp = Titular(
        id=titular.id, nome=titular.nome, telefone=titular.telefone, cpf=cpf,
    )
    conv.etapa = Etapa.AWAITING_HOLDER_CONFIRM
    await conv.dizer(_confirmacao("Confirmar titular atual?", titular.nome, cpf))


async def ao_confirmar_titular(conv: Conversa, texto: str) -> None:
    rascunho = _rascunho(conv)
    if e_nao(texto):
        rascunho.titular_atual_temp = None
        conv.etapa = Etapa.AWAITING_HOLDER_CPF
        await conv.dizer("Beleza! Me envie novamente o CPF do titular atual (11 dígitos).")
        return
    if e_sim(texto) and rascunho.titular_atual_temp:
        rascunho.titular_atual = rascunho.titular_atual_temp
        rascunho.titular_atual_temp = None
        conv.etapa = Etapa.AWAITING_TRANSFER_CPF
        await conv.dizer(PEDIR_CPF_NOVO)
        return
    await conv.dizer("Responda com 1 para confirmar ou 2 para corrigir o CPF do titular atual.")


async def ao_receber_cpf_novo(conv: Conversa, texto: str) -> None:
    cpf = extrair_cpf(texto)
    if not cpf:
        await conv.dizer("CPF inválido. Digite 11 dígitos (apenas números).")
        return
    try:
        novo = await conv.ctx.inscricoes.buscar_usuario_por_cpf(cpf)
    except BackendError as e:
        obs.warn(conv.chave, "transferencia", f"consulta do novo titular falhou: {e}")
        await conv.dizer("Falha ao buscar o CPF. Tente novamente.")
        return

    if novo is None:
        await conv.dizer(
            "Não encontrei cadastro para esse CPF. Peça ao **novo titular** que se cadastre no site e me avise."
        )
        conv.etapa = Etapa.AWAITING_MORE_HELP
        return

    _rascunho(conv).novo_titular_temp = Titular(id=novo.id, nome=novo.nome, telefone=novo.telefone, cpf=cpf)
    conv.etapa = Etapa.AWAITING_TRANSFER_CONFIRM
    await conv.dizer(_confirmacao("Confirmar novo titular?", novo.nome, cpf))


async def ao_confirmar_novo(conv: Conversa, texto: str) -> None:
    rascunho = _rascunho(conv)
    if e_nao(texto):
        rascunho.novo_titular_temp = None
        conv.etapa = Etapa.AWAITING_TRANSFER_CPF
        await conv.dizer("Informe o **CPF do novo titular** (11 dígitos).")
        return
    if not e_sim(texto) or not rascunho.novo_titular_temp:
        await conv.dizer("Responda com sim confirmando ou não para corrigir.")
        return

    rascunho.novo_titular = rascunho.novo_titular_temp
    rascunho.novo_titular_temp = None
    await _decidir_autorizacao(conv)


# =============================================================================
# Ponto de decisão
# =============================================================================

def _titular_atual(conv: Conversa) -> Titular:
    rascunho = _rascunho(conv)
    if rascunho.titular_atual:
        return rascunho.titular_atual
    u = conv.usuario
    return Titular(id=u.id, nome=u.nome, telefone=u.telefone, cpf=u.cpf)


def _resumo(conv: Conversa) -> str:
    novo = _rascunho(conv).novo_titular
    return f"**{conv.evento.titulo}** para {novo.nome} – CPF {formatar_cpf(novo.cpf)}"


async def _decidir_autorizacao(conv: Conversa) -> None:
    titular = _titular_atual(conv)

    if telefones_conferem(conv.destino, titular.telefone):
        conv.etapa = Etapa.AWAITING_TRANSFER_SELF
        await conv.dizer(
            "Você é o titular atual desta inscrição.\n"
            f"Confirma a *troca de titularidade* do {_resumo(conv)}?\n\n"
            "Responda **AUTORIZO** para confirmar, ou **NÃO** para cancelar."
        )
        return

    if not digitos_telefone(titular.telefone):
        await conv.dizer(
            "Não encontrei telefone cadastrado do titular atual para autorização. Fale com um atendente."
        )
        conv.etapa = Etapa.AWAITING_MORE_HELP
        return

    await _pedir_autorizacao_ao_titular(conv, titular)


async def _pedir_autorizacao_ao_titular(conv: Conversa, titular: Titular) -> None:
    ctx = conv.ctx
    rascunho = _rascunho(conv)
    token = gerar_token(ctx.autorizacoes.tokens())
    aut = AutorizacaoTransferencia(
        token=token,
        telefone_titular=titular.telefone,
        telefone_solicitante=conv.destino,
        old_user_id=titular.id,
        new_user_id=rascunho.novo_titular.id,
        evento_id=conv.evento.id,
        evento_titulo=conv.evento.titulo,
        expira_em=datetime.now() + timedelta(minutes=settings.TRANSFER_AUTH_TTL_MIN),
    )
    ctx.autorizacoes.registrar(aut)

    # A sessão do titular precisa estar ativa para o atendimento seguir depois da resposta
    chave_titular = chave_sessao(titular.telefone)
    sessao_titular = ctx.sessoes.obter_ou_criar(chave_titular)
    sessao_titular.started = True
    ctx.sessoes.salvar(chave_titular, sessao_titular)

    await conv.enviar_para(
        titular.telefone,
        f"Confirma a *troca de titularidade* da sua inscrição do evento {_resumo(conv)}?\n\n"
        f"Responda com código: *{token}* para autorizar.",
    )
    obs.info(conv.chave, "transferencia", f"token enviado ao titular {chave_titular} (evento {aut.evento_id})")
    conv.etapa = Etapa.AWAITING_TRANSFER_RESULT
    await conv.dizer(
        "Enviei uma mensagem ao titular atual para autorizar. Te aviso aqui assim que ele responder."
    )


# =============================================================================
# Caminho do próprio titular
# =============================================================================

async def ao_confirmar_proprio(conv: Conversa, texto: str) -> None:
    if e_autorizo(texto) or e_sim(texto):
        await _aplicar_propria(conv)
        return
    if e_nao(texto):
        conv.sessao.pendente.transferencia = None
        await conv.dizer("Sem problemas! Não realizei a transferência.")
        await pedir_assunto(conv)
        return
    await conv.dizer("Para confirmar a transferência, responda com **AUTORIZO** (1) ou **NÃO** (2).")


async def _aplicar_propria(conv: Conversa) -> None:
    titular = _titular_atual(conv)
    novo = _rascunho(conv).novo_titular
    try:
        await conv.ctx.inscricoes.transferir_titularidade(conv.evento.id, titular.id, novo.id)
    except BackendError as e:
        obs.error(conv.chave, "transferencia", f"troca direta falhou: {e}")
        conv.etapa = Etapa.AWAITING_TRANSFER_RETRY
        await conv.dizer(
            "Não consegui concluir a transferência agora.\n\n"
            f"Você deseja tentar novamente, falar com um atendente ou voltar ao menu?\n{MENU_RETRY}"
        )
        return

    conv.sessao.pendente.transferencia = None
    await conv.dizer("Transferência concluída com sucesso! ✅")
    await oferecer_mais_ajuda(conv, "Posso ajudar em mais alguma coisa?")


async def ao_tentar_novamente(conv: Conversa, texto: str) -> None:
    t = normalizar(texto)
    if t == "1" or "tentar" in t:
        await iniciar_transferencia(conv)
        return
    if t == "2" or quer_atendente(texto):
        await encaminhar_atendente(conv, ATENDENTE)
        return
    if t == "3" or e_ir_menu(texto):
        conv.sessao.pendente.transferencia = None
        await pedir_assunto(conv)
        return
    await conv.dizer(RETRY_OU_ATENDENTE)


async def ao_aguardar_titular(conv: Conversa, texto: str) -> None:
    if e_ir_menu(texto):
        await pedir_assunto(conv)
        return
    await conv.dizer(
        "Ainda estou aguardando a resposta do titular atual. "
        "Assim que ele responder, te aviso por aqui. Se quiser, digite *menu* para outro assunto."
    )


# =============================================================================
# Resposta do titular (interceptada antes do roteamento normal)
# =============================================================================

def _ler_resposta(texto: str) -> tuple[str, bool] | None:
    """
    "1234" / "1234 1" / "1234 autorizo" → (token, False)
    "1234 2" / "1234 não"               → (token, True)
    Qualquer outra coisa → None.
    """
    m = _RESPOSTA_TOKEN.match((texto or "").strip())
    if not m:
        return None
    token, resposta = m.group(1), m.group(2)
    if resposta is None:
        return token, False
    r = normalizar(resposta)
    if r == "2" or e_nao(resposta):
        return token, True
    if r == "1" or e_sim(resposta) or e_autorizo(resposta):
        return token, False
    return None


async def _avisar(ctx: Contexto, destino: str, texto: str) -> None:
    texto = await ctx.enhancer.reescrever(texto)
    if not await ctx.transporte.enviar_texto(destino, texto):
        obs.warn(chave_sessao(destino), "transferencia", "aviso de autorização não entregue")


def _liberar_solicitante(ctx: Contexto, aut: AutorizacaoTransferencia) -> None:
    """Tira o solicitante da espera passiva depois que o pedido se resolve."""
    chave = chave_sessao(aut.telefone_solicitante)
    sessao = ctx.sessoes.obter(chave)
    if sessao is None or sessao.etapa != Etapa.AWAITING_TRANSFER_RESULT:
        return
    sessao.pendente.transferencia = None
    sessao.etapa = Etapa.AWAITING_MORE_HELP
    ctx.sessoes.salvar(chave, sessao)


async def tentar_resolver_autorizacao(ctx: Contexto, remetente: str, texto: str) -> bool:
    """True se a mensagem era a resposta do titular e foi consumida."""
    lida = _ler_resposta(texto)
    if lida is None:
        return False
    token, negou = lida

    aut = ctx.autorizacoes.obter(token)
    if aut is None:
        return False
    if not telefones_conferem(remetente, aut.telefone_titular):
        # Pode ser só uma resposta numérica de menu de outra pessoa
        logger.info("🔐 Token %s recebido de telefone não autorizado, ignorado.", token)
        return False

    ctx.autorizacoes.remover(token)
    solicitante = aut.telefone_solicitante

    if aut.expirada():
        await _avisar(ctx, remetente, "Este token expirou. Solicite novamente.")
        await _avisar(ctx, solicitante, EXPIROU_SOLICITANTE)
        _liberar_solicitante(ctx, aut)
        return True

    if negou:
        obs.info(chave_sessao(remetente), "transferencia", f"titular negou o token {token}")
        await _avisar(ctx, remetente, "Troca de titularidade *negada*.")
        await _avisar(ctx, solicitante, "O titular *negou* a troca de titularidade.")
        _liberar_solicitante(ctx, aut)
        return True

    try:
        await ctx.inscricoes.transferir_titularidade(aut.evento_id, aut.old_user_id, aut.new_user_id, token=token)
    except BackendError as e:
        obs.error(chave_sessao(remetente), "transferencia", f"troca autorizada falhou: {e}")
        await _avisar(ctx, remetente, "Não consegui efetivar a troca agora.")
        await _avisar(ctx, solicitante, "Falha ao efetivar a troca agora. Tente novamente em alguns instantes.")
    else:
        await _avisar(ctx, remetente, "Autorizado. Efetivei a troca de titularidade ✅")
        await _avisar(ctx, solicitante, "Prontinho! A troca de titularidade foi concluída ✅")
    _liberar_solicitante(ctx, aut)
    return True


async def notificar_expiradas(ctx: Contexto, agora: datetime | None = None) -> int:
    """Varredura periódica: remove pedidos vencidos e avisa quem pediu."""
    vencidas = ctx.autorizacoes.varrer_expiradas(agora)
    for aut in vencidas:
        await _avisar(ctx, aut.telefone_solicitante, EXPIROU_SOLICITANTE)
        _liberar_solicitante(ctx, aut)
    return len(vencidas)


HANDLERS: dict[Etapa, Handler] = {
    Etapa.AWAITING_HOLDER_ROLE:      ao_informar_papel,
    Etapa.AWAITING_HOLDER_CPF:       ao_receber_cpf_titular,
    Etapa.AWAITING_HOLDER_CONFIRM:   ao_confirmar_titular,
    Etapa.AWAITING_TRANSFER_CPF:     ao_receber_cpf_novo,
    Etapa.AWAITING_TRANSFER_CONFIRM: ao_confirmar_novo,
    Etapa.AWAITING_TRANSFER_SELF:    ao_confirmar_proprio,
    Etapa.AWAITING_TRANSFER_RETRY:   ao_tentar_novamente,
    Etapa.AWAITING_TRANSFER_RESULT:  ao_aguardar_titular,
}
