"""
application/flows/camiseta.py — Troca de tamanho de camiseta
=============================================================
Tabelas infantil + adulto do evento, só com estoque > 0, numeradas em
sequência (infantis primeiro). pendente.camisetas guarda índice → tamanho.
"""
from __future__ import annotations
import logging

from src.application.flows.base import (
    Conversa, Handler, oferecer_mais_ajuda, tratar_sem_opcoes,
)
from src.application.flows.cpf import exigir_cadastro
from src.application.flows.eventos import exigir_evento, trocar_evento
from src.domain.entities import Assunto, Etapa, TamanhoCamiseta
from src.domain.menu import MENU_SEM_OPCOES, montar_mapa_camisetas, montar_menu_camisetas
from src.domain.selecao import casar_camiseta, indice_por_numero, texto_busca_camiseta
from src.domain.texto import e_trocar_evento
from src.infrastructure.observability import obs
from src.services.inscricoes_service import BackendError

logger = logging.getLogger(__name__)


async def iniciar_camiseta(conv: Conversa) -> None:
    if not await exigir_cadastro(conv):
        return
    if not await exigir_evento(conv, Assunto.CAMISETA, "Para essa solicitação preciso saber o **evento**."):
        return

    try:
        infantil, adulto = await conv.ctx.inscricoes.listar_camisetas(conv.evento.id)
    except BackendError as e:
        obs.warn(conv.chave, "camiseta", f"listagem falhou: {e}")
        conv.etapa = Etapa.AWAITING_NO_TSHIRT
        await conv.dizer(f"Não consegui listar os tamanhos agora.\n\n{MENU_SEM_OPCOES}")
        return

    mapa = montar_mapa_camisetas(infantil, adulto)
    if not mapa:
        conv.etapa = Etapa.AWAITING_NO_TSHIRT
        await conv.dizer(
            f"Não há tamanhos de camiseta disponíveis no momento para este evento.\n\n{MENU_SEM_OPCOES}"
        )
        return

    conv.sessao.pendente.camisetas = mapa
    conv.etapa = Etapa.AWAITING_TSHIRT_CHOICE
    await conv.dizer("Confira as opções abaixo e selecione o novo tamanho desejado:")
    await conv.dizer(montar_menu_camisetas(conv.evento.titulo, mapa), amigavel=False)


async def aplicar_camiseta(conv: Conversa, item: TamanhoCamiseta) -> None:
    try:
        await conv.ctx.inscricoes.atualizar_inscricao(
            conv.usuario.id, conv.evento.id, tshirtSize=item.tamanho,
        )
    except BackendError as e:
        obs.error(conv.chave, "camiseta", f"troca falhou: {e}")
        await conv.dizer("Não consegui aplicar a troca agora. Vamos tentar novamente?")
        await iniciar_camiseta(conv)
        return

    await conv.dizer(
        f"Beleza! Solicitei a troca do tamanho para **{item.tamanho.upper()}** "
        f"no evento **{conv.evento.titulo}**. ✅"
    )
    conv.sessao.pendente.camisetas = None
    await oferecer_mais_ajuda(conv)


async def _resolver_escolha(conv: Conversa, texto: str, mapa: dict[int, TamanhoCamiseta]) -> TamanhoCamiseta | None:
    n = indice_por_numero(texto, max(mapa, default=0))
    if n is not None:
        return mapa.get(n + 1)
    itens = [mapa[k] for k in sorted(mapa)]
    idx = await conv.ctx.enhancer.escolher_indice(texto, [texto_busca_camiseta(i) for i in itens])
    if 0 <= idx < len(itens):
        return itens[idx]
    return casar_camiseta(texto, mapa)


async def ao_escolher_camiseta(conv: Conversa, texto: str) -> None:
    if e_trocar_evento(texto):
        await trocar_evento(conv, Assunto.CAMISETA)
        return

    mapa = conv.sessao.pendente.camisetas or {}
    item = await _resolver_escolha(conv, texto, mapa)
    if item:
        await aplicar_camiseta(conv, item)
        return

    await conv.dizer('Não consegui entender. Exemplos: "gg", "baby look p", "infantil m".')
    await iniciar_camiseta(conv)


HANDLERS: dict[Etapa, Handler] = {
    Etapa.AWAITING_TSHIRT_CHOICE: ao_escolher_camiseta,
    Etapa.AWAITING_NO_TSHIRT:     tratar_sem_opcoes,
}
