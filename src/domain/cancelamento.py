"""
domain/cancelamento.py — Elegibilidade de inscrições para cancelamento
=======================================================================
SEM I/O. A regra:
  - status precisa estar em STATUS_PERMITIDOS (Pago/Disponível)
  - a compra precisa ter no máximo `janela_dias` dias
"""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime

from src.domain.entities import InscricaoCancelavel, InscricaoUsuario
from src.domain.texto import dias_desde, parse_data_hora_br

STATUS_PERMITIDOS = frozenset({"Pago", "Disponível", "Disponivel"})
JANELA_PADRAO_DIAS = 7


@dataclass
class AvaliacaoCancelamento:
    todas_bloqueadas: bool
    elegiveis:        list[InscricaoCancelavel] = field(default_factory=list)


def status_permitido(status: str) -> bool:
    return (status or "").strip() in STATUS_PERMITIDOS


def avaliar_inscricoes(
    inscricoes: list[InscricaoUsuario],
    agora: datetime | None = None,
    janela_dias: int = JANELA_PADRAO_DIAS,
    titulo_evento: str = "",
) -> AvaliacaoCancelamento:
    """
    todas_bloqueadas: há inscrições e nenhuma tem status permitido.
    elegiveis:        status permitido e dentro da janela (data ilegível fica de fora).
    """
    agora = agora or datetime.now()
    bloqueadas = bool(inscricoes) and not any(status_permitido(i.status) for i in inscricoes)

    elegiveis: list[InscricaoCancelavel] = []
    for insc in inscricoes:
        if not status_permitido(insc.status):
            continue
        comprada_em = parse_data_hora_br(insc.data, insc.hora)
        if comprada_em is None or dias_desde(comprada_em, agora) > janela_dias:
            continue
        elegiveis.append(InscricaoCancelavel(
            referencia=insc.referencia.strip(),
            titulo=insc.titulo or titulo_evento,
            data=insc.data,
            hora=insc.hora,
        ))

    return AvaliacaoCancelamento(todas_bloqueadas=bloqueadas, elegiveis=elegiveis)
