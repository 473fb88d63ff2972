"""
memory/autorizacoes.py — Pedidos de troca de titularidade aguardando o titular
==============================================================================
Mapa global token → AutorizacaoTransferencia, só em memória: reiniciar o
processo perde os pedidos (o solicitante é orientado a pedir de novo).

Cada pedido sai daqui de um jeito só:
  - resolvido pelo titular (autorizou / negou)
  - expirado, na resposta tardia ou na varredura periódica
"""
from __future__ import annotations
import logging
from datetime import datetime

from src.domain.entities import AutorizacaoTransferencia

logger = logging.getLogger(__name__)


class RegistroAutorizacoes:
    def __init__(self) -> None:
        self._pendentes: dict[str, AutorizacaoTransferencia] = {}

    def registrar(self, aut: AutorizacaoTransferencia) -> None:
        self._pendentes[aut.token] = aut
        logger.info("🔐 Autorização %s registrada (evento %s)", aut.token, aut.evento_id)

    def obter(self, token: str) -> AutorizacaoTransferencia | None:
        return self._pendentes.get(token)

    def remover(self, token: str) -> AutorizacaoTransferencia | None:
        return self._pendentes.pop(token, None)

    def tokens(self) -> set[str]:
        return set(self._pendentes)

    def varrer_expiradas(self, agora: datetime | None = None) -> list[AutorizacaoTransferencia]:
        """Remove e devolve os pedidos vencidos."""
        agora = agora or datetime.now()
        vencidas = [a for a in self._pendentes.values() if a.expirada(agora)]
        for aut in vencidas:
            del self._pendentes[aut.token]
        if vencidas:
            logger.info("🧹 %d autorização(ões) expirada(s) removida(s).", len(vencidas))
        return vencidas

    def __len__(self) -> int:
        return len(self._pendentes)
