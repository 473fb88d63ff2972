"""
application/contexto.py — Colaboradores do atendimento
=======================================================
Tudo que um fluxo precisa fora da própria sessão, num pacote só.
main.py monta um Contexto no startup; os testes montam o seu com
transporte e backend falsos.
"""
from __future__ import annotations
from dataclasses import dataclass, field

from src.memory.autorizacoes import RegistroAutorizacoes
from src.memory.session_store import SessionStore, TravasPorChave
from src.providers.text_enhancer import TextEnhancer
from src.services.evolution_service import EvolutionService
from src.services.inscricoes_service import InscricoesService


@dataclass
class Contexto:
    transporte:   EvolutionService
    inscricoes:   InscricoesService
    sessoes:      SessionStore
    autorizacoes: RegistroAutorizacoes = field(default_factory=RegistroAutorizacoes)
    enhancer:     TextEnhancer         = field(default_factory=TextEnhancer)
    travas:       TravasPorChave       = field(default_factory=TravasPorChave)
