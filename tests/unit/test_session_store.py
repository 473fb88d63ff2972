"""
tests/unit/test_session_store.py — Testes de memory/session_store.py
=====================================================================
Sem Redis de verdade: RedisSessionStore roda sobre um MagicMock.
Execute: pytest tests/unit/test_session_store.py -v
"""
import json
from unittest.mock import MagicMock

import pytest
import redis

from src.domain.entities import (
    Assunto, Etapa, Evento, Pendente, RascunhoTransferencia, Sessao,
    TamanhoCamiseta, Titular, Usuario,
)
from src.memory.session_store import (
    MemorySessionStore, RedisSessionStore, SessionStoreError, TravasPorChave,
    chave_sessao,
)


def _sessao_completa() -> Sessao:
    return Sessao(
        started=True,
        etapa=Etapa.AWAITING_TSHIRT_CHOICE,
        usuario=Usuario(id="u1", nome="Ana", cpf="12345678909"),
        evento=Evento(id="e1", titulo="Corrida X", slug="corrida-x"),
        pendente=Pendente(
            camisetas={1: TamanhoCamiseta(tamanho="P", label="P")},
            assunto_desejado=Assunto.CAMISETA,
            transferencia=RascunhoTransferencia(novo_titular=Titular(id="u2", nome="Bia")),
        ),
    )


class TestChave:
    def test_so_digitos_do_jid(self):
        assert chave_sessao("5598912345678@s.whatsapp.net") == "5598912345678"


class TestMemorySessionStore:
    def test_obter_inexistente(self):
        assert MemorySessionStore().obter("559") is None

    def test_obter_ou_criar(self):
        store = MemorySessionStore()
        sessao = store.obter_ou_criar("559")
        assert sessao.started is False and sessao.etapa == Etapa.IDLE
        assert store.obter("559") is sessao
        assert len(store) == 1

    def test_apagar(self):
        store = MemorySessionStore()
        store.salvar("559", Sessao())
        assert store.apagar("559") is True
        assert store.apagar("559") is False


class TestRedisSessionStore:
    def test_salvar_usa_prefixo_e_ttl(self):
        r = MagicMock()
        RedisSessionStore(r, ttl_s=60).salvar("559", Sessao())
        chave, ttl, payload = r.setex.call_args.args
        assert chave == "sessao:559"
        assert ttl == 60
        assert json.loads(payload)["etapa"] == "idle"

    def test_ida_e_volta_preserva_a_sessao(self):
        r = MagicMock()
        store = RedisSessionStore(r, ttl_s=60)
        original = _sessao_completa()
        store.salvar("559", original)
        r.get.return_value = r.setex.call_args.args[2]
        assert store.obter("559") == original

    def test_inexistente(self):
        r = MagicMock()
        r.get.return_value = None
        assert RedisSessionStore(r).obter("559") is None

    def test_json_corrompido_recomeca(self):
        r = MagicMock()
        r.get.return_value = "{nao e json"
        assert RedisSessionStore(r).obter("559") is None

    def test_etapa_desconhecida_vira_idle(self):
        r = MagicMock()
        r.get.return_value = json.dumps({"started": True, "etapa": "etapa_removida"})
        sessao = RedisSessionStore(r).obter("559")
        assert sessao.started is True and sessao.etapa == Etapa.IDLE

    def test_falha_do_redis(self):
        r = MagicMock()
        r.get.side_effect = redis.ConnectionError("offline")
        with pytest.raises(SessionStoreError):
            RedisSessionStore(r).obter("559")


class TestSessao:
    def test_resetar_mantem_cadastro(self):
        sessao = _sessao_completa()
        sessao.resetar()
        assert sessao.started is False
        assert sessao.etapa == Etapa.IDLE
        assert sessao.evento is None
        assert sessao.pendente == Pendente()
        assert sessao.usuario.id == "u1"

    def test_selecionar_evento_descarta_listas(self):
        sessao = _sessao_completa()
        sessao.selecionar_evento(Evento(id="e2"))
        assert sessao.pendente.camisetas is None
        assert sessao.evento.id == "e2"

    def test_consumir_assunto_desejado(self):
        sessao = _sessao_completa()
        assert sessao.consumir_assunto_desejado() == Assunto.CAMISETA
        assert sessao.pendente.assunto_desejado is None


class TestTravas:
    def test_mesma_chave_mesma_trava(self):
        travas = TravasPorChave()
        assert travas("559") is travas("559")
        assert travas("559") is not travas("551")
