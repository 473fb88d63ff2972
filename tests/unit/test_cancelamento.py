"""
tests/unit/test_cancelamento.py — Testes de domain/cancelamento.py
===================================================================
Sem Redis. Sem backend. Puro Python.
Execute: pytest tests/unit/test_cancelamento.py -v
"""
from datetime import datetime

from src.domain.cancelamento import avaliar_inscricoes, status_permitido
from src.domain.entities import InscricaoUsuario

AGORA = datetime(2025, 1, 10, 12, 0)


def _insc(ref, status, data, hora="10:00", titulo="Corrida 10K"):
    return InscricaoUsuario(referencia=ref, status=status, data=data, hora=hora, titulo=titulo)


class TestStatus:
    def test_pago_e_disponivel(self):
        assert status_permitido("Pago")
        assert status_permitido("Disponível")
        assert status_permitido(" Pago ")

    def test_outros_status(self):
        assert not status_permitido("Cancelado")
        assert not status_permitido("")


class TestAvaliacao:
    def test_filtra_status_e_janela(self):
        r = avaliar_inscricoes(
            [
                _insc("A1", "Pago", "08/01/2025"),
                _insc("A2", "Pago", "01/12/2024"),
                _insc("A3", "Cancelado", "09/01/2025"),
            ],
            agora=AGORA,
        )
        assert r.todas_bloqueadas is False
        assert [e.referencia for e in r.elegiveis] == ["A1"]

    def test_todas_com_status_bloqueado(self):
        r = avaliar_inscricoes([_insc("A1", "Cancelado", "09/01/2025")], agora=AGORA)
        assert r.todas_bloqueadas is True
        assert r.elegiveis == []

    def test_sem_inscricoes_nao_conta_como_bloqueio(self):
        r = avaliar_inscricoes([], agora=AGORA)
        assert r.todas_bloqueadas is False
        assert r.elegiveis == []

    def test_data_ilegivel_fica_de_fora(self):
        r = avaliar_inscricoes([_insc("A1", "Pago", "ontem")], agora=AGORA)
        assert r.elegiveis == []

    def test_janela_configuravel(self):
        inscricoes = [_insc("A1", "Pago", "01/01/2025")]
        assert avaliar_inscricoes(inscricoes, agora=AGORA, janela_dias=7).elegiveis == []
        assert len(avaliar_inscricoes(inscricoes, agora=AGORA, janela_dias=10).elegiveis) == 1

    def test_exatamente_no_limite_da_janela(self):
        # 7 dias cravados ainda valem; um minuto a mais já não
        no_limite = _insc("A1", "Pago", "03/01/2025", hora="12:00")
        passou = _insc("A2", "Pago", "03/01/2025", hora="11:59")
        r = avaliar_inscricoes([no_limite, passou], agora=AGORA, janela_dias=7)
        assert [e.referencia for e in r.elegiveis] == ["A1"]

    def test_titulo_do_evento_como_reserva(self):
        r = avaliar_inscricoes([_insc("A1", "Pago", "09/01/2025", titulo="")], agora=AGORA, titulo_evento="Trail")
        assert r.elegiveis[0].titulo == "Trail"
