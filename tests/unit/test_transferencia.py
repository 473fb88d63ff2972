"""
tests/unit/test_transferencia.py — Testes da troca de titularidade
===================================================================
Caminho do próprio titular (AUTORIZO) e caminho com token de 4 dígitos
enviado ao telefone do titular atual.
Sem Redis. Sem Groq. Transporte e backend falsos.
Execute: pytest tests/unit/test_transferencia.py -v
"""
from dataclasses import replace
from datetime import datetime, timedelta

import pytest

from fakes import ANA, BIA, CAIO, TEL_ANA, TEL_BIA, TEL_CAIO, conversar, enviar, identificar, sessao
from src.application.flows.transferencia import (
    EXPIROU_SOLICITANTE, _ler_resposta, notificar_expiradas,
)
from src.domain.entities import Etapa
from src.services.inscricoes_service import BackendError


class TestLeituraDaResposta:
    def test_so_o_token_autoriza(self):
        assert _ler_resposta("1234") == ("1234", False)

    def test_token_com_um(self):
        assert _ler_resposta("1234 1") == ("1234", False)

    def test_token_com_autorizo(self):
        assert _ler_resposta(" 1234 autorizo ") == ("1234", False)

    def test_token_com_negativa(self):
        assert _ler_resposta("1234 2") == ("1234", True)
        assert _ler_resposta("1234 não") == ("1234", True)

    def test_resposta_ambigua_nao_e_autorizacao(self):
        assert _ler_resposta("1234 talvez") is None

    def test_outros_textos(self):
        assert _ler_resposta("12345") is None
        assert _ler_resposta("oi 1234") is None


class TestProprioTitular:
    @pytest.mark.asyncio
    async def test_autorizo_aplica_direto(self, ctx):
        await identificar(ctx)
        await conversar(ctx, "6", "1", "1", BIA.cpf)
        assert sessao(ctx).etapa == Etapa.AWAITING_TRANSFER_CONFIRM

        respostas = await enviar(ctx, "1")
        assert respostas[0].startswith("Você é o titular atual desta inscrição.")
        assert "para Bia – CPF 222.222.222-22" in respostas[0]
        assert sessao(ctx).etapa == Etapa.AWAITING_TRANSFER_SELF

        respostas = await enviar(ctx, "AUTORIZO")
        assert respostas[0] == "Transferência concluída com sucesso! ✅"
        assert ctx.inscricoes.chamadas_de("transferir_titularidade") == [(("e1", "u1", "u2"), {"token": None})]
        assert sessao(ctx).pendente.transferencia is None

    @pytest.mark.asyncio
    async def test_falha_oferece_nova_tentativa(self, ctx):
        ctx.inscricoes.falhar["transferir_titularidade"] = BackendError("HTTP 500")
        await identificar(ctx)
        await conversar(ctx, "6", "1", "1", BIA.cpf, "1", "autorizo")
        assert sessao(ctx).etapa == Etapa.AWAITING_TRANSFER_RETRY

    @pytest.mark.asyncio
    async def test_novo_titular_sem_cadastro(self, ctx):
        await identificar(ctx)
        respostas = await conversar(ctx, "6", "1", "1", "99999999999")
        assert respostas[0].startswith("Não encontrei cadastro para esse CPF.")
        assert sessao(ctx).etapa == Etapa.AWAITING_MORE_HELP


async def _pedir_em_nome_do_titular(ctx) -> str:
    """Ana pede a troca da inscrição de Caio para Bia. Devolve o token gerado."""
    await identificar(ctx)
    await conversar(ctx, "6", "1", "2", CAIO.cpf, "1", BIA.cpf)
    await enviar(ctx, "1")
    (token,) = ctx.autorizacoes.tokens()
    return token


class TestAutorizacaoDoTitular:
    @pytest.mark.asyncio
    async def test_token_enviado_ao_titular(self, ctx):
        token = await _pedir_em_nome_do_titular(ctx)
        mensagem = ctx.transporte.para(TEL_CAIO)[-1]
        assert f"*{token}*" in mensagem
        assert "da sua inscrição do evento **Corrida 5K** para Bia – CPF 222.222.222-22?" in mensagem
        assert "categoria" not in mensagem
        assert sessao(ctx).etapa == Etapa.AWAITING_TRANSFER_RESULT
        assert sessao(ctx, TEL_CAIO).started is True

    @pytest.mark.asyncio
    async def test_titular_autoriza(self, ctx):
        token = await _pedir_em_nome_do_titular(ctx)
        respostas = await enviar(ctx, f"{token} 1", de=TEL_CAIO)
        assert respostas == ["Autorizado. Efetivei a troca de titularidade ✅"]
        assert ctx.transporte.para(TEL_ANA)[-1] == "Prontinho! A troca de titularidade foi concluída ✅"
        assert ctx.inscricoes.chamadas_de("transferir_titularidade") == [
            (("e1", CAIO.id, BIA.id), {"token": token}),
        ]
        assert len(ctx.autorizacoes) == 0
        assert sessao(ctx).etapa == Etapa.AWAITING_MORE_HELP

    @pytest.mark.asyncio
    async def test_titular_nega(self, ctx):
        token = await _pedir_em_nome_do_titular(ctx)
        assert await enviar(ctx, f"{token} não", de=TEL_CAIO) == ["Troca de titularidade *negada*."]
        assert ctx.transporte.para(TEL_ANA)[-1] == "O titular *negou* a troca de titularidade."
        assert ctx.inscricoes.chamadas_de("transferir_titularidade") == []

    @pytest.mark.asyncio
    async def test_token_de_outro_telefone_nao_vale(self, ctx):
        token = await _pedir_em_nome_do_titular(ctx)
        assert await enviar(ctx, token, de=TEL_BIA) == []
        assert ctx.autorizacoes.tokens() == {token}

    @pytest.mark.asyncio
    async def test_token_vencido(self, ctx):
        token = await _pedir_em_nome_do_titular(ctx)
        ctx.autorizacoes.obter(token).expira_em = datetime.now() - timedelta(minutes=1)
        assert await enviar(ctx, token, de=TEL_CAIO) == ["Este token expirou. Solicite novamente."]
        assert ctx.transporte.para(TEL_ANA)[-1] == EXPIROU_SOLICITANTE
        assert len(ctx.autorizacoes) == 0

    @pytest.mark.asyncio
    async def test_falha_ao_efetivar(self, ctx):
        token = await _pedir_em_nome_do_titular(ctx)
        ctx.inscricoes.falhar["transferir_titularidade"] = BackendError("HTTP 500")
        assert await enviar(ctx, token, de=TEL_CAIO) == ["Não consegui efetivar a troca agora."]
        assert ctx.transporte.para(TEL_ANA)[-1].startswith("Falha ao efetivar a troca agora.")
        assert sessao(ctx).etapa == Etapa.AWAITING_MORE_HELP

    @pytest.mark.asyncio
    async def test_solicitante_esperando(self, ctx):
        await _pedir_em_nome_do_titular(ctx)
        respostas = await enviar(ctx, "e aí?")
        assert respostas[0].startswith("Ainda estou aguardando a resposta do titular atual.")

    @pytest.mark.asyncio
    async def test_titular_sem_telefone(self, ctx):
        ctx.inscricoes.usuarios[CAIO.cpf] = replace(CAIO, telefone="")
        await identificar(ctx)
        respostas = await conversar(ctx, "6", "1", "2", CAIO.cpf, "1", BIA.cpf, "1")
        assert respostas[0].startswith("Não encontrei telefone cadastrado do titular atual")
        assert len(ctx.autorizacoes) == 0


class TestVarredura:
    @pytest.mark.asyncio
    async def test_expiradas_avisam_o_solicitante(self, ctx):
        await _pedir_em_nome_do_titular(ctx)
        avisadas = await notificar_expiradas(ctx, agora=datetime.now() + timedelta(hours=1))
        assert avisadas == 1
        assert ctx.transporte.para(TEL_ANA)[-1] == EXPIROU_SOLICITANTE
        assert sessao(ctx).etapa == Etapa.AWAITING_MORE_HELP
        assert sessao(ctx).pendente.transferencia is None

    @pytest.mark.asyncio
    async def test_nada_vencido(self, ctx):
        await _pedir_em_nome_do_titular(ctx)
        assert await notificar_expiradas(ctx) == 0
        assert len(ctx.autorizacoes) == 1


def test_cadastros_de_teste_tem_telefones_distintos():
    assert len({ANA.telefone, BIA.telefone, CAIO.telefone}) == 3
