"""
tests/unit/test_texto.py — Testes de domain/texto.py
=====================================================
Sem Redis. Sem Groq. Puro Python.
Execute: pytest tests/unit/test_texto.py -v
"""
from datetime import datetime

from src.domain.texto import (
    contem_gatilho, digitos_telefone, e_autorizo, e_despedida, e_ir_menu,
    e_nao, e_sim, e_trocar_evento, extrair_cpf, formatar_cpf, gerar_token,
    iso_para_br, normalizar, para_iso, parse_data_hora_br, quer_mais_ajuda,
    telefones_conferem, tokens,
)


class TestNormalizar:
    def test_acentos_pontuacao_e_espacos(self):
        assert normalizar("  Olá,  BRO!! ") == "ola bro"

    def test_none_vira_vazio(self):
        assert normalizar(None) == ""

    def test_caracteres_invisiveis(self):
        assert normalizar("s\u200bim") == "sim"

    def test_tokens(self):
        assert tokens("Babylook, Tamanho P") == ["babylook", "tamanho", "p"]
        assert tokens(None) == []


class TestDetectores:
    def test_sim_com_frase(self):
        assert e_sim("Sim, está certo") is True

    def test_negacao_vence_o_sim(self):
        assert e_sim("não está certo") is False

    def test_numeros_do_menu(self):
        assert e_sim("1") is True
        assert e_nao("2") is True

    def test_palavra_inteira_nao_casa_dentro_de_outra(self):
        # "ok" é despedida, "book" não
        assert e_despedida("ok, obrigado") is True
        assert e_despedida("book") is False

    def test_ir_menu(self):
        assert e_ir_menu("voltar ao menu") is True
        assert e_ir_menu("quero a camiseta") is False

    def test_trocar_evento_pelo_zero(self):
        assert e_trocar_evento("0") is True
        assert e_trocar_evento("outro evento") is True

    def test_mais_ajuda(self):
        assert quer_mais_ajuda("sim") is True
        assert quer_mais_ajuda("1") is True
        assert quer_mais_ajuda("não, obrigado") is False
        assert quer_mais_ajuda("obrigado") is False

    def test_autorizo(self):
        assert e_autorizo("AUTORIZO") is True
        assert e_autorizo("não autorizo") is False

    def test_gatilho_no_meio_da_frase(self):
        assert contem_gatilho("Olá Bro, tudo bem?", ["ola bro"]) is True
        assert contem_gatilho("bom dia", ["ola bro"]) is False


class TestCpf:
    def test_extrai_com_mascara(self):
        assert extrair_cpf("123.456.789-09") == "12345678909"

    def test_incompleto(self):
        assert extrair_cpf("1234") == ""

    def test_formatar(self):
        assert formatar_cpf("12345678909") == "123.456.789-09"


class TestDatas:
    def test_br_para_iso(self):
        assert para_iso("23/03/1965") == "1965-03-23"

    def test_iso_passa_direto(self):
        assert para_iso("1965-03-23") == "1965-03-23"

    def test_data_impossivel(self):
        assert para_iso("31/02/2000") == ""

    def test_texto_livre(self):
        assert para_iso("ontem") == ""

    def test_iso_para_br(self):
        assert iso_para_br("1965-03-23") == "23/03/1965"

    def test_data_hora_da_compra(self):
        assert parse_data_hora_br("10/01/2025", "14:30") == datetime(2025, 1, 10, 14, 30)

    def test_data_hora_invalida(self):
        assert parse_data_hora_br("10/01") is None


class TestTelefones:
    def test_digitos_do_jid(self):
        assert digitos_telefone("5598912345678@s.whatsapp.net") == "5598912345678"

    def test_jid_e_mascara_conferem(self):
        assert telefones_conferem("5598912345678@s.whatsapp.net", "+55 (98) 91234-5678") is True

    def test_sem_nono_digito(self):
        assert telefones_conferem("5598912345678", "(98) 1234-5678") is True

    def test_numeros_diferentes(self):
        assert telefones_conferem("5598912345678", "5511987654321") is False

    def test_vazio_nunca_confere(self):
        assert telefones_conferem("", "5598912345678") is False


class TestToken:
    def test_quatro_digitos(self):
        token = gerar_token()
        assert len(token) == 4 and token.isdigit()

    def test_nao_colide_com_pedidos_abertos(self):
        ocupados = {f"{n:04d}" for n in range(10_000)} - {"0042"}
        assert gerar_token(ocupados) == "0042"
