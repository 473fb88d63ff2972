"""
tests/unit/test_menu.py — Testes de domain/menu.py
===================================================
Sem Redis. Sem Groq. Sem Docker. Puro Python.
Execute: pytest tests/unit/test_menu.py -v
"""
from src.domain.entities import Assunto, CategoriaOpcao, EventoAberto, InscricaoCancelavel, TamanhoCamiseta
from src.domain.menu import (
    MENU_ASSUNTOS, RESPOSTAS_FAQ, montar_mapa_camisetas, montar_menu_cancelamentos,
    montar_menu_categorias, montar_menu_camisetas, montar_menu_eventos,
    resolver_assunto_direto,
)


class TestAtalhos:
    def test_numeros_do_menu(self):
        assert resolver_assunto_direto("1") == Assunto.SENHA
        assert resolver_assunto_direto("6") == Assunto.TRANSFERENCIA
        assert resolver_assunto_direto("7") == Assunto.FAQ

    def test_apelido_com_acento_e_caixa(self):
        assert resolver_assunto_direto("Cancelar Inscrição") == Assunto.CANCELAMENTO
        assert resolver_assunto_direto("Dúvidas") == Assunto.FAQ

    def test_frase_livre_nao_e_atalho(self):
        assert resolver_assunto_direto("quero trocar minha camiseta") is None

    def test_menu_lista_sete_opcoes(self):
        assert "7. Dúvidas sobre o evento" in MENU_ASSUNTOS


class TestFaq:
    def test_opcao_quatro_nao_tem_resposta_pronta(self):
        assert set(RESPOSTAS_FAQ) == {"1", "2", "3", "5"}


class TestListas:
    def test_eventos(self):
        eventos = [EventoAberto(id="1", titulo="Corrida X", categoria="5K"), EventoAberto(id="2", titulo="Trail")]
        assert montar_menu_eventos(eventos) == "1. Corrida X — 5K\n2. Trail"

    def test_categorias_com_valor_e_taxa(self):
        texto = montar_menu_categorias(
            "Corrida X",
            [CategoriaOpcao(id="c1", titulo="10K", valor_formatado="99,90", taxa_formatado="9,99")],
        )
        assert "Evento selecionado: **Corrida X**" in texto
        assert texto.endswith("1. 10K — R$ 99,90 (taxa R$ 9,99)")

    def test_camisetas_infantis_primeiro(self):
        mapa = montar_mapa_camisetas(
            [TamanhoCamiseta(tamanho="8", label="8 anos", grupo="INFANTIL")],
            [TamanhoCamiseta(tamanho="M", label="M")],
        )
        assert mapa[1].grupo == "INFANTIL"
        assert mapa[2].tamanho == "M"

    def test_camisetas_agrupadas(self):
        mapa = {
            1: TamanhoCamiseta(tamanho="8", label="8 anos", grupo="INFANTIL"),
            2: TamanhoCamiseta(tamanho="M", label="M"),
        }
        linhas = montar_menu_camisetas("Corrida X", mapa).splitlines()
        assert linhas.index("INFANTIL:") < linhas.index("1. 8 anos") < linhas.index("ADULTO:") < linhas.index("2. M")

    def test_cancelamentos(self):
        mapa = {1: InscricaoCancelavel(referencia="REF1", titulo="Corrida X", data="08/01/2025", hora="10:00")}
        assert montar_menu_cancelamentos("Corrida X", mapa).endswith("1. REF1 — Corrida X — 08/01/2025 10:00")
