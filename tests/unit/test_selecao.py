"""
tests/unit/test_selecao.py — Testes de domain/selecao.py
=========================================================
Sem Redis. Sem Groq. Puro Python.
Execute: pytest tests/unit/test_selecao.py -v
"""
from src.domain.entities import CategoriaOpcao, TamanhoCamiseta
from src.domain.selecao import (
    casar_camiseta, casar_categoria_aproximado, casar_categoria_estrito,
    escolher_indice_por_texto, indice_por_numero, texto_busca_camiseta,
)

EVENTOS = ["Corrida 5K", "Corrida 10K", "Trail Noturno"]

CATEGORIAS = [
    CategoriaOpcao(id="c1", titulo="5K Geral", valor_formatado="89,90"),
    CategoriaOpcao(id="c2", titulo="10K Geral", valor_formatado="99,90"),
    CategoriaOpcao(id="c3", titulo="Kids", descricao="até 12 anos"),
]


class TestIndicePorNumero:
    def test_dentro_da_faixa(self):
        assert indice_por_numero("3", 5) == 2

    def test_com_espacos(self):
        assert indice_por_numero(" 2 ", 5) == 1

    def test_fora_da_faixa(self):
        assert indice_por_numero("6", 5) is None
        assert indice_por_numero("0", 5) is None

    def test_nao_numerico(self):
        assert indice_por_numero("dois", 5) is None


class TestRanking:
    def test_token_unico(self):
        assert escolher_indice_por_texto("10k", EVENTOS, str) == 1

    def test_empate_fica_com_o_primeiro(self):
        assert escolher_indice_por_texto("corrida", EVENTOS, str) == 0

    def test_sem_acerto(self):
        assert escolher_indice_por_texto("natação", EVENTOS, str) == -1

    def test_consulta_vazia(self):
        assert escolher_indice_por_texto("  ", EVENTOS, str) == -1


class TestCategorias:
    def test_estrito_exige_todos_os_tokens(self):
        assert casar_categoria_estrito("10k geral", CATEGORIAS) == 1
        assert casar_categoria_estrito("10k kids", CATEGORIAS) == -1

    def test_estrito_olha_descricao(self):
        assert casar_categoria_estrito("12 anos", CATEGORIAS) == 2

    def test_aproximado(self):
        assert casar_categoria_aproximado("quero a kids", CATEGORIAS) == 2


class TestCamisetas:
    MAPA = {
        1: TamanhoCamiseta(tamanho="P", label="P", grupo="INFANTIL"),
        2: TamanhoCamiseta(tamanho="BLP", label="Babylook P"),
        3: TamanhoCamiseta(tamanho="G", label="G"),
    }

    def test_sinonimos_de_baby_look(self):
        busca = texto_busca_camiseta(self.MAPA[2]).split()
        assert "babylook" in busca and "baby" in busca and "bl" in busca

    def test_baby_look_separado(self):
        assert casar_camiseta("baby look p", self.MAPA) is self.MAPA[2]

    def test_tamanho_simples(self):
        assert casar_camiseta("g", self.MAPA) is self.MAPA[3]

    def test_sem_correspondencia(self):
        assert casar_camiseta("xgg", self.MAPA) is None
