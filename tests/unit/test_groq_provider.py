"""
tests/unit/test_groq_provider.py — Testes de providers/groq_provider.py
========================================================================
Sem chamada real ao Groq: _perguntar é substituído por respostas fixas.
Execute: pytest tests/unit/test_groq_provider.py -v
"""
import pytest

from src.providers.groq_provider import GroqTextEnhancer, invocar_com_retry

CHAVES = ["iss_pwd", "iss_cat", "iss_size"]


def _enhancer(monkeypatch, resposta=None, erro=None, reescrita=True) -> GroqTextEnhancer:
    enhancer = GroqTextEnhancer(reescrita=reescrita)

    async def perguntar(sistema, usuario, temperatura):
        if erro:
            raise erro
        return resposta

    monkeypatch.setattr(enhancer, "_perguntar", perguntar)
    return enhancer


class TestClassificar:
    @pytest.mark.asyncio
    async def test_chave_exata(self, monkeypatch):
        assert await _enhancer(monkeypatch, "iss_cat").classificar("mudar categoria", CHAVES) == "iss_cat"

    @pytest.mark.asyncio
    async def test_resposta_com_ruido(self, monkeypatch):
        assert await _enhancer(monkeypatch, " ISS_SIZE. ").classificar("camisa", CHAVES) == "iss_size"

    @pytest.mark.asyncio
    async def test_chave_fora_da_lista(self, monkeypatch):
        assert await _enhancer(monkeypatch, "iss_team").classificar("equipe", CHAVES) == "unknown"

    @pytest.mark.asyncio
    async def test_erro_vira_unknown(self, monkeypatch):
        enhancer = _enhancer(monkeypatch, erro=RuntimeError("rate_limit_esgotado"))
        assert await enhancer.classificar("senha", CHAVES) == "unknown"


class TestEscolherIndice:
    @pytest.mark.asyncio
    async def test_numero_da_lista(self, monkeypatch):
        assert await _enhancer(monkeypatch, "2").escolher_indice("10k", ["5K", "10K"]) == 1

    @pytest.mark.asyncio
    async def test_zero_e_nenhum(self, monkeypatch):
        assert await _enhancer(monkeypatch, "0").escolher_indice("kids", ["5K", "10K"]) == -1

    @pytest.mark.asyncio
    async def test_fora_da_faixa(self, monkeypatch):
        assert await _enhancer(monkeypatch, "7").escolher_indice("kids", ["5K", "10K"]) == -1


class TestReescrever:
    @pytest.mark.asyncio
    async def test_texto_reescrito(self, monkeypatch):
        assert await _enhancer(monkeypatch, "Oi! Tudo certo?").reescrever("Tudo certo?") == "Oi! Tudo certo?"

    @pytest.mark.asyncio
    async def test_erro_mantem_o_original(self, monkeypatch):
        enhancer = _enhancer(monkeypatch, erro=RuntimeError("timeout"))
        assert await enhancer.reescrever("Tudo certo?") == "Tudo certo?"

    @pytest.mark.asyncio
    async def test_reescrita_desligada(self, monkeypatch):
        enhancer = _enhancer(monkeypatch, "outra coisa", reescrita=False)
        assert await enhancer.reescrever("Tudo certo?") == "Tudo certo?"


class TestRetry:
    def test_429_esgotado(self, monkeypatch):
        monkeypatch.setattr("src.providers.groq_provider.time.sleep", lambda s: None)

        class LlmLimitado:
            chamadas = 0

            def invoke(self, messages, **kwargs):
                self.chamadas += 1
                raise Exception("Error code: 429 - rate_limit_exceeded")

        llm = LlmLimitado()
        with pytest.raises(RuntimeError, match="rate_limit_esgotado"):
            invocar_com_retry(llm, [])
        assert llm.chamadas == 3

    def test_outro_erro_sem_retry(self):
        class LlmQuebrado:
            def invoke(self, messages, **kwargs):
                raise ValueError("bad request")

        with pytest.raises(ValueError):
            invocar_com_retry(LlmQuebrado(), [])
