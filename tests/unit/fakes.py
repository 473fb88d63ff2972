"""
tests/unit/fakes.py — Colaboradores falsos do atendimento
==========================================================
FakeTransporte grava tudo que seria enviado pela Evolution.
FakeInscricoes responde como o backend, com dados configuráveis por teste
e falha sob demanda (falhar={"metodo": Excecao}).
"""
from __future__ import annotations
from dataclasses import replace

from src.application.contexto import Contexto
from src.application.handle_message import handle_message
from src.domain.entities import (
    CategoriaOpcao, EventoAberto, InscricaoUsuario, Mensagem, Sessao, TamanhoCamiseta, Usuario,
)
from src.domain.texto import digitos_telefone
from src.memory.session_store import MemorySessionStore

TEL_ANA = "5598911111111"
TEL_BIA = "5598922222222"
TEL_CAIO = "5598933333333"

ANA = Usuario(id="u1", nome="Ana", email="ana@x.com", nascimento="1990-05-01", cpf="11111111111", telefone="+" + TEL_ANA)
BIA = Usuario(id="u2", nome="Bia", email="bia@x.com", nascimento="1992-02-02", cpf="22222222222", telefone="+" + TEL_BIA)
CAIO = Usuario(id="u3", nome="Caio", cpf="33333333333", telefone="+" + TEL_CAIO)


class FakeTransporte:
    def __init__(self) -> None:
        self.enviados: list[tuple[str, str]] = []

    async def enviar_texto(self, destino: str, texto: str) -> bool:
        self.enviados.append((digitos_telefone(destino), texto))
        return True

    def para(self, telefone: str) -> list[str]:
        return [t for d, t in self.enviados if d == telefone]


class FakeInscricoes:
    def __init__(self) -> None:
        self.usuarios = {u.cpf: u for u in (ANA, BIA, CAIO)}
        self.eventos = [
            EventoAberto(id="e1", titulo="Corrida 5K", slug="corrida-5k"),
            EventoAberto(id="e2", titulo="Corrida 10K", slug="corrida-10k"),
        ]
        self.categorias = [
            CategoriaOpcao(id="c1", titulo="Geral", valor_formatado="99,90"),
            CategoriaOpcao(id="c2", titulo="Kids", descricao="até 12 anos"),
        ]
        self.camisetas = (
            [TamanhoCamiseta(tamanho="8", label="8 anos", grupo="INFANTIL")],
            [TamanhoCamiseta(tamanho="BLP", label="Babylook P"), TamanhoCamiseta(tamanho="G", label="G")],
        )
        self.inscricoes: list[InscricaoUsuario] = []
        self.falhar: dict[str, Exception] = {}
        self.chamadas: list[tuple] = []

    def _registrar(self, metodo: str, *args, **kwargs) -> None:
        self.chamadas.append((metodo, args, kwargs))
        if metodo in self.falhar:
            raise self.falhar[metodo]

    def chamadas_de(self, metodo: str) -> list[tuple]:
        return [(a, k) for m, a, k in self.chamadas if m == metodo]

    async def buscar_usuario_por_cpf(self, cpf):
        self._registrar("buscar_usuario_por_cpf", cpf)
        u = self.usuarios.get(cpf)
        # cópia: os fluxos completam nome/e-mail no objeto da sessão
        return replace(u) if u else None

    async def atualizar_perfil(self, user_id, email=None, nascimento=None):
        self._registrar("atualizar_perfil", user_id, email=email, nascimento=nascimento)

    async def listar_eventos_abertos(self):
        self._registrar("listar_eventos_abertos")
        return list(self.eventos)

    async def listar_categorias(self, evento_id, user_id):
        self._registrar("listar_categorias", evento_id, user_id)
        return list(self.categorias)

    async def listar_camisetas(self, evento_id):
        self._registrar("listar_camisetas", evento_id)
        return self.camisetas

    async def listar_inscricoes(self, user_id, evento_id):
        self._registrar("listar_inscricoes", user_id, evento_id)
        return list(self.inscricoes)

    async def atualizar_inscricao(self, user_id, evento_id, **campos):
        self._registrar("atualizar_inscricao", user_id, evento_id, **campos)

    async def solicitar_reembolso(self, referencia, nome, email):
        self._registrar("solicitar_reembolso", referencia, nome, email)

    async def transferir_titularidade(self, evento_id, old_user_id, new_user_id, token=None):
        self._registrar("transferir_titularidade", evento_id, old_user_id, new_user_id, token=token)


def novo_contexto() -> Contexto:
    return Contexto(
        transporte=FakeTransporte(),
        inscricoes=FakeInscricoes(),
        sessoes=MemorySessionStore(),
    )


async def enviar(ctx: Contexto, texto: str, de: str = TEL_ANA) -> list[str]:
    """Entrega uma mensagem ao roteador e devolve o que o bot respondeu a quem enviou."""
    antes = len(ctx.transporte.enviados)
    await handle_message(Mensagem(user_id=de, chat_id=f"{de}@s.whatsapp.net", body=texto), ctx)
    return [t for d, t in ctx.transporte.enviados[antes:] if d == de]


async def conversar(ctx: Contexto, *textos: str, de: str = TEL_ANA) -> list[str]:
    """Várias mensagens seguidas; devolve só as respostas à última."""
    respostas: list[str] = []
    for texto in textos:
        respostas = await enviar(ctx, texto, de)
    return respostas


async def identificar(ctx: Contexto, de: str = TEL_ANA, cpf: str = ANA.cpf) -> None:
    """Gatilho + CPF: deixa a sessão no menu de assuntos."""
    await conversar(ctx, "Olá Bro", cpf, de=de)


def sessao(ctx: Contexto, de: str = TEL_ANA) -> Sessao:
    return ctx.sessoes.obter(de)
