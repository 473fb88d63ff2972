"""
src/services/inscricoes_service.py — Cliente do backend de inscrições
=====================================================================
Todas as leituras e alterações de cadastro/inscrição passam por aqui.

Base única (settings.SITE_URL):
    {SITE_URL}{API_PREFIX}/user_data.php           → cadastro por CPF
    {SITE_URL}{API_PREFIX}/events_list.php         → eventos abertos
    {SITE_URL}{API_PREFIX}/event_category_list.php → categorias
    {SITE_URL}{API_PREFIX}/event_tshirt_size.php   → camisetas
    {SITE_URL}{API_PREFIX}/user_events_list.php    → inscrições do usuário
    {SITE_URL}{API_PREFIX}/inscricao_put.php       → categoria/camiseta/equipe
    {SITE_URL}{API_PREFIX}/user_put.php            → e-mail/nascimento
    {SITE_URL}{API_PREFIX}/transfer_ownership.php  → troca de titularidade
    {SITE_URL}/evento/refund.php                   → reembolso

Qualquer falha (rede, HTTP != 2xx, JSON inválido) vira BackendError.
Quem chama decide a mensagem para o usuário.
"""
from __future__ import annotations
import logging
from typing import Any

import httpx

from src.domain.entities import (
    CategoriaOpcao, EventoAberto, InscricaoUsuario, TamanhoCamiseta, Usuario,
)
from src.domain.texto import somente_digitos
from src.infrastructure.settings import settings

logger = logging.getLogger(__name__)


class BackendError(Exception):
    """Falha ao falar com o backend de inscrições."""


def _texto(valor: Any) -> str:
    return "" if valor is None else str(valor).strip()


def _telefone_e164(digitos: str) -> str:
    if not digitos:
        return ""
    if len(digitos) >= 12 and digitos.startswith("55"):
        return f"+{digitos}"
    return f"+55{digitos}"


class InscricoesService:
    def __init__(
        self,
        site_url: str | None = None,
        api_prefix: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.site_url  = (site_url or settings.SITE_URL).rstrip("/")
        self.api_url   = self.site_url + (settings.API_PREFIX if api_prefix is None else api_prefix)
        self.timeout   = timeout or settings.BACKEND_TIMEOUT_S
        self.transport = transport

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    async def _requisitar(
        self,
        metodo: str,
        url: str,
        params: dict | None = None,
        json: dict | None = None,
    ) -> Any:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                r = await client.request(metodo, url, params=params, json=json)
                r.raise_for_status()
                return r.json()
            except httpx.HTTPStatusError as e:
                logger.warning("⚠️  Backend %s %s → %s", metodo, url, e.response.status_code)
                raise BackendError(f"HTTP {e.response.status_code}") from e
            except httpx.HTTPError as e:
                logger.warning("⚠️  Backend %s %s indisponível: %s", metodo, url, e)
                raise BackendError(str(e) or e.__class__.__name__) from e
            except ValueError as e:
                logger.warning("⚠️  Backend %s %s devolveu JSON inválido", metodo, url)
                raise BackendError("json_invalido") from e

    # ------------------------------------------------------------------
    # CADASTRO
    # ------------------------------------------------------------------

    async def buscar_usuario_por_cpf(self, cpf: str) -> Usuario | None:
        """None quando o backend responde mas não acha o CPF."""
        dados = await self._requisitar("GET", f"{self.api_url}/user_data.php", params={"document": cpf})
        if not isinstance(dados, dict) or not dados.get("success") or not dados.get("data"):
            return None

        u = dados["data"]
        user_id = u.get("id") or u.get("userID") or u.get("userId") or u.get("userid")
        if not user_id:
            return None
        telefone = somente_digitos(_texto(u.get("phone") or u.get("telefone") or u.get("celular")))
        return Usuario(
            id=_texto(user_id),
            nome=_texto(u.get("name") or u.get("nome")),
            email=_texto(u.get("email")),
            nascimento=_texto(u.get("birthDate") or u.get("nascimento")),
            cpf=cpf,
            telefone=_telefone_e164(telefone),
        )

    async def atualizar_perfil(self, user_id: str, email: str | None = None, nascimento: str | None = None) -> None:
        corpo: dict[str, Any] = {"userID": user_id}
        if email:
            corpo["email"] = email
        if nascimento:
            corpo["birthdate"] = nascimento
        await self._requisitar("PUT", f"{self.api_url}/user_put.php", json=corpo)
        logger.info("✅ Perfil %s atualizado (%s)", user_id, ", ".join(k for k in corpo if k != "userID"))

    # ------------------------------------------------------------------
    # EVENTOS E OPÇÕES
    # ------------------------------------------------------------------

    async def listar_eventos_abertos(self) -> list[EventoAberto]:
        dados = await self._requisitar("GET", f"{self.api_url}/events_list.php", params={"status": 2})
        eventos = dados.get("evento") if isinstance(dados, dict) else None
        return [
            EventoAberto(
                id=_texto(ev.get("id")),
                titulo=_texto(ev.get("titulo")),
                categoria=_texto(ev.get("categoria")),
                slug=_texto(ev.get("slug") or ev.get("Slug") or ev.get("url_amigavel") or ev.get("url")),
            )
            for ev in (eventos if isinstance(eventos, list) else [])
        ]

    async def listar_categorias(self, evento_id: str, user_id: str) -> list[CategoriaOpcao]:
        dados = await self._requisitar(
            "GET",
            f"{self.api_url}/event_category_list.php",
            params={"id": evento_id, "userID": user_id, "status": 1},
        )
        categorias = dados.get("categoria_evento") if isinstance(dados, dict) else None
        return [
            CategoriaOpcao(
                id=_texto(c.get("id")),
                titulo=_texto(c.get("titulo")),
                descricao=_texto(c.get("descricao")),
                valor_formatado=_texto(c.get("valor_formatado")),
                taxa_formatado=_texto(c.get("taxa_formatado")),
            )
            for c in (categorias if isinstance(categorias, list) else [])
        ]

    async def listar_camisetas(self, evento_id: str) -> tuple[list[TamanhoCamiseta], list[TamanhoCamiseta]]:
        """(infantil, adulto), só os tamanhos com estoque."""
        dados = await self._requisitar("GET", f"{self.api_url}/event_tshirt_size.php", params={"id": evento_id})
        camisetas = dados.get("camisetas") if isinstance(dados, dict) else None
        camisetas = camisetas if isinstance(camisetas, dict) else {}

        def _disponiveis(grupo: str, chave: str) -> list[TamanhoCamiseta]:
            itens = camisetas.get(chave)
            saida = []
            for item in itens if isinstance(itens, list) else []:
                try:
                    disponiveis = float(item.get("disponiveis") or 0)
                except (TypeError, ValueError):
                    disponiveis = 0
                if disponiveis > 0:
                    tamanho = _texto(item.get("tamanho"))
                    saida.append(TamanhoCamiseta(tamanho=tamanho, label=_texto(item.get("label")) or tamanho, grupo=grupo))
            return saida

        return _disponiveis("INFANTIL", "infantil"), _disponiveis("ADULTO", "adulto")

    async def listar_inscricoes(self, user_id: str, evento_id: str) -> list[InscricaoUsuario]:
        dados = await self._requisitar(
            "GET",
            f"{self.api_url}/user_events_list.php",
            params={"userID": user_id, "eventID": evento_id},
        )
        lista = dados.get("data") if isinstance(dados, dict) else None
        saida = []
        for it in lista if isinstance(lista, list) else []:
            evento = it.get("event") if isinstance(it.get("event"), dict) else {}
            saida.append(InscricaoUsuario(
                referencia=_texto(it.get("cod_pagseguro")),
                status=_texto(it.get("status_pagseguro") or it.get("status")),
                data=_texto(it.get("data")),
                hora=_texto(it.get("hora")),
                titulo=_texto(evento.get("titulo")),
            ))
        return saida

    # ------------------------------------------------------------------
    # ALTERAÇÕES
    # ------------------------------------------------------------------

    async def atualizar_inscricao(self, user_id: str, evento_id: str, **campos: str) -> None:
        """campos: inscricaoID (categoria), tshirtSize (camiseta) ou equipe."""
        corpo = {"userID": user_id, "eventID": evento_id, **campos}
        await self._requisitar("PUT", f"{self.api_url}/inscricao_put.php", json=corpo)
        logger.info("✅ Inscrição user=%s evento=%s atualizada: %s", user_id, evento_id, list(campos))

    async def solicitar_reembolso(self, referencia: str, nome: str, email: str) -> None:
        await self._requisitar(
            "GET",
            f"{self.site_url}/evento/refund.php",
            params={"reference_id": referencia, "nome_cliente": nome, "email_cliente": email},
        )
        logger.info("✅ Reembolso solicitado para %s", referencia)

    async def transferir_titularidade(
        self,
        evento_id: str,
        old_user_id: str,
        new_user_id: str,
        token: str | None = None,
    ) -> None:
        params = {"eventID": evento_id, "oldUserID": old_user_id, "newUserID": new_user_id}
        if token:
            params["token"] = token
        dados = await self._requisitar("GET", f"{self.api_url}/transfer_ownership.php", params=params)
        if isinstance(dados, dict) and dados.get("success") is False:
            raise BackendError(_texto(dados.get("message")) or "transferencia_recusada")
        logger.info("✅ Titularidade do evento %s: %s → %s", evento_id, old_user_id, new_user_id)
