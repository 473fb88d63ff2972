"""
domain/entities.py — Entidades de domínio puras
================================================
Sem Redis. Sem Groq. Sem I/O.
Tipos que trafegam entre todas as camadas: a Sessao de cada telefone,
as etapas da conversa, os itens das listas buscadas no backend e a
autorização de troca de titularidade.
"""
from __future__ import annotations
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class Etapa(str, Enum):
    IDLE                      = "idle"
    # Identificação
    AWAITING_CPF              = "awaiting_cpf"
    AWAITING_CPF_VERIFY       = "awaiting_cpf_verify"
    # Menu / evento
    AWAITING_ISSUE            = "awaiting_issue"
    AWAITING_EVENT            = "awaiting_event"
    AWAITING_MORE_HELP        = "awaiting_more_help"
    # Categoria
    AWAITING_CATEGORY_CHOICE  = "awaiting_category_choice"
    AWAITING_NO_CATEGORY      = "awaiting_no_category_action"
    # Camiseta
    AWAITING_TSHIRT_CHOICE    = "awaiting_tshirt_choice"
    AWAITING_NO_TSHIRT        = "awaiting_no_tshirt_action"
    # Equipe
    AWAITING_TEAM_NAME        = "awaiting_team_name"
    AWAITING_TEAM_CONFIRM     = "awaiting_team_confirm"
    # Cancelamento
    AWAITING_CANCEL_CHOICE    = "awaiting_cancel_choice"
    AWAITING_CANCEL_CONFIRM   = "awaiting_cancel_confirm"
    AWAITING_CANCEL_REDIRECT  = "awaiting_cancel_redirect"
    AWAITING_NO_CANCEL        = "awaiting_no_cancel_action"
    AWAITING_CANCEL_RETRY     = "awaiting_cancel_retry"
    AWAITING_REFUND_NAME      = "awaiting_refund_name"
    AWAITING_REFUND_EMAIL     = "awaiting_refund_email"
    # Esqueci a senha
    AWAITING_EMAIL_CONFIRM    = "awaiting_email_confirm"
    AWAITING_EMAIL_VERIFY     = "awaiting_email_verification"
    AWAITING_BIRTH_CONFIRM    = "awaiting_birthdate_confirm"
    AWAITING_BIRTH_VERIFY     = "awaiting_birthdate_verification"
    # Troca de titularidade
    AWAITING_HOLDER_ROLE      = "awaiting_holder_role"
    AWAITING_HOLDER_CPF       = "awaiting_holder_cpf"
    AWAITING_HOLDER_CONFIRM   = "awaiting_holder_confirm"
    AWAITING_TRANSFER_CPF     = "awaiting_transfer_cpf"
    AWAITING_TRANSFER_CONFIRM = "awaiting_transfer_confirm"
    AWAITING_TRANSFER_SELF    = "awaiting_transfer_self_confirm"
    AWAITING_TRANSFER_RETRY   = "awaiting_transfer_retry"
    AWAITING_TRANSFER_RESULT  = "awaiting_transfer_result"
    # FAQ
    AWAITING_FAQ_MENU         = "awaiting_faq_menu"


class Assunto(str, Enum):
    SENHA          = "iss_pwd"
    CATEGORIA      = "iss_cat"
    CAMISETA       = "iss_size"
    EQUIPE         = "iss_team"
    CANCELAMENTO   = "iss_cancel"
    TRANSFERENCIA  = "iss_transfer"
    FAQ            = "iss_faq"
    FAQ_CONTATO    = "iss_faq_contact"
    ESCOLHER_EVENTO = "choose_event"
    DESCONHECIDO   = "unknown"


@dataclass
class Mensagem:
    """Mensagem recebida do WhatsApp via Evolution API."""
    user_id:   str
    chat_id:   str
    body:      str
    timestamp: datetime = field(default_factory=datetime.now)
    has_media: bool     = False
    msg_type:  str      = "text"
    push_name: str      = ""


# =============================================================================
# Cadastro e evento em contexto
# =============================================================================

@dataclass
class Usuario:
    """Inscrito autenticado. `cpf` sempre com 11 dígitos, `nascimento` em ISO."""
    id:         str
    nome:       str = ""
    email:      str = ""
    nascimento: str = ""
    cpf:        str = ""
    telefone:   str = ""


@dataclass
class Evento:
    id:     str
    titulo: str = "Evento selecionado"
    slug:   str = ""


# =============================================================================
# Itens das listas dinâmicas (snapshots guardados em Pendente)
# =============================================================================

@dataclass
class EventoAberto:
    id:        str
    titulo:    str
    categoria: str = ""
    slug:      str = ""

    @property
    def rotulo(self) -> str:
        return f"{self.titulo} {self.categoria}".strip()

    def para_evento(self) -> Evento:
        return Evento(id=self.id, titulo=self.titulo or "Evento selecionado", slug=self.slug)


@dataclass
class CategoriaOpcao:
    id:              str
    titulo:          str
    descricao:       str = ""
    valor_formatado: str = ""
    taxa_formatado:  str = ""

    @property
    def texto_busca(self) -> str:
        partes = [self.titulo, self.descricao]
        if self.valor_formatado:
            partes.append(f"R$ {self.valor_formatado}")
        if self.taxa_formatado:
            partes.append(f"taxa R$ {self.taxa_formatado}")
        return " ".join(p for p in partes if p)


@dataclass
class TamanhoCamiseta:
    tamanho: str
    label:   str
    grupo:   str = "ADULTO"


@dataclass
class InscricaoUsuario:
    """Inscrição do usuário como veio do backend (antes do filtro de elegibilidade)."""
    referencia: str
    status:     str
    data:       str = ""
    hora:       str = ""
    titulo:     str = ""


@dataclass
class InscricaoCancelavel:
    referencia: str
    titulo:     str
    data:       str = ""
    hora:       str = ""


# =============================================================================
# Troca de titularidade
# =============================================================================

@dataclass
class Titular:
    id:       str
    nome:     str = ""
    telefone: str = ""
    cpf:      str = ""


@dataclass
class RascunhoTransferencia:
    """Dados coletados pelo fluxo de troca de titularidade, passo a passo."""
    titular_atual:       Titular | None = None
    titular_atual_temp:  Titular | None = None
    novo_titular:        Titular | None = None
    novo_titular_temp:   Titular | None = None


@dataclass
class AutorizacaoTransferencia:
    """Pedido pendente de autorização do titular atual, indexado pelo token."""
    token:                str
    telefone_titular:     str
    telefone_solicitante: str
    old_user_id:          str
    new_user_id:          str
    evento_id:            str
    evento_titulo:        str
    expira_em:            datetime

    def expirada(self, agora: datetime | None = None) -> bool:
        return (agora or datetime.now()) > self.expira_em


# =============================================================================
# Sessão
# =============================================================================

@dataclass
class Pendente:
    """
    Área de rascunho da sessão, com um campo nomeado por uso.

    eventos/categorias/camisetas/cancelamentos são snapshots das listas
    mostradas ao usuário e valem só para o evento em contexto.
    """
    eventos:          list[EventoAberto] | None            = None
    categorias:       list[CategoriaOpcao] | None          = None
    camisetas:        dict[int, TamanhoCamiseta] | None    = None
    cancelamentos:    dict[int, InscricaoCancelavel] | None = None
    assunto_desejado: Assunto | None                       = None
    ref_cancelamento: str | None                           = None
    nome_equipe:      str | None                           = None
    novo_email:       str | None                           = None
    novo_nascimento:  str | None                           = None
    menu_cpf:         bool                                 = False
    transferencia:    RascunhoTransferencia | None         = None

    def limpar_listas(self) -> None:
        self.eventos          = None
        self.categorias       = None
        self.camisetas        = None
        self.cancelamentos    = None
        self.ref_cancelamento = None


@dataclass
class Sessao:
    """Estado conversacional de um telefone."""
    started:  bool           = False
    etapa:    Etapa          = Etapa.IDLE
    usuario:  Usuario | None = None
    evento:   Evento | None  = None
    pendente: Pendente       = field(default_factory=Pendente)

    def limpar_contexto_evento(self, manter_desejado: bool = False) -> None:
        """Descarta o evento e todas as listas ligadas a ele."""
        self.evento = None
        self.pendente.limpar_listas()
        if not manter_desejado:
            self.pendente.assunto_desejado = None

    def selecionar_evento(self, evento: Evento) -> None:
        # Trocar de evento invalida categorias/camisetas/cancelamentos já buscados
        self.pendente.limpar_listas()
        self.evento = evento

    def consumir_assunto_desejado(self) -> Assunto | None:
        assunto = self.pendente.assunto_desejado
        self.pendente.assunto_desejado = None
        return assunto

    def resetar(self) -> None:
        """Volta ao estado inicial. O cadastro fica lembrado para a verificação de CPF."""
        self.started  = False
        self.etapa    = Etapa.IDLE
        self.evento   = None
        self.pendente = Pendente()

    # ── Serialização (RedisSessionStore) ──────────────────────────────────────

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, dados: dict[str, Any]) -> Sessao:
        p = dados.get("pendente") or {}
        rascunho = p.get("transferencia")
        pendente = Pendente(
            eventos=_lista(EventoAberto, p.get("eventos")),
            categorias=_lista(CategoriaOpcao, p.get("categorias")),
            camisetas=_mapa(TamanhoCamiseta, p.get("camisetas")),
            cancelamentos=_mapa(InscricaoCancelavel, p.get("cancelamentos")),
            assunto_desejado=Assunto(p["assunto_desejado"]) if p.get("assunto_desejado") else None,
            ref_cancelamento=p.get("ref_cancelamento"),
            nome_equipe=p.get("nome_equipe"),
            novo_email=p.get("novo_email"),
            novo_nascimento=p.get("novo_nascimento"),
            menu_cpf=bool(p.get("menu_cpf")),
            transferencia=RascunhoTransferencia(
                titular_atual=_obj(Titular, rascunho.get("titular_atual")),
                titular_atual_temp=_obj(Titular, rascunho.get("titular_atual_temp")),
                novo_titular=_obj(Titular, rascunho.get("novo_titular")),
                novo_titular_temp=_obj(Titular, rascunho.get("novo_titular_temp")),
            ) if rascunho else None,
        )
        return cls(
            started=bool(dados.get("started")),
            etapa=_etapa(dados.get("etapa")),
            usuario=_obj(Usuario, dados.get("usuario")),
            evento=_obj(Evento, dados.get("evento")),
            pendente=pendente,
        )


def _etapa(valor: str | None) -> Etapa:
    try:
        return Etapa(valor)
    except ValueError:
        return Etapa.IDLE


def _obj(tipo, dados: dict | None):
    return tipo(**dados) if dados else None


def _lista(tipo, dados: list | None):
    return [tipo(**d) for d in dados] if dados is not None else None


def _mapa(tipo, dados: dict | None):
    # JSON transforma chaves int em str
    return {int(k): tipo(**v) for k, v in dados.items()} if dados is not None else None
