"""
domain/texto.py — Normalização de texto e detectores de intenção
=================================================================
SEM Redis. SEM I/O. Funções puras.

Todos os detectores trabalham sobre o texto normalizado e cercado de
espaços, então "ok" casa com "ok, obrigado" mas não com "book".

    assert normalizar("  Olá,  BRO!! ") == "ola bro"
    assert e_sim("Sim, está certo") is True
"""
from __future__ import annotations
import re
import secrets
import unicodedata
from collections.abc import Iterable
from datetime import datetime

_ZERO_WIDTH = re.compile("[\u200b-\u200d\ufeff]")
_NAO_ALFANUM = re.compile(r"[\W_]+")
_NAO_DIGITO = re.compile(r"\D")
_DATA_BR = re.compile(r"^(\d{2})[/\-](\d{2})[/\-](\d{4})$")
_DATA_ISO = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")


def normalizar(texto: str | None) -> str:
    """Caixa baixa, sem acentos, sem pontuação e com espaços colapsados."""
    t = unicodedata.normalize("NFD", (texto or "").lower())
    t = "".join(c for c in t if not unicodedata.combining(c))
    t = _ZERO_WIDTH.sub("", t)
    t = _NAO_ALFANUM.sub(" ", t)
    return " ".join(t.split())


def tokens(texto: str | None) -> list[str]:
    return normalizar(texto).split()


def _contem_frase(texto: str, frases: Iterable[str]) -> bool:
    t = f" {normalizar(texto)} "
    return any(f" {normalizar(f)} " in t for f in frases)


def _e_apenas(texto: str, valor: str) -> bool:
    return normalizar(texto) == valor


# =============================================================================
# Vocabulário
# =============================================================================

_TROCAR_EVENTO = (
    "trocar", "troca", "trocar de evento", "trocar evento", "trocar o evento",
    "mudar", "mudar de evento", "mudar evento", "outro evento",
    "escolher outro", "escolher outro evento", "alterar evento",
    "voltar evento", "selecionar outro evento",
)
_IR_MENU = (
    "menu", "voltar", "inicio", "comecar de novo", "voltar ao menu",
    "voltar para o menu", "home",
)
_DESPEDIDA = (
    "obrigado", "obrigada", "valeu", "agradeco", "perfeito", "deu certo",
    "resolveu", "tudo certo", "ok", "tranquilo", "blz", "beleza", "fechou",
    "show",
)
_MAIS_AJUDA = (
    "sim", "quero ajuda", "preciso de ajuda", "suporte", "atendente",
    "falar com humano", "falar com atendente", "menu", "mais uma coisa",
    "tem mais uma", "tenho outra", "outra duvida", "duvida", "ajuda",
    "pode me ajudar", "mais ajuda",
)
_SIM = ("sim", "isso", "correto", "esta certo", "ta certo", "ok", "pode", "certo", "confirmo", "confirmar")
_NAO = ("nao", "incorreto", "errado", "corrigir", "corrigir cpf", "trocar cpf")
_AUTORIZO = ("autorizo", "autorizar", "autorizado")
_CORRIGIR_CPF = (
    "corrigir", "corrigir cpf", "errei", "errado", "trocar cpf",
    "alterar cpf", "arrumar cpf", "ajustar cpf",
)
_CRIAR_CONTA = (
    "cadastro", "cadastrar", "criar conta", "fazer conta", "registrar",
    "fazer cadastro", "novo cadastro",
)
_ATENDENTE = ("atendente", "humano", "suporte")


# =============================================================================
# Detectores de intenção
# =============================================================================

def e_trocar_evento(texto: str) -> bool:
    return _e_apenas(texto, "0") or _contem_frase(texto, _TROCAR_EVENTO)


def e_ir_menu(texto: str) -> bool:
    return _contem_frase(texto, _IR_MENU)


def e_despedida(texto: str) -> bool:
    return _contem_frase(texto, _DESPEDIDA)


def quer_mais_ajuda(texto: str) -> bool:
    t = normalizar(texto)
    if t == "nao" or t.startswith("nao "):
        return False
    return t == "1" or _contem_frase(t, _MAIS_AJUDA)


def e_nao(texto: str) -> bool:
    return _e_apenas(texto, "2") or _contem_frase(texto, _NAO)


def e_sim(texto: str) -> bool:
    # "não está certo" contém "certo": negação sempre vence
    if e_nao(texto):
        return False
    return _e_apenas(texto, "1") or _contem_frase(texto, _SIM)


def e_autorizo(texto: str) -> bool:
    return not e_nao(texto) and _contem_frase(texto, _AUTORIZO)


def e_corrigir_cpf(texto: str) -> bool:
    return _e_apenas(texto, "1") or _contem_frase(texto, _CORRIGIR_CPF)


def e_criar_conta(texto: str) -> bool:
    return _e_apenas(texto, "2") or _contem_frase(texto, _CRIAR_CONTA)


def quer_atendente(texto: str) -> bool:
    return _contem_frase(texto, _ATENDENTE)


def contem_gatilho(texto: str, gatilhos: Iterable[str]) -> bool:
    """True se o texto normalizado contém algum gatilho (já normalizado)."""
    t = normalizar(texto)
    return any(g and g in t for g in gatilhos)


# =============================================================================
# CPF
# =============================================================================

def somente_digitos(texto: str | None) -> str:
    return _NAO_DIGITO.sub("", texto or "")


def extrair_cpf(texto: str | None) -> str:
    """Devolve os 11 dígitos do CPF ou "" se o texto não tiver exatamente 11."""
    d = somente_digitos(texto)
    return d if len(d) == 11 else ""


def formatar_cpf(cpf: str) -> str:
    d = somente_digitos(cpf).rjust(11, "0")[-11:]
    return f"{d[:3]}.{d[3:6]}.{d[6:9]}-{d[9:]}"


# =============================================================================
# Datas
# =============================================================================

def para_iso(texto: str | None) -> str:
    """dd/mm/aaaa ou dd-mm-aaaa → aaaa-mm-dd. ISO passa direto. Inválido → ""."""
    t = (texto or "").strip()
    m = _DATA_BR.match(t)
    if m:
        d, mes, a = m.groups()
        iso = f"{a}-{mes}-{d}"
    elif _DATA_ISO.match(t):
        iso = t
    else:
        return ""
    try:
        datetime.strptime(iso, "%Y-%m-%d")
    except ValueError:
        return ""
    return iso


def iso_para_br(iso: str) -> str:
    m = _DATA_ISO.match(iso or "")
    if not m:
        return iso
    a, mes, d = m.groups()
    return f"{d}/{mes}/{a}"


def parse_data_hora_br(data: str, hora: str = "") -> datetime | None:
    """"dd/mm/aaaa" + "hh:mm" → datetime local. None se a data não fizer sentido."""
    try:
        d, mes, a = (int(p) for p in (data or "").strip().split("/"))
        hh, mm = (int(p) for p in ((hora or "").strip() or "00:00").split(":")[:2])
        return datetime(a, mes, d, hh, mm)
    except ValueError:
        return None


def dias_desde(momento: datetime, agora: datetime | None = None) -> float:
    return ((agora or datetime.now()) - momento).total_seconds() / 86400


# =============================================================================
# Telefones e tokens
# =============================================================================

def digitos_telefone(valor: str | None) -> str:
    """'5598...@s.whatsapp.net' / '+55 (98) 9...' → só os dígitos."""
    return somente_digitos((valor or "").split("@")[0])


def _variantes_telefone(digitos: str) -> set[str]:
    local = digitos[2:] if digitos.startswith("55") and len(digitos) >= 12 else digitos
    variantes = {digitos, local}
    # Celular brasileiro com e sem o nono dígito após o DDD
    if len(local) == 11 and local[2] == "9":
        variantes.add(local[:2] + local[3:])
    elif len(local) == 10:
        variantes.add(local[:2] + "9" + local[2:])
    return variantes


def telefones_conferem(a: str | None, b: str | None) -> bool:
    da, db = digitos_telefone(a), digitos_telefone(b)
    if not da or not db:
        return False
    if da == db:
        return True
    va, vb = _variantes_telefone(da), _variantes_telefone(db)
    if va & vb:
        return True
    for x in va:
        for y in vb:
            n = min(len(x), len(y), 9)
            if n >= 8 and x[-n:] == y[-n:]:
                return True
    return False


def gerar_token(existentes: Iterable[str] = ()) -> str:
    """Token numérico de 4 dígitos que não colide com os pedidos em aberto."""
    ocupados = set(existentes)
    while True:
        token = f"{secrets.randbelow(10_000):04d}"
        if token not in ocupados:
            return token
