"""
application/flows/senha.py — Esqueci a senha
=============================================
e-mail → confirma → nascimento (dd/mm/aaaa) → confirma → finaliza.

Na finalização, e-mail/nascimento diferentes do cadastro viram um PUT em
user_put.php (melhor esforço). O link de redefinição sai sempre.
"""
from __future__ import annotations
import logging

from src.application.flows.base import Conversa, Handler, oferecer_mais_ajuda
from src.domain.entities import Etapa
from src.domain.texto import e_nao, e_sim, iso_para_br, para_iso
from src.infrastructure.observability import obs
from src.infrastructure.settings import settings
from src.services.inscricoes_service import BackendError

logger = logging.getLogger(__name__)

PEDIR_NASCIMENTO = "Obrigada! Agora me informe sua **data de nascimento** (ex.: 23/03/1965)."
NAO_ENTENDI = "Não consegui entender, pode repetir?"


async def iniciar_senha(conv: Conversa) -> None:
    conv.sessao.pendente.novo_email = None
    conv.sessao.pendente.novo_nascimento = None
    conv.etapa = Etapa.AWAITING_EMAIL_CONFIRM
    await conv.dizer(
        "Sem problemas! Para te ajudar com a senha, me confirma o **e-mail do cadastro**, "
        "*se não lembrar ou souber* informe seu melhor e-mail."
    )


async def ao_receber_email(conv: Conversa, texto: str) -> None:
    email = texto.strip()
    conv.sessao.pendente.novo_email = email
    conv.etapa = Etapa.AWAITING_EMAIL_VERIFY
    await conv.dizer(f"Você informou o e-mail **{email}**. Está correto?")


async def ao_verificar_email(conv: Conversa, texto: str) -> None:
    if e_sim(texto):
        conv.etapa = Etapa.AWAITING_BIRTH_CONFIRM
        await conv.dizer(PEDIR_NASCIMENTO)
        return
    if e_nao(texto):
        conv.etapa = Etapa.AWAITING_EMAIL_CONFIRM
        await conv.dizer("Sem problema! Pode informar o e-mail correto?")
        return
    await conv.dizer(NAO_ENTENDI)


async def ao_receber_nascimento(conv: Conversa, texto: str) -> None:
    iso = para_iso(texto)
    if not iso:
        await conv.dizer("Consegue me enviar a data no formato **dd/mm/aaaa**?")
        return
    conv.sessao.pendente.novo_nascimento = iso
    conv.etapa = Etapa.AWAITING_BIRTH_VERIFY
    await conv.dizer(f"Você informou a data **{iso_para_br(iso)}**. Está correta?")


async def ao_verificar_nascimento(conv: Conversa, texto: str) -> None:
    if e_sim(texto):
        await finalizar_senha(conv)
        return
    if e_nao(texto):
        conv.etapa = Etapa.AWAITING_BIRTH_CONFIRM
        await conv.dizer("Tudo bem! Me envie novamente sua **data de nascimento** (ex.: 23/03/1965).")
        return
    await conv.dizer(NAO_ENTENDI)


def _diferencas(conv: Conversa) -> dict[str, str]:
    """Campos informados que divergem do cadastro atual."""
    usuario = conv.usuario
    if not usuario:
        return {}
    pendente = conv.sessao.pendente
    novo_email = (pendente.novo_email or "").strip()
    novo_nasc = para_iso(pendente.novo_nascimento)
    mudancas = {}
    if novo_email and usuario.email and novo_email.lower() != usuario.email.strip().lower():
        mudancas["email"] = novo_email
    if novo_nasc and usuario.nascimento and novo_nasc != usuario.nascimento.strip():
        mudancas["nascimento"] = novo_nasc
    return mudancas


async def finalizar_senha(conv: Conversa) -> None:
    mudancas = _diferencas(conv)
    if mudancas and conv.usuario and conv.usuario.id:
        try:
            await conv.ctx.inscricoes.atualizar_perfil(conv.usuario.id, **mudancas)
        except BackendError as e:
            obs.warn(conv.chave, "senha", f"atualização de perfil falhou: {e}")
            await conv.dizer(
                "Tentei atualizar seus dados, mas algo não deu certo agora. "
                "Posso te passar o link de recuperação e você tenta por lá?"
            )
        else:
            if "email" in mudancas:
                conv.usuario.email = mudancas["email"]
            if "nascimento" in mudancas:
                conv.usuario.nascimento = mudancas["nascimento"]
            await conv.dizer(
                "Prontinho! Atualizei seus dados e já deixei tudo certo para você recuperar a senha. 💙"
            )

    conv.sessao.pendente.novo_email = None
    conv.sessao.pendente.novo_nascimento = None
    link = f"{settings.SITE_URL.rstrip('/')}/v2/esquecisenha.php"
    await conv.dizer(f"Aqui está o link para redefinir sua senha com segurança: {link}\nSe precisar, fico por aqui.")
    await oferecer_mais_ajuda(conv)


HANDLERS: dict[Etapa, Handler] = {
    Etapa.AWAITING_EMAIL_CONFIRM: ao_receber_email,
    Etapa.AWAITING_EMAIL_VERIFY:  ao_verificar_email,
    Etapa.AWAITING_BIRTH_CONFIRM: ao_receber_nascimento,
    Etapa.AWAITING_BIRTH_VERIFY:  ao_verificar_nascimento,
}
