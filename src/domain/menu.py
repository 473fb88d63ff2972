"""
domain/menu.py — Textos de menu e resolução direta de opções (stateless)
=========================================================================
SEM Redis. SEM I/O. Apenas regras de negócio e textos.
Os menus moram aqui (única fonte da verdade); os fluxos só enviam.

Testável sem nenhum mock:
    assert resolver_assunto_direto("2") == Assunto.CATEGORIA
    assert resolver_assunto_direto("cancelar inscrição") == Assunto.CANCELAMENTO
"""
from __future__ import annotations
from collections.abc import Sequence

from src.domain.entities import (
    Assunto, CategoriaOpcao, EventoAberto, InscricaoCancelavel, TamanhoCamiseta,
)
from src.domain.texto import normalizar

# =============================================================================
# Textos fixos
# =============================================================================

SAUDACAO = (
    "Fala, atleta! 🏃‍♂️\n"
    "Eu sou o BRO, assistente da Sportbro! 💙\n"
    "Bora começar seu atendimento? Me conta como posso te ajudar. 🙂"
)

MENU_ASSUNTOS = (
    "Como posso ajudar? Você pode **digitar o nome** "
    '(ex.: "trocar tamanho", "cancelar inscrição") ou usar números:\n\n'
    "1. Esqueci a Senha\n"
    "2. Troca de Categoria\n"
    "3. Troca de Tamanho Camiseta\n"
    "4. Troca de Nome da Equipe\n"
    "5. Cancelar Inscrição\n"
    "6. Troca de Titularidade\n"
    "7. Dúvidas sobre o evento"
)

MENU_FAQ = (
    "Beleza! Me conta o que você quer saber sobre o evento:\n\n"
    "1. O evento já encerrou?\n"
    "2. Como trocar titularidade?\n"
    "3. Documentos para retirada do kit\n"
    "4. Contato do organizador / página do evento\n"
    "5. Diferença entre Tempo Líquido e Tempo Bruto\n\n"
    "Responda com o número da opção."
)

# Opção do FAQ → (resposta, pergunta de fechamento)
RESPOSTAS_FAQ: dict[str, tuple[str, str]] = {
    "1": (
        "Todos os eventos da Sportbro são criados com um limite técnico de inscrições. "
        "Esse limite leva em conta não só a quantidade de kits, mas também a formatação "
        "da prova, estrutura de apoio e segurança no percurso.\n\n"
        "Quando esse limite é atingido, não conseguimos abrir novas vagas sem refazer toda "
        "a documentação e autorizações dos órgãos responsáveis. Por isso, depois de "
        "encerradas as inscrições, não é possível ultrapassar esse limite.",
        "Posso te ajudar com mais alguma dúvida?",
    ),
    "2": (
        "A troca de titularidade é permitida até **10 dias antes da data do evento**.\n\n"
        "Depois desse prazo, por questão de organização e segurança, a troca só pode ser "
        "feita **presencialmente na entrega dos kits**, seguindo as orientações da "
        "organização no local.",
        "Quer saber mais alguma coisa sobre o evento ou sua inscrição?",
    ),
    "3": (
        "Para retirada do kit é necessário apenas um **documento oficial com foto** ou uma "
        "**foto nítida do documento** no celular.\n\n"
        "O kit pode ser retirado por terceiros, sem problema, desde que a pessoa apresente "
        "o documento (ou foto do documento) do titular da inscrição.",
        "Ficou com mais alguma dúvida sobre o evento ou sua inscrição?",
    ),
    "5": (
        "Nas provas de corrida utilizamos dois tipos de marcação:\n\n"
        "**➡️ Tempo Bruto**\n"
        "É o tempo contado desde o momento em que o tiro de largada é dado. Mesmo quem "
        "larga atrás tem o tempo bruto iniciado no mesmo instante.\n\n"
        "**➡️ Tempo Líquido**\n"
        "É o tempo que começa a contar somente quando o atleta cruza o tapete de largada. "
        "Representa seu tempo real de prova.\n\n"
        "**Por que alguém sobe ao pódio mesmo chegando depois fisicamente?**\n"
        "Porque, conforme regras oficiais das competições, a classificação geral deve ser "
        "feita pelo **Tempo Bruto**. Isso evita vantagem indevida por posicionamento na "
        "largada.\n\n"
        "A classificação por faixa etária normalmente usa **Tempo Líquido**, pois mede "
        "apenas a performance individual.",
        "Quer saber mais algo sobre tempos, resultados ou provas?",
    ),
}

OPCAO_FAQ_CONTATO = "4"

MENU_SEM_OPCOES = "O que você prefere?\n1. Falar com atendente\n2. Voltar ao menu"

MENU_RETRY = "1. Tentar novamente\n2. Falar com atendente\n3. Voltar ao menu"

# =============================================================================
# Atalhos do menu de assuntos
# =============================================================================

_ATALHOS: dict[str, Assunto] = {
    "1": Assunto.SENHA,
    "2": Assunto.CATEGORIA,
    "3": Assunto.CAMISETA,
    "4": Assunto.EQUIPE,
    "5": Assunto.CANCELAMENTO,
    "6": Assunto.TRANSFERENCIA,
    "7": Assunto.FAQ,
    "senha": Assunto.SENHA,
    "esqueci a senha": Assunto.SENHA,
    "categoria": Assunto.CATEGORIA,
    "troca de categoria": Assunto.CATEGORIA,
    "tamanho": Assunto.CAMISETA,
    "tamanho camiseta": Assunto.CAMISETA,
    "camiseta": Assunto.CAMISETA,
    "equipe": Assunto.EQUIPE,
    "cancelar": Assunto.CANCELAMENTO,
    "cancelar inscricao": Assunto.CANCELAMENTO,
    "evento": Assunto.ESCOLHER_EVENTO,
    "transferir": Assunto.TRANSFERENCIA,
    "transferencia": Assunto.TRANSFERENCIA,
    "transferir titularidade": Assunto.TRANSFERENCIA,
    "troca de titularidade": Assunto.TRANSFERENCIA,
    "titularidade": Assunto.TRANSFERENCIA,
    "duvidas": Assunto.FAQ,
    "duvida": Assunto.FAQ,
    "duvidas do evento": Assunto.FAQ,
}


def resolver_assunto_direto(texto: str) -> Assunto | None:
    """Número do menu ou apelido exato. Qualquer outra coisa → None."""
    return _ATALHOS.get(normalizar(texto))


# =============================================================================
# Listas numeradas
# =============================================================================

def montar_menu_eventos(eventos: Sequence[EventoAberto]) -> str:
    linhas = []
    for n, ev in enumerate(eventos, start=1):
        cat = f" — {ev.categoria}" if ev.categoria else ""
        linhas.append(f"{n}. {ev.titulo}{cat}")
    return "\n".join(linhas)


def montar_menu_categorias(titulo_evento: str, categorias: Sequence[CategoriaOpcao]) -> str:
    linhas = [f"Evento selecionado: **{titulo_evento}**", "Escolha a **nova categoria**:", ""]
    for n, c in enumerate(categorias, start=1):
        valor = f" — R$ {c.valor_formatado}" if c.valor_formatado else ""
        taxa = f" (taxa R$ {c.taxa_formatado})" if c.taxa_formatado else ""
        linhas.append(f"{n}. {c.titulo}{valor}{taxa}")
    return "\n".join(linhas)


def montar_mapa_camisetas(
    infantil: Sequence[TamanhoCamiseta],
    adulto: Sequence[TamanhoCamiseta],
) -> dict[int, TamanhoCamiseta]:
    """Índice contínuo: infantis primeiro, depois adultos."""
    return {n: item for n, item in enumerate([*infantil, *adulto], start=1)}


def montar_menu_camisetas(titulo_evento: str, mapa: dict[int, TamanhoCamiseta]) -> str:
    linhas = [f"Evento selecionado: **{titulo_evento}**", "Escolha o **novo tamanho de camiseta**:"]
    grupo_atual = None
    for n in sorted(mapa):
        item = mapa[n]
        if item.grupo != grupo_atual:
            grupo_atual = item.grupo
            linhas += ["", f"{grupo_atual}:"]
        linhas.append(f"{n}. {item.label or item.tamanho}")
    return "\n".join(linhas)


def montar_menu_cancelamentos(titulo_evento: str, mapa: dict[int, InscricaoCancelavel]) -> str:
    linhas = [f"Evento selecionado: **{titulo_evento}**", "Escolha a **inscrição** que deseja cancelar:", ""]
    for n in sorted(mapa):
        it = mapa[n]
        linhas.append(f"{n}. {it.referencia} — {it.titulo} — {it.data} {it.hora}".rstrip())
    return "\n".join(linhas)
