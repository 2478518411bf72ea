from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal

from ..formatting import normalize_text
from .contracts import IntentAnalysisV1, ProposedActionV1

CategoryType = Literal["income", "expense"]


@dataclass(frozen=True)
class KeywordRule:
    """Substring rule over accent-stripped, lowercased text."""

    name: str
    patterns: tuple[str, ...]
    excludes: tuple[str, ...] = ()

    def matches(self, text: str) -> bool:
        normalized = normalize_text(text)
        if any(normalize_text(term) in normalized for term in self.excludes):
            return False
        return any(normalize_text(term) in normalized for term in self.patterns)


BILL_INQUIRY_PATTERNS: tuple[str, ...] = (
    "quais contas",
    "que contas",
    "minhas contas",
    "contas pendentes",
    "contas que tenho",
    "contas não pagas",
    "contas em aberto",
)

# "pagar minhas contas" is a payment, not an inquiry.
BILL_MUTATION_TERMS: tuple[str, ...] = (
    "pagar",
    "paguei",
    "pague",
    "quitar",
    "quitei",
    "criar",
    "crie",
    "cadastrar",
    "cadastre",
    "adicionar",
    "adicione",
    "excluir",
    "exclua",
    "apagar",
    "apague",
    "deletar",
    "remover",
    "remova",
    "alterar",
    "altere",
    "mudar",
    "mude",
    "atualizar",
    "atualize",
)

BILL_INQUIRY_RULE = KeywordRule(name="bill_inquiry", patterns=BILL_INQUIRY_PATTERNS, excludes=BILL_MUTATION_TERMS)

CLAUSE_SPLIT = re.compile(r"[.!?;\n]+")

# Checked before the expense table so "aluguel recebido" is not read as rent paid.
INCOME_CATEGORY_KEYWORDS: tuple[str, ...] = (
    "salário",
    "freelance",
    "freela",
    "trabalho extra",
    "venda",
    "comissão",
    "bonificação",
    "prêmio",
    "aluguel recebido",
    "dividendos",
    "juros recebidos",
    "consultoria",
    "honorários",
    "cachê",
    "renda extra",
    "monetização",
    "ads",
    "publicidade",
    "patrocínio",
    "receita",
    "ganho",
    "renda",
)

EXPENSE_CATEGORY_KEYWORDS: tuple[str, ...] = (
    "aluguel",
    "financiamento",
    "prestação",
    "conta de luz",
    "conta de água",
    "conta de gás",
    "internet",
    "telefone",
    "medicamentos",
    "remédios",
    "plano de saúde",
    "seguro",
    "iptu",
    "ipva",
    "multa",
    "taxa",
    "anuidade",
    "mensalidade",
    "matrícula",
    "pensão",
    "combustível",
    "gasto",
    "despesa",
    "custo",
    "pagamento",
    "conta",
)

# Words a user says to state the type of a new category outright.
EXPENSE_TYPE_MARKERS: tuple[str, ...] = ("despesa", "gasto", "custo", "saida")
INCOME_TYPE_MARKERS: tuple[str, ...] = ("receita", "ganho", "renda", "entrada", "recebimento")


def match_bill_inquiry(message: str) -> bool:
    return BILL_INQUIRY_RULE.matches(message)


def is_bare_bill_inquiry(message: str) -> bool:
    """True when every clause asks about bills and no amount is given."""
    if any(char.isdigit() for char in message):
        return False
    clauses = [clause for clause in CLAUSE_SPLIT.split(message) if clause.strip()]
    return bool(clauses) and all(match_bill_inquiry(clause) for clause in clauses)


def _contains_word_prefix(normalized: str, keyword: str) -> bool:
    needle = normalize_text(keyword)
    padded = f" {normalized} "
    return f" {needle}" in padded


def classify_category_name(name: str) -> CategoryType | None:
    """Return the obvious type of a category name, or None when it is not obvious."""
    normalized = normalize_text(name)
    if not normalized:
        return None
    if any(normalize_text(keyword) in normalized for keyword in INCOME_CATEGORY_KEYWORDS):
        return "income"
    if any(normalize_text(keyword) in normalized for keyword in EXPENSE_CATEGORY_KEYWORDS):
        return "expense"
    return None


def explicit_category_type(text: str) -> CategoryType | None:
    """Type the user stated in words; None when absent or when both are mentioned.

    Markers match at word starts, so "renda" inside "prenda" does not count.
    """
    normalized = normalize_text(text)
    says_expense = any(_contains_word_prefix(normalized, marker) for marker in EXPENSE_TYPE_MARKERS)
    says_income = any(_contains_word_prefix(normalized, marker) for marker in INCOME_TYPE_MARKERS)
    if says_expense and not says_income:
        return "expense"
    if says_income and not says_expense:
        return "income"
    return None


def list_bills_action() -> ProposedActionV1:
    return ProposedActionV1(type="list_bills", data={}, priority="high")


def precheck_message(message: str) -> IntentAnalysisV1 | None:
    """Deterministic analysis for messages the rule table fully understands.

    Messages that mix an inquiry with anything else go to the model; the
    routing policy still adds ``list_bills`` if the model proposes nothing.
    """
    if is_bare_bill_inquiry(message):
        return IntentAnalysisV1(
            intent="bill",
            confidence=1.0,
            reasoning="Pergunta sobre contas pendentes.",
            proposed_actions=[list_bills_action()],
            reason_codes=["rule_precheck:bill_inquiry"],
        )
    return None
