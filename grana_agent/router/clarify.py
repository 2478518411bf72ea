from __future__ import annotations

from ..formatting import format_money
from .contracts import ClarifyingQuestionV1


CATEGORY_TYPE_PROMPT = "é para **despesas** (gastos) ou **receitas** (ganhos)?"


def category_type_question(name: str) -> ClarifyingQuestionV1:
    label = name.strip() or "essa categoria"
    return ClarifyingQuestionV1(
        question_id="category_type",
        question_text=f'🤔 A categoria "{label}" {CATEGORY_TYPE_PROMPT}',
        options=["Despesas", "Receitas"],
    )


def is_category_type_question(text: str) -> bool:
    return CATEGORY_TYPE_PROMPT in text


def bill_amount_question(title: str, *, receivable: bool = False) -> ClarifyingQuestionV1:
    label = title.strip() or "essa conta"
    if receivable:
        text = f'💡 Qual o **valor** que você vai receber de "{label}"? Por exemplo: R$ 200, R$ 1.500, etc.'
    else:
        text = f'💡 Qual o **valor** de "{label}"? Por exemplo: R$ 200, R$ 150, etc.'
    return ClarifyingQuestionV1(question_id="bill_amount", question_text=text)


def goal_mutation_question(goal_title: str, amount: float | None) -> ClarifyingQuestionV1:
    label = goal_title.strip() or "sua meta"
    value = format_money(amount) if amount is not None else "esse valor"
    return ClarifyingQuestionV1(
        question_id="goal_mutation",
        question_text=f'🎯 Sobre "{label}": {value} é um **aporte** (dinheiro guardado) ou o novo **objetivo** da meta?',
        options=[f"Aporte de {value}", f"Novo objetivo de {value}"],
    )


def generic_question() -> ClarifyingQuestionV1:
    return ClarifyingQuestionV1(
        question_id="generic",
        question_text="🤔 Não entendi bem o que você quer fazer. Pode dar mais detalhes?",
        options=["Registrar um gasto ou ganho", "Criar ou pagar uma conta", "Atualizar uma meta"],
    )
