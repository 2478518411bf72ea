from __future__ import annotations

from collections import defaultdict
from typing import Any, Dict

from ..formatting import format_date, format_money, parse_date
from .base import ActionResult, HandlerContext
from .payloads import FinancialAdvicePayload


def _top_expense_category(ctx: HandlerContext) -> tuple[str, float] | None:
    month_prefix = ctx.today.strftime("%Y-%m")
    totals: Dict[str, float] = defaultdict(float)
    for txn in ctx.user_context.recent_transactions:
        if txn.get("type") != "expense":
            continue
        if not str(txn.get("transaction_date") or "").startswith(month_prefix):
            continue
        totals[str(txn.get("category_name") or "Sem categoria")] += abs(float(txn.get("amount") or 0))
    if not totals:
        return None
    name = max(totals, key=lambda key: totals[key])
    return name, totals[name]


def _nearest_bill(ctx: HandlerContext) -> Dict[str, Any] | None:
    payable = [b for b in ctx.open_bills() if b.get("type", "payable") == "payable" and b.get("due_date")]
    if not payable:
        return None
    return min(payable, key=lambda b: parse_date(b.get("due_date")))


def financial_advice(payload: FinancialAdvicePayload, ctx: HandlerContext) -> ActionResult:
    income = ctx.user_context.monthly_income
    expenses = ctx.user_context.monthly_expenses
    savings = income - expenses
    savings_rate = round(savings / income * 100, 1) if income > 0 else 0.0

    lines = [
        "💡 **Análise Financeira:**",
        "",
        f"💰 Receitas do mês: {format_money(income)}",
        f"💸 Despesas do mês: {format_money(expenses)}",
        f"📊 Economia: {format_money(savings)}" + (f" ({savings_rate}% da renda)" if income > 0 else ""),
        "",
    ]
    if savings < 0:
        lines.append("⚠️ Você está gastando mais do que ganha. Revise os gastos não essenciais.")
    elif income > 0 and savings_rate < 20:
        lines.append("📌 Tente guardar pelo menos 20% da renda todo mês.")
    elif income > 0:
        lines.append("🎉 Ótimo ritmo de economia! Considere direcionar a sobra para suas metas.")

    top = _top_expense_category(ctx)
    if top is not None:
        lines.append(f"🔎 Maior gasto do mês: {top[0]} ({format_money(top[1])})")

    bill = _nearest_bill(ctx)
    if bill is not None:
        due = parse_date(bill.get("due_date"))
        lines.append(
            f"📅 Próxima conta: {bill.get('title')} - {format_money(float(bill.get('amount') or 0))} em {format_date(due)}"
        )

    return ActionResult(
        message="\n".join(lines).strip(),
        data={
            "topic": payload.topic,
            "income": income,
            "expenses": expenses,
            "savings": savings,
            "top_expense_category": top[0] if top else None,
            "next_bill_id": bill.get("id") if bill else None,
        },
    )
