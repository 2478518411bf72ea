from __future__ import annotations

import logging

from ..formatting import format_money
from .base import ActionResult, HandlerContext
from .categories import ensure_category, fallback_category
from .payloads import CreateTransactionPayload

logger = logging.getLogger(__name__)

DEFAULT_PAYMENT_METHOD = "cash"
DEFAULT_DESCRIPTION = "Transação via IA"


def signed_amount(amount: float, kind: str) -> float:
    """Expenses are stored negative, income positive."""
    return -abs(amount) if kind == "expense" else abs(amount)


def create_transaction(payload: CreateTransactionPayload, ctx: HandlerContext) -> ActionResult:
    kind = payload.kind or "expense"
    category = None
    category_created = False
    if payload.category:
        category, category_created = ensure_category(ctx, payload.category, kind, payload.amount)
    else:
        category = fallback_category(ctx, kind)

    row = {
        "category_id": category.get("id") if category else None,
        "description": payload.description or payload.category or DEFAULT_DESCRIPTION,
        "amount": signed_amount(payload.amount, kind),
        "type": kind,
        "payment_method": payload.payment_method or DEFAULT_PAYMENT_METHOD,
        "status": "completed",
        "transaction_date": (payload.transaction_date or ctx.today).isoformat(),
    }
    if payload.location:
        row["location"] = payload.location
    created = ctx.store.create_transaction(ctx.user_id, row)
    logger.info(
        "transaction_created user=%s type=%s amount=%.2f category=%s",
        ctx.user_id,
        kind,
        row["amount"],
        category.get("name") if category else None,
    )

    emoji = "💰" if kind == "income" else "💸"
    lines = [
        f"{emoji} Transação criada: {row['description']} - {format_money(payload.amount)}",
        f"📂 Categoria: {category.get('name') if category else 'Geral'}",
    ]
    if category_created:
        lines.append("🆕 Categoria criada automaticamente")
    return ActionResult(
        message="\n".join(lines),
        data={"transaction": created, "category_created": category_created},
    )
