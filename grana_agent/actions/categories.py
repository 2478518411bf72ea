from __future__ import annotations

import logging
from typing import Any, Dict

from ..errors import ActionValidationError
from ..formatting import category_color, category_icon, format_money, normalize_text
from ..router.rules import classify_category_name
from .base import ActionResult, HandlerContext
from .payloads import CreateCategoryPayload

logger = logging.getLogger(__name__)

DEFAULT_EXPENSE_BUDGET = 500.0
AUTO_BUDGET_MULTIPLIER = 10


def find_category(ctx: HandlerContext, name: str, kind: str | None = None) -> Dict[str, Any] | None:
    """Exact name match first, then the first substring match in list order."""
    needle = normalize_text(name)
    if not needle:
        return None
    candidates = [c for c in ctx.categories() if kind is None or c.get("type") == kind]
    for category in candidates:
        if normalize_text(category.get("name")) == needle:
            return category
    for category in candidates:
        label = normalize_text(category.get("name"))
        if label and (needle in label or label in needle):
            return category
    return None


def fallback_category(ctx: HandlerContext, kind: str) -> Dict[str, Any] | None:
    for category in ctx.categories():
        if category.get("type") == kind and "outros" in normalize_text(category.get("name")):
            return category
    return None


def insert_category(ctx: HandlerContext, name: str, kind: str, budget: float, **extra: Any) -> Dict[str, Any]:
    row = {
        "name": name,
        "type": kind,
        "budget": budget,
        "color": extra.get("color") or category_color(name),
        "icon": extra.get("icon") or category_icon(name),
    }
    created = ctx.store.create_category(ctx.user_id, row)
    ctx.remember("categories", created)
    logger.info("category_created user=%s name=%s type=%s budget=%.2f", ctx.user_id, name, kind, budget)
    return created


def ensure_category(ctx: HandlerContext, name: str, kind: str, amount: float) -> tuple[Dict[str, Any], bool]:
    existing = find_category(ctx, name, kind)
    if existing is not None:
        return existing, False
    budget = amount * AUTO_BUDGET_MULTIPLIER if kind == "expense" else 0.0
    return insert_category(ctx, name, kind, budget), True


def create_category(payload: CreateCategoryPayload, ctx: HandlerContext) -> ActionResult:
    kind = payload.kind or classify_category_name(payload.name)
    if kind is None:
        raise ActionValidationError(
            f"category type unresolved for {payload.name!r}",
            user_message=f'❌ Não sei se "{payload.name}" é uma categoria de despesas ou de receitas.',
        )

    needle = normalize_text(payload.name)
    for category in ctx.categories():
        if normalize_text(category.get("name")) == needle and category.get("type") == kind:
            raise ActionValidationError(
                f"duplicate category {payload.name!r}",
                user_message=f'⚠️ A categoria "{category.get("name")}" já existe.',
            )

    if payload.budget is not None:
        budget = payload.budget
    else:
        budget = DEFAULT_EXPENSE_BUDGET if kind == "expense" else 0.0
    created = insert_category(ctx, payload.name, kind, budget, color=payload.color, icon=payload.icon)

    type_text = "Receita" if kind == "income" else "Despesa"
    budget_text = "sem orçamento" if kind == "income" else format_money(budget)
    return ActionResult(
        message=(
            f'🏷️ Categoria "{payload.name}" criada com sucesso!\n'
            f"💰 {type_text} - {budget_text}\n"
            f"{created.get('icon')} Ícone aplicado automaticamente"
        ),
        data={"category": created},
    )
