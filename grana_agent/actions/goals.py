from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict

from ..errors import ActionValidationError, AmbiguousMatchError, EntityNotFoundError
from ..formatting import format_date, format_money
from .base import ActionResult, HandlerContext
from .payloads import CreateGoalPayload, UpdateGoalPayload
from .resolution import resolve_entity

logger = logging.getLogger(__name__)


def _active_goals(ctx: HandlerContext) -> list[Dict[str, Any]]:
    return [g for g in ctx.user_context.goals if (g.get("status") or "active") == "active"]


def _resolve_goal(payload: UpdateGoalPayload, ctx: HandlerContext) -> Dict[str, Any]:
    goal = resolve_entity(
        ctx.user_context.goals,
        entity="goal",
        row_id=payload.goal_id,
        query=payload.title,
        label_key="title",
    )
    if goal is not None:
        return goal
    active = _active_goals(ctx)
    if len(active) == 1:
        return active[0]
    if not active:
        raise EntityNotFoundError("goal", None, "❌ Você não tem metas ativas para atualizar.")
    names = [str(g.get("title") or "") for g in active]
    listed = ", ".join(f'"{name}"' for name in names)
    raise AmbiguousMatchError("goal", "", names, f"🤔 Qual meta você quer atualizar? Você tem: {listed}.")


def create_goal(payload: CreateGoalPayload, ctx: HandlerContext) -> ActionResult:
    row = {
        "title": payload.title,
        "description": payload.description,
        "target_amount": payload.target_amount,
        "current_amount": 0,
        "target_date": payload.target_date.isoformat() if payload.target_date else None,
        "status": "active",
    }
    created = ctx.store.create_goal(ctx.user_id, row)
    logger.info("goal_created user=%s title=%s target=%.2f", ctx.user_id, payload.title, payload.target_amount)

    message = f'🎯 Meta "{payload.title}" criada! Objetivo: {format_money(payload.target_amount)}'
    if payload.target_date:
        message += f"\n📅 Prazo: {format_date(payload.target_date)}"
    return ActionResult(message=message, data={"goal": created})


def update_goal(payload: UpdateGoalPayload, ctx: HandlerContext) -> ActionResult:
    """Apply one goal mutation.

    ``aporte`` adds to progress, ``current_amount`` replaces it and
    ``target_amount`` replaces the objective. A bare ``amount`` is never
    guessed into either.
    """
    changes_requested = any(
        value is not None
        for value in (payload.aporte, payload.target_amount, payload.current_amount, payload.new_title, payload.target_date)
    )
    if not changes_requested:
        if payload.amount is not None:
            raise ActionValidationError(
                "bare amount on goal update",
                user_message="❌ Não ficou claro se o valor é um aporte ou o novo objetivo da meta.",
            )
        raise ActionValidationError("goal update without changes", user_message="❌ Nada para atualizar na meta.")

    goal = _resolve_goal(payload, ctx)
    title = str(goal.get("title") or "")
    current = float(goal.get("current_amount") or 0)
    target = float(goal.get("target_amount") or 0)
    changes: Dict[str, Any] = {}
    lines: list[str] = []

    if payload.target_amount is not None:
        changes["target_amount"] = payload.target_amount
        target = payload.target_amount
        lines.append(f"🎯 Novo objetivo: {format_money(payload.target_amount)}")
    if payload.current_amount is not None:
        changes["current_amount"] = payload.current_amount
        current = payload.current_amount
        lines.append(f"📊 Progresso ajustado para {format_money(payload.current_amount)}")
    if payload.aporte is not None:
        current += payload.aporte
        changes["current_amount"] = current
        lines.append(f"💰 Aporte de {format_money(payload.aporte)} registrado")
        if "contributions" in goal:
            contribution = {
                "id": str(uuid.uuid4()),
                "amount": payload.aporte,
                "notes": payload.notes or "Aporte via assistente",
                "created_at": datetime.now(timezone.utc).isoformat(),
            }
            changes["contributions"] = [*list(goal.get("contributions") or []), contribution]
    if payload.new_title:
        changes["title"] = payload.new_title
        lines.append(f'✏️ Meta renomeada para "{payload.new_title}"')
        title = payload.new_title
    if payload.target_date:
        changes["target_date"] = payload.target_date.isoformat()
        lines.append(f"📅 Novo prazo: {format_date(payload.target_date)}")
    if payload.description:
        changes["description"] = payload.description

    if target > 0 and current >= target and (goal.get("status") or "active") == "active":
        changes["status"] = "completed"
        lines.append("🏆 Parabéns, meta alcançada!")

    updated = ctx.store.update_goal(ctx.user_id, str(goal["id"]), changes)
    logger.info("goal_updated user=%s goal=%s fields=%s", ctx.user_id, goal["id"], sorted(changes))

    progress = round(current / target * 100, 1) if target > 0 else 0.0
    header = f'🎯 Meta "{title}" atualizada!'
    footer = f"📈 Progresso: {format_money(current)} de {format_money(target)} ({progress}%)"
    return ActionResult(message="\n".join([header, *lines, footer]), data={"goal": updated})
