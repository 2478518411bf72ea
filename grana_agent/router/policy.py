from __future__ import annotations

import logging
from typing import Any, Dict

from ..formatting import parse_amount
from .clarify import (
    bill_amount_question,
    category_type_question,
    generic_question,
    goal_mutation_question,
    is_category_type_question,
)
from .contracts import IntentAnalysisV1, ProposedActionV1
from .rules import classify_category_name, explicit_category_type, list_bills_action, match_bill_inquiry

logger = logging.getLogger(__name__)

GOAL_CHANGE_KEYS = ("target_amount", "aporte", "current_amount")


def _amount_or_none(value: Any) -> float | None:
    try:
        amount = parse_amount(value)
    except ValueError:
        return None
    if amount is None or amount <= 0:
        return None
    return amount


def _text_field(data: Dict[str, Any], *keys: str) -> str:
    for key in keys:
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def _stated_category_type(message: str, previous_exchange: tuple[str, str] | None) -> str | None:
    stated = explicit_category_type(message)
    if stated or previous_exchange is None:
        return stated
    # Only an exchange still waiting on the type question may supply it.
    previous_user_text, previous_agent_text = previous_exchange
    if is_category_type_question(previous_agent_text):
        return explicit_category_type(previous_user_text)
    return None


def _resolve_category_action(
    action: ProposedActionV1,
    data: Dict[str, Any],
    message: str,
    previous_exchange: tuple[str, str] | None,
) -> tuple[ProposedActionV1 | None, str]:
    """Return the action with a settled type, or (None, name) when the type must be asked."""
    name = _text_field(data, "name", "category", "title")
    model_type = data.get("type") if data.get("type") in {"income", "expense"} else None
    stated = _stated_category_type(message, previous_exchange)

    if stated:
        resolved = model_type or stated
        reason = "explicit"
    else:
        resolved = classify_category_name(name)
        reason = "obvious"
    if resolved is None:
        return None, name
    if resolved != action.data.get("type"):
        logger.info("category_type_settled name=%s type=%s source=%s", name, resolved, reason)
    return action.model_copy(update={"data": {**action.data, "type": resolved}}), name


def apply_routing_policy(
    message: str,
    analysis: IntentAnalysisV1,
    *,
    previous_exchange: tuple[str, str] | None = None,
) -> IntentAnalysisV1:
    """Deterministic corrections applied on top of the model's analysis.

    Clarification always leaves the action list empty; the bill-inquiry
    override wins over a clarification the model asked for.
    """
    if analysis.needs_clarification:
        if analysis.proposed_actions:
            logger.info("clarification_drops_actions count=%d", len(analysis.proposed_actions))
        analysis = analysis.model_copy(
            update={
                "proposed_actions": [],
                "clarification_question": analysis.clarification_question or generic_question().render(),
            }
        )

    if not analysis.proposed_actions and match_bill_inquiry(message):
        logger.info("bill_inquiry_override intent=%s", analysis.intent)
        return analysis.model_copy(
            update={
                "intent": "bill",
                "needs_clarification": False,
                "clarification_question": None,
                "proposed_actions": [list_bills_action()],
                "reason_codes": [*analysis.reason_codes, "override:bill_inquiry"],
            }
        )

    if analysis.needs_clarification:
        return analysis

    settled: list[ProposedActionV1] = []
    for action in analysis.proposed_actions:
        data = analysis.action_data(action)

        if action.type == "create_category":
            resolved, name = _resolve_category_action(action, data, message, previous_exchange)
            if resolved is None:
                return analysis.with_clarification(category_type_question(name).render(), "clarify:category_type")
            settled.append(resolved)
            continue

        if action.type == "create_bill" and _amount_or_none(data.get("amount")) is None:
            title = _text_field(data, "title", "name")
            receivable = data.get("bill_type") == "receivable" or data.get("type") in {"receivable", "income"}
            return analysis.with_clarification(
                bill_amount_question(title, receivable=receivable).render(), "clarify:bill_amount"
            )

        if action.type == "update_goal":
            has_change = any(data.get(key) not in (None, "") for key in GOAL_CHANGE_KEYS)
            bare_amount = data.get("amount")
            if not has_change and bare_amount not in (None, ""):
                title = _text_field(data, "title", "name", "goal_name")
                return analysis.with_clarification(
                    goal_mutation_question(title, _amount_or_none(bare_amount)).render(), "clarify:goal_mutation"
                )

        settled.append(action)

    return analysis.model_copy(update={"proposed_actions": settled})
