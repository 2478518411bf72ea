from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict

from pydantic import ValidationError

from ..errors import ActionError, PersistenceError
from ..router.contracts import IntentAnalysisV1
from .advice import financial_advice
from .base import ActionOutcomeV1, ActionResult, HandlerContext
from .bills import create_bill, delete_bill, list_bills, pay_bill, update_bill
from .categories import create_category
from .goals import create_goal, update_goal
from .payloads import build_payload
from .transactions import create_transaction

logger = logging.getLogger(__name__)

Handler = Callable[..., ActionResult]

HANDLERS: Dict[str, Handler] = {
    "create_transaction": create_transaction,
    "create_category": create_category,
    "create_goal": create_goal,
    "update_goal": update_goal,
    "create_bill": create_bill,
    "update_bill": update_bill,
    "delete_bill": delete_bill,
    "pay_bill": pay_bill,
    "list_bills": list_bills,
    "financial_advice": financial_advice,
}

ACTION_LABELS: Dict[str, str] = {
    "create_transaction": "registrar a transação",
    "create_category": "criar a categoria",
    "create_goal": "criar a meta",
    "update_goal": "atualizar a meta",
    "create_bill": "criar a conta",
    "update_bill": "alterar a conta",
    "delete_bill": "excluir a conta",
    "pay_bill": "pagar a conta",
    "list_bills": "listar as contas",
    "financial_advice": "gerar a análise",
}

FALLBACK_MESSAGE = "🤔 Não identifiquei nenhuma ação para executar. Pode reformular?"


@dataclass
class DispatchOutcome:
    success: bool
    message: str
    actions: list[ActionOutcomeV1] = field(default_factory=list)


def _validation_message(action_type: str, exc: ValidationError) -> str:
    fields = sorted({str(err["loc"][-1]) for err in exc.errors() if err.get("loc")})
    detail = f" (campos: {', '.join(fields)})" if fields else ""
    return f"❌ Dados insuficientes para {ACTION_LABELS[action_type]}{detail}."


def _error_message(action_type: str, exc: ActionError) -> str:
    # Store failures carry technical text unless a handler supplied a user message.
    if isinstance(exc, PersistenceError) and exc.user_message == str(exc):
        return f"❌ Erro ao {ACTION_LABELS[action_type]}. Tente novamente mais tarde."
    return exc.user_message


def dispatch_actions(analysis: IntentAnalysisV1, ctx: HandlerContext) -> DispatchOutcome:
    """Execute the proposed actions in order.

    Action-local failures are recorded on that action's outcome and the
    remaining actions still run. Turn-fatal errors propagate.
    """
    outcomes: list[ActionOutcomeV1] = []
    messages: list[str] = []

    for action in analysis.proposed_actions:
        data = analysis.action_data(action)
        outcome = ActionOutcomeV1(type=action.type, data=data, priority=action.priority)
        try:
            payload = build_payload(action.type, data)
            result = HANDLERS[action.type](payload, ctx)
        except ValidationError as exc:
            logger.info("action_invalid user=%s action=%s errors=%d", ctx.user_id, action.type, exc.error_count())
            outcome.message = _validation_message(action.type, exc)
            outcome.error_kind = "validation"
        except ActionError as exc:
            log = logger.error if exc.kind == "partially_applied" else logger.warning
            log("action_failed user=%s action=%s kind=%s error=%s", ctx.user_id, action.type, exc.kind, exc)
            outcome.message = _error_message(action.type, exc)
            outcome.error_kind = exc.kind
        else:
            outcome.executed = True
            outcome.message = result.message
            outcome.result = result.data
        outcomes.append(outcome)
        messages.append(outcome.message)

    executed = sum(1 for outcome in outcomes if outcome.executed)
    logger.info(
        "actions_dispatched user=%s proposed=%d executed=%d",
        ctx.user_id,
        len(outcomes),
        executed,
    )

    if not outcomes:
        message = analysis.response_message or FALLBACK_MESSAGE
        return DispatchOutcome(success=bool(analysis.response_message), message=message)
    return DispatchOutcome(success=executed > 0, message="\n\n".join(messages), actions=outcomes)
