from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Dict, Iterable
from unittest.mock import Mock

from grana_agent.actions import HandlerContext
from grana_agent.context import load_user_context
from grana_agent.router.contracts import IntentAnalysisV1, ProposedActionV1
from grana_agent.store import InMemoryFinanceStore

USER_ID = "user-1"
TODAY = date(2026, 3, 15)


def make_store() -> InMemoryFinanceStore:
    store = InMemoryFinanceStore()
    store.add_user(USER_ID, email="ana@example.com")
    return store


def add_bill(
    store: InMemoryFinanceStore,
    title: str,
    amount: float,
    *,
    due_in_days: int,
    bill_type: str = "payable",
    status: str = "pending",
    recurring: bool = False,
) -> Dict[str, Any]:
    return store.create_bill(
        USER_ID,
        {
            "title": title,
            "amount": amount,
            "type": bill_type,
            "due_date": (TODAY + timedelta(days=due_in_days)).isoformat(),
            "status": status,
            "is_recurring": recurring,
            "recurring_interval": "monthly",
        },
    )


def handler_context(store: InMemoryFinanceStore, today: date = TODAY) -> HandlerContext:
    return HandlerContext(store=store, user_context=load_user_context(store, USER_ID, today=today), today=today)


def make_analysis(actions: Iterable[tuple[str, Dict[str, Any]]] = (), **fields: Any) -> IntentAnalysisV1:
    fields.setdefault("intent", "general")
    fields.setdefault("confidence", 0.9)
    return IntentAnalysisV1(
        proposed_actions=[ProposedActionV1(type=action_type, data=data) for action_type, data in actions],  # type: ignore[arg-type]
        **fields,
    )


def scripted_analyzer(*analyses: IntentAnalysisV1) -> Mock:
    """Analyzer double returning the given analyses in order, one per call."""
    return Mock(side_effect=list(analyses))
