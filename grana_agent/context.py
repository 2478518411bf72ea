from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from concurrent.futures import TimeoutError as FuturesTimeoutError
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict

from pydantic import BaseModel, ConfigDict, Field

from .config import CONTEXT_LOAD_TIMEOUT_SECONDS, CONTEXT_LOAD_WORKERS, RECENT_TRANSACTIONS_LIMIT
from .errors import AgentError, AgentTimeoutError, AuthenticationError, StoreError
from .formatting import format_money

logger = logging.getLogger(__name__)

UNAUTHENTICATED_MESSAGE = "❌ Erro: Usuário não autenticado"


class UserContext(BaseModel):
    model_config = ConfigDict(extra="forbid")

    user_id: str
    current_balance: float = 0.0
    monthly_income: float = 0.0
    monthly_expenses: float = 0.0
    categories: list[Dict[str, Any]] = Field(default_factory=list)
    recent_transactions: list[Dict[str, Any]] = Field(default_factory=list)
    goals: list[Dict[str, Any]] = Field(default_factory=list)
    bills: list[Dict[str, Any]] = Field(default_factory=list)
    loaded_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


def _monthly_totals(transactions: list[Dict[str, Any]], today: date) -> tuple[float, float]:
    month_prefix = today.strftime("%Y-%m")
    income = 0.0
    expenses = 0.0
    for txn in transactions:
        if not str(txn.get("transaction_date") or "").startswith(month_prefix):
            continue
        amount = float(txn.get("amount") or 0)
        if txn.get("type") == "income":
            income += amount
        elif txn.get("type") == "expense":
            expenses += abs(amount)
    return income, expenses


def load_user_context(store: Any, user_id: str, *, today: date | None = None) -> UserContext:
    """Build a fresh snapshot of the user's finances for one turn.

    The user is resolved first; the remaining reads run concurrently and are
    joined before returning. Any failed read fails the whole load.
    """
    user = store.get_user(user_id) if user_id else None
    if not user:
        raise AuthenticationError(f"user not resolved: {user_id!r}", user_message=UNAUTHENTICATED_MESSAGE)

    today = today or date.today()
    reads: Dict[str, Callable[[], Any]] = {
        "balance": lambda: store.get_balance(user_id),
        "categories": lambda: store.list_categories(user_id),
        "transactions": lambda: store.list_recent_transactions(user_id, RECENT_TRANSACTIONS_LIMIT),
        "goals": lambda: store.list_goal_progress(user_id),
        "bills": lambda: store.list_bills(user_id),
    }
    results: Dict[str, Any] = {}

    executor = ThreadPoolExecutor(max_workers=min(CONTEXT_LOAD_WORKERS, len(reads)))
    try:
        future_to_read = {executor.submit(read): name for name, read in reads.items()}
        for future in as_completed(future_to_read, timeout=CONTEXT_LOAD_TIMEOUT_SECONDS):
            name = future_to_read[future]
            try:
                results[name] = future.result()
            except AgentError:
                logger.warning("context_read_failed read=%s user=%s", name, user_id)
                raise
            except Exception as exc:
                logger.warning("context_read_failed read=%s user=%s error=%s", name, user_id, exc)
                raise StoreError(f"context read {name} failed: {exc}") from exc
    except FuturesTimeoutError as exc:
        pending = sorted(name for name in reads if name not in results)
        raise AgentTimeoutError(f"context load timed out waiting on {', '.join(pending)}") from exc
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    transactions = list(results["transactions"] or [])
    monthly_income, monthly_expenses = _monthly_totals(transactions, today)
    context = UserContext(
        user_id=user_id,
        current_balance=float(results["balance"] or 0),
        monthly_income=monthly_income,
        monthly_expenses=monthly_expenses,
        categories=list(results["categories"] or []),
        recent_transactions=transactions,
        goals=list(results["goals"] or []),
        bills=list(results["bills"] or []),
    )
    logger.info(
        "context_loaded user=%s categories=%d transactions=%d goals=%d bills=%d",
        user_id,
        len(context.categories),
        len(context.recent_transactions),
        len(context.goals),
        len(context.bills),
    )
    return context


def render_context_summary(context: UserContext) -> str:
    categories = ", ".join(f"{c.get('name')} ({c.get('type')})" for c in context.categories) or "nenhuma"
    transactions = (
        ", ".join(
            f"{t.get('description')} - {format_money(abs(float(t.get('amount') or 0)))}"
            for t in context.recent_transactions[:5]
        )
        or "nenhuma"
    )
    goals = (
        ", ".join(f"{g.get('title')} ({g.get('progress_percentage', 0)}%)" for g in context.goals) or "nenhuma"
    )
    bills = (
        ", ".join(
            f"{b.get('title')} - {format_money(float(b.get('amount') or 0))} "
            f"({b.get('type')}, {b.get('status')}, vence {b.get('due_date')})"
            for b in context.bills
        )
        or "nenhuma"
    )
    return "\n".join(
        [
            f"- Saldo atual: {format_money(context.current_balance)}",
            f"- Receitas mês: {format_money(context.monthly_income)}",
            f"- Despesas mês: {format_money(context.monthly_expenses)}",
            f"- Categorias disponíveis: {categories}",
            f"- Últimas transações: {transactions}",
            f"- Metas ativas: {goals}",
            f"- Contas: {bills}",
        ]
    )
