from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List

import requests

from .config import (
    STORE_TIMEOUT_SECONDS,
    SUPABASE_SERVICE_ROLE_KEY,
    SUPABASE_URL,
    USE_LOCAL_STORE,
)
from .errors import AgentTimeoutError, StoreError

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _eq(value: Any) -> str:
    return f"eq.{value}"


class SupabaseRestClient:
    def __init__(
        self,
        *,
        supabase_url: str | None = None,
        service_key: str | None = None,
        timeout: int = STORE_TIMEOUT_SECONDS,
    ) -> None:
        url = (supabase_url or SUPABASE_URL).strip().rstrip("/")
        key = (service_key or SUPABASE_SERVICE_ROLE_KEY).strip()
        self.base_url = f"{url}/rest/v1" if url else ""
        self.timeout = timeout
        self._configured = bool(url and key)
        self.common_headers = {
            "apikey": key,
            "Authorization": f"Bearer {key}",
            "Content-Type": "application/json",
        }

    @property
    def configured(self) -> bool:
        return self._configured

    def _ensure_configured(self) -> None:
        if not self.configured:
            raise StoreError("Supabase is not configured. Set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY.")

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Dict[str, Any] | None = None,
        payload: Any = None,
        headers: Dict[str, str] | None = None,
    ) -> Any:
        self._ensure_configured()
        merged_headers = dict(self.common_headers)
        if headers:
            merged_headers.update(headers)
        try:
            response = requests.request(
                method=method,
                url=f"{self.base_url}{path}",
                params=params,
                json=payload,
                headers=merged_headers,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as exc:
            raise AgentTimeoutError(f"Supabase {method} {path} timed out after {self.timeout}s") from exc
        except requests.exceptions.RequestException as exc:
            raise StoreError(f"Supabase {method} {path} failed: {exc}") from exc
        if response.status_code >= 400:
            snippet = response.text[:1200]
            raise StoreError(f"Supabase {method} {path} failed ({response.status_code}): {snippet}")
        content_type = response.headers.get("content-type", "")
        if response.text and "application/json" in content_type:
            return response.json()
        return None

    def fetch_rows(
        self,
        table: str,
        *,
        select: str = "*",
        filters: Dict[str, str] | None = None,
        order: str | None = None,
        limit: int | None = None,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"select": select}
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = limit
        params.update(filters or {})
        rows = self._request("GET", f"/{table}", params=params)
        if not isinstance(rows, list):
            raise StoreError(f"Unexpected response type for table {table}")
        return rows

    def insert_row(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        written = self._request(
            "POST",
            f"/{table}",
            payload=row,
            headers={"Prefer": "return=representation"},
        )
        if not isinstance(written, list) or not written:
            raise StoreError(f"Insert into {table} returned no record")
        return written[0]

    def update_rows(self, table: str, filters: Dict[str, str], changes: Dict[str, Any]) -> List[Dict[str, Any]]:
        written = self._request(
            "PATCH",
            f"/{table}",
            params=filters,
            payload=changes,
            headers={"Prefer": "return=representation"},
        )
        return written if isinstance(written, list) else []

    def delete_rows(self, table: str, filters: Dict[str, str]) -> None:
        self._request("DELETE", f"/{table}", params=filters, headers={"Prefer": "return=minimal"})

    def rpc(self, function: str, args: Dict[str, Any]) -> Any:
        return self._request("POST", f"/rpc/{function}", payload=args)


class SupabaseFinanceStore:
    """User-scoped CRUD over the Grana tables and views."""

    def __init__(self, client: SupabaseRestClient | None = None) -> None:
        self.client = client or SupabaseRestClient()

    def get_user(self, user_id: str) -> Dict[str, Any] | None:
        if not user_id:
            return None
        rows = self.client.fetch_rows("users", filters={"id": _eq(user_id)}, limit=1)
        return rows[0] if rows else None

    def get_balance(self, user_id: str) -> float:
        value = self.client.rpc("get_user_balance", {"input_user_id": user_id})
        return float(value or 0)

    def list_categories(self, user_id: str) -> List[Dict[str, Any]]:
        return self.client.fetch_rows("categories", filters={"user_id": _eq(user_id)}, order="name.asc")

    def list_recent_transactions(self, user_id: str, limit: int) -> List[Dict[str, Any]]:
        return self.client.fetch_rows(
            "transactions_with_category",
            filters={"user_id": _eq(user_id)},
            order="created_at.desc",
            limit=limit,
        )

    def list_goal_progress(self, user_id: str) -> List[Dict[str, Any]]:
        return self.client.fetch_rows("goal_progress", filters={"user_id": _eq(user_id)})

    def list_bills(self, user_id: str) -> List[Dict[str, Any]]:
        return self.client.fetch_rows("bills", filters={"user_id": _eq(user_id)}, order="due_date.asc")

    def create_category(self, user_id: str, row: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.insert_row("categories", {**row, "user_id": user_id})

    def create_transaction(self, user_id: str, row: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.insert_row("transactions", {**row, "user_id": user_id})

    def delete_transaction(self, user_id: str, transaction_id: str) -> None:
        self.client.delete_rows("transactions", {"id": _eq(transaction_id), "user_id": _eq(user_id)})

    def create_goal(self, user_id: str, row: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.insert_row("goals", {**row, "user_id": user_id})

    def update_goal(self, user_id: str, goal_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        return self._update_one("goals", user_id, goal_id, changes)

    def create_bill(self, user_id: str, row: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.insert_row("bills", {**row, "user_id": user_id})

    def update_bill(self, user_id: str, bill_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        return self._update_one("bills", user_id, bill_id, {**changes, "updated_at": _now_iso()})

    def delete_bill(self, user_id: str, bill_id: str) -> None:
        self.client.delete_rows("bills", {"id": _eq(bill_id), "user_id": _eq(user_id)})

    def _update_one(self, table: str, user_id: str, row_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        written = self.client.update_rows(table, {"id": _eq(row_id), "user_id": _eq(user_id)}, changes)
        if not written:
            raise StoreError(f"Update on {table} matched no row for id={row_id}")
        return written[0]


@dataclass
class InMemoryFinanceStore:
    """Dict-backed store with the same surface as ``SupabaseFinanceStore``.

    ``fail_operations`` names store methods that raise ``StoreError`` when
    called, so callers can exercise persistence failures.
    """

    users: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    categories: List[Dict[str, Any]] = field(default_factory=list)
    transactions: List[Dict[str, Any]] = field(default_factory=list)
    goals: List[Dict[str, Any]] = field(default_factory=list)
    bills: List[Dict[str, Any]] = field(default_factory=list)
    fail_operations: set[str] = field(default_factory=set)

    def _check(self, operation: str) -> None:
        if operation in self.fail_operations:
            raise StoreError(f"simulated failure on {operation}")

    @staticmethod
    def _record(row: Dict[str, Any], user_id: str) -> Dict[str, Any]:
        return {
            **row,
            "id": str(row.get("id") or uuid.uuid4()),
            "created_at": row.get("created_at") or _now_iso(),
            "user_id": user_id,
        }

    def add_user(self, user_id: str, **fields: Any) -> Dict[str, Any]:
        self.users[user_id] = {"id": user_id, **fields}
        return self.users[user_id]

    def get_user(self, user_id: str) -> Dict[str, Any] | None:
        self._check("get_user")
        return self.users.get(user_id)

    def get_balance(self, user_id: str) -> float:
        self._check("get_balance")
        return float(sum(float(t.get("amount") or 0) for t in self.transactions if t["user_id"] == user_id))

    def list_categories(self, user_id: str) -> List[Dict[str, Any]]:
        self._check("list_categories")
        rows = [dict(c) for c in self.categories if c["user_id"] == user_id]
        return sorted(rows, key=lambda c: str(c.get("name") or ""))

    def list_recent_transactions(self, user_id: str, limit: int) -> List[Dict[str, Any]]:
        self._check("list_recent_transactions")
        names = {c["id"]: c.get("name") for c in self.categories}
        rows = [
            {**t, "category_name": names.get(t.get("category_id"))}
            for t in self.transactions
            if t["user_id"] == user_id
        ]
        rows.sort(key=lambda t: str(t.get("created_at") or ""), reverse=True)
        return rows[:limit]

    def list_goal_progress(self, user_id: str) -> List[Dict[str, Any]]:
        self._check("list_goal_progress")
        rows: List[Dict[str, Any]] = []
        for goal in self.goals:
            if goal["user_id"] != user_id:
                continue
            target = float(goal.get("target_amount") or 0)
            current = float(goal.get("current_amount") or 0)
            progress = round(current / target * 100, 1) if target > 0 else 0.0
            rows.append({**goal, "progress_percentage": progress})
        return rows

    def list_bills(self, user_id: str) -> List[Dict[str, Any]]:
        self._check("list_bills")
        rows = [dict(b) for b in self.bills if b["user_id"] == user_id]
        return sorted(rows, key=lambda b: str(b.get("due_date") or ""))

    def create_category(self, user_id: str, row: Dict[str, Any]) -> Dict[str, Any]:
        self._check("create_category")
        record = self._record(row, user_id)
        self.categories.append(record)
        return dict(record)

    def create_transaction(self, user_id: str, row: Dict[str, Any]) -> Dict[str, Any]:
        self._check("create_transaction")
        record = self._record(row, user_id)
        self.transactions.append(record)
        return dict(record)

    def delete_transaction(self, user_id: str, transaction_id: str) -> None:
        self._check("delete_transaction")
        self.transactions = [
            t for t in self.transactions if not (t["id"] == transaction_id and t["user_id"] == user_id)
        ]

    def create_goal(self, user_id: str, row: Dict[str, Any]) -> Dict[str, Any]:
        self._check("create_goal")
        record = self._record(row, user_id)
        self.goals.append(record)
        return dict(record)

    def update_goal(self, user_id: str, goal_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        self._check("update_goal")
        return self._update_one(self.goals, "goals", user_id, goal_id, changes)

    def create_bill(self, user_id: str, row: Dict[str, Any]) -> Dict[str, Any]:
        self._check("create_bill")
        record = self._record(row, user_id)
        self.bills.append(record)
        return dict(record)

    def update_bill(self, user_id: str, bill_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        self._check("update_bill")
        return self._update_one(self.bills, "bills", user_id, bill_id, {**changes, "updated_at": _now_iso()})

    def delete_bill(self, user_id: str, bill_id: str) -> None:
        self._check("delete_bill")
        self.bills = [b for b in self.bills if not (b["id"] == bill_id and b["user_id"] == user_id)]

    @staticmethod
    def _update_one(
        rows: List[Dict[str, Any]],
        table: str,
        user_id: str,
        row_id: str,
        changes: Dict[str, Any],
    ) -> Dict[str, Any]:
        for row in rows:
            if row["id"] == row_id and row["user_id"] == user_id:
                row.update(changes)
                return dict(row)
        raise StoreError(f"Update on {table} matched no row for id={row_id}")


_store: SupabaseFinanceStore | InMemoryFinanceStore | None = None


def get_finance_store() -> SupabaseFinanceStore | InMemoryFinanceStore:
    global _store
    if _store is None:
        if USE_LOCAL_STORE:
            logger.warning("USE_LOCAL_STORE enabled; data lives in process memory only")
            _store = InMemoryFinanceStore()
        else:
            _store = SupabaseFinanceStore()
    return _store
