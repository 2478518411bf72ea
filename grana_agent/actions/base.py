from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Literal

from pydantic import BaseModel, ConfigDict, Field

from ..context import UserContext

OPEN_BILL_EXCLUDED_STATUSES = frozenset({"paid", "cancelled"})


class ActionOutcomeV1(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: str
    data: Dict[str, Any] = Field(default_factory=dict)
    priority: Literal["high", "medium", "low"] = "medium"
    executed: bool = False
    message: str = ""
    error_kind: str | None = None
    result: Dict[str, Any] = Field(default_factory=dict)


@dataclass
class ActionResult:
    message: str
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class HandlerContext:
    """Everything a handler may touch during one turn.

    ``user_context`` is the snapshot loaded at the start of the turn and is
    never refreshed; rows created earlier in the same turn are tracked in
    ``created`` so later actions can see them.
    """

    store: Any
    user_context: UserContext
    today: date
    created: Dict[str, list[Dict[str, Any]]] = field(default_factory=dict)

    @property
    def user_id(self) -> str:
        return self.user_context.user_id

    def remember(self, entity: str, row: Dict[str, Any]) -> None:
        self.created.setdefault(entity, []).append(row)

    def categories(self) -> list[Dict[str, Any]]:
        return [*self.user_context.categories, *self.created.get("categories", [])]

    def open_bills(self) -> list[Dict[str, Any]]:
        return [b for b in self.user_context.bills if b.get("status") not in OPEN_BILL_EXCLUDED_STATUSES]
