from __future__ import annotations

from datetime import date
from typing import Annotated, Any, Dict, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

from ..formatting import parse_amount, parse_date

EntryType = Literal["income", "expense"]
BillType = Literal["payable", "receivable"]
RecurringInterval = Literal["daily", "weekly", "monthly", "yearly"]

_BILL_TYPE_ALIASES = {"expense": "payable", "income": "receivable", "pagar": "payable", "receber": "receivable"}
_KIND_ALIASES = {"despesa": "expense", "gasto": "expense", "receita": "income", "ganho": "income"}


def _first_text(data: Dict[str, Any], *keys: str) -> str | None:
    for key in keys:
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
    return None


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    @field_validator(
        "amount",
        "target_amount",
        "current_amount",
        "aporte",
        "budget",
        mode="before",
        check_fields=False,
    )
    @classmethod
    def _parse_money(cls, value: Any) -> Any:
        if value in ("", None):
            return None
        return parse_amount(value)

    @field_validator("kind", mode="before", check_fields=False)
    @classmethod
    def _parse_kind(cls, value: Any) -> Any:
        if value in ("", None):
            return None
        text = str(value).strip().lower()
        return _KIND_ALIASES.get(text, text)

    @field_validator("transaction_date", "target_date", "due_date", mode="before", check_fields=False)
    @classmethod
    def _parse_day(cls, value: Any) -> Any:
        return parse_date(value)


class CreateTransactionPayload(_Payload):
    action: Literal["create_transaction"]
    amount: float = Field(gt=0)
    description: str | None = None
    category: str | None = None
    kind: EntryType | None = None
    payment_method: str | None = None
    location: str | None = None
    transaction_date: date | None = None

    @model_validator(mode="after")
    def _needs_label(self) -> "CreateTransactionPayload":
        if not self.description and not self.category:
            raise ValueError("description or category is required")
        return self


class CreateCategoryPayload(_Payload):
    action: Literal["create_category"]
    name: str = Field(min_length=1)
    kind: EntryType | None = None
    budget: float | None = Field(default=None, ge=0)
    icon: str | None = None
    color: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _name_fallback(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("name"):
            return {**data, "name": _first_text(data, "category", "title") or ""}
        return data


class CreateGoalPayload(_Payload):
    action: Literal["create_goal"]
    title: str = Field(min_length=1)
    target_amount: float = Field(gt=0)
    target_date: date | None = None
    description: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _title_fallback(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = {**data, "title": _first_text(data, "title", "name", "goal_name") or ""}
            if data.get("target_amount") in (None, "") and data.get("amount") not in (None, ""):
                data["target_amount"] = data["amount"]
        return data


class UpdateGoalPayload(_Payload):
    action: Literal["update_goal"]
    goal_id: str | None = None
    title: str | None = None
    new_title: str | None = None
    target_amount: float | None = Field(default=None, gt=0)
    current_amount: float | None = Field(default=None, ge=0)
    aporte: float | None = Field(default=None, gt=0)
    amount: float | None = None
    target_date: date | None = None
    description: str | None = None
    notes: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _identifiers(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {
                **data,
                "goal_id": _first_text(data, "goal_id", "id"),
                "title": _first_text(data, "title", "name", "goal_name"),
            }
        return data


class CreateBillPayload(_Payload):
    action: Literal["create_bill"]
    title: str = Field(min_length=1)
    amount: float = Field(gt=0)
    bill_type: BillType = "payable"
    due_date: date | None = None
    due_day: int | None = Field(default=None, ge=1, le=31)
    is_recurring: bool = True
    recurring_interval: RecurringInterval = "monthly"
    category: str | None = None
    description: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        normalized = {**data, "title": _first_text(data, "title", "name") or ""}
        bill_type = data.get("bill_type") or data.get("kind")
        if bill_type is None:
            normalized.pop("bill_type", None)
        else:
            text = str(bill_type).strip().lower()
            normalized["bill_type"] = _BILL_TYPE_ALIASES.get(text, text)
        if data.get("is_recurring") is None:
            recurring = data.get("recurring")
            normalized["is_recurring"] = True if recurring is None else recurring
        if not data.get("recurring_interval"):
            normalized.pop("recurring_interval", None)
        return normalized


class UpdateBillPayload(_Payload):
    action: Literal["update_bill"]
    bill_id: str | None = None
    name: str | None = None
    new_name: str | None = None
    amount: float | None = Field(default=None, gt=0)
    due_date: date | None = None
    due_day: int | None = Field(default=None, ge=1, le=31)

    @model_validator(mode="before")
    @classmethod
    def _identifiers(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {
                **data,
                "bill_id": _first_text(data, "bill_id", "id"),
                "name": _first_text(data, "old_name", "current_name", "name", "title"),
                "new_name": _first_text(data, "new_name", "new_title"),
            }
        return data


class DeleteBillPayload(_Payload):
    action: Literal["delete_bill"]
    bill_id: str | None = None
    name: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _identifiers(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {
                **data,
                "bill_id": _first_text(data, "bill_id", "id"),
                "name": _first_text(data, "name", "title"),
            }
        return data


class PayBillPayload(_Payload):
    action: Literal["pay_bill"]
    bill_id: str | None = None
    name: str | None = None
    pay_all: bool = False

    @model_validator(mode="before")
    @classmethod
    def _identifiers(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {
                **data,
                "bill_id": _first_text(data, "bill_id", "id"),
                "name": _first_text(data, "name", "title"),
                "pay_all": data.get("pay_all") or data.get("all") or False,
            }
        return data


class ListBillsPayload(_Payload):
    action: Literal["list_bills"]


class FinancialAdvicePayload(_Payload):
    action: Literal["financial_advice"]
    topic: str | None = None


ActionPayload = Annotated[
    Union[
        CreateTransactionPayload,
        CreateCategoryPayload,
        CreateGoalPayload,
        UpdateGoalPayload,
        CreateBillPayload,
        UpdateBillPayload,
        DeleteBillPayload,
        PayBillPayload,
        ListBillsPayload,
        FinancialAdvicePayload,
    ],
    Field(discriminator="action"),
]

_payload_adapter: TypeAdapter[ActionPayload] = TypeAdapter(ActionPayload)


def build_payload(action_type: str, data: Dict[str, Any]) -> ActionPayload:
    """Validate loosely-typed action data into the typed payload for ``action_type``.

    The incoming ``type`` key carries the entry or bill kind, never the action.
    """
    raw = dict(data)
    kind = raw.pop("type", None)
    raw["action"] = action_type
    if raw.get("kind") is None and kind is not None:
        raw["kind"] = kind
    return _payload_adapter.validate_python(raw)
