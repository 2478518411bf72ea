from __future__ import annotations

import calendar
import logging
from datetime import date, timedelta
from typing import Any, Dict, Literal

from ..errors import (
    ActionValidationError,
    AgentTimeoutError,
    EntityNotFoundError,
    PartialApplyError,
    PersistenceError,
    StoreError,
)
from ..formatting import format_date, format_money, parse_date, recurring_interval_text
from .base import OPEN_BILL_EXCLUDED_STATUSES, ActionResult, HandlerContext
from .categories import fallback_category, find_category
from .payloads import CreateBillPayload, DeleteBillPayload, ListBillsPayload, PayBillPayload, UpdateBillPayload
from .resolution import find_by_id, resolve_entity

logger = logging.getLogger(__name__)

DEFAULT_DUE_OFFSET_DAYS = 30
BILL_PAYMENT_METHOD = "transfer"

UrgencyBand = Literal["overdue", "due_soon", "due_week", "later"]


# Due dates


def _clamped(year: int, month: int, day: int) -> date:
    return date(year, month, min(day, calendar.monthrange(year, month)[1]))


def next_due_on_day(today: date, day: int) -> date:
    """This month's occurrence of ``day``, or next month's once it has passed."""
    candidate = _clamped(today.year, today.month, day)
    if candidate >= today:
        return candidate
    year, month = (today.year + 1, 1) if today.month == 12 else (today.year, today.month + 1)
    return _clamped(year, month, day)


def compute_due_date(today: date, due_date: date | None, due_day: int | None) -> date:
    if due_date is not None:
        return due_date
    if due_day is not None:
        return next_due_on_day(today, due_day)
    return today + timedelta(days=DEFAULT_DUE_OFFSET_DAYS)


def urgency(due: date, today: date) -> tuple[UrgencyBand, int]:
    days = (due - today).days
    if days < 0:
        return "overdue", days
    if days <= 3:
        return "due_soon", days
    if days <= 7:
        return "due_week", days
    return "later", days


_URGENCY_ICONS = {"overdue": "🔴", "due_soon": "🟡", "due_week": "🟠", "later": "📅"}


def _urgency_text(band: UrgencyBand, days: int) -> str:
    if band == "overdue":
        return f"({abs(days)} dias atrasada!)"
    if days == 0:
        return "(vence hoje!)"
    if days == 1:
        return "(vence amanhã)"
    return f"(vence em {days} dias)"


def _bill_due(bill: Dict[str, Any], today: date) -> date:
    return parse_date(bill.get("due_date")) or today


# Handlers


def create_bill(payload: CreateBillPayload, ctx: HandlerContext) -> ActionResult:
    due = compute_due_date(ctx.today, payload.due_date, payload.due_day)
    type_text = "a pagar" if payload.bill_type == "payable" else "a receber"
    category = None
    if payload.category:
        category = find_category(ctx, payload.category, "expense" if payload.bill_type == "payable" else "income")

    row = {
        "title": payload.title,
        "description": payload.description or f"Conta {type_text}: {payload.title}",
        "amount": payload.amount,
        "type": payload.bill_type,
        "due_date": due.isoformat(),
        "status": "pending",
        "is_recurring": payload.is_recurring,
        "recurring_interval": payload.recurring_interval,
        "recurring_day": payload.due_day or due.day,
        "category_id": category.get("id") if category else None,
    }
    created = ctx.store.create_bill(ctx.user_id, row)
    logger.info(
        "bill_created user=%s title=%s type=%s amount=%.2f due=%s",
        ctx.user_id,
        payload.title,
        payload.bill_type,
        payload.amount,
        row["due_date"],
    )

    interval = recurring_interval_text(payload.recurring_interval)
    lines = [
        f'📄 Conta "{payload.title}" criada com sucesso!',
        f"💰 {type_text.capitalize()}: {format_money(payload.amount)}",
        f"📅 Vencimento: {format_date(due)}",
        f"🔄 Conta recorrente ({interval}) - dia {row['recurring_day']}" if payload.is_recurring else "📝 Conta única",
    ]
    return ActionResult(message="\n".join(lines), data={"bill": created})


def update_bill(payload: UpdateBillPayload, ctx: HandlerContext) -> ActionResult:
    bill = resolve_entity(ctx.user_context.bills, entity="bill", row_id=payload.bill_id, query=payload.name)
    if bill is None:
        raise ActionValidationError("bill update without identifier", user_message="❌ Qual conta você quer alterar?")

    changes: Dict[str, Any] = {}
    lines: list[str] = []
    if payload.new_name:
        changes["title"] = payload.new_name
        lines.append(f'✏️ Nome: "{bill.get("title")}" → "{payload.new_name}"')
    if payload.amount is not None:
        changes["amount"] = payload.amount
        lines.append(f"💰 Valor: {format_money(payload.amount)}")
    if payload.due_date is not None or payload.due_day is not None:
        due = compute_due_date(ctx.today, payload.due_date, payload.due_day)
        changes["due_date"] = due.isoformat()
        changes["recurring_day"] = payload.due_day or due.day
        lines.append(f"📅 Vencimento: {format_date(due)}")
    if not changes:
        raise ActionValidationError("bill update without changes", user_message="❌ Nada para alterar na conta.")

    updated = ctx.store.update_bill(ctx.user_id, str(bill["id"]), changes)
    logger.info("bill_updated user=%s bill=%s fields=%s", ctx.user_id, bill["id"], sorted(changes))
    title = changes.get("title") or bill.get("title")
    return ActionResult(message="\n".join([f'✅ Conta "{title}" atualizada!', *lines]), data={"bill": updated})


def delete_bill(payload: DeleteBillPayload, ctx: HandlerContext) -> ActionResult:
    bill = resolve_entity(ctx.user_context.bills, entity="bill", row_id=payload.bill_id, query=payload.name)
    if bill is None:
        raise ActionValidationError("bill delete without identifier", user_message="❌ Qual conta você quer excluir?")
    ctx.store.delete_bill(ctx.user_id, str(bill["id"]))
    logger.info("bill_deleted user=%s bill=%s", ctx.user_id, bill["id"])
    return ActionResult(message=f'🗑️ Conta "{bill.get("title")}" excluída.', data={"bill_id": bill["id"]})


def _settle_bill(bill: Dict[str, Any], ctx: HandlerContext) -> Dict[str, Any]:
    """Record the payment transaction, then mark the bill paid.

    If marking fails the transaction is deleted again; if that delete also
    fails the store is left inconsistent and ``PartialApplyError`` is raised.
    """
    kind = "expense" if bill.get("type", "payable") == "payable" else "income"
    amount = abs(float(bill.get("amount") or 0))
    category_id = bill.get("category_id")
    if not category_id:
        fallback = fallback_category(ctx, kind)
        category_id = fallback.get("id") if fallback else None

    transaction = ctx.store.create_transaction(
        ctx.user_id,
        {
            "category_id": category_id,
            "description": f"Pagamento: {bill.get('title')}",
            "amount": -amount if kind == "expense" else amount,
            "type": kind,
            "status": "completed",
            "transaction_date": ctx.today.isoformat(),
            "payment_method": BILL_PAYMENT_METHOD,
        },
    )
    try:
        ctx.store.update_bill(ctx.user_id, str(bill["id"]), {"status": "paid"})
    except (StoreError, AgentTimeoutError) as exc:
        logger.warning("bill_mark_paid_failed user=%s bill=%s error=%s", ctx.user_id, bill["id"], exc)
        try:
            ctx.store.delete_transaction(ctx.user_id, str(transaction["id"]))
        except (StoreError, AgentTimeoutError) as rollback_exc:
            logger.error(
                "bill_payment_inconsistent user=%s bill=%s transaction=%s error=%s",
                ctx.user_id,
                bill["id"],
                transaction["id"],
                rollback_exc,
            )
            raise PartialApplyError(
                f"transaction {transaction['id']} kept but bill {bill['id']} not marked paid",
                user_message=(
                    f'⚠️ O pagamento de "{bill.get("title")}" foi registrado, mas a conta não foi marcada como paga. '
                    "Verifique a conta manualmente."
                ),
            ) from rollback_exc
        if isinstance(exc, AgentTimeoutError):
            raise
        raise PersistenceError(
            f"could not mark bill {bill['id']} paid: {exc}",
            user_message=f'❌ Não consegui marcar "{bill.get("title")}" como paga. Nenhuma alteração foi mantida.',
        ) from exc
    logger.info("bill_paid user=%s bill=%s transaction=%s amount=%.2f", ctx.user_id, bill["id"], transaction["id"], amount)
    return transaction


def _bills_to_pay(payload: PayBillPayload, ctx: HandlerContext) -> list[Dict[str, Any]]:
    open_bills = ctx.open_bills()
    if payload.pay_all:
        if not open_bills:
            raise EntityNotFoundError("bill", None, "✅ Você não tem contas pendentes para pagar.")
        return open_bills
    if payload.bill_id:
        bill = find_by_id(ctx.user_context.bills, payload.bill_id)
        if bill is not None and bill.get("status") in OPEN_BILL_EXCLUDED_STATUSES:
            raise ActionValidationError(
                f"bill {payload.bill_id} is {bill.get('status')}",
                user_message=f'ℹ️ A conta "{bill.get("title")}" já está {"paga" if bill.get("status") == "paid" else "cancelada"}.',
            )
    bill = resolve_entity(open_bills, entity="bill", row_id=payload.bill_id, query=payload.name)
    if bill is not None:
        return [bill]
    if not open_bills:
        raise EntityNotFoundError("bill", None, "❌ Nenhuma conta pendente encontrada para pagamento.")
    return [min(open_bills, key=lambda b: _bill_due(b, ctx.today))]


def pay_bill(payload: PayBillPayload, ctx: HandlerContext) -> ActionResult:
    bills = _bills_to_pay(payload, ctx)
    paid: list[tuple[Dict[str, Any], Dict[str, Any]]] = []
    failed: list[tuple[Dict[str, Any], Exception]] = []

    for index, bill in enumerate(bills):
        try:
            paid.append((bill, _settle_bill(bill, ctx)))
        except (PersistenceError, PartialApplyError) as exc:
            if len(bills) == 1:
                raise
            failed.append((bill, exc))
        except AgentTimeoutError as exc:
            if not paid:
                raise
            # Payments already written must still be reported; stop at the first timeout.
            logger.error(
                "bill_bulk_payment_timeout user=%s paid=%d unpaid=%d error=%s",
                ctx.user_id,
                len(paid),
                len(bills) - index,
                exc,
            )
            failed.extend((pending, exc) for pending in bills[index:])
            break

    if failed:
        failed_titles = ", ".join(f'"{bill.get("title")}"' for bill, _ in failed)
        if not paid:
            raise PersistenceError(
                f"no bill paid out of {len(bills)}",
                user_message=f"❌ Não consegui pagar nenhuma conta: {failed_titles}.",
            )
        paid_titles = ", ".join(f'"{bill.get("title")}"' for bill, _ in paid)
        raise PartialApplyError(
            f"{len(paid)} of {len(bills)} bills paid",
            user_message=f"⚠️ Paguei {paid_titles}, mas falhou: {failed_titles}.",
        )

    total = sum(abs(float(bill.get("amount") or 0)) for bill, _ in paid)
    if len(paid) == 1:
        bill = paid[0][0]
        message = (
            f'✅ Conta "{bill.get("title")}" paga!\n'
            f"💰 Valor: {format_money(total)}\n"
            f"📝 Transação registrada em {format_date(ctx.today)}"
        )
    else:
        lines = [f"✅ {len(paid)} contas pagas!"]
        lines.extend(f"• {bill.get('title')}: {format_money(abs(float(bill.get('amount') or 0)))}" for bill, _ in paid)
        lines.append(f"💰 Total: {format_money(total)}")
        message = "\n".join(lines)
    return ActionResult(
        message=message,
        data={
            "paid_bill_ids": [bill["id"] for bill, _ in paid],
            "transaction_ids": [transaction["id"] for _, transaction in paid],
            "total": total,
        },
    )


def _group(bills: list[Dict[str, Any]]) -> Dict[str, Any]:
    one_off = [b for b in bills if not b.get("is_recurring")]
    recurring = [b for b in bills if b.get("is_recurring")]
    return {
        "one_off": one_off,
        "recurring": recurring,
        "one_off_total": sum(float(b.get("amount") or 0) for b in one_off),
        "recurring_total": sum(float(b.get("amount") or 0) for b in recurring),
        "total": sum(float(b.get("amount") or 0) for b in bills),
    }


def _bill_line(bill: Dict[str, Any], today: date) -> str:
    due = _bill_due(bill, today)
    band, days = urgency(due, today)
    line = (
        f"{_URGENCY_ICONS[band]} **{bill.get('title')}** - {format_money(float(bill.get('amount') or 0))} "
        f"- {format_date(due)} {_urgency_text(band, days)}"
    )
    if bill.get("is_recurring"):
        line += f" 🔄 {recurring_interval_text(bill.get('recurring_interval'))}"
    return line


def _render_section(title: str, group: Dict[str, Any], labels: tuple[str, str], total_label: str, today: date) -> list[str]:
    count = len(group["one_off"]) + len(group["recurring"])
    lines = [f"{title} ({count}):", ""]
    for label, key, total_key in ((labels[0], "one_off", "one_off_total"), (labels[1], "recurring", "recurring_total")):
        rows = group[key]
        if not rows:
            continue
        lines.append(f"{label} ({len(rows)}):")
        lines.extend(_bill_line(bill, today) for bill in rows)
        lines.append(f"Subtotal: {format_money(group[total_key])}")
        lines.append("")
    lines.append(f"💵 **{total_label}: {format_money(group['total'])}**")
    lines.append("")
    return lines


def list_bills(payload: ListBillsPayload, ctx: HandlerContext) -> ActionResult:
    open_bills = sorted(ctx.open_bills(), key=lambda b: _bill_due(b, ctx.today))
    if not open_bills:
        return ActionResult(
            message="✅ Parabéns! Você não tem contas pendentes no momento.",
            data={"payable": _group([]), "receivable": _group([])},
        )

    payable = _group([b for b in open_bills if b.get("type", "payable") == "payable"])
    receivable = _group([b for b in open_bills if b.get("type") == "receivable"])
    lines = ["📋 **SUAS CONTAS PENDENTES:**", ""]
    if payable["one_off"] or payable["recurring"]:
        lines.extend(
            _render_section(
                "💸 **CONTAS A PAGAR**",
                payable,
                ("📄 **Contas Únicas**", "🔄 **Contas Recorrentes**"),
                "TOTAL A PAGAR",
                ctx.today,
            )
        )
    if receivable["one_off"] or receivable["recurring"]:
        lines.extend(
            _render_section(
                "💰 **CONTAS A RECEBER**",
                receivable,
                ("📄 **Recebimentos Únicos**", "🔄 **Recebimentos Recorrentes**"),
                "TOTAL A RECEBER",
                ctx.today,
            )
        )
    lines.append("💡 Para pagar uma conta, diga: \"Paguei a conta de luz\".")
    lines.append("💡 Para pagar todas: \"Pagar todas as contas\".")
    return ActionResult(
        message="\n".join(lines).strip(),
        data={"payable": payable, "receivable": receivable},
    )
