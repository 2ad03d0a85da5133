import logging
from dataclasses import replace
from datetime import datetime
from enum import Enum
from typing import Optional
from .config import MIN_DP_PERCENT
from .domain import Order, PaymentRecord
from .ftypes import Either, Rejection
from .transforms import generate_id

logger = logging.getLogger(__name__)


class PaymentMethod(str, Enum):
    """Известные способы оплаты; всё остальное - OTHER (строка на записи сохраняется как есть)"""

    CASH = "cash"
    TRANSFER = "transfer"
    QRIS = "qris"
    E_WALLET = "e-wallet"
    OTHER = "other"


def parse_method(method: str) -> PaymentMethod:
    normalized = (method or "").strip().lower()
    return next(
        (m for m in PaymentMethod if m.value == normalized and m is not PaymentMethod.OTHER),
        PaymentMethod.OTHER,
    )


# ============ Производные статусы ============


def compute_payment_status(paid_amount: float, remaining: float) -> str:
    if remaining <= 0:
        return "paid"
    if paid_amount > 0:
        return "partial"
    return "unpaid"


def compute_dp_status(
    payment_type: str, total: float, paid_amount: float, min_dp_percent: float
) -> str:
    """
    full: paid или none.
    dp / installment: paid -> sufficient (>= min_dp_percent от total) -> insufficient -> none.
    """
    if payment_type == "full":
        return "paid" if paid_amount >= total else "none"
    if paid_amount >= total:
        return "paid"
    min_dp_amount = total * ((min_dp_percent or MIN_DP_PERCENT) / 100)
    if paid_amount >= min_dp_amount:
        return "sufficient"
    if paid_amount > 0:
        return "insufficient"
    return "none"


def min_dp_amount(order: Order) -> float:
    return order.total * ((order.min_dp_percent or MIN_DP_PERCENT) / 100)


def dp_status_of(order: Order) -> str:
    return compute_dp_status(
        order.payment_type, order.total, order.paid_amount, order.min_dp_percent
    )


def is_production_ready(order: Order) -> bool:
    """Можно запускать производство: полная оплата или достаточный DP"""
    if order.payment_type == "full" and order.payment_status == "paid":
        return True
    return (order.dp_status or dp_status_of(order)) in ("sufficient", "paid")


def change_due(tendered: float, remaining: float) -> float:
    """Сдача для экрана кассы; в журнал не записывается"""
    return max(0, tendered - remaining)


# ============ Приём оплаты ============


def add_payment(
    order: Order,
    amount: float,
    method: str,
    paid_by: str,
    note: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Either[Rejection, Order]:
    """
    Добавляет PaymentRecord и пересчитывает paid/remaining/статусы.
    В paid_amount записывается вся внесённая сумма, переплата даёт remaining = 0.
    """
    if amount is None or amount <= 0:
        logger.warning("Rejected payment of %s for order %s", amount, order.order_number)
        return Either.reject("invalid_amount", "Payment amount must be greater than zero")
    if order.status == "cancelled":
        logger.warning("Rejected payment for cancelled order %s", order.order_number)
        return Either.reject("order_cancelled", "Cannot take a payment for a cancelled order")

    ts = (now or datetime.now()).isoformat()
    record = PaymentRecord(
        id=generate_id(),
        order_id=order.id,
        amount=amount,
        method=method,
        paid_by=paid_by,
        created_at=ts,
        note=note,
    )
    paid_amount = order.paid_amount + amount
    remaining = max(0, order.total - paid_amount)

    updated = replace(
        order,
        payments=order.payments + (record,),
        paid_amount=paid_amount,
        remaining_payment=remaining,
        payment_status=compute_payment_status(paid_amount, remaining),
        dp_status=compute_dp_status(
            order.payment_type, order.total, paid_amount, order.min_dp_percent
        ),
        payment_method=method or order.payment_method,
        updated_at=ts,
    )
    logger.info(
        "Payment %.2f (%s) on %s: paid %.2f, remaining %.2f, dp %s",
        amount,
        parse_method(method).value,
        order.order_number,
        paid_amount,
        remaining,
        updated.dp_status,
    )
    return Either.right(updated)
