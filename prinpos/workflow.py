import logging
from dataclasses import replace
from datetime import datetime, timedelta
from functools import reduce
from typing import Callable, Dict, FrozenSet, Optional, Tuple
from .config import EXPIRED_THRESHOLD_HOURS
from .domain import Order, StatusLog
from .ftypes import Either, Rejection
from .payments import add_payment, is_production_ready
from .transforms import generate_id

logger = logging.getLogger(__name__)


# ============ Граф статусов заказа ============

ORDER_STATUSES: Tuple[str, ...] = (
    "draft",
    "awaiting_payment",
    "pending_dp",
    "ready_production",
    "in_progress",
    "completed",
    "settled",
    "cancelled",
    "expired",
)

STATUS_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    "draft": frozenset({"awaiting_payment", "cancelled"}),
    "awaiting_payment": frozenset(
        {"pending_dp", "ready_production", "settled", "cancelled"}
    ),
    "pending_dp": frozenset({"ready_production", "cancelled", "expired"}),
    "ready_production": frozenset({"in_progress", "cancelled"}),
    "in_progress": frozenset({"completed", "cancelled"}),
    "completed": frozenset({"settled", "cancelled"}),
    "settled": frozenset(),
    "cancelled": frozenset(),
    "expired": frozenset({"pending_dp"}),
}

TERMINAL_STATUSES: FrozenSet[str] = frozenset(
    status for status, targets in STATUS_TRANSITIONS.items() if not targets
)


# ============ Бизнес-условия поверх графа (по целевому статусу) ============


def _guard_settled(order: Order) -> Optional[Rejection]:
    if order.remaining_payment > 0:
        return Rejection(
            "unpaid_balance",
            f"Cannot settle {order.order_number}: remaining payment {order.remaining_payment:.0f}",
        )
    return None


def _guard_ready_production(order: Order) -> Optional[Rejection]:
    if not is_production_ready(order):
        return Rejection(
            "dp_insufficient",
            f"{order.order_number} is not ready for production: down payment is {order.dp_status}",
        )
    return None


EDGE_GUARDS: Dict[str, Callable[[Order], Optional[Rejection]]] = {
    "settled": _guard_settled,
    "ready_production": _guard_ready_production,
}


def allowed_targets(status: str) -> FrozenSet[str]:
    return STATUS_TRANSITIONS.get(status, frozenset())


def check_transition(order: Order, to_status: str) -> Either[Rejection, Order]:
    """Right(order), если переход разрешён графом и условиями; иначе Left с причиной"""
    if to_status not in allowed_targets(order.status):
        return Either.reject(
            "illegal_transition",
            f"Illegal status transition: {order.status} -> {to_status}",
        )
    guard = EDGE_GUARDS.get(to_status)
    rejection = guard(order) if guard else None
    return Either.left(rejection) if rejection else Either.right(order)


def can_transition(order: Order, to_status: str) -> bool:
    return check_transition(order, to_status).is_right


def available_transitions(order: Order) -> Tuple[str, ...]:
    """Статусы, в которые заказ можно перевести прямо сейчас (для кнопок UI)"""
    return tuple(s for s in ORDER_STATUSES if can_transition(order, s))


# ============ Применение перехода ============


def _status_log(
    order: Order, to_status: str, changed_by: str, ts: str, note: Optional[str]
) -> StatusLog:
    return StatusLog(
        id=generate_id(),
        order_id=order.id,
        from_status=order.status,
        to_status=to_status,
        changed_by=changed_by,
        created_at=ts,
        note=note,
    )


def _moved(
    order: Order, to_status: str, changed_by: str, note: Optional[str], ts: str
) -> Order:
    stamps = {}
    if to_status == "completed":
        stamps["completed_at"] = ts
    if to_status == "settled":
        stamps["settled_at"] = ts
        stamps["settled_by"] = changed_by
    return replace(
        order,
        status=to_status,
        status_logs=order.status_logs
        + (_status_log(order, to_status, changed_by, ts, note),),
        updated_at=ts,
        **stamps,
    )


def apply_transition(
    order: Order,
    to_status: str,
    changed_by: str,
    note: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Either[Rejection, Order]:
    """
    Переводит заказ в новый статус и дописывает запись в журнал статусов.
    Запрещённый переход ничего не меняет и возвращает Left.
    """
    ts = (now or datetime.now()).isoformat()
    result = check_transition(order, to_status).map(
        lambda o: _moved(o, to_status, changed_by, note, ts)
    )
    if result.is_left:
        logger.warning("Rejected transition of %s: %s", order.order_number, result.value)
    else:
        logger.info(
            "Order %s: %s -> %s by %s", order.order_number, order.status, to_status, changed_by
        )
    return result


# ============ Автопереходы после оплаты ============


def _next_after_payment(order: Order) -> Optional[Tuple[str, str]]:
    """(целевой статус, заметка) или None"""
    dp_ok = order.dp_status in ("sufficient", "paid")
    if order.status == "completed" and order.payment_status == "paid":
        return "settled", "Paid off after completion"
    if order.status == "awaiting_payment":
        if order.payment_status == "paid":
            return "settled", "Paid in full"
        if dp_ok:
            return "ready_production", "Down payment sufficient"
        if order.dp_status == "insufficient":
            return "pending_dp", "Down payment insufficient"
    if order.status == "pending_dp" and dp_ok:
        return "ready_production", "Down payment sufficient"
    if order.status == "expired" and dp_ok:
        return "pending_dp", "Revived by down payment"
    return None


def advance_after_payment(
    order: Order, changed_by: str, now: Optional[datetime] = None
) -> Order:
    """
    Двигает заказ по разрешённым рёбрам, пока оплата это позволяет
    (expired -> pending_dp -> ready_production за одну оплату).
    """
    step = _next_after_payment(order)
    while step is not None:
        to_status, note = step
        moved = apply_transition(order, to_status, changed_by, note, now)
        if moved.is_left:
            break
        order = moved.value
        step = _next_after_payment(order)
    return order


def collect_payment(
    order: Order,
    amount: float,
    method: str,
    paid_by: str,
    note: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Either[Rejection, Order]:
    """Оплата + автопереход статуса"""
    return add_payment(order, amount, method, paid_by, note, now).map(
        lambda o: advance_after_payment(o, paid_by, now)
    )


# ============ Просрочка DP ============


def is_stale(order: Order, now: datetime, threshold_hours: float) -> bool:
    if order.status != "pending_dp":
        return False
    created = datetime.fromisoformat(order.created_at)
    return now - created >= timedelta(hours=threshold_hours)


def expire_stale_orders(
    orders: Tuple[Order, ...],
    now: Optional[datetime] = None,
    threshold_hours: float = EXPIRED_THRESHOLD_HOURS,
) -> Tuple[Order, ...]:
    """
    pending_dp старше порога -> expired (actor "system").
    Когда запускать проверку - решает вызывающий код.
    """
    now = now or datetime.now()
    note = f"Auto-expired: {threshold_hours:g} hours without sufficient down payment"

    def expire(acc: Tuple[Order, ...], order: Order) -> Tuple[Order, ...]:
        if not is_stale(order, now, threshold_hours):
            return acc + (order,)
        moved = apply_transition(order, "expired", "system", note, now)
        return acc + (moved.get_or_else(order),)

    return reduce(expire, orders, ())
