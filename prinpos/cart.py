import logging
from dataclasses import dataclass, replace
from datetime import datetime
from functools import reduce
from typing import Optional, Tuple
from .config import DEFAULT_TAX_RATE, MIN_DP_PERCENT
from .domain import Business, ConfiguredLineItem, Item, LineConfig, Order, OrderItem, StatusLog
from .ftypes import Either, Rejection
from .payments import compute_dp_status, compute_payment_status
from .pricing import configure_line, line_config_of
from .transforms import generate_id, generate_order_number

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Cart:
    """
    Черновик заказа: упорядоченные позиции + ставка налога бизнеса.
    Живёт только пока кассир собирает заказ.
    """

    lines: Tuple[ConfiguredLineItem, ...] = ()
    tax_rate: float = 0.0


def tax_rate_for(business: Optional[Business], default_rate: float = DEFAULT_TAX_RATE) -> float:
    """0, если у бизнеса выключен PPN"""
    if business is None or not business.tax_enabled:
        return 0.0
    return business.tax_rate if business.tax_rate is not None else default_rate


# ============ Операции с корзиной (чистые функции) ============


def add_line(cart: Cart, item: Item, config: LineConfig = LineConfig()) -> Cart:
    """Новая позиция; одна и та же позиция каталога может встречаться несколько раз"""
    return replace(cart, lines=cart.lines + (configure_line(item, config),))


def remove_line(cart: Cart, local_id: str) -> Cart:
    return replace(
        cart, lines=tuple(filter(lambda line: line.local_id != local_id, cart.lines))
    )


def update_line(cart: Cart, local_id: str, **patch) -> Cart:
    """
    Меняет поля конфигурации позиции и пересчитывает её цены.
    Неизвестный local_id - корзина без изменений.
    Количество <= 0 удаляет позицию.
    """
    quantity = patch.get("quantity")
    if quantity is not None and quantity <= 0:
        return remove_line(cart, local_id)

    def reconfigure(line: ConfiguredLineItem) -> ConfiguredLineItem:
        config = replace(line_config_of(line), **patch)
        # ручная цена и процентная скидка взаимоисключающие
        if "discount_percent" in patch and "override_unit_price" not in patch:
            config = replace(config, override_unit_price=None)
        return configure_line(line.item, config)

    return replace(
        cart,
        lines=tuple(
            reconfigure(line) if line.local_id == local_id else line
            for line in cart.lines
        ),
    )


def clear_cart(cart: Cart) -> Cart:
    return replace(cart, lines=())


# ============ Итоги ============


def cart_subtotal(cart: Cart) -> float:
    return reduce(lambda acc, line: acc + line.subtotal, cart.lines, 0)


def cart_tax(cart: Cart) -> float:
    return cart_subtotal(cart) * cart.tax_rate


def cart_total(cart: Cart) -> float:
    return cart_subtotal(cart) + cart_tax(cart)


def totals_of(items: Tuple[OrderItem, ...], tax_rate: float) -> Tuple[float, float, float]:
    """(subtotal, tax, total) по снимкам позиций"""
    subtotal = reduce(lambda acc, i: acc + i.subtotal, items, 0)
    tax = subtotal * tax_rate
    return subtotal, tax, subtotal + tax


def recompute_totals(order: Order) -> Order:
    """Итоги и статусы оплаты заказа всегда выводятся из items и paid_amount"""
    subtotal, tax, total = totals_of(order.items, order.tax_rate)
    remaining = max(0, total - order.paid_amount)
    return replace(
        order,
        subtotal=subtotal,
        tax=tax,
        total=total,
        remaining_payment=remaining,
        payment_status=compute_payment_status(order.paid_amount, remaining),
        dp_status=compute_dp_status(
            order.payment_type, total, order.paid_amount, order.min_dp_percent
        ),
    )


# ============ Оформление заказа ============


def snapshot_line(line: ConfiguredLineItem) -> OrderItem:
    """Замороженная копия позиции: правки каталога не меняют размещённый заказ"""
    item = line.item
    return OrderItem(
        item_id=item.id,
        name=item.name,
        category=item.category,
        price=line.unit_price,
        original_price=item.price,
        quantity=line.quantity,
        subtotal=line.subtotal,
        width=line.width,
        height=line.height,
        area=line.area if item.pricing_model == "area" else None,
        price_per_sqm=item.price_per_sqm if item.pricing_model == "area" else None,
        material=line.material,
        finishing=line.finishing,
        discount_percent=line.discount_percent,
        finishing_cost=line.finishing_cost,
        setup_fee=line.setup_fee,
        notes=line.notes,
    )


def submit_order(
    cart: Cart,
    *,
    created_by: str,
    branch_id: str,
    business_id: str,
    as_draft: bool = False,
    payment_type: str = "dp",
    min_dp_percent: float = MIN_DP_PERCENT,
    customer_name: Optional[str] = None,
    customer_id: Optional[str] = None,
    deadline: Optional[str] = None,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Either[Rejection, Order]:
    """
    Корзина -> Either[Rejection, Order]
    Черновик получает статус draft, отправленный кассиру - awaiting_payment.
    """
    if not cart.lines:
        return Either.reject("empty_cart", "Cannot submit an order without items")
    if payment_type not in ("full", "dp", "installment"):
        return Either.reject("invalid_payment_type", f"Unknown payment type '{payment_type}'")

    now = now or datetime.now()
    ts = now.isoformat()
    order_id = generate_id()
    status = "draft" if as_draft else "awaiting_payment"
    items = tuple(map(snapshot_line, cart.lines))
    subtotal, tax, total = totals_of(items, cart.tax_rate)

    order = Order(
        id=order_id,
        order_number=generate_order_number(now),
        items=items,
        subtotal=subtotal,
        tax=tax,
        total=total,
        tax_rate=cart.tax_rate,
        payment_type=payment_type,
        payment_status="unpaid",
        paid_amount=0,
        remaining_payment=total,
        min_dp_percent=min_dp_percent,
        dp_status="none",
        payments=(),
        status=status,
        status_logs=(
            StatusLog(
                id=generate_id(),
                order_id=order_id,
                from_status=None,
                to_status=status,
                changed_by=created_by,
                created_at=ts,
                note="Order created",
            ),
        ),
        branch_id=branch_id,
        business_id=business_id,
        created_by=created_by,
        created_at=ts,
        updated_at=ts,
        customer_name=customer_name or "Walk-in Customer",
        customer_id=customer_id,
        deadline=deadline,
        notes=notes,
    )
    logger.info("Order %s submitted as %s, total %.2f", order.order_number, status, total)
    return Either.right(order)
