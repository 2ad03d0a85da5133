from typing import Iterator, Iterable, Tuple
from collections import defaultdict
from .domain import Order, PaymentRecord

# заказы в этих статусах не дают дохода в отчётах
NON_REPORTABLE_STATUSES = ("cancelled", "expired")


## ленивый генератор, возвращает заказы созданные в указанный день (ГГГГ-ММ-ДД)
def iter_orders_by_day(orders: Iterable[Order], day: str) -> Iterator[Order]:
    for order in orders:
        if order.created_at.startswith(day):
            yield order


## платежи всех заказов, кроме отменённых и просроченных, по одному
def iter_reportable_payments(
    orders: Iterable[Order],
) -> Iterator[Tuple[Order, PaymentRecord]]:
    for order in orders:
        if order.status in NON_REPORTABLE_STATUSES:
            continue
        for payment in order.payments:
            yield order, payment


## лениво считает топ-k позиций каталога по выручке из снимков заказов
def lazy_top_items(orders: Iterable[Order], k: int) -> Iterator[Tuple[str, float]]:
    totals = defaultdict(float)
    for order in orders:
        if order.status in NON_REPORTABLE_STATUSES:
            continue
        for item in order.items:
            totals[item.name] += item.subtotal

    # сортировка только в конце
    for name, total in sorted(totals.items(), key=lambda x: x[1], reverse=True)[:k]:
        yield (name, total)
