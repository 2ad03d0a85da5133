from functools import reduce
from typing import Iterable, Tuple
from .domain import Item, Order, PaymentRecord, StatusLog
from .ftypes import Maybe
from .lazy import iter_orders_by_day, lazy_top_items
from .payments import dp_status_of, is_production_ready
from .transforms import by_branch, by_item_category, by_payment_status, by_status


class CatalogService:
    """Фасад для чтения каталога (позиции приходят снимками, ядро их не меняет)"""

    def __init__(self, items: Tuple[Item, ...]):
        self.items = items

    def item_by_id(self, item_id: str) -> Maybe[Item]:
        return Maybe.from_optional(next((i for i in self.items if i.id == item_id), None))

    def active_items(self) -> Tuple[Item, ...]:
        return tuple(filter(lambda i: i.is_active, self.items))

    def items_by_category(self, category: str) -> Tuple[Item, ...]:
        return tuple(filter(by_item_category(category), self.active_items()))

    def search(self, text: str) -> Tuple[Item, ...]:
        """Поиск по названию и категории без учёта регистра"""
        needle = (text or "").strip().lower()
        return tuple(
            i
            for i in self.active_items()
            if needle in i.name.lower() or needle in i.category.lower()
        )

    def categories(self) -> Tuple[str, ...]:
        return tuple(sorted({i.category for i in self.items}))

    def production_days_for(self, item_ids: Iterable[str]) -> int:
        """Срок изготовления заказа - самый долгий срок среди его позиций"""
        days = (
            self.item_by_id(item_id).map(lambda i: i.production_days or 0).get_or_else(0)
            for item_id in item_ids
        )
        return max(days, default=0)


class OrderService:
    """Фасад для запросов по заказам"""

    def __init__(self, orders: Tuple[Order, ...]):
        self.orders = orders

    def order_by_id(self, order_id: str) -> Maybe[Order]:
        """Промах по id - Nothing, а не исключение"""
        return Maybe.from_optional(next((o for o in self.orders if o.id == order_id), None))

    def order_by_number(self, order_number: str) -> Maybe[Order]:
        return Maybe.from_optional(
            next((o for o in self.orders if o.order_number == order_number), None)
        )

    def orders_by_branch(self, branch_id: str) -> Tuple[Order, ...]:
        return tuple(filter(by_branch(branch_id), self.orders))

    def orders_by_status(self, *statuses: str) -> Tuple[Order, ...]:
        return tuple(filter(by_status(*statuses), self.orders))

    def orders_by_day(self, day: str) -> Tuple[Order, ...]:
        return tuple(iter_orders_by_day(self.orders, day))

    def outstanding_orders(self) -> Tuple[Order, ...]:
        """Неоплаченные и частично оплаченные (кроме отменённых)"""
        open_orders = filter(lambda o: o.status != "cancelled", self.orders)
        return tuple(filter(by_payment_status("unpaid", "partial"), open_orders))

    def total_outstanding(self) -> float:
        return reduce(lambda acc, o: acc + o.remaining_payment, self.outstanding_orders(), 0)

    def payment_history(self, order_id: str) -> Tuple[PaymentRecord, ...]:
        return self.order_by_id(order_id).map(lambda o: o.payments).get_or_else(())

    def status_logs(self, order_id: str) -> Tuple[StatusLog, ...]:
        return self.order_by_id(order_id).map(lambda o: o.status_logs).get_or_else(())

    def dp_status(self, order_id: str) -> str:
        return self.order_by_id(order_id).map(dp_status_of).get_or_else("none")

    def is_production_ready(self, order_id: str) -> bool:
        return self.order_by_id(order_id).map(is_production_ready).get_or_else(False)

    def production_queue(self) -> Tuple[Order, ...]:
        """Заказы для цеха: готовые к запуску и в работе, ближайший дедлайн первым"""
        queue = self.orders_by_status("ready_production", "in_progress")
        return tuple(sorted(queue, key=lambda o: (o.deadline is None, o.deadline or "")))

    def top_items(self, k: int = 5) -> Tuple[Tuple[str, float], ...]:
        return tuple(lazy_top_items(self.orders, k))
