import json
import random
import uuid
from dataclasses import asdict
from datetime import datetime
from typing import Callable, Optional, Tuple
from .domain import (
    Business,
    FinanceEntry,
    FinishingOption,
    Item,
    Order,
    OrderItem,
    PaymentRecord,
    StatusLog,
    TierPrice,
)


# ============ Идентификаторы и форматирование ============


def generate_id() -> str:
    return str(uuid.uuid4())


def generate_order_number(now: Optional[datetime] = None, rng=random) -> str:
    """ORD-ГГММДД-NNNN: дата + случайный 4-значный суффикс"""
    now = now or datetime.now()
    return f"ORD-{now:%y%m%d}-{rng.randint(0, 9999):04d}"



def format_idr(amount: float) -> str:
    """Форматирует сумму в рупиях: 1500000 -> 'Rp 1.500.000'"""
    rounded = int(round(amount))
    sign = "-" if rounded < 0 else ""
    return f"{sign}Rp {abs(rounded):,}".replace(",", ".")


# ============ Загрузка seed-данных ============


def _to_item(raw: dict) -> Item:
    data = dict(raw)
    data["tiers"] = tuple(TierPrice(**t) for t in data.get("tiers", []))
    data["finishing_options"] = tuple(
        FinishingOption(**f) for f in data.get("finishing_options", [])
    )
    data["material_options"] = tuple(data.get("material_options", []))
    return Item(**data)


def load_seed(
    path: str,
) -> Tuple[Tuple[Business, ...], Tuple[Item, ...], Tuple[FinanceEntry, ...]]:
    """Загружает seed.json и возвращает кортежи иммутабельных данных"""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    businesses = tuple(map(lambda b: Business(**b), data.get("businesses", [])))
    items = tuple(map(_to_item, data.get("items", [])))
    entries = tuple(map(lambda e: FinanceEntry(**e), data.get("finance_entries", [])))
    return businesses, items, entries


# ============ Сериализация заказа (граница хранилища) ============


def order_to_dict(order: Order) -> dict:
    return asdict(order)


def order_from_dict(data: dict) -> Order:
    """Обратное преобразование order_to_dict (списки -> кортежи)"""
    raw = dict(data)

    def _to_order_item(i: dict) -> OrderItem:
        return OrderItem(**{**i, "finishing": tuple(i.get("finishing", ()))})

    raw["items"] = tuple(_to_order_item(i) for i in raw.get("items", ()))
    raw["payments"] = tuple(PaymentRecord(**p) for p in raw.get("payments", ()))
    raw["status_logs"] = tuple(StatusLog(**s) for s in raw.get("status_logs", ()))
    return Order(**raw)


def dumps_orders(orders: Tuple[Order, ...]) -> str:
    return json.dumps([order_to_dict(o) for o in orders], ensure_ascii=False)


def loads_orders(text: str) -> Tuple[Order, ...]:
    return tuple(order_from_dict(o) for o in json.loads(text))


# ============ Замыкания-фильтры (HOF) ============


def by_status(*statuses: str) -> Callable[[Order], bool]:
    """Фильтр заказов по статусу"""
    return lambda o: o.status in statuses


def by_branch(branch_id: str) -> Callable[[Order], bool]:
    """Фильтр заказов по филиалу"""
    return lambda o: o.branch_id == branch_id


def by_payment_status(*statuses: str) -> Callable[[Order], bool]:
    return lambda o: o.payment_status in statuses


def by_item_category(category: str) -> Callable[[Item], bool]:
    """Фильтр товаров каталога по категории (без учёта регистра)"""
    return lambda i: (i.category or "").lower() == (category or "").lower()
