import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from functools import reduce
from typing import Callable, Dict, Tuple
from .domain import Event, Item, Order
from .finance import add_category, add_entry, delete_category, delete_entry
from .ftypes import Either, Maybe, Rejection
from .workflow import apply_transition, collect_payment, expire_stale_orders

logger = logging.getLogger(__name__)

Handler = Callable[[Event, dict], Either[Rejection, dict]]


@dataclass(frozen=True)
class EventBus:
    """
    Иммутабельная шина команд.
    Обработчики - чистые функции: (Event, State) -> Either[Rejection, State].
    Отказ любого обработчика отменяет всю команду: состояние не меняется.
    """

    subscribers: Tuple[Tuple[str, Handler], ...] = ()

    def subscribe(self, event_name: str, handler: Handler) -> "EventBus":
        """Возвращает новую шину с добавленным подписчиком"""
        return EventBus(subscribers=self.subscribers + ((event_name, handler),))

    def publish(self, event: Event, state: dict) -> Either[Rejection, dict]:
        """Применяет подписчиков по очереди; первая же Left останавливает цепочку"""
        matching_handlers = tuple(
            handler for name, handler in self.subscribers if name == event.name
        )
        if not matching_handlers:
            return Either.reject("unknown_command", f"No handler for {event.name}")

        result = reduce(
            lambda acc, handler: acc.bind(lambda s: handler(event, s)),
            matching_handlers,
            Either.right(state),
        )
        if result.is_left:
            logger.warning("%s rejected: %s", event.name, result.value)
            return result
        return result.map(lambda s: {**s, "last_event": event.name})


# ============ Конструкторы событий ============


def create_event(name: str, payload: dict) -> Event:
    """Создаёт событие с автоматической меткой времени"""
    return Event(
        id=str(uuid.uuid4()),
        ts=datetime.now().isoformat(),
        name=name,
        payload=payload,
    )


def _event_time(event: Event) -> datetime:
    return event.payload.get("now") or datetime.fromisoformat(event.ts)


def _find_order(state: dict, order_id: str) -> Either[Rejection, Order]:
    return Maybe.from_optional(state["orders"].get(order_id)).to_either(
        Rejection("not_found", f"Order {order_id} not found")
    )


def _with_order(state: dict, order: Order) -> dict:
    return {**state, "orders": {**state["orders"], order.id: order}}


# ============ Заказы ============


def handle_place_order(event: Event, state: dict) -> Either[Rejection, dict]:
    """PLACE_ORDER: сохраняет заказ, собранный cart.submit_order"""
    order: Order = event.payload["order"]
    if order.id in state["orders"]:
        return Either.reject("duplicate", f"Order {order.order_number} already exists")
    return Either.right(_with_order(state, order))


def handle_add_payment(event: Event, state: dict) -> Either[Rejection, dict]:
    """ADD_PAYMENT: оплата + автопереход статуса"""
    p = event.payload
    return (
        _find_order(state, p.get("order_id"))
        .bind(
            lambda order: collect_payment(
                order,
                p.get("amount"),
                p.get("method", "cash"),
                p.get("paid_by", "unknown"),
                p.get("note"),
                _event_time(event),
            )
        )
        .map(lambda order: _with_order(state, order))
    )


def handle_change_status(event: Event, state: dict) -> Either[Rejection, dict]:
    p = event.payload
    return (
        _find_order(state, p.get("order_id"))
        .bind(
            lambda order: apply_transition(
                order,
                p.get("to_status"),
                p.get("changed_by", "unknown"),
                p.get("note"),
                _event_time(event),
            )
        )
        .map(lambda order: _with_order(state, order))
    )


def handle_expire_stale(event: Event, state: dict) -> Either[Rejection, dict]:
    """EXPIRE_STALE: payload может задать threshold_hours"""
    kwargs = {"now": _event_time(event)}
    if "threshold_hours" in event.payload:
        kwargs["threshold_hours"] = event.payload["threshold_hours"]
    swept = expire_stale_orders(tuple(state["orders"].values()), **kwargs)
    return Either.right({**state, "orders": {o.id: o for o in swept}})


# ============ Каталог ============


def handle_upsert_item(event: Event, state: dict) -> Either[Rejection, dict]:
    item: Item = event.payload["item"]
    return Either.right({**state, "items": {**state["items"], item.id: item}})


# ============ Финансы ============


def handle_add_finance_entry(event: Event, state: dict) -> Either[Rejection, dict]:
    p = event.payload
    entries = tuple(state["finance_entries"].values())
    return add_entry(
        entries,
        p.get("type"),
        p.get("amount"),
        p.get("description", ""),
        p.get("category", ""),
        p.get("branch_id", ""),
        p.get("created_by", "unknown"),
        p.get("note"),
        _event_time(event),
    ).map(
        lambda res: {**state, "finance_entries": {e.id: e for e in res[0]}}
    )


def handle_delete_finance_entry(event: Event, state: dict) -> Either[Rejection, dict]:
    entries = tuple(state["finance_entries"].values())
    kept = delete_entry(entries, event.payload.get("entry_id"))
    return Either.right({**state, "finance_entries": {e.id: e for e in kept}})


def handle_add_finance_category(event: Event, state: dict) -> Either[Rejection, dict]:
    p = event.payload
    return add_category(state["finance_categories"], p.get("name"), p.get("type")).map(
        lambda res: {**state, "finance_categories": res[0]}
    )


def handle_delete_finance_category(event: Event, state: dict) -> Either[Rejection, dict]:
    return Either.right(
        {
            **state,
            "finance_categories": delete_category(
                state["finance_categories"], event.payload.get("category_id")
            ),
        }
    )


# ============ Вспомогательные функции ============


COMMAND_HANDLERS: Dict[str, Handler] = {
    "PLACE_ORDER": handle_place_order,
    "ADD_PAYMENT": handle_add_payment,
    "CHANGE_STATUS": handle_change_status,
    "EXPIRE_STALE": handle_expire_stale,
    "UPSERT_ITEM": handle_upsert_item,
    "ADD_FINANCE_ENTRY": handle_add_finance_entry,
    "DELETE_FINANCE_ENTRY": handle_delete_finance_entry,
    "ADD_FINANCE_CATEGORY": handle_add_finance_category,
    "DELETE_FINANCE_CATEGORY": handle_delete_finance_category,
}


def create_pos_event_bus() -> EventBus:
    """Создаёт предконфигурированную шину команд кассы"""
    return reduce(
        lambda bus, pair: bus.subscribe(*pair), COMMAND_HANDLERS.items(), EventBus()
    )


def initial_state(items: Tuple[Item, ...] = (), entries: Tuple = ()) -> dict:
    """Начальное состояние: плоские коллекции по id"""
    return {
        "orders": {},
        "items": {i.id: i for i in items},
        "finance_entries": {e.id: e for e in entries},
        "finance_categories": (),
        "last_event": None,
    }


# ============ Композиция событий ============


def apply_events(
    bus: EventBus, events: Tuple[Event, ...], state: dict
) -> Either[Rejection, dict]:
    """
    Применяет последовательность команд; первая отклонённая прерывает цепочку
    """
    return reduce(
        lambda acc, e: acc.bind(lambda s: bus.publish(e, s)), events, Either.right(state)
    )
