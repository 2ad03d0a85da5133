import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from dataclasses import replace
from datetime import datetime

import pytest
from prinpos.cart import Cart, add_line, submit_order
from prinpos.domain import Item, LineConfig
from prinpos.payments import add_payment
from prinpos.service import CatalogService, OrderService


@pytest.fixture
def items():
    return (
        Item(id="i1", name="Banner Flexi", category="Banner", pricing_model="area", price=25000),
        Item(id="i2", name="Kartu Nama", category="Kartu Nama", pricing_model="fixed", price=35000),
        Item(id="i3", name="Banner Lama", category="Banner", pricing_model="area", price=20000, is_active=False),
    )


def make_order(total, deadline=None, status="awaiting_payment"):
    item = Item(id="i", name="Stiker", category="Stiker", pricing_model="fixed", price=total)
    order = submit_order(
        add_line(Cart(), item, LineConfig(quantity=1)),
        created_by="u1",
        branch_id="b1",
        business_id="org-1",
        deadline=deadline,
        now=datetime(2025, 1, 6, 10, 0),
    ).get_or_else(None)
    return replace(order, status=status)


def test_item_lookup_miss_is_nothing(items):
    svc = CatalogService(items)
    assert svc.item_by_id("i2").get_or_else(None).name == "Kartu Nama"
    assert svc.item_by_id("zzz").is_none()


def test_catalog_queries_skip_inactive(items):
    svc = CatalogService(items)
    assert [i.id for i in svc.items_by_category("banner")] == ["i1"]
    assert [i.id for i in svc.search("BANNER")] == ["i1"]
    assert svc.categories() == ("Banner", "Kartu Nama")


def test_order_lookup_miss_returns_defaults():
    svc = OrderService(())
    assert svc.order_by_id("ghost").is_none()
    assert svc.payment_history("ghost") == ()
    assert svc.status_logs("ghost") == ()
    assert svc.dp_status("ghost") == "none"
    assert svc.is_production_ready("ghost") is False


def test_outstanding_orders_and_total():
    unpaid = make_order(100_000)
    partial = add_payment(make_order(200_000), 50_000, "cash", "k").get_or_else(None)
    settled = add_payment(make_order(300_000), 300_000, "cash", "k").get_or_else(None)
    cancelled = make_order(400_000, status="cancelled")

    svc = OrderService((unpaid, partial, settled, cancelled))

    assert svc.outstanding_orders() == (unpaid, partial)
    assert svc.total_outstanding() == 100_000 + 150_000


def test_production_queue_sorted_by_deadline():
    late = make_order(1, deadline="2025-02-01", status="ready_production")
    soon = make_order(1, deadline="2025-01-10", status="in_progress")
    none = make_order(1, status="ready_production")
    waiting = make_order(1, status="pending_dp")

    queue = OrderService((late, none, waiting, soon)).production_queue()

    assert queue == (soon, late, none)


def test_order_by_number():
    order = make_order(1000)
    assert OrderService((order,)).order_by_number(order.order_number).get_or_else(None) == order


def test_top_items():
    orders = (make_order(5000), make_order(7000))
    assert OrderService(orders).top_items(1) == (("Stiker", 12000),)


def test_production_days_for_takes_longest_item(items):
    slow = replace(items[0], production_days=3)
    quick = replace(items[1], production_days=1)
    svc = CatalogService((slow, quick, items[2]))

    assert svc.production_days_for(["i1", "i2"]) == 3
    assert svc.production_days_for(["i3", "zzz"]) == 0
    assert svc.production_days_for([]) == 0
