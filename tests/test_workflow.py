import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from dataclasses import replace
from datetime import datetime, timedelta

import pytest
from prinpos.cart import Cart, add_line, submit_order
from prinpos.domain import Item, LineConfig
from prinpos.payments import add_payment
from prinpos.workflow import (
    ORDER_STATUSES,
    STATUS_TRANSITIONS,
    TERMINAL_STATUSES,
    apply_transition,
    available_transitions,
    can_transition,
    collect_payment,
    expire_stale_orders,
)

NOW = datetime(2025, 1, 6, 10, 0)


def make_order(status="awaiting_payment", payment_type="dp", total=1_000_000):
    item = Item(id="i1", name="Spanduk", category="Spanduk", pricing_model="fixed", price=total)
    order = submit_order(
        add_line(Cart(), item, LineConfig(quantity=1)),
        created_by="u1",
        branch_id="b1",
        business_id="org-1",
        payment_type=payment_type,
        now=NOW,
    ).get_or_else(None)
    return replace(order, status=status)


def paid(order, amount):
    return add_payment(order, amount, "cash", "kasir-1", now=NOW).get_or_else(None)


# ============ Граф ============


def test_terminal_statuses():
    assert TERMINAL_STATUSES == frozenset({"settled", "cancelled"})


@pytest.mark.parametrize("terminal", ["settled", "cancelled"])
def test_terminal_states_have_no_way_out(terminal):
    order = paid(make_order(status=terminal), 1_000_000) if terminal == "settled" else make_order(status=terminal)
    assert all(not can_transition(order, to) for to in ORDER_STATUSES)


def test_transitions_outside_table_are_rejected():
    order = make_order(status="draft")
    result = apply_transition(order, "in_progress", "u1")

    assert result.is_left
    assert result.value.code == "illegal_transition"


def test_expired_only_reachable_from_pending_dp():
    sources = {s for s, targets in STATUS_TRANSITIONS.items() if "expired" in targets}
    assert sources == {"pending_dp"}
    assert STATUS_TRANSITIONS["expired"] == frozenset({"pending_dp"})


# ============ Условия на рёбрах ============


def test_settlement_requires_zero_balance():
    order = paid(make_order(status="completed"), 950_000)

    assert order.remaining_payment == 50_000
    assert "settled" in STATUS_TRANSITIONS["completed"]
    assert not can_transition(order, "settled")
    assert apply_transition(order, "settled", "u1").value.code == "unpaid_balance"

    settled_ok = paid(order, 50_000)
    assert can_transition(settled_ok, "settled")


def test_ready_production_requires_sufficient_dp():
    order = paid(make_order(status="pending_dp"), 100_000)

    assert order.dp_status == "insufficient"
    assert not can_transition(order, "ready_production")
    assert apply_transition(order, "ready_production", "u1").value.code == "dp_insufficient"

    assert can_transition(paid(order, 400_000), "ready_production")


def test_available_transitions_respects_guards():
    order = make_order(status="awaiting_payment")
    assert available_transitions(order) == ("pending_dp", "cancelled")


# ============ Применение ============


def test_apply_transition_logs_and_stamps():
    order = make_order(status="in_progress")
    done = apply_transition(order, "completed", "produksi-1", "Selesai cetak", now=NOW).get_or_else(None)

    assert done.status == "completed"
    assert done.completed_at == NOW.isoformat()
    log = done.status_logs[-1]
    assert (log.from_status, log.to_status, log.changed_by, log.note) == (
        "in_progress",
        "completed",
        "produksi-1",
        "Selesai cetak",
    )
    assert len(done.status_logs) == len(order.status_logs) + 1


def test_rejected_transition_leaves_order_untouched():
    order = make_order(status="draft")
    result = apply_transition(order, "settled", "u1")
    assert result.is_left
    assert order.status == "draft"


def test_settled_stamps_actor():
    order = paid(make_order(status="completed"), 1_000_000)
    order = replace(order, status="completed")
    settled = apply_transition(order, "settled", "kasir-2", now=NOW).get_or_else(None)

    assert settled.settled_by == "kasir-2"
    assert settled.settled_at == NOW.isoformat()


# ============ Автопереходы после оплаты ============


def collect(order, amount):
    return collect_payment(order, amount, "transfer", "kasir-1", now=NOW).get_or_else(None)


def test_insufficient_dp_moves_to_pending_dp():
    assert collect(make_order(), 200_000).status == "pending_dp"


def test_sufficient_dp_moves_to_ready_production():
    assert collect(make_order(), 600_000).status == "ready_production"


def test_full_payment_from_awaiting_payment_settles():
    order = collect(make_order(), 1_000_000)
    assert order.status == "settled"
    assert order.settled_by == "kasir-1"


def test_pending_dp_topped_up_becomes_ready():
    order = collect(make_order(), 200_000)
    assert collect(order, 300_000).status == "ready_production"


def test_paying_off_completed_order_settles_it():
    order = collect(make_order(), 500_000)
    order = apply_transition(order, "in_progress", "p1").get_or_else(None)
    order = apply_transition(order, "completed", "p1").get_or_else(None)

    assert collect(order, 500_000).status == "settled"


def test_expired_order_revived_through_pending_dp():
    order = make_order(status="expired")
    revived = collect(order, 500_000)

    assert revived.status == "ready_production"
    assert [log.to_status for log in revived.status_logs[-2:]] == ["pending_dp", "ready_production"]


def test_in_progress_order_status_not_changed_by_payment():
    order = collect(make_order(), 500_000)
    order = apply_transition(order, "in_progress", "p1").get_or_else(None)
    assert collect(order, 100_000).status == "in_progress"


# ============ Просрочка ============


def test_expire_stale_orders_only_touches_old_pending_dp():
    stale = make_order(status="pending_dp")
    fresh = replace(make_order(status="pending_dp"), created_at=(NOW + timedelta(hours=20)).isoformat())
    other = make_order(status="ready_production")

    swept = expire_stale_orders((stale, fresh, other), now=NOW + timedelta(hours=30), threshold_hours=24)

    assert [o.status for o in swept] == ["expired", "pending_dp", "ready_production"]
    assert swept[0].status_logs[-1].changed_by == "system"
