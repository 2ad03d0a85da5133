from dataclasses import dataclass
from functools import reduce
from typing import Callable, Dict, Iterable, List, Optional, Tuple
from prinpos.domain import FinanceEntry, Order
from prinpos.finance import ORDER_INCOME_CATEGORY
from prinpos.lazy import iter_reportable_payments
from prinpos.payments import parse_method


@dataclass(frozen=True)
class LedgerRow:
    """Строка финансового журнала: платёж по заказу или ручная запись"""

    id: str
    type: str  # "income" | "expense"
    category: str
    amount: float
    description: str
    date: str  # ISO
    branch_id: str
    source: str  # "order" | "manual"
    method: Optional[str] = None
    reference: Optional[str] = None  # номер заказа


# ============ Построение строк (только чтение) ============


def payment_rows(orders: Iterable[Order]) -> Tuple[LedgerRow, ...]:
    """Каждый платёж неотменённого/непросроченного заказа - строка дохода"""
    return tuple(
        LedgerRow(
            id=payment.id,
            type="income",
            category=ORDER_INCOME_CATEGORY,
            amount=payment.amount,
            description=f"Payment {order.order_number}",
            date=payment.created_at,
            branch_id=order.branch_id,
            source="order",
            method=payment.method,
            reference=order.order_number,
        )
        for order, payment in iter_reportable_payments(orders)
    )


def entry_rows(entries: Iterable[FinanceEntry]) -> Tuple[LedgerRow, ...]:
    return tuple(
        LedgerRow(
            id=e.id,
            type=e.type,
            category=e.category,
            amount=e.amount,
            description=e.description,
            date=e.created_at,
            branch_id=e.branch_id,
            source="manual",
        )
        for e in entries
    )


def ledger_rows(
    orders: Iterable[Order], entries: Iterable[FinanceEntry]
) -> Tuple[LedgerRow, ...]:
    """Единый журнал, по дате"""
    rows = payment_rows(orders) + entry_rows(entries)
    return tuple(sorted(rows, key=lambda r: r.date))


# ============ Фильтры (HOF) ============


def by_branch(branch_id: Optional[str]) -> Callable[[LedgerRow], bool]:
    """None - все филиалы"""
    return lambda r: branch_id is None or r.branch_id == branch_id


def by_date_range(
    start_date: Optional[str], end_date: Optional[str]
) -> Callable[[LedgerRow], bool]:
    """Диапазон ГГГГ-ММ-ДД, обе границы включительно; None - без границы"""
    return lambda r: (start_date is None or start_date <= r.date[:10]) and (
        end_date is None or r.date[:10] <= end_date
    )


def filter_rows(
    rows: Iterable[LedgerRow],
    branch_id: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> Tuple[LedgerRow, ...]:
    in_branch = by_branch(branch_id)
    in_range = by_date_range(start_date, end_date)
    return tuple(r for r in rows if in_branch(r) and in_range(r))


def split_rows(
    rows: Iterable[LedgerRow],
) -> Tuple[Tuple[LedgerRow, ...], Tuple[LedgerRow, ...]]:
    """(доходы, расходы)"""
    rows = tuple(rows)
    return (
        tuple(r for r in rows if r.type == "income"),
        tuple(r for r in rows if r.type == "expense"),
    )


# ============ Агрегаты ============


def total_amount(rows: Iterable[LedgerRow]) -> float:
    return reduce(lambda acc, r: acc + r.amount, rows, 0)


def net_profit(rows: Iterable[LedgerRow]) -> float:
    income, expense = split_rows(rows)
    return total_amount(income) - total_amount(expense)


def totals_by_category(rows: Iterable[LedgerRow]) -> Dict[str, float]:
    """
    Суммы по категориям (иммутабельная агрегация через reduce)
    """

    def accumulate(acc: dict, row: LedgerRow) -> dict:
        return {**acc, row.category: acc.get(row.category, 0) + row.amount}

    return reduce(accumulate, rows, {})


def income_by_method(rows: Iterable[LedgerRow]) -> Dict[str, float]:
    """Доход от заказов по способу оплаты (неизвестные способы - "other")"""

    def accumulate(acc: dict, row: LedgerRow) -> dict:
        if row.source != "order":
            return acc
        key = parse_method(row.method).value
        return {**acc, key: acc.get(key, 0) + row.amount}

    return reduce(accumulate, rows, {})


def receivables_summary(orders: Iterable[Order]) -> dict:
    """Дебиторка: сколько клиенты ещё должны"""
    outstanding = tuple(
        o
        for o in orders
        if o.status not in ("cancelled", "expired") and o.remaining_payment > 0
    )
    return {
        "orders": len(outstanding),
        "total_remaining": reduce(lambda acc, o: acc + o.remaining_payment, outstanding, 0),
        "by_dp_status": reduce(
            lambda acc, o: {**acc, o.dp_status: acc.get(o.dp_status, 0) + 1},
            outstanding,
            {},
        ),
    }


# ============ Композитный отчёт ============


def finance_report(
    orders: Tuple[Order, ...],
    entries: Tuple[FinanceEntry, ...],
    branch_id: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> dict:
    """
    Полный финансовый отчёт за период (композиция всех метрик)
    """
    rows = filter_rows(ledger_rows(orders, entries), branch_id, start_date, end_date)
    income, expense = split_rows(rows)
    return {
        "rows": rows,
        "income_rows": income,
        "expense_rows": expense,
        "total_income": total_amount(income),
        "total_expense": total_amount(expense),
        "net_profit": total_amount(income) - total_amount(expense),
        "income_by_category": totals_by_category(income),
        "expense_by_category": totals_by_category(expense),
        "income_by_method": income_by_method(income),
    }


def rows_as_records(rows: Iterable[LedgerRow]) -> List[dict]:
    """Для st.dataframe"""
    return [
        {
            "date": r.date[:16].replace("T", " "),
            "type": r.type,
            "category": r.category,
            "description": r.description,
            "amount": r.amount,
            "branch": r.branch_id,
        }
        for r in rows
    ]
