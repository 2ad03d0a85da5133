from dataclasses import dataclass
from typing import Optional, Tuple, Dict


# Все денежные суммы в рупиях (float: площадь и скидки дают дробные значения)


@dataclass(frozen=True)
class TierPrice:
    min_qty: int
    max_qty: Optional[int]  # None = без верхней границы
    price: float


@dataclass(frozen=True)
class FinishingOption:
    id: str
    name: str
    price: float
    pricing_type: str  # "per_unit" | "per_area" | "flat"


@dataclass(frozen=True)
class Item:
    id: str
    name: str
    category: str
    pricing_model: str  # "fixed" | "area" | "tiered"
    price: float
    tiers: Tuple[TierPrice, ...] = ()
    price_per_sqm: Optional[float] = None
    unit: str = "pcs"
    area_unit: str = "m"  # "m" | "cm"
    finishing_options: Tuple[FinishingOption, ...] = ()
    material_options: Tuple[str, ...] = ()
    min_order: int = 1
    setup_fee: float = 0
    max_discount: float = 0
    is_active: bool = True
    default_width: Optional[float] = None
    default_height: Optional[float] = None
    description: str = ""
    production_days: Optional[int] = None


@dataclass(frozen=True)
class Business:
    id: str
    name: str
    tax_enabled: bool = False
    tax_rate: Optional[float] = None  # доля, 0.11 = 11%


@dataclass(frozen=True)
class LineConfig:
    """Выбор кассира для позиции: количество, размеры, материал, отделка, скидка"""

    quantity: Optional[int] = None
    width: Optional[float] = None
    height: Optional[float] = None
    material: Optional[str] = None
    finishing: Tuple[str, ...] = ()
    discount_percent: float = 0
    override_unit_price: Optional[float] = None
    notes: Optional[str] = None
    local_id: Optional[str] = None


@dataclass(frozen=True)
class ConfiguredLineItem:
    local_id: str
    item: Item
    quantity: int
    width: Optional[float]
    height: Optional[float]
    area: float
    material: Optional[str]
    finishing: Tuple[str, ...]
    discount_percent: float
    override_unit_price: Optional[float]
    notes: Optional[str]
    # вычисляемые поля, кэшируются при каждой записи
    unit_price: float
    finishing_cost: float
    setup_fee: float
    subtotal: float


@dataclass(frozen=True)
class OrderItem:
    """Снимок позиции заказа: не ссылается на живой Item каталога"""

    item_id: str
    name: str
    category: str
    price: float
    original_price: float
    quantity: int
    subtotal: float
    width: Optional[float] = None
    height: Optional[float] = None
    area: Optional[float] = None
    price_per_sqm: Optional[float] = None
    material: Optional[str] = None
    finishing: Tuple[str, ...] = ()
    discount_percent: float = 0
    finishing_cost: float = 0
    setup_fee: float = 0
    notes: Optional[str] = None


@dataclass(frozen=True)
class PaymentRecord:
    id: str
    order_id: str
    amount: float
    method: str  # cash, transfer, qris, e-wallet, ...
    paid_by: str
    created_at: str
    note: Optional[str] = None


@dataclass(frozen=True)
class StatusLog:
    id: str
    order_id: str
    from_status: Optional[str]  # None = создание заказа
    to_status: str
    changed_by: str
    created_at: str
    note: Optional[str] = None


@dataclass(frozen=True)
class Order:
    id: str
    order_number: str
    items: Tuple[OrderItem, ...]
    subtotal: float
    tax: float
    total: float
    tax_rate: float
    payment_type: str  # "full" | "dp" | "installment"
    payment_status: str  # "unpaid" | "partial" | "paid"
    paid_amount: float
    remaining_payment: float
    min_dp_percent: float
    dp_status: str  # "none" | "insufficient" | "sufficient" | "paid"
    payments: Tuple[PaymentRecord, ...]
    status: str
    status_logs: Tuple[StatusLog, ...]
    branch_id: str
    business_id: str
    created_by: str
    created_at: str
    updated_at: str
    customer_name: str = "Walk-in Customer"
    customer_id: Optional[str] = None
    deadline: Optional[str] = None
    completed_at: Optional[str] = None
    settled_at: Optional[str] = None
    settled_by: Optional[str] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class FinanceEntry:
    id: str
    type: str  # "income" | "expense"
    amount: float
    description: str
    category: str
    branch_id: str
    created_by: str
    created_at: str
    note: Optional[str] = None


@dataclass(frozen=True)
class FinanceCategory:
    id: str
    name: str
    type: str  # "income" | "expense"
    is_default: bool = False


@dataclass(frozen=True)
class Event:
    id: str
    ts: str
    name: str
    payload: Dict
