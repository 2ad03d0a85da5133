import logging
from datetime import datetime
from typing import Optional, Tuple
from .domain import FinanceCategory, FinanceEntry
from .ftypes import Either, Maybe, Rejection
from .transforms import generate_id

logger = logging.getLogger(__name__)

FINANCE_TYPES = ("income", "expense")


# ============ Категории по умолчанию (удалить нельзя) ============

DEFAULT_INCOME_CATEGORIES: Tuple[FinanceCategory, ...] = (
    FinanceCategory("inc-order", "Order", "income", True),
    FinanceCategory("inc-jasa-desain", "Jasa Desain", "income", True),
    FinanceCategory("inc-jasa-lainnya", "Jasa Lainnya", "income", True),
    FinanceCategory("inc-lain-lain", "Lain-lain", "income", True),
)

DEFAULT_EXPENSE_CATEGORIES: Tuple[FinanceCategory, ...] = (
    FinanceCategory("exp-bahan-baku", "Bahan Baku", "expense", True),
    FinanceCategory("exp-operasional", "Operasional", "expense", True),
    FinanceCategory("exp-gaji", "Gaji", "expense", True),
    FinanceCategory("exp-sewa", "Sewa", "expense", True),
    FinanceCategory("exp-listrik-air", "Listrik & Air", "expense", True),
    FinanceCategory("exp-transportasi", "Transportasi", "expense", True),
    FinanceCategory("exp-marketing", "Marketing", "expense", True),
    FinanceCategory("exp-peralatan", "Peralatan", "expense", True),
    FinanceCategory("exp-lain-lain", "Lain-lain", "expense", True),
)

DEFAULT_CATEGORIES = DEFAULT_INCOME_CATEGORIES + DEFAULT_EXPENSE_CATEGORIES

ORDER_INCOME_CATEGORY = "Order"


# ============ Записи доходов/расходов ============


def add_entry(
    entries: Tuple[FinanceEntry, ...],
    type: str,
    amount: float,
    description: str,
    category: str,
    branch_id: str,
    created_by: str,
    note: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Either[Rejection, Tuple[Tuple[FinanceEntry, ...], FinanceEntry]]:
    """Right((новый кортеж записей, созданная запись)) или Left с причиной"""
    if type not in FINANCE_TYPES:
        return Either.reject("invalid_type", f"Unknown finance entry type '{type}'")
    if amount is None or amount <= 0:
        return Either.reject("invalid_amount", "Amount must be greater than zero")

    entry = FinanceEntry(
        id=generate_id(),
        type=type,
        amount=amount,
        description=description,
        category=category,
        branch_id=branch_id,
        created_by=created_by,
        created_at=(now or datetime.now()).isoformat(),
        note=note,
    )
    logger.info("Finance %s %.2f (%s) recorded by %s", type, amount, category, created_by)
    return Either.right((entries + (entry,), entry))


def delete_entry(entries: Tuple[FinanceEntry, ...], entry_id: str) -> Tuple[FinanceEntry, ...]:
    return tuple(filter(lambda e: e.id != entry_id, entries))


# ============ Реестр категорий ============


def get_categories(
    custom: Tuple[FinanceCategory, ...], type: str
) -> Tuple[FinanceCategory, ...]:
    """Сначала категории по умолчанию, затем пользовательские"""
    return tuple(c for c in DEFAULT_CATEGORIES + custom if c.type == type)


def category_names(custom: Tuple[FinanceCategory, ...], type: str) -> Tuple[str, ...]:
    return tuple(c.name for c in get_categories(custom, type))


def find_category(
    custom: Tuple[FinanceCategory, ...], name: str, type: str
) -> Maybe[FinanceCategory]:
    key = (name or "").strip().lower()
    return Maybe.from_optional(
        next((c for c in get_categories(custom, type) if c.name.lower() == key), None)
    )


def add_category(
    custom: Tuple[FinanceCategory, ...], name: str, type: str
) -> Either[Rejection, Tuple[Tuple[FinanceCategory, ...], FinanceCategory]]:
    """
    Добавляет пользовательскую категорию.
    Дубликат (без учёта регистра, в пределах типа) - возвращается существующая.
    """
    trimmed = (name or "").strip()
    if not trimmed:
        return Either.reject("invalid_name", "Category name cannot be empty")
    if type not in FINANCE_TYPES:
        return Either.reject("invalid_type", f"Unknown category type '{type}'")

    existing = find_category(custom, trimmed, type)
    if existing.is_some():
        return Either.right((custom, existing.get_or_else(None)))

    category = FinanceCategory(id=generate_id(), name=trimmed, type=type, is_default=False)
    return Either.right((custom + (category,), category))


def delete_category(
    custom: Tuple[FinanceCategory, ...], category_id: str
) -> Tuple[FinanceCategory, ...]:
    """Категории по умолчанию и неизвестные id не удаляются"""
    return tuple(c for c in custom if c.id != category_id or c.is_default)
