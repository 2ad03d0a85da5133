import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from datetime import datetime

import pytest
from prinpos.finance import (
    DEFAULT_EXPENSE_CATEGORIES,
    DEFAULT_INCOME_CATEGORIES,
    add_category,
    add_entry,
    category_names,
    delete_category,
    delete_entry,
    get_categories,
)


def new_entry(entries=(), **kwargs):
    defaults = dict(
        type="expense",
        amount=120_000,
        description="Tinta",
        category="Bahan Baku",
        branch_id="b1",
        created_by="owner",
        now=datetime(2025, 1, 6, 9, 0),
    )
    return add_entry(entries, **{**defaults, **kwargs})


def test_add_entry_appends_new_record():
    entries, entry = new_entry().get_or_else(None)

    assert entries == (entry,)
    assert entry.type == "expense"
    assert entry.created_at == "2025-01-06T09:00:00"


@pytest.mark.parametrize("amount", [0, -1])
def test_entry_amount_must_be_positive(amount):
    result = new_entry(amount=amount)
    assert result.is_left
    assert result.value.code == "invalid_amount"


def test_entry_type_must_be_known():
    assert new_entry(type="transfer").value.code == "invalid_type"


def test_delete_entry():
    entries, first = new_entry().get_or_else(None)
    entries, second = new_entry(entries, amount=5000).get_or_else(None)

    assert delete_entry(entries, first.id) == (second,)
    assert delete_entry(entries, "missing") == entries


# ============ Категории ============


def test_defaults_are_listed_first():
    assert get_categories((), "income") == DEFAULT_INCOME_CATEGORIES
    assert "Gaji" in category_names((), "expense")
    assert all(c.is_default for c in DEFAULT_EXPENSE_CATEGORIES)


def test_add_category_trims_and_appends():
    custom, cat = add_category((), "  Cetak Ulang ", "income").get_or_else(None)

    assert cat.name == "Cetak Ulang"
    assert not cat.is_default
    assert custom == (cat,)
    assert get_categories(custom, "income")[-1] == cat


def test_duplicate_name_returns_existing_case_insensitive():
    custom, cat = add_category((), "Parkir", "expense").get_or_else(None)

    again, same = add_category(custom, "PARKIR", "expense").get_or_else(None)
    default, existing = add_category(custom, "gaji", "expense").get_or_else(None)

    assert same == cat
    assert again == custom
    assert existing.id == "exp-gaji"
    assert default == custom


def test_same_name_allowed_for_other_type():
    custom, _ = add_category((), "Parkir", "expense").get_or_else(None)
    custom, cat = add_category(custom, "Parkir", "income").get_or_else(None)
    assert len(custom) == 2
    assert cat.type == "income"


def test_empty_category_name_is_rejected():
    assert add_category((), "   ", "income").is_left


def test_delete_category_only_removes_custom():
    custom, cat = add_category((), "Parkir", "expense").get_or_else(None)

    assert delete_category(custom, "exp-gaji") == custom
    assert delete_category(custom, cat.id) == ()
    assert "Gaji" in category_names(delete_category(custom, "exp-gaji"), "expense")
