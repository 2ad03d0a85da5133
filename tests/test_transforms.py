import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import random
from datetime import datetime

from prinpos.domain import Item
from prinpos.transforms import by_item_category, format_idr, generate_order_number


def test_format_idr():
    assert format_idr(1500000) == "Rp 1.500.000"
    assert format_idr(999.6) == "Rp 1.000"
    assert format_idr(0) == "Rp 0"
    assert format_idr(-25000) == "-Rp 25.000"


def test_order_number_format():
    number = generate_order_number(datetime(2025, 3, 7), rng=random.Random(1))

    assert number.startswith("ORD-250307-")
    assert len(number.split("-")[2]) == 4


def test_category_filter_ignores_case():
    item = Item(id="i1", name="Banner", category="Banner", pricing_model="area", price=1)
    assert by_item_category("BANNER")(item)
    assert not by_item_category("Stiker")(item)
