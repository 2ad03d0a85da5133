from functools import reduce
from typing import Iterable, Optional, Tuple
from .domain import ConfiguredLineItem, FinishingOption, Item, LineConfig, TierPrice
from .ftypes import Maybe
from .transforms import generate_id

# Чистые функции расчёта цены. Ничего не бросают: недостающие поля и нулевая
# площадь дают нулевой вклад, чтобы UI мог показывать неполную конфигурацию.


# ============ Цена за единицу ============


def tier_for_quantity(tiers: Iterable[TierPrice], quantity: int) -> Maybe[TierPrice]:
    """Первый тир, диапазон которого [min_qty, max_qty] содержит quantity"""
    found = next(
        (
            t
            for t in tiers
            if quantity >= t.min_qty and (t.max_qty is None or quantity <= t.max_qty)
        ),
        None,
    )
    return Maybe.from_optional(found)


def tiered_price(item: Item, quantity: int) -> float:
    """Цена тира; если ни один тир не подходит - базовая item.price"""
    return tier_for_quantity(item.tiers, quantity).map(lambda t: t.price).get_or_else(
        item.price or 0
    )


def base_unit_price(item: Item, quantity: int) -> float:
    """Цена каталога до скидки (для area - цена за м²)"""
    if item.pricing_model == "area":
        return item.price_per_sqm or item.price or 0
    if item.pricing_model == "tiered":
        return tiered_price(item, quantity)
    return item.price or 0


def effective_unit_price(
    base: float, discount_percent: float = 0, override_unit_price: Optional[float] = None
) -> float:
    """
    Ручная цена (> 0) заменяет расчётную и отменяет скидку.
    Иначе base × (1 − discount/100); скидка не зажимается повторно.
    """
    if override_unit_price and override_unit_price > 0:
        return override_unit_price
    return base * (1 - (discount_percent or 0) / 100)


def line_area(item: Item, width: Optional[float], height: Optional[float]) -> float:
    if item.pricing_model != "area" or not width or not height:
        return 0
    return width * height


def _resolved_config(item: Item, config: LineConfig) -> Tuple[int, Optional[float], Optional[float]]:
    quantity = config.quantity or item.min_order or 1
    # 0 - явно введённый размер, умолчания только для None
    width = item.default_width if config.width is None else config.width
    height = item.default_height if config.height is None else config.height
    return quantity, width, height


def unit_price(item: Item, config: LineConfig) -> float:
    """Итоговая цена за единицу для конфигурации позиции"""
    quantity, _, _ = _resolved_config(item, config)
    return effective_unit_price(
        base_unit_price(item, quantity),
        config.discount_percent,
        config.override_unit_price,
    )


# ============ Отделка (finishing) ============


def finishing_option_cost(option: FinishingOption, area: float, quantity: int) -> float:
    if option.pricing_type == "per_unit":
        return option.price * quantity
    if option.pricing_type == "per_area":
        return option.price * (area or 0) * quantity
    if option.pricing_type == "flat":
        return option.price
    return 0


def finishing_cost(
    item: Item, selected: Iterable[str], area: float, quantity: int
) -> float:
    """
    Стоимость выбранной отделки. Уже включает умножение на quantity.
    Неизвестные названия пропускаются (каталог мог измениться после выбора).
    """
    options = {opt.name: opt for opt in item.finishing_options}
    matched = tuple(options[name] for name in selected if name in options)
    return reduce(
        lambda acc, opt: acc + finishing_option_cost(opt, area, quantity), matched, 0
    )


# ============ Позиция целиком ============


def line_subtotal(
    item: Item, price: float, area: float, quantity: int, finishing: float
) -> float:
    setup = item.setup_fee or 0
    if item.pricing_model == "area":
        return price * area * quantity + finishing + setup
    return price * quantity + finishing + setup


def configure_line(item: Item, config: LineConfig) -> ConfiguredLineItem:
    """Собирает позицию корзины с закэшированными ценами"""
    quantity, width, height = _resolved_config(item, config)
    area = line_area(item, width, height)
    finishing = tuple(config.finishing or ())
    has_override = bool(config.override_unit_price and config.override_unit_price > 0)

    price = unit_price(item, config)
    extras = finishing_cost(item, finishing, area, quantity)

    return ConfiguredLineItem(
        local_id=config.local_id or generate_id(),
        item=item,
        quantity=quantity,
        width=width,
        height=height,
        area=area,
        material=config.material,
        finishing=finishing,
        discount_percent=0 if has_override else (config.discount_percent or 0),
        override_unit_price=config.override_unit_price if has_override else None,
        notes=config.notes,
        unit_price=price,
        finishing_cost=extras,
        setup_fee=item.setup_fee or 0,
        subtotal=line_subtotal(item, price, area, quantity, extras),
    )


def line_config_of(line: ConfiguredLineItem) -> LineConfig:
    """Конфигурация, из которой можно пересобрать позицию"""
    return LineConfig(
        quantity=line.quantity,
        width=line.width,
        height=line.height,
        material=line.material,
        finishing=line.finishing,
        discount_percent=line.discount_percent,
        override_unit_price=line.override_unit_price,
        notes=line.notes,
        local_id=line.local_id,
    )
