import sys
import os
from dataclasses import replace
from datetime import date, timedelta

import streamlit as st

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from prinpos.cart import (
    Cart,
    add_line,
    remove_line,
    update_line,
    cart_subtotal,
    cart_tax,
    cart_total,
    clear_cart,
    submit_order,
    tax_rate_for,
)
from prinpos.config import load_settings, configure_logging
from prinpos.domain import LineConfig
from prinpos.finance import category_names
from prinpos.payments import change_due, min_dp_amount
from prinpos.pricing import configure_line
from prinpos.service import CatalogService, OrderService
from prinpos.store import create_pos_event_bus, create_event, initial_state
from prinpos.transforms import format_idr, load_seed
from prinpos.workflow import available_transitions
from Finance_Service.report import finance_report, receivables_summary, rows_as_records


# Оболочка владеет единственной изменяемой ссылкой на состояние (st.session_state).
# Все изменения идут командами через шину: (Event, State) -> Either[Rejection, State].


# ============ Кэширование данных ============
@st.cache_resource
def get_settings():
    settings = load_settings()
    configure_logging(settings)
    return settings


@st.cache_data
def get_data(path: str):
    return load_seed(path)


@st.cache_resource
def get_event_bus():
    return create_pos_event_bus()


# ============ Инициализация ============
st.set_page_config(
    page_title="PrinPOS",
    page_icon="🖨️",
    layout="wide",
    initial_sidebar_state="expanded",
)

settings = get_settings()
businesses, items, seed_entries = get_data(settings.seed_path)
bus = get_event_bus()

ACTOR_ID = "user-kasir"
BRANCH_ID = "branch-1"

if "pos_state" not in st.session_state:
    st.session_state.pos_state = initial_state(items, seed_entries)

if "business_id" not in st.session_state:
    st.session_state.business_id = businesses[0].id if businesses else "org-1"


def current_business():
    return next((b for b in businesses if b.id == st.session_state.business_id), None)


if "cart" not in st.session_state:
    st.session_state.cart = Cart(
        tax_rate=tax_rate_for(current_business(), settings.default_tax_rate)
    )


# ============ Вспомогательные функции ============
def dispatch(name: str, payload: dict) -> bool:
    """Публикует команду; отказ показывается тостом, состояние не меняется"""
    result = bus.publish(create_event(name, payload), st.session_state.pos_state)
    if result.is_left:
        st.error(f"❌ {result.value.reason}")
        return False
    st.session_state.pos_state = result.value
    return True


def all_orders():
    return tuple(st.session_state.pos_state["orders"].values())


def order_label(order) -> str:
    return f"{order.order_number} · {order.customer_name} · {format_idr(order.total)}"


# ============ HEADER ============
st.title("🖨️ PrinPOS: касса типографии")

# ============ SIDEBAR - Навигация ============
with st.sidebar:
    st.header("📂 Навигация")
    page = st.radio(
        "Раздел:",
        ["📊 Обзор", "🧾 Новый заказ", "💵 Касса", "🏭 Производство", "📑 Финансы"],
        label_visibility="collapsed",
    )
    st.divider()
    st.selectbox(
        "Бизнес",
        [b.id for b in businesses],
        format_func=lambda bid: next(b.name for b in businesses if b.id == bid),
        key="business_id",
    )


# ============ PAGE: ОБЗОР ============
if page == "📊 Обзор":
    orders_svc = OrderService(all_orders())

    col1, col2, col3, col4 = st.columns(4)
    with col1:
        st.metric("🧾 Заказы", len(orders_svc.orders))
    with col2:
        st.metric("⏳ Ждут оплаты", len(orders_svc.outstanding_orders()))
    with col3:
        st.metric("💰 Долг клиентов", format_idr(orders_svc.total_outstanding()))
    with col4:
        st.metric("🏭 В очереди цеха", len(orders_svc.production_queue()))

    st.divider()
    st.subheader("🏆 Топ позиций")
    for name, revenue in orders_svc.top_items(5):
        st.write(f"• **{name}**: {format_idr(revenue)}")

    if st.button("⌛ Проверить просроченные DP", key="expire_btn"):
        if dispatch("EXPIRE_STALE", {"threshold_hours": settings.expired_threshold_hours}):
            st.success("✅ Проверка выполнена")


# ============ PAGE: НОВЫЙ ЗАКАЗ ============
elif page == "🧾 Новый заказ":
    catalog = CatalogService(tuple(st.session_state.pos_state["items"].values()))
    cart = replace(
        st.session_state.cart,
        tax_rate=tax_rate_for(current_business(), settings.default_tax_rate),
    )

    left, right = st.columns([3, 2])

    with left:
        st.subheader("📦 Каталог")
        query = st.text_input("Поиск", "", key="catalog_search")
        found = catalog.search(query) if query else catalog.active_items()
        item_id = st.selectbox(
            "Позиция",
            [i.id for i in found],
            format_func=lambda iid: catalog.item_by_id(iid).map(lambda i: i.name).get_or_else(iid),
        )
        item = catalog.item_by_id(item_id).get_or_else(None) if item_id else None

        if item:
            if item.description:
                st.caption(item.description)
            if item.production_days:
                st.caption(f"Срок изготовления: {item.production_days} дн.")
            qty = st.number_input("Количество", min_value=item.min_order, value=item.min_order)
            width = height = None
            if item.pricing_model == "area":
                width = st.number_input(f"Ширина ({item.area_unit})", min_value=0.0, value=float(item.default_width or 1))
                height = st.number_input(f"Высота ({item.area_unit})", min_value=0.0, value=float(item.default_height or 1))
            material = st.selectbox("Материал", ("",) + item.material_options) or None
            finishing = st.multiselect("Отделка", [f.name for f in item.finishing_options])
            override = st.number_input("Ручная цена за единицу", min_value=0.0, value=0.0)
            discount = 0.0
            if override <= 0:
                discount = st.slider("Скидка %", 0.0, float(item.max_discount), 0.0) if item.max_discount else 0.0

            config = LineConfig(
                quantity=int(qty),
                width=width,
                height=height,
                material=material,
                finishing=tuple(finishing),
                discount_percent=discount,
                override_unit_price=override or None,
            )
            preview = configure_line(item, config)
            st.caption(
                f"Цена: {format_idr(preview.unit_price)} · отделка {format_idr(preview.finishing_cost)}"
                f" · setup {format_idr(preview.setup_fee)}"
            )
            st.markdown(f"**Итого по позиции: {format_idr(preview.subtotal)}**")

            if st.button("➕ В корзину", type="primary"):
                st.session_state.cart = add_line(cart, item, config)
                st.rerun()

    with right:
        st.subheader("🛒 Корзина")
        if not cart.lines:
            st.info("Корзина пуста")
        for line in cart.lines:
            cols = st.columns([4, 2, 1])
            with cols[0]:
                st.write(f"**{line.item.name}** × {line.quantity}")
                if line.area:
                    st.caption(f"{line.area:.2f} m² · {line.material or '-'}")
            with cols[1]:
                new_qty = st.number_input(
                    "Кол-во", min_value=1, value=line.quantity, key=f"qty_{line.local_id}",
                    label_visibility="collapsed",
                )
                if new_qty != line.quantity:
                    st.session_state.cart = update_line(cart, line.local_id, quantity=int(new_qty))
                    st.rerun()
            with cols[2]:
                if st.button("🗑️", key=f"rm_{line.local_id}"):
                    st.session_state.cart = remove_line(cart, line.local_id)
                    st.rerun()

        st.divider()
        st.write(f"Подытог: {format_idr(cart_subtotal(cart))}")
        if cart.tax_rate:
            st.write(f"PPN {cart.tax_rate * 100:.0f}%: {format_idr(cart_tax(cart))}")
        st.markdown(f"### 💰 Итого: **{format_idr(cart_total(cart))}**")

        customer = st.text_input("Клиент", "")
        payment_type = st.selectbox("Тип оплаты", ["dp", "full", "installment"])
        days = catalog.production_days_for(line.item.id for line in cart.lines)
        deadline = st.date_input(
            "Дедлайн", value=date.today() + timedelta(days=days) if days else None
        )

        for as_draft, label in ((True, "💾 Черновик"), (False, "📤 Отправить на кассу")):
            if st.button(label, key=f"submit_{as_draft}"):
                result = submit_order(
                    cart,
                    created_by=ACTOR_ID,
                    branch_id=BRANCH_ID,
                    business_id=st.session_state.business_id,
                    as_draft=as_draft,
                    payment_type=payment_type,
                    min_dp_percent=settings.min_dp_percent,
                    customer_name=customer or None,
                    deadline=deadline.isoformat() if deadline else None,
                )
                if result.is_left:
                    st.error(f"❌ {result.value.reason}")
                elif dispatch("PLACE_ORDER", {"order": result.value}):
                    st.success(f"🎉 Заказ {result.value.order_number} создан")
                    st.session_state.cart = clear_cart(cart)


# ============ PAGE: КАССА ============
elif page == "💵 Касса":
    orders_svc = OrderService(all_orders())
    payable = orders_svc.outstanding_orders()

    if not payable:
        st.info("Нет заказов к оплате")
    else:
        order_id = st.selectbox(
            "Заказ",
            [o.id for o in payable],
            format_func=lambda oid: orders_svc.order_by_id(oid).map(order_label).get_or_else(oid),
        )
        order = orders_svc.order_by_id(order_id).get_or_else(None)

        col1, col2, col3 = st.columns(3)
        with col1:
            st.metric("Итого", format_idr(order.total))
        with col2:
            st.metric("Оплачено", format_idr(order.paid_amount))
        with col3:
            st.metric("Остаток", format_idr(order.remaining_payment))
        st.caption(
            f"Статус: {order.status} · DP: {order.dp_status} · минимум DP {format_idr(min_dp_amount(order))}"
        )

        quick = st.radio(
            "Быстрый DP",
            ["-"] + [f"{p}%" for p in settings.dp_quick_options],
            horizontal=True,
        )
        suggested = order.remaining_payment
        if quick != "-":
            suggested = order.total * int(quick.rstrip("%")) / 100
        amount = st.number_input("Сумма", min_value=0.0, value=float(suggested))
        method = st.selectbox("Способ", list(settings.payment_methods))
        note = st.text_input("Примечание", "")

        if amount > order.remaining_payment:
            st.info(f"Сдача: {format_idr(change_due(amount, order.remaining_payment))}")

        if st.button("✅ Принять оплату", type="primary"):
            if dispatch(
                "ADD_PAYMENT",
                {
                    "order_id": order.id,
                    "amount": amount,
                    "method": method,
                    "paid_by": ACTOR_ID,
                    "note": note or None,
                },
            ):
                st.success("Оплата принята")
                st.rerun()

        st.divider()
        st.subheader("📜 История оплат")
        for p in orders_svc.payment_history(order.id):
            st.write(f"• {p.created_at[:16]} · {p.method} · {format_idr(p.amount)}")


# ============ PAGE: ПРОИЗВОДСТВО ============
elif page == "🏭 Производство":
    orders_svc = OrderService(all_orders())

    for order in orders_svc.orders:
        with st.expander(f"{order_label(order)} · {order.status}"):
            for it in order.items:
                st.write(f"• {it.name} × {it.quantity}: {format_idr(it.subtotal)}")
            targets = available_transitions(order)
            if not targets:
                st.caption("Нет доступных переходов")
            cols = st.columns(max(len(targets), 1))
            for col, target in zip(cols, targets):
                with col:
                    if st.button(f"→ {target}", key=f"tr_{order.id}_{target}"):
                        if dispatch(
                            "CHANGE_STATUS",
                            {"order_id": order.id, "to_status": target, "changed_by": ACTOR_ID},
                        ):
                            st.rerun()
            st.caption("Журнал статусов")
            for log in order.status_logs:
                st.write(f"{log.created_at[:16]} · {log.from_status or '∅'} → {log.to_status} · {log.note or ''}")


# ============ PAGE: ФИНАНСЫ ============
elif page == "📑 Финансы":
    state = st.session_state.pos_state

    col1, col2 = st.columns(2)
    with col1:
        start = st.date_input("С", value=date(date.today().year, 1, 1))
    with col2:
        end = st.date_input("По", value=date.today())

    report = finance_report(
        all_orders(),
        tuple(state["finance_entries"].values()),
        branch_id=BRANCH_ID,
        start_date=start.isoformat(),
        end_date=end.isoformat(),
    )

    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("📈 Доход", format_idr(report["total_income"]))
    with col2:
        st.metric("📉 Расход", format_idr(report["total_expense"]))
    with col3:
        st.metric("💰 Прибыль", format_idr(report["net_profit"]))

    st.dataframe(rows_as_records(report["rows"]), use_container_width=True)

    receivables = receivables_summary(all_orders())
    st.caption(
        f"Дебиторка: {receivables['orders']} заказов на {format_idr(receivables['total_remaining'])}"
    )

    st.divider()
    st.subheader("✍️ Ручная запись")
    entry_type = st.radio("Тип", ["income", "expense"], horizontal=True)
    category = st.selectbox("Категория", category_names(state["finance_categories"], entry_type))
    entry_amount = st.number_input("Сумма записи", min_value=0.0, value=0.0)
    description = st.text_input("Описание", "")
    if st.button("Добавить запись"):
        if dispatch(
            "ADD_FINANCE_ENTRY",
            {
                "type": entry_type,
                "amount": entry_amount,
                "description": description,
                "category": category,
                "branch_id": BRANCH_ID,
                "created_by": ACTOR_ID,
            },
        ):
            st.rerun()

    new_category = st.text_input("Новая категория", "")
    if st.button("Добавить категорию") and new_category:
        if dispatch("ADD_FINANCE_CATEGORY", {"name": new_category, "type": entry_type}):
            st.rerun()
