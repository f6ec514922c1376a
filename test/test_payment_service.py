import pytest

from cafe_pos import order_service, payment_service
from cafe_pos.errors import InvalidError, NotFoundError
from cafe_pos.models import (
    OrderItemCreate,
    OrderStatus,
    OrderType,
    PaymentMethod,
    PaymentStatus,
    Table,
    TableStatus,
)
from cafe_pos.notifications import ORDER_PAID, TABLE_STATUS_CHANGED


def _dine_in(session, pos, session_id, table_id):
    return order_service.create_order(
        session, pos.branch_id, session_id, OrderType.dine_in, table_id=table_id,
        items=[OrderItemCreate(product_id=pos.coffee_id, quantity=2)],
    )


def test_payment_completes_order_and_frees_table(session, pos, open_pos_session, events):
    order = _dine_in(session, pos, open_pos_session, pos.t1_id)

    payment = payment_service.process_payment(
        session, order.id, 600, PaymentMethod.upi, transaction_reference="UPI-REF-1",
    )

    assert payment.status == PaymentStatus.completed
    assert payment.amount_cents == 600
    assert payment.transaction_reference == "UPI-REF-1"
    assert order_service.get_order(session, order.id).status == OrderStatus.completed
    assert session.get(Table, pos.t1_id).status == TableStatus.free

    names = [name for name, _ in events]
    assert ORDER_PAID in names
    freed = [p for name, p in events if name == TABLE_STATUS_CHANGED and p["status"] == "free"]
    assert freed and freed[0]["table_id"] == pos.t1_id


def test_double_payment_rejected(session, pos, open_pos_session, events):
    order = _dine_in(session, pos, open_pos_session, pos.t1_id)
    payment_service.process_payment(session, order.id, 600, PaymentMethod.cash)

    with pytest.raises(InvalidError):
        payment_service.process_payment(session, order.id, 600, PaymentMethod.cash)

    assert len(payment_service.list_payments(session, order_id=order.id)) == 1


def test_freed_table_can_be_claimed_again(session, pos, open_pos_session, events):
    first = _dine_in(session, pos, open_pos_session, pos.t1_id)
    payment_service.process_payment(session, first.id, 600, PaymentMethod.card)

    second = _dine_in(session, pos, open_pos_session, pos.t1_id)

    assert second.table_id == pos.t1_id
    assert session.get(Table, pos.t1_id).status == TableStatus.occupied


def test_table_stays_occupied_while_another_order_is_open(session, pos, open_pos_session, events):
    first = _dine_in(session, pos, open_pos_session, pos.t1_id)
    # A second open dine-in order on the same table (e.g. a split bill)
    second = order_service.create_order(session, pos.branch_id, open_pos_session, OrderType.takeaway)
    stored = order_service.get_order(session, second.id)
    stored.order_type = OrderType.dine_in
    stored.table_id = pos.t1_id
    session.add(stored)
    session.commit()

    payment_service.process_payment(session, first.id, 600, PaymentMethod.cash)

    assert session.get(Table, pos.t1_id).status == TableStatus.occupied

    payment_service.process_payment(session, second.id, 0, PaymentMethod.cash)

    assert session.get(Table, pos.t1_id).status == TableStatus.free


def test_takeaway_payment_touches_no_table(session, pos, open_pos_session, events):
    order = order_service.create_order(
        session, pos.branch_id, open_pos_session, OrderType.takeaway,
        items=[OrderItemCreate(product_id=pos.sandwich_id, quantity=1)],
    )

    payment_service.process_payment(session, order.id, 650, PaymentMethod.cash)

    assert all(name != TABLE_STATUS_CHANGED for name, _ in events)
    assert session.get(Table, pos.t1_id).status == TableStatus.free


def test_amount_is_recorded_as_given(session, pos, open_pos_session, events):
    order = _dine_in(session, pos, open_pos_session, pos.t1_id)

    payment = payment_service.process_payment(session, order.id, 1000, PaymentMethod.cash)

    assert payment.amount_cents == 1000
    assert order_service.get_order(session, order.id).total_cents == 600


def test_unknown_order(session, pos):
    with pytest.raises(NotFoundError):
        payment_service.process_payment(session, 999, 100, PaymentMethod.cash)


def test_payment_on_ready_order(session, pos, open_pos_session, events):
    from cafe_pos import kitchen_service

    order = _dine_in(session, pos, open_pos_session, pos.t2_id)
    kitchen_service.start_order(session, order.id)
    kitchen_service.mark_ready(session, order.id)

    payment_service.process_payment(session, order.id, 600, PaymentMethod.card)

    assert order_service.get_order(session, order.id).status == OrderStatus.completed


def test_list_payments_filters(session, pos, open_pos_session, events):
    a = _dine_in(session, pos, open_pos_session, pos.t1_id)
    b = _dine_in(session, pos, open_pos_session, pos.t2_id)
    payment_service.process_payment(session, a.id, 600, PaymentMethod.cash)
    payment_service.process_payment(session, b.id, 600, PaymentMethod.card)

    assert [p.order_id for p in payment_service.list_payments(session)] == [b.id, a.id]
    assert [p.order_id for p in payment_service.list_payments(session, method=PaymentMethod.cash)] == [a.id]
    assert payment_service.list_payments(session, status=PaymentStatus.failed) == []


def test_count_other_active_orders(session, pos, open_pos_session, events):
    from cafe_pos.table_service import count_other_active_orders

    first = _dine_in(session, pos, open_pos_session, pos.t1_id)
    assert count_other_active_orders(session, pos.t1_id, exclude_order_id=first.id) == 0

    second = order_service.create_order(session, pos.branch_id, open_pos_session, OrderType.takeaway)
    stored = order_service.get_order(session, second.id)
    stored.order_type = OrderType.dine_in
    stored.table_id = pos.t1_id
    session.add(stored)
    session.commit()

    assert count_other_active_orders(session, pos.t1_id, exclude_order_id=first.id) == 1
    assert count_other_active_orders(session, pos.t2_id, exclude_order_id=first.id) == 0
