import pytest

from cafe_pos import kitchen_service, order_service, payment_service
from cafe_pos.errors import InvalidTransitionError, NotFoundError
from cafe_pos.models import OrderItemCreate, OrderStatus, OrderType, PaymentMethod
from cafe_pos.notifications import KITCHEN_ORDER_STATUS


@pytest.fixture
def order_id(session, pos, open_pos_session, events):
    order = order_service.create_order(
        session, pos.branch_id, open_pos_session, OrderType.takeaway,
        items=[OrderItemCreate(product_id=pos.coffee_id, quantity=1)],
    )
    return order.id


def test_forward_transitions(session, order_id, events):
    started = kitchen_service.start_order(session, order_id)
    assert started.status == OrderStatus.in_progress

    ready = kitchen_service.mark_ready(session, order_id)
    assert ready.status == OrderStatus.ready

    status_events = [payload for name, payload in events if name == KITCHEN_ORDER_STATUS]
    assert [(e["previous_status"], e["status"]) for e in status_events] == [
        ("created", "in_progress"),
        ("in_progress", "ready"),
    ]


def test_cannot_skip_a_step(session, order_id):
    with pytest.raises(InvalidTransitionError) as exc_info:
        kitchen_service.update_status(session, order_id, OrderStatus.ready)

    assert exc_info.value.current == OrderStatus.created
    assert "created -> ready" in str(exc_info.value)
    assert order_service.get_order(session, order_id).status == OrderStatus.created


def test_cannot_go_backwards(session, order_id):
    kitchen_service.start_order(session, order_id)
    kitchen_service.mark_ready(session, order_id)

    with pytest.raises(InvalidTransitionError):
        kitchen_service.update_status(session, order_id, OrderStatus.in_progress)
    with pytest.raises(InvalidTransitionError):
        kitchen_service.update_status(session, order_id, OrderStatus.created)


def test_kitchen_cannot_complete_an_order(session, order_id):
    kitchen_service.start_order(session, order_id)
    kitchen_service.mark_ready(session, order_id)

    with pytest.raises(InvalidTransitionError):
        kitchen_service.update_status(session, order_id, OrderStatus.completed)


def test_paid_order_is_terminal(session, order_id):
    payment_service.process_payment(session, order_id, 300, PaymentMethod.cash)

    for status in OrderStatus:
        with pytest.raises(InvalidTransitionError):
            kitchen_service.update_status(session, order_id, status)


def test_unknown_order(session, pos):
    with pytest.raises(NotFoundError):
        kitchen_service.start_order(session, 1234)


def test_can_transition_table():
    assert kitchen_service.can_transition(OrderStatus.created, OrderStatus.in_progress)
    assert kitchen_service.can_transition(OrderStatus.in_progress, OrderStatus.ready)
    assert not kitchen_service.can_transition(OrderStatus.ready, OrderStatus.completed)
    assert not kitchen_service.can_transition(OrderStatus.completed, OrderStatus.created)


def test_kitchen_queues_are_fifo(session, pos, open_pos_session, events):
    ids = [
        order_service.create_order(session, pos.branch_id, open_pos_session, OrderType.takeaway).id
        for _ in range(3)
    ]
    kitchen_service.start_order(session, ids[1])
    kitchen_service.start_order(session, ids[2])
    kitchen_service.mark_ready(session, ids[2])

    assert [o.id for o in kitchen_service.list_active(session)] == [ids[0], ids[1]]
    assert [o.id for o in kitchen_service.list_ready(session)] == [ids[2]]
    assert kitchen_service.list_active(session, branch_id=pos.branch_id + 1) == []
