"""
Kitchen status state machine.

    created -> in_progress -> ready

`completed` is not in the map: an order is completed only by payment.
Every transition is a compare-and-set on the status that was read.
"""

import logging

from sqlalchemy import update
from sqlmodel import Session, select

from . import notifications
from .errors import InvalidTransitionError, NotFoundError
from .models import Order, OrderStatus, utcnow

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.created: {OrderStatus.in_progress},
    OrderStatus.in_progress: {OrderStatus.ready},
}

KITCHEN_ACTIVE_STATUSES = (OrderStatus.created, OrderStatus.in_progress)


def can_transition(current: OrderStatus, new_status: OrderStatus) -> bool:
    return new_status in ALLOWED_TRANSITIONS.get(current, set())


def update_status(session: Session, order_id: int, new_status: OrderStatus) -> Order:
    """
    Move an order one step forward.

    Raises:
        NotFoundError: unknown order
        InvalidTransitionError: new_status is not a legal next step
    """
    order = session.get(Order, order_id)
    if not order:
        raise NotFoundError(f"Order {order_id} not found")

    current = order.status
    if not can_transition(current, new_status):
        raise InvalidTransitionError(current, new_status)

    try:
        result = session.exec(
            update(Order)
            .where(Order.id == order_id, Order.status == current)
            .values(status=new_status, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            # Someone else moved it between our read and write
            session.rollback()
            latest = session.get(Order, order_id)
            raise InvalidTransitionError(latest.status if latest else current, new_status)
        session.commit()
    except InvalidTransitionError:
        raise
    except Exception:
        session.rollback()
        raise

    session.refresh(order)
    logger.info(f"Order #{order_id} status: {current.value} -> {new_status.value}")
    notifications.publish(notifications.KITCHEN_ORDER_STATUS, {
        "order_id": order.id,
        "branch_id": order.branch_id,
        "table_id": order.table_id,
        "previous_status": current.value,
        "status": order.status.value,
    })
    return order


def start_order(session: Session, order_id: int) -> Order:
    """Kitchen starts cooking."""
    return update_status(session, order_id, OrderStatus.in_progress)


def mark_ready(session: Session, order_id: int) -> Order:
    """Kitchen finished cooking."""
    return update_status(session, order_id, OrderStatus.ready)


def list_by_status(
    session: Session,
    statuses: tuple[OrderStatus, ...],
    branch_id: int | None = None,
) -> list[Order]:
    """Orders in any of the given statuses, oldest first (FIFO for the pass)."""
    statement = select(Order).where(Order.status.in_(statuses))
    if branch_id is not None:
        statement = statement.where(Order.branch_id == branch_id)
    statement = statement.order_by(Order.created_at.asc(), Order.id.asc())
    return list(session.exec(statement).all())


def list_active(session: Session, branch_id: int | None = None) -> list[Order]:
    return list_by_status(session, KITCHEN_ACTIVE_STATUSES, branch_id)


def list_ready(session: Session, branch_id: int | None = None) -> list[Order]:
    return list_by_status(session, (OrderStatus.ready,), branch_id)
