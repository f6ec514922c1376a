"""
Order lifecycle: creation, item accumulation and hand-off to the kitchen.

Totals are never recomputed client-side. Creation writes the initial total
together with the items; additions bump it with a single
`total_cents = total_cents + :delta` UPDATE in the same transaction as the
new rows, so concurrent additions to one order cannot lose updates.
"""

import logging

from sqlalchemy import func, update
from sqlmodel import Session, select

from . import notifications
from .catalog_service import price_items
from .errors import InvalidError, NotFoundError
from .models import (
    Branch,
    Customer,
    Order,
    OrderItem,
    OrderItemCreate,
    OrderStatus,
    OrderType,
    PosSession,
    utcnow,
)
from .table_service import branch_id_for_table, claim_table, get_table

logger = logging.getLogger(__name__)


def create_order(
    session: Session,
    branch_id: int,
    session_id: int,
    order_type: OrderType,
    table_id: int | None = None,
    items: list[OrderItemCreate] | None = None,
    customer_id: int | None = None,
    created_by_user_id: int | None = None,
) -> Order:
    """
    Create an order against an open session.

    Dine-in orders claim their table (FREE -> OCCUPIED) in the same
    transaction that inserts the order. Takeaway orders never reference a
    table; a supplied table_id is ignored.

    Raises:
        NotFoundError: unknown session, branch, customer or table
        InvalidError: session closed, or dine-in without a table
        ConflictError: the table is not free
    """
    pos_session = session.get(PosSession, session_id)
    if not pos_session:
        raise NotFoundError(f"Session {session_id} not found")
    if pos_session.closed_at is not None:
        raise InvalidError(f"Session {session_id} is already closed")

    if not session.get(Branch, branch_id):
        raise NotFoundError(f"Branch {branch_id} not found")
    if customer_id is not None and not session.get(Customer, customer_id):
        raise NotFoundError(f"Customer {customer_id} not found")

    table = None
    if order_type == OrderType.dine_in:
        if table_id is None:
            raise InvalidError("Table ID is required for dine-in orders")
        table = get_table(session, table_id)
    else:
        table_id = None

    try:
        if table is not None:
            claim_table(session, table.id)

        order_items, total_cents = price_items(session, items or [])

        order = Order(
            branch_id=branch_id,
            session_id=session_id,
            table_id=table_id,
            customer_id=customer_id,
            order_type=order_type,
            status=OrderStatus.created,
            total_cents=total_cents,
            created_by_user_id=created_by_user_id,
        )
        order.items = order_items
        session.add(order)
        session.commit()
    except Exception:
        session.rollback()
        raise

    session.refresh(order)
    logger.info(
        f"Order #{order.id} created ({order.order_type.value}, "
        f"{len(order_items)} item(s), total {order.total_cents})"
    )

    if table is not None:
        notifications.publish(notifications.TABLE_STATUS_CHANGED, {
            "table_id": table.id,
            "table_number": table.table_number,
            "branch_id": branch_id_for_table(session, table),
            "status": "occupied",
            "order_id": order.id,
        })

    return order


def add_items(session: Session, order_id: int, items: list[OrderItemCreate]) -> Order:
    """
    Append items to an order, snapshotting current prices.

    Unknown products are skipped. Paid (completed) orders never take new
    items.

    Raises:
        InvalidError: empty item list, or the order is completed
        NotFoundError: unknown order
    """
    if not items:
        raise InvalidError("No items provided")

    try:
        order_items, increment = price_items(session, items)

        result = session.exec(
            update(Order)
            .where(Order.id == order_id, Order.status != OrderStatus.completed)
            .values(total_cents=Order.total_cents + increment, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            if session.get(Order, order_id) is None:
                raise NotFoundError(f"Order {order_id} not found")
            raise InvalidError(f"Order {order_id} is already completed")

        for item in order_items:
            item.order_id = order_id
            session.add(item)
        session.commit()
    except Exception:
        session.rollback()
        raise

    order = get_order(session, order_id)
    logger.info(f"Added {len(order_items)} item(s) to order #{order_id} (+{increment})")
    return order


def send_to_kitchen(session: Session, order_id: int) -> dict:
    """
    Notify the kitchen display about an order.

    This is a notification hook only: the order status is left untouched
    (it stays `created` until the kitchen starts it).

    Raises:
        NotFoundError: unknown order
        InvalidError: the order has no items
    """
    order = get_order(session, order_id)

    item_count = session.exec(
        select(func.count(OrderItem.id)).where(OrderItem.order_id == order_id)
    ).one()
    if item_count == 0:
        raise InvalidError("Cannot send empty order to kitchen")

    logger.info(f"Order #{order_id} sent to kitchen ({item_count} item(s))")
    notifications.publish(notifications.KITCHEN_NEW_ORDER, {
        "order_id": order.id,
        "branch_id": order.branch_id,
        "table_id": order.table_id,
        "order_type": order.order_type.value,
        "status": order.status.value,
        "created_at": order.created_at,
    })
    return {"message": "Order sent to kitchen successfully", "order_id": order.id}


def get_order(session: Session, order_id: int) -> Order:
    order = session.get(Order, order_id)
    if not order:
        raise NotFoundError(f"Order {order_id} not found")
    return order


def get_active_order_for_table(session: Session, table_id: int) -> Order | None:
    """The dine-in order currently occupying a table, if any."""
    return session.exec(
        select(Order)
        .where(
            Order.table_id == table_id,
            Order.order_type == OrderType.dine_in,
            Order.status != OrderStatus.completed,
        )
        .order_by(Order.created_at.desc(), Order.id.desc())
    ).first()


def list_orders(
    session: Session,
    session_id: int | None = None,
    status: OrderStatus | None = None,
    branch_id: int | None = None,
) -> list[Order]:
    statement = select(Order)
    if session_id is not None:
        statement = statement.where(Order.session_id == session_id)
    if status is not None:
        statement = statement.where(Order.status == status)
    if branch_id is not None:
        statement = statement.where(Order.branch_id == branch_id)
    statement = statement.order_by(Order.created_at.desc(), Order.id.desc())
    return list(session.exec(statement).all())
