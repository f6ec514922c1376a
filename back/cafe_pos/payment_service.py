"""
Payment processing.

One call settles one order. The payment row, the order's move to
`completed` and (for dine-in) the table release commit together; the
floor notification goes out afterwards and cannot undo the payment.
"""

import logging

from sqlalchemy import update
from sqlmodel import Session, select

from . import notifications
from .errors import InvalidError, NotFoundError
from .models import (
    Order,
    OrderStatus,
    OrderType,
    Payment,
    PaymentMethod,
    PaymentStatus,
    utcnow,
)
from .table_service import branch_id_for_table, count_other_active_orders, get_table, release_table

logger = logging.getLogger(__name__)


def process_payment(
    session: Session,
    order_id: int,
    amount_cents: int,
    method: PaymentMethod,
    transaction_reference: str | None = None,
) -> Payment:
    """
    Record a payment and close the order.

    The amount is recorded as given; it is not compared with the order
    total.

    Raises:
        NotFoundError: unknown order
        InvalidError: the order is already completed (no double payment)
    """
    order = session.get(Order, order_id)
    if not order:
        raise NotFoundError(f"Order {order_id} not found")
    if order.status == OrderStatus.completed:
        raise InvalidError("Order is already paid/completed")

    table_id = order.table_id if order.order_type == OrderType.dine_in else None
    table_released = False

    try:
        # Closing the order first takes the row lock; a concurrent payment
        # waits here and then matches zero rows.
        result = session.exec(
            update(Order)
            .where(Order.id == order_id, Order.status != OrderStatus.completed)
            .values(status=OrderStatus.completed, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InvalidError("Order is already paid/completed")

        payment = Payment(
            order_id=order_id,
            amount_cents=amount_cents,
            method=method,
            status=PaymentStatus.completed,
            transaction_reference=transaction_reference,
        )
        session.add(payment)

        if table_id is not None:
            if count_other_active_orders(session, table_id, exclude_order_id=order_id) == 0:
                release_table(session, table_id)
                table_released = True

        session.commit()
    except Exception:
        session.rollback()
        raise

    session.refresh(payment)
    logger.info(
        f"Payment #{payment.id} recorded for order #{order_id}: "
        f"{payment.method.value} {payment.amount_cents}"
    )

    notifications.publish(notifications.ORDER_PAID, {
        "order_id": order_id,
        "branch_id": order.branch_id,
        "payment_id": payment.id,
        "method": payment.method.value,
        "amount_cents": payment.amount_cents,
    })
    if table_released:
        logger.info(f"Table {table_id} released after payment of order #{order_id}")
        _publish_table_freed(session, table_id, order_id)

    return payment


def _publish_table_freed(session: Session, table_id: int, order_id: int) -> None:
    try:
        table = get_table(session, table_id)
        payload = {
            "table_id": table.id,
            "table_number": table.table_number,
            "branch_id": branch_id_for_table(session, table),
            "status": table.status.value,
            "order_id": order_id,
        }
    except Exception as e:
        logger.warning(f"Could not build table release notification for table {table_id}: {e}")
        return
    notifications.publish(notifications.TABLE_STATUS_CHANGED, payload)


def list_payments(
    session: Session,
    method: PaymentMethod | None = None,
    status: PaymentStatus | None = None,
    order_id: int | None = None,
) -> list[Payment]:
    statement = select(Payment)
    if method is not None:
        statement = statement.where(Payment.method == method)
    if status is not None:
        statement = statement.where(Payment.status == status)
    if order_id is not None:
        statement = statement.where(Payment.order_id == order_id)
    statement = statement.order_by(Payment.created_at.desc(), Payment.id.desc())
    return list(session.exec(statement).all())
