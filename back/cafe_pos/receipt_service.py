"""
Receipt assembly.

Every call issues a new receipt number and stores one Receipt row, then
returns a read-only projection of the order as it stands.
"""

import logging
from uuid import uuid4

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from .errors import NotFoundError
from .models import (
    Branch,
    Order,
    OrderType,
    PaymentRead,
    Receipt,
    ReceiptLine,
    ReceiptView,
    Table,
    utcnow,
)
from .settings import settings

logger = logging.getLogger(__name__)

TAKEAWAY_LABEL = "Takeaway"
_MAX_NUMBER_ATTEMPTS = 3


def generate_receipt_number(issued_at) -> str:
    """RCPT-YYYYMMDD-XXXXXXXXXXXX (random suffix, unique index as backstop)"""
    return f"{settings.receipt_prefix}-{issued_at:%Y%m%d}-{uuid4().hex[:12].upper()}"


def _table_label(session: Session, order: Order) -> str:
    if order.order_type == OrderType.takeaway or order.table_id is None:
        return TAKEAWAY_LABEL
    table = session.get(Table, order.table_id)
    return table.table_number if table else TAKEAWAY_LABEL


def build_receipt_view(session: Session, order: Order, receipt: Receipt) -> ReceiptView:
    branch = session.get(Branch, order.branch_id)
    return ReceiptView(
        receipt_number=receipt.receipt_number,
        issued_at=receipt.issued_at,
        order_id=order.id,
        branch_id=order.branch_id,
        branch_name=branch.name if branch else None,
        table=_table_label(session, order),
        order_type=order.order_type,
        status=order.status,
        items=[
            ReceiptLine(
                name=item.product_name,
                qty=item.quantity,
                unit_price_cents=item.price_cents,
                line_total_cents=item.line_total_cents,
            )
            for item in order.items
        ],
        total_cents=order.total_cents,
        payments=[PaymentRead.model_validate(p) for p in order.payments],
    )


def generate_receipt(session: Session, order_id: int) -> ReceiptView:
    """
    Issue a receipt for an order.

    Raises:
        NotFoundError: unknown order
    """
    order = session.get(Order, order_id)
    if not order:
        raise NotFoundError(f"Order {order_id} not found")

    for attempt in range(1, _MAX_NUMBER_ATTEMPTS + 1):
        issued_at = utcnow()
        receipt = Receipt(
            order_id=order_id,
            receipt_number=generate_receipt_number(issued_at),
            issued_at=issued_at,
        )
        session.add(receipt)
        try:
            session.commit()
            break
        except IntegrityError:
            session.rollback()
            if attempt == _MAX_NUMBER_ATTEMPTS:
                raise
            logger.warning(f"Receipt number collision for order #{order_id}, retrying")
        except Exception:
            session.rollback()
            raise

    session.refresh(receipt)
    logger.info(f"Receipt {receipt.receipt_number} issued for order #{order_id}")
    return build_receipt_view(session, order, receipt)
