from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from sqlmodel import Session

from . import models, order_service, receipt_service
from .db import get_session
from .models import OrderStatus, User
from .receipt_pdf import generate_receipt_pdf
from .security import get_current_user
from .settings import settings

router = APIRouter()


@router.post("/orders", response_model=models.OrderReadWithItems, status_code=201)
def create_order(
    order_data: models.OrderCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    session: Session = Depends(get_session),
):
    return order_service.create_order(
        session,
        branch_id=order_data.branch_id,
        session_id=order_data.session_id,
        order_type=order_data.order_type,
        table_id=order_data.table_id,
        items=order_data.items,
        customer_id=order_data.customer_id,
        created_by_user_id=current_user.id,
    )


@router.get("/orders", response_model=list[models.OrderRead])
def list_orders(
    current_user: Annotated[User, Depends(get_current_user)],
    session_id: int | None = None,
    status: OrderStatus | None = None,
    branch_id: int | None = None,
    session: Session = Depends(get_session),
):
    """Orders, newest first."""
    return order_service.list_orders(session, session_id=session_id, status=status, branch_id=branch_id)


@router.get("/orders/{order_id}", response_model=models.OrderReadWithItems)
def get_order(
    order_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    session: Session = Depends(get_session),
):
    return order_service.get_order(session, order_id)


@router.post("/orders/{order_id}/items", response_model=models.OrderReadWithItems)
def add_order_items(
    order_id: int,
    items_data: models.OrderItemsAdd,
    current_user: Annotated[User, Depends(get_current_user)],
    session: Session = Depends(get_session),
):
    return order_service.add_items(session, order_id, items_data.items)


@router.post("/orders/{order_id}/send")
def send_order_to_kitchen(
    order_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    session: Session = Depends(get_session),
) -> dict:
    return order_service.send_to_kitchen(session, order_id)


@router.post("/orders/{order_id}/receipt", response_model=models.ReceiptView)
def generate_receipt(
    order_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    session: Session = Depends(get_session),
):
    return receipt_service.generate_receipt(session, order_id)


@router.get("/orders/{order_id}/receipt.pdf")
def download_receipt_pdf(
    order_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    session: Session = Depends(get_session),
):
    """Issue a receipt and return it as a printable PDF."""
    receipt = receipt_service.generate_receipt(session, order_id)
    pdf_buffer = generate_receipt_pdf(receipt, currency_symbol=settings.currency_symbol)
    filename = f"{receipt.receipt_number}.pdf"
    return StreamingResponse(
        pdf_buffer,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
