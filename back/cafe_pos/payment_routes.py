from typing import Annotated

from fastapi import APIRouter, Depends
from sqlmodel import Session

from . import models, payment_service
from .db import get_session
from .models import PaymentMethod, PaymentStatus, User
from .security import get_current_user

router = APIRouter()


@router.post("/payments", response_model=models.PaymentRead, status_code=201)
def create_payment(
    payment_data: models.PaymentCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    session: Session = Depends(get_session),
):
    """Pay an order in full. Completes the order and frees its table."""
    return payment_service.process_payment(
        session,
        order_id=payment_data.order_id,
        amount_cents=payment_data.amount_cents,
        method=payment_data.method,
        transaction_reference=payment_data.transaction_reference,
    )


@router.get("/payments", response_model=list[models.PaymentRead])
def list_payments(
    current_user: Annotated[User, Depends(get_current_user)],
    method: PaymentMethod | None = None,
    status: PaymentStatus | None = None,
    order_id: int | None = None,
    session: Session = Depends(get_session),
):
    return payment_service.list_payments(session, method=method, status=status, order_id=order_id)
