from typing import Annotated

from fastapi import APIRouter, Depends
from sqlmodel import Session

from . import kitchen_service, models
from .db import get_session
from .models import User
from .security import get_current_user

router = APIRouter()


@router.get("/kitchen/orders", response_model=list[models.OrderReadWithItems])
def list_kitchen_orders(
    current_user: Annotated[User, Depends(get_current_user)],
    branch_id: int | None = None,
    session: Session = Depends(get_session),
):
    """Orders waiting for or being cooked, oldest first."""
    return kitchen_service.list_active(session, branch_id)


@router.get("/kitchen/ready", response_model=list[models.OrderReadWithItems])
def list_ready_orders(
    current_user: Annotated[User, Depends(get_current_user)],
    branch_id: int | None = None,
    session: Session = Depends(get_session),
):
    return kitchen_service.list_ready(session, branch_id)


@router.patch("/kitchen/orders/{order_id}/status", response_model=models.OrderRead)
def update_order_status(
    order_id: int,
    status_update: models.OrderStatusUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    session: Session = Depends(get_session),
):
    return kitchen_service.update_status(session, order_id, status_update.status)


@router.post("/kitchen/orders/{order_id}/start", response_model=models.OrderRead)
def start_order(
    order_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    session: Session = Depends(get_session),
):
    return kitchen_service.start_order(session, order_id)


@router.post("/kitchen/orders/{order_id}/ready", response_model=models.OrderRead)
def mark_order_ready(
    order_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    session: Session = Depends(get_session),
):
    return kitchen_service.mark_ready(session, order_id)
