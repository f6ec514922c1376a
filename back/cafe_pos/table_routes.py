from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session

from . import models, order_service, table_service
from .db import get_session
from .models import User
from .security import get_current_user

router = APIRouter()


@router.get("/floors", response_model=list[models.FloorRead])
def list_floors(
    current_user: Annotated[User, Depends(get_current_user)],
    branch_id: int | None = None,
    session: Session = Depends(get_session),
):
    return table_service.list_floors(session, branch_id)


@router.get("/tables", response_model=list[models.TableRead])
def list_tables(
    current_user: Annotated[User, Depends(get_current_user)],
    floor_id: int | None = None,
    session: Session = Depends(get_session),
):
    return table_service.list_tables(session, floor_id)


@router.get("/tables/{table_id}", response_model=models.TableRead)
def get_table(
    table_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    session: Session = Depends(get_session),
):
    return table_service.get_table(session, table_id)


@router.get("/tables/{table_id}/active-order", response_model=models.OrderReadWithItems)
def get_table_active_order(
    table_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    session: Session = Depends(get_session),
):
    """The unpaid dine-in order sitting on a table."""
    table_service.get_table(session, table_id)
    order = order_service.get_active_order_for_table(session, table_id)
    if not order:
        raise HTTPException(status_code=404, detail="No active order for this table")
    return order
