from typing import Annotated

from fastapi import APIRouter, Depends
from sqlmodel import Session

from . import models, session_service
from .db import get_session
from .models import User
from .security import get_current_user

router = APIRouter()


@router.post("/sessions/open", response_model=models.PosSessionRead)
def open_session(
    session_data: models.SessionOpen,
    current_user: Annotated[User, Depends(get_current_user)],
    session: Session = Depends(get_session),
):
    """Open a POS session on a terminal. Staff defaults to the caller."""
    staff_id = session_data.staff_id if session_data.staff_id is not None else current_user.id
    return session_service.open_session(session, session_data.terminal_id, staff_id)


@router.post("/sessions/{session_id}/close", response_model=models.PosSessionRead)
def close_session(
    session_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    session: Session = Depends(get_session),
):
    return session_service.close_session(session, session_id)


@router.get("/sessions/active", response_model=list[models.PosSessionRead])
def list_active_sessions(
    current_user: Annotated[User, Depends(get_current_user)],
    session: Session = Depends(get_session),
):
    return session_service.list_active_sessions(session)


@router.get("/sessions/current", response_model=models.PosSessionRead)
def get_current_session(
    terminal_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    session: Session = Depends(get_session),
):
    return session_service.get_current_session(session, terminal_id)


@router.get("/sessions/{session_id}", response_model=models.SessionReadWithOrders)
def get_pos_session(
    session_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    session: Session = Depends(get_session),
):
    """Session details with its orders."""
    pos_session = session_service.get_session_by_id(session, session_id)
    orders = session_service.list_session_orders(session, session_id)
    return models.SessionReadWithOrders(
        **models.PosSessionRead.model_validate(pos_session).model_dump(),
        orders=[models.OrderRead.model_validate(o) for o in orders],
    )
