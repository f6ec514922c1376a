"""
POS session lifecycle.

A terminal must have an open session before any order can be created on
it. Opening binds the terminal to the staff member; closing computes the
session's sales and clears the binding. Each of these is one transaction.
"""

import logging

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from .errors import ConflictError, NotFoundError, SessionAlreadyClosedError
from .models import Order, PosSession, Terminal, User, utcnow

logger = logging.getLogger(__name__)


def open_session(session: Session, terminal_id: int, staff_id: int) -> PosSession:
    """
    Open a session on a terminal and bind the terminal to the staff member.

    Raises:
        NotFoundError: unknown terminal or staff member
        ConflictError: the terminal already has an open session
    """
    terminal = session.get(Terminal, terminal_id)
    if not terminal:
        raise NotFoundError(f"Terminal {terminal_id} not found")
    if not session.get(User, staff_id):
        raise NotFoundError(f"User {staff_id} not found")

    existing = session.exec(
        select(PosSession).where(
            PosSession.terminal_id == terminal_id,
            PosSession.closed_at.is_(None),
        )
    ).first()
    if existing:
        raise ConflictError(f"Terminal {terminal_id} already has an active session")

    pos_session = PosSession(terminal_id=terminal_id, opened_by_user_id=staff_id)
    terminal.user_id = staff_id
    session.add(pos_session)
    session.add(terminal)
    try:
        session.commit()
    except IntegrityError:
        # Lost the race against a concurrent open; the partial unique index caught it
        session.rollback()
        raise ConflictError(f"Terminal {terminal_id} already has an active session")
    except Exception:
        session.rollback()
        raise

    session.refresh(pos_session)
    logger.info(f"Session #{pos_session.id} opened on terminal {terminal_id} by user {staff_id}")
    return pos_session


def close_session(session: Session, session_id: int) -> PosSession:
    """
    Close a session, computing total sales and unbinding the terminal.

    Total sales is the sum of total_cents over every order of the session,
    whatever its status (unpaid orders included).

    Raises:
        NotFoundError: unknown session
        SessionAlreadyClosedError: the session was already closed
    """
    pos_session = session.get(PosSession, session_id)
    if not pos_session:
        raise NotFoundError(f"Session {session_id} not found")
    if pos_session.closed_at is not None:
        raise SessionAlreadyClosedError(session_id)

    try:
        total_sales = session.exec(
            select(func.coalesce(func.sum(Order.total_cents), 0)).where(
                Order.session_id == session_id
            )
        ).one()

        result = session.exec(
            update(PosSession)
            .where(PosSession.id == session_id, PosSession.closed_at.is_(None))
            .values(closed_at=utcnow(), total_sales_cents=total_sales)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise SessionAlreadyClosedError(session_id)

        session.exec(
            update(Terminal)
            .where(Terminal.id == pos_session.terminal_id)
            .values(user_id=None)
            .execution_options(synchronize_session=False)
        )
        session.commit()
    except Exception:
        session.rollback()
        raise

    session.refresh(pos_session)
    logger.info(
        f"Session #{session_id} closed on terminal {pos_session.terminal_id}, "
        f"total sales {pos_session.total_sales_cents}"
    )
    return pos_session


def get_session_by_id(session: Session, session_id: int) -> PosSession:
    pos_session = session.get(PosSession, session_id)
    if not pos_session:
        raise NotFoundError(f"Session {session_id} not found")
    return pos_session


def list_session_orders(session: Session, session_id: int) -> list[Order]:
    return list(
        session.exec(
            select(Order).where(Order.session_id == session_id).order_by(Order.created_at, Order.id)
        ).all()
    )


def list_active_sessions(session: Session) -> list[PosSession]:
    return list(
        session.exec(
            select(PosSession)
            .where(PosSession.closed_at.is_(None))
            .order_by(PosSession.opened_at)
        ).all()
    )


def get_current_session(session: Session, terminal_id: int) -> PosSession:
    """The open session of a terminal. Raises NotFoundError if there is none."""
    pos_session = session.exec(
        select(PosSession).where(
            PosSession.terminal_id == terminal_id,
            PosSession.closed_at.is_(None),
        )
    ).first()
    if not pos_session:
        raise NotFoundError(f"No active session found for terminal {terminal_id}")
    return pos_session
