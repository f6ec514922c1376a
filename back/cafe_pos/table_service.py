"""
Floor and table registry.

Occupancy is changed only through `claim_table` (order creation) and
`release_table` (payment). Both are single conditional UPDATE statements
and neither commits: they run inside the caller's transaction.
"""

from sqlalchemy import func, update
from sqlmodel import Session, select

from .errors import ConflictError, NotFoundError
from .models import Floor, Order, OrderStatus, OrderType, Table, TableStatus


def get_table(session: Session, table_id: int) -> Table:
    table = session.get(Table, table_id)
    if not table:
        raise NotFoundError(f"Table {table_id} not found")
    return table


def list_tables(session: Session, floor_id: int | None = None) -> list[Table]:
    statement = select(Table)
    if floor_id is not None:
        statement = statement.where(Table.floor_id == floor_id)
    statement = statement.order_by(Table.table_number, Table.id)
    return list(session.exec(statement).all())


def list_floors(session: Session, branch_id: int | None = None) -> list[Floor]:
    statement = select(Floor)
    if branch_id is not None:
        statement = statement.where(Floor.branch_id == branch_id)
    statement = statement.order_by(Floor.sort_order, Floor.id)
    return list(session.exec(statement).all())


def branch_id_for_table(session: Session, table: Table) -> int | None:
    floor = session.get(Floor, table.floor_id)
    return floor.branch_id if floor else None


def claim_table(session: Session, table_id: int) -> None:
    """
    Transition a table FREE -> OCCUPIED as one compare-and-set.

    Raises:
        NotFoundError: the table does not exist
        ConflictError: the table exists but is not free
    """
    result = session.exec(
        update(Table)
        .where(Table.id == table_id, Table.status == TableStatus.free)
        .values(status=TableStatus.occupied)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 1:
        return

    table = session.get(Table, table_id)
    if not table:
        raise NotFoundError(f"Table {table_id} not found")
    raise ConflictError(f"Table {table.table_number} is not free")


def release_table(session: Session, table_id: int) -> None:
    """Unconditionally mark a table FREE. Only payment processing calls this."""
    session.exec(
        update(Table)
        .where(Table.id == table_id)
        .values(status=TableStatus.free)
        .execution_options(synchronize_session=False)
    )


def count_other_active_orders(session: Session, table_id: int, exclude_order_id: int) -> int:
    """Dine-in orders on this table that are not completed, excluding one order."""
    return session.exec(
        select(func.count(Order.id)).where(
            Order.table_id == table_id,
            Order.order_type == OrderType.dine_in,
            Order.status != OrderStatus.completed,
            Order.id != exclude_order_id,
        )
    ).one()
