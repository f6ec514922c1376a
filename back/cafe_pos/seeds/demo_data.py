"""
Demo data for a single-branch cafe.

    python -m cafe_pos.seeds.demo_data

Idempotent: rows are looked up by name before being created.
"""

import logging

from sqlmodel import Session, select

from ..db import create_db_and_tables, engine
from ..models import Branch, Category, Floor, Product, Table, Terminal, User
from ..security import get_password_hash

logger = logging.getLogger(__name__)

DEMO_STAFF = [
    ("Admin", "admin@cafe.local", "admin123"),
    ("Waiter", "waiter@cafe.local", "waiter123"),
    ("Kitchen", "kitchen@cafe.local", "kitchen123"),
]

DEMO_MENU = {
    "Coffee": [("Espresso", 250), ("Cappuccino", 350), ("Latte", 380)],
    "Food": [("Croissant", 220), ("Club Sandwich", 650), ("Caesar Salad", 720)],
    "Drinks": [("Orange Juice", 300), ("Sparkling Water", 180)],
}

DEMO_FLOORS = {
    "Ground Floor": [("T1", 2), ("T2", 2), ("T3", 4), ("T4", 4), ("T5", 6)],
    "Terrace": [("P1", 4), ("P2", 4)],
}


def _get_or_create(session: Session, model, lookup: dict, **extra):
    statement = select(model)
    for key, value in lookup.items():
        statement = statement.where(getattr(model, key) == value)
    instance = session.exec(statement).first()
    if instance:
        return instance, False
    instance = model(**lookup, **extra)
    session.add(instance)
    session.flush()
    return instance, True


def seed_demo_data(session: Session, branch_name: str = "Main Street Cafe") -> Branch:
    """Create a branch with floors, tables, a terminal, staff and a small menu."""
    branch, _ = _get_or_create(session, Branch, {"name": branch_name}, address="1 Main Street")

    for name, email, password in DEMO_STAFF:
        _get_or_create(
            session, User, {"email": email},
            name=name, hashed_password=get_password_hash(password),
        )

    _get_or_create(session, Terminal, {"name": "Counter 1", "branch_id": branch.id})

    for sort_order, (floor_name, tables) in enumerate(DEMO_FLOORS.items()):
        floor, _ = _get_or_create(
            session, Floor, {"name": floor_name, "branch_id": branch.id}, sort_order=sort_order
        )
        for table_number, seats in tables:
            _get_or_create(
                session, Table, {"table_number": table_number, "floor_id": floor.id}, seats=seats
            )

    product_count = 0
    for category_name, products in DEMO_MENU.items():
        category, _ = _get_or_create(session, Category, {"name": category_name})
        for product_name, price_cents in products:
            _, created = _get_or_create(
                session, Product, {"name": product_name},
                price_cents=price_cents, category_id=category.id,
            )
            product_count += int(created)

    session.commit()
    session.refresh(branch)
    logger.info(f"Demo data ready for branch '{branch.name}' ({product_count} new products)")
    return branch


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    create_db_and_tables()
    with Session(engine) as session:
        seed_demo_data(session)
