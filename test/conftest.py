import os

# Must be set before cafe_pos.settings is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REDIS_URL"] = ""
os.environ["SECRET_KEY"] = "test-secret-key"

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

from cafe_pos import notifications
from cafe_pos.db import engine
from cafe_pos.models import Branch, Floor, Product, Table, Terminal, User
from cafe_pos.security import create_access_token, get_password_hash

TEST_PASSWORD = "secret123"


@pytest.fixture(autouse=True)
def fresh_db():
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    yield


@pytest.fixture
def session():
    with Session(engine) as s:
        yield s


@pytest.fixture
def events(monkeypatch):
    """Capture published notifications instead of sending them."""
    published = []
    monkeypatch.setattr(
        notifications, "publish", lambda event, payload: published.append((event, payload))
    )
    return published


@pytest.fixture
def pos(session):
    """A branch with one floor, two tables, a terminal, a cashier and a small menu."""
    branch = Branch(name="Main Street Cafe")
    session.add(branch)
    session.flush()

    floor = Floor(name="Ground Floor", branch_id=branch.id)
    cashier = User(name="Cashier", email="cashier@cafe.local", hashed_password=get_password_hash(TEST_PASSWORD))
    terminal = Terminal(name="Counter 1", branch_id=branch.id)
    coffee = Product(name="Coffee", price_cents=300)
    sandwich = Product(name="Sandwich", price_cents=650)
    session.add_all([floor, cashier, terminal, coffee, sandwich])
    session.flush()

    t1 = Table(floor_id=floor.id, table_number="T1", seats=2)
    t2 = Table(floor_id=floor.id, table_number="T2", seats=4)
    session.add_all([t1, t2])
    session.commit()

    return SimpleNamespace(
        branch_id=branch.id,
        floor_id=floor.id,
        user_id=cashier.id,
        user_email=cashier.email,
        terminal_id=terminal.id,
        coffee_id=coffee.id,
        sandwich_id=sandwich.id,
        t1_id=t1.id,
        t2_id=t2.id,
    )


@pytest.fixture
def open_pos_session(session, pos):
    from cafe_pos.session_service import open_session

    return open_session(session, pos.terminal_id, pos.user_id).id


@pytest.fixture
def client():
    from cafe_pos.main import app

    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth_headers(pos):
    token = create_access_token(data={"sub": pos.user_email, "user_id": pos.user_id})
    return {"Authorization": f"Bearer {token}"}
