from sqlalchemy import event, text
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from .settings import settings


def _build_engine():
    url = settings.database_url

    if settings.is_sqlite:
        connect_args = {"check_same_thread": False, "timeout": 30}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise every checkout sees an empty database
            return create_engine(url, connect_args=connect_args, poolclass=StaticPool)
        engine = create_engine(url, connect_args=connect_args, pool_pre_ping=True)

        @event.listens_for(engine, "connect")
        def set_sqlite_pragmas(dbapi_connection, connection_record):
            cur = dbapi_connection.cursor()
            cur.execute("PRAGMA journal_mode=WAL;")
            cur.execute("PRAGMA busy_timeout=30000;")
            cur.execute("PRAGMA foreign_keys=ON;")
            cur.close()

        return engine

    return create_engine(
        url,
        echo=False,
        connect_args={"options": f"-c statement_timeout={settings.db_statement_timeout_ms}"},
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        pool_timeout=settings.db_pool_timeout,
        pool_recycle=1800,
    )


engine = _build_engine()


def create_db_and_tables() -> None:
    # Table classes must be registered on the metadata first
    from . import models  # noqa: F401

    SQLModel.metadata.create_all(engine)


def check_db_connection() -> None:
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))


def get_session():
    """FastAPI dependency: one session (one unit of work) per request."""
    with Session(engine) as session:
        yield session
