from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Any, Generator, Iterable
from urllib.parse import quote_plus

from sqlalchemy import create_engine, event
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool


def get_database_url() -> str:
    """Get the database URL for API operations (uses API worker user)."""
    explicit = os.getenv("DATABASE_URL")
    if explicit:
        return explicit

    # Construct from components using API worker credentials
    api_user = os.getenv("DB_API_WORKER_USER")
    api_pass = os.getenv("DB_API_WORKER_PASSWORD")
    db_name = os.getenv("DB_DATABASE")
    db_host = os.getenv("DB_HOST", "db")
    db_port = os.getenv("DB_PORT", "5432")

    if api_user and api_pass and db_name:
        # URL-encode the password in case it contains special characters
        encoded_pass = quote_plus(api_pass)
        return f"postgresql+psycopg://{api_user}:{encoded_pass}@{db_host}:{db_port}/{db_name}"

    raise RuntimeError(
        "DATABASE_URL must be set, or DB_API_WORKER_USER, DB_API_WORKER_PASSWORD, "
        "and DB_DATABASE must all be set."
    )


DATABASE_URL = get_database_url()


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""


def _engine_options(url: str) -> dict[str, Any]:
    options: dict[str, Any] = {
        "future": True,
        "echo": os.getenv("LOG_LEVEL", "INFO").upper() == "DEBUG",
    }
    if url.startswith("sqlite"):
        # Single shared connection so an in-memory database survives across sessions
        options["connect_args"] = {"check_same_thread": False}
        if ":memory:" in url or url.rstrip("/") in ("sqlite:", "sqlite+pysqlite:"):
            options["poolclass"] = StaticPool
    else:
        options["pool_pre_ping"] = True
    return options


engine = create_engine(DATABASE_URL, **_engine_options(DATABASE_URL))


if engine.dialect.name == "sqlite":

    @event.listens_for(engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
        # ON DELETE CASCADE is only honoured by SQLite with this pragma
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def get_session() -> Generator[Session, None, None]:
    session: Session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@contextmanager
def atomic(db: Session) -> Generator[Session, None, None]:
    """
    Run a block of writes as one transaction.

    Commits when the block exits normally; rolls back and re-raises on any
    exception so a partially applied mutation is never observable.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


def insert_ignore(
    db: Session,
    model: type[Base],
    values: dict[str, Any],
    conflict_columns: Iterable[str],
) -> bool:
    """
    INSERT ... ON CONFLICT DO NOTHING for the session's dialect.

    Returns True when a new row was written, False when the unique key
    already existed. Does not commit.
    """
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = postgresql.insert(model)
    elif dialect == "sqlite":
        stmt = sqlite.insert(model)
    else:
        raise RuntimeError(f"insert_ignore is not supported on dialect {dialect!r}")

    stmt = stmt.values(**values).on_conflict_do_nothing(index_elements=list(conflict_columns))
    result = db.execute(stmt)
    return bool(result.rowcount)
