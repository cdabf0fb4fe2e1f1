# pyright: reportMissingTypeStubs=false
"""
Database configuration and session management.

This module sets up SQLAlchemy database connection, session management,
and provides dependency injection for database sessions in FastAPI routes.
It also owns the two store-level locking knobs the booking transaction relies
on: SQLite transactions are started with ``BEGIN IMMEDIATE`` so writers are
serialized, and PostgreSQL transactions get a bounded ``lock_timeout``.
"""

import logging
from contextlib import contextmanager
from typing import Any, Generator

from fastapi import HTTPException
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from core.config import DATABASE_URL, DB_LOCK_TIMEOUT_MS, SQLITE_BUSY_TIMEOUT_SECONDS
from core.constants import DB_POOL_RECYCLE_SECONDS

logger = logging.getLogger(__name__)


def configure_sqlite_locking(engine: Engine) -> None:
    """
    Make every SQLite transaction take the database write lock up front.

    pysqlite defers BEGIN until the first write, which lets two transactions
    both read "no conflicting appointment" before either writes. Emitting
    BEGIN IMMEDIATE ourselves turns the whole check-then-insert sequence into
    one serialized unit; a second writer waits up to the busy timeout and then
    fails with OperationalError ("database is locked").
    """

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):  # type: ignore
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):  # type: ignore
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(database_url: str, **kwargs: Any) -> Engine:
    """Create an engine for the given URL with the project's locking setup applied."""
    if database_url.startswith("sqlite"):
        connect_args = kwargs.pop("connect_args", {})
        connect_args.setdefault("check_same_thread", False)
        connect_args.setdefault("timeout", SQLITE_BUSY_TIMEOUT_SECONDS)
        engine = create_engine(database_url, connect_args=connect_args, future=True, **kwargs)
        configure_sqlite_locking(engine)
        return engine

    return create_engine(
        database_url,
        pool_pre_ping=True,  # Verify connections before use
        pool_recycle=DB_POOL_RECYCLE_SECONDS,
        echo=False,
        future=True,
        **kwargs,
    )


def apply_lock_timeout(db: Session, timeout_ms: int = DB_LOCK_TIMEOUT_MS) -> None:
    """
    Bound how long the current transaction waits for row locks.

    Only PostgreSQL supports a per-transaction lock timeout; SQLite is bounded
    by the connection busy timeout configured in build_engine.
    """
    bind = db.get_bind()
    if bind.dialect.name == "postgresql":
        db.execute(text(f"SET LOCAL lock_timeout = {int(timeout_ms)}"))


engine = build_engine(DATABASE_URL)

# Create configured SessionLocal class
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False,  # Don't expire objects after commit
)


# Create Base class for declarative models
class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


@event.listens_for(Base, "before_insert", propagate=True)  # type: ignore
def receive_before_insert(mapper, connection, target):  # type: ignore
    """Set created_at and updated_at on insert using the practice-local clock."""
    # Import here to avoid circular import
    from utils.datetime_utils import local_now
    now = local_now()
    for column_name in ("created_at", "updated_at"):
        if column_name in mapper.columns and getattr(target, column_name, None) is None:  # type: ignore
            setattr(target, column_name, now)


@event.listens_for(Base, "before_update", propagate=True)  # type: ignore
def receive_before_update(mapper, connection, target):  # type: ignore
    """Set updated_at on update using the practice-local clock."""
    from utils.datetime_utils import local_now
    if "updated_at" in mapper.columns:  # type: ignore
        setattr(target, "updated_at", local_now())


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency to provide database sessions.

    Yields a database session that is automatically closed after the request.
    Handles cleanup even if an exception occurs during request processing.

    Yields:
        Session: SQLAlchemy database session
    """
    from services.scheduling_errors import SchedulingError

    db = SessionLocal()
    try:
        yield db
    except SQLAlchemyError as e:
        logger.exception(f"Database error: {e}")
        db.rollback()
        raise
    except (HTTPException, SchedulingError):
        # Expected business outcomes, not errors worth a stack trace
        db.rollback()
        raise
    except Exception as e:
        logger.exception(f"Unexpected error in database session: {e}")
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Context manager for database sessions outside of FastAPI dependency injection.

    Useful for scripts or testing where you need manual session management.

    Example:
        ```python
        with get_db_context() as db:
            doctor = db.query(Doctor).filter(Doctor.id == doctor_id).first()
        ```
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception as e:
        db.rollback()
        logger.exception(f"Database transaction failed: {e}")
        raise
    finally:
        db.close()

