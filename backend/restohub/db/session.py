"""Database engine, session management and the transaction boundary."""

import logging
import time
from collections.abc import Generator
from pathlib import Path
from typing import Annotated, Callable, Optional, TypeVar

from fastapi import Depends
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from restohub.core.config import settings
from restohub.core.errors import InternalError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def configure_sqlite(engine: Engine) -> None:
    """Make SQLite behave for concurrent writers.

    pysqlite's implicit BEGIN is disabled so SQLAlchemy controls the
    transaction, and every transaction starts with BEGIN IMMEDIATE so the
    write lock is taken up front (waiting on the busy timeout) instead of
    being upgraded mid-transaction, which SQLite reports as an immediate
    "database is locked".
    """

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(database_url: str, **kwargs) -> Engine:
    """Create an engine with the pool/driver settings for ``database_url``."""
    if database_url.startswith("sqlite"):
        database = make_url(database_url).database
        if database and database != ":memory:" and not database.startswith("file:"):
            Path(database).parent.mkdir(parents=True, exist_ok=True)
        connect_args = {
            "check_same_thread": False,
            "timeout": settings.sqlite_busy_timeout_seconds,
        }
        connect_args.update(kwargs.pop("connect_args", {}))
        engine = create_engine(database_url, connect_args=connect_args, **kwargs)
        configure_sqlite(engine)
        return engine

    pool_config = {
        "pool_size": 20,          # Number of connections to keep open
        "max_overflow": 40,       # Additional connections allowed beyond pool_size
        "pool_pre_ping": True,    # Test connections before using them
        "pool_recycle": 3600,     # Recycle connections after 1 hour
    }
    pool_config.update(kwargs)
    return create_engine(database_url, **pool_config)


engine = build_engine(settings.database_url, echo=settings.debug and settings.log_level == "DEBUG")

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Get database session dependency.

    Closing the session rolls back anything left uncommitted, so a request
    that ends early never leaves a partial reservation behind.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# Type alias for dependency injection
DbSession = Annotated[Session, Depends(get_db)]


def run_in_transaction(
    db: Session,
    work: Callable[[], T],
    attempts: Optional[int] = None,
) -> T:
    """Run ``work`` as one unit of work and commit it.

    ``OperationalError`` raised before the commit is treated as transient:
    the session is rolled back and ``work`` re-runs from scratch (so every
    stock check is evaluated again), up to ``attempts`` times. Business
    errors roll back and propagate untouched. A failed commit is rolled
    back and reported as ``InternalError`` without retrying.
    """
    attempts = attempts or settings.db_retry_attempts
    for attempt in range(1, attempts + 1):
        try:
            result = work()
            db.flush()
        except OperationalError as exc:
            db.rollback()
            if attempt >= attempts:
                logger.exception("Transaction failed after %d attempts", attempt)
                raise InternalError() from exc
            logger.warning(f"Transient database error (attempt {attempt}/{attempts}): {exc.orig}")
            time.sleep(settings.db_retry_backoff_seconds * attempt)
            continue
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Transaction failed")
            raise InternalError() from exc
        except Exception:
            db.rollback()
            raise

        try:
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Commit failed")
            raise InternalError() from exc
        return result

    raise InternalError()
