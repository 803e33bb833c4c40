"""
Database engine, session factory, and metadata shared across the application.
"""

from __future__ import annotations

from datetime import datetime
import logging
from typing import Any, Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeMeta, Session, declarative_base, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from appointments.core.config import settings

logger = logging.getLogger(__name__)

# Postgres connections fail fast instead of queueing behind a stuck reservation:
# statement_timeout caps runaway conflict scans, lock_timeout caps the wait on
# the booking-type row lock taken by the reservation transaction.
_POSTGRES_CONNECT_ARGS: dict[str, Any] = {
    "options": "-c statement_timeout=15000 -c lock_timeout=5000",
    "connect_timeout": 5,
    "application_name": "appointments",
}


def _build_engine_kwargs(db_url: str) -> dict[str, Any]:
    """Pick pool/connect settings for the configured dialect."""
    if db_url.startswith("sqlite"):
        kwargs: dict[str, Any] = {"connect_args": {"check_same_thread": False}, "future": True}
        if ":memory:" in db_url or db_url.rstrip("/") == "sqlite:":
            kwargs["poolclass"] = StaticPool
        return kwargs

    return {
        "poolclass": QueuePool,
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_timeout": 5,
        "pool_pre_ping": True,
        "future": True,
        "connect_args": dict(_POSTGRES_CONNECT_ARGS),
    }


def configure_sqlite_engine(engine: Engine) -> None:
    """
    Let SQLAlchemy own SQLite transactions so SAVEPOINTs nest correctly.

    pysqlite defers BEGIN until the first write, which silently ends the
    outer transaction when a savepoint is released. Foreign keys are also
    off by default on SQLite.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN")


def build_engine(db_url: str) -> Engine:
    """Create an engine for ``db_url`` with dialect-appropriate pooling."""
    engine = create_engine(db_url, **_build_engine_kwargs(db_url))
    if engine.dialect.name == "sqlite":
        configure_sqlite_engine(engine)
    return engine


db_url = settings.get_database_url()
engine: Engine = build_engine(db_url)


@event.listens_for(engine, "connect")
def receive_connect(dbapi_connection: Any, connection_record: Any) -> None:
    connection_record.info["connect_time"] = datetime.now()
    logger.debug("Database connection established")


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)

Base: DeclarativeMeta = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Get database session with proper cleanup."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


__all__ = [
    "Base",
    "SessionLocal",
    "build_engine",
    "configure_sqlite_engine",
    "engine",
    "get_db",
]
