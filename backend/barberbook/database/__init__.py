"""
Database engine, session factory, and metadata shared across the application.
"""

from __future__ import annotations

import logging
from typing import Any, Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeMeta, Session, declarative_base, sessionmaker

from barberbook.core.config import Settings, settings

logger = logging.getLogger(__name__)

_DEFAULT_POOL_KWARGS: dict[str, Any] = {
    "pool_size": 5,
    "max_overflow": 10,
    "pool_timeout": 5,
    "pool_recycle": 300,
    "pool_pre_ping": True,
}


def _configure_sqlite_connection(dbapi_connection: Any, _connection_record: Any) -> None:
    # pysqlite must not issue its own BEGIN; see _begin_immediate
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _begin_immediate(conn: Any) -> None:
    """
    Take the SQLite write lock when the transaction starts.

    Without it the availability scan runs before any lock is held and two
    writers can both insert overlapping windows.
    """
    conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(app_settings: Settings) -> Engine:
    """Create an engine for the configured database URL."""
    url = app_settings.resolved_database_url
    if app_settings.is_sqlite:
        # check_same_thread=False is required when sessions cross worker threads
        engine = create_engine(url, connect_args={"check_same_thread": False}, future=True)
        event.listen(engine, "connect", _configure_sqlite_connection)
        event.listen(engine, "begin", _begin_immediate)
    else:
        engine = create_engine(url, future=True, **_DEFAULT_POOL_KWARGS)
    logger.info("Database engine created for dialect %s", engine.dialect.name)
    return engine


engine: Engine = build_engine(settings)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)

Base: DeclarativeMeta = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Yield a session per request and always close it."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


__all__ = [
    "Base",
    "SessionLocal",
    "build_engine",
    "engine",
    "get_db",
]
