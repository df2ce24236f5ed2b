"""
Dialect helpers for code that must behave differently on PostgreSQL and SQLite.
"""

from __future__ import annotations

from sqlalchemy.exc import NoInspectionAvailable, UnboundExecutionError
from sqlalchemy.orm import Session


def get_dialect_name(session: Session, default: str = "sqlite") -> str:
    """Return the dialect name of the engine bound to ``session``."""
    try:
        bind = session.get_bind()
    except (UnboundExecutionError, NoInspectionAvailable):
        return default
    dialect = getattr(bind, "dialect", None)
    return getattr(dialect, "name", None) or default


def supports_row_locks(session: Session) -> bool:
    """SELECT ... FOR UPDATE and advisory locks are only meaningful on PostgreSQL."""
    return get_dialect_name(session) == "postgresql"
