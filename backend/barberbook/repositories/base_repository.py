# backend/barberbook/repositories/base_repository.py
"""
Base Repository Pattern for the booking core

Provides the foundation for all repository classes with:
- Common read/create/update operations (bookings are never deleted)
- Type safety with generics
- Transaction support (managed by services)
- Translation of storage constraint violations into typed errors

Repositories never commit or roll back. The owning service's
``transaction()`` decides the outcome of the unit of work.
"""

from abc import ABC, abstractmethod
import logging
import re
from typing import Any, Generic, List, Optional, Type, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Query, Session

from barberbook.core.exceptions import BookingIntegrityError, RepositoryException
from barberbook.database.session_utils import get_dialect_name, supports_row_locks

# Type variable for generic model support
T = TypeVar("T")

logger = logging.getLogger(__name__)


# SQLite only names CHECK constraints, and only inside the message text
_SQLITE_CHECK_FAILED = re.compile(r"CHECK constraint failed: (\w+)")


def constraint_name_from(exc: IntegrityError) -> Optional[str]:
    """
    Name of the violated constraint, when the driver reports it.

    psycopg exposes it as ``orig.diag.constraint_name``. SQLite reports
    named CHECK constraints in the message; its UNIQUE failures list
    columns instead of the index, so those return None.
    """
    orig = getattr(exc, "orig", None)
    name = getattr(getattr(orig, "diag", None), "constraint_name", None)
    if name:
        return name
    match = _SQLITE_CHECK_FAILED.search(str(orig))
    return match.group(1) if match else None


class IRepository(ABC, Generic[T]):
    """
    Abstract repository interface defining core data access methods.
    """

    @abstractmethod
    def get_by_id(self, id: int) -> Optional[T]:
        """
        Retrieve an entity by its primary key.

        Returns:
            The entity if found, None otherwise
        """

    @abstractmethod
    def create(self, **kwargs: Any) -> T:
        """
        Create a new entity.

        Raises:
            BookingIntegrityError: If a storage constraint rejects the row
            RepositoryException: If creation fails
        """

    @abstractmethod
    def update(self, id: int, **kwargs: Any) -> Optional[T]:
        """
        Update an existing entity.

        Returns:
            The updated entity if found, None otherwise
        """

    @abstractmethod
    def find_by(self, **kwargs: Any) -> List[T]:
        """Find entities by exact-match criteria."""


class BaseRepository(IRepository[T]):
    """
    Concrete base repository implementation with common data access patterns.

    Attributes:
        db: SQLAlchemy session
        model: SQLAlchemy model class
    """

    def __init__(self, db: Session, model: Type[T]):
        self.db = db
        self.model = model
        self.logger = logging.getLogger(f"{__name__}.{model.__name__}")

    @property
    def dialect_name(self) -> str:
        return get_dialect_name(self.db)

    @property
    def supports_row_locks(self) -> bool:
        return supports_row_locks(self.db)

    def get_by_id(self, id: int) -> Optional[T]:
        try:
            return self.db.get(self.model, id)
        except SQLAlchemyError as e:
            self.logger.error("Error getting %s by id %s: %s", self.model.__name__, id, e)
            raise RepositoryException(f"Failed to retrieve {self.model.__name__}: {e}") from e

    def refresh(self, instance: T) -> None:
        """Refresh an instance from the database."""
        self.db.refresh(instance)

    def create(self, **kwargs: Any) -> T:
        """
        Create a new entity.

        Note: Does NOT commit - transaction management is handled by service layer.
        """
        try:
            entity = self.model(**kwargs)
            self.db.add(entity)
            self.db.flush()  # Get ID without committing
            return entity
        except IntegrityError as exc:
            constraint = constraint_name_from(exc)
            self.logger.warning(
                "Integrity error creating %s (constraint=%s): %s",
                self.model.__name__,
                constraint,
                exc.orig,
            )
            raise BookingIntegrityError(
                f"Integrity constraint violated: {exc.orig}", constraint_name=constraint
            ) from exc
        except SQLAlchemyError as e:
            self.logger.error("Error creating %s: %s", self.model.__name__, e)
            raise RepositoryException(f"Failed to create {self.model.__name__}: {e}") from e

    def flush(self) -> None:
        """Flush pending ORM changes."""
        self.db.flush()

    def update(self, id: int, **kwargs: Any) -> Optional[T]:
        """
        Update an existing entity.

        Only updates provided fields, preserves others.
        """
        try:
            entity = self.get_by_id(id)
            if not entity:
                return None

            for key, value in kwargs.items():
                if hasattr(entity, key):
                    setattr(entity, key, value)

            self.db.flush()
            return entity
        except IntegrityError as exc:
            raise BookingIntegrityError(
                f"Integrity constraint violated: {exc.orig}",
                constraint_name=constraint_name_from(exc),
            ) from exc
        except SQLAlchemyError as e:
            self.logger.error("Error updating %s %s: %s", self.model.__name__, id, e)
            raise RepositoryException(f"Failed to update {self.model.__name__}: {e}") from e

    def find_by(self, **kwargs: Any) -> List[T]:
        try:
            return self.db.query(self.model).filter_by(**kwargs).all()
        except SQLAlchemyError as e:
            self.logger.error("Error finding by criteria: %s", e)
            raise RepositoryException(f"Failed to find records: {e}") from e

    def find_one_by(self, **kwargs: Any) -> Optional[T]:
        try:
            return self.db.query(self.model).filter_by(**kwargs).first()
        except SQLAlchemyError as e:
            self.logger.error("Error finding one by criteria: %s", e)
            raise RepositoryException(f"Failed to find record: {e}") from e

    # Protected helper methods for use by subclasses

    def _build_query(self) -> Query:
        """Get base query for the model."""
        return self.db.query(self.model)

    def _execute_query(self, query: Query) -> List[T]:
        """Execute query with error handling."""
        try:
            return query.all()
        except SQLAlchemyError as e:
            self.logger.error("Query execution error: %s", e)
            raise RepositoryException(f"Query failed: {e}") from e
