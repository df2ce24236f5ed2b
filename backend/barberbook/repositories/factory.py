# backend/barberbook/repositories/factory.py
"""
Repository Factory for the booking core

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING, Any, Type

from sqlalchemy.orm import Session

from .base_repository import BaseRepository

# Avoid circular imports
if TYPE_CHECKING:
    from .booking_history_repository import BookingHistoryRepository
    from .booking_repository import BookingRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.

    Centralizes repository creation so services and tests can swap
    implementations in one place.
    """

    @staticmethod
    def create_base_repository(db: Session, model: Type[Any]) -> BaseRepository[Any]:
        """Create a generic base repository for any model."""
        return BaseRepository(db, model)

    @staticmethod
    def create_booking_repository(db: Session) -> "BookingRepository":
        """Create repository for booking operations."""
        from .booking_repository import BookingRepository

        return BookingRepository(db)

    @staticmethod
    def create_booking_history_repository(db: Session) -> "BookingHistoryRepository":
        """Create repository for booking audit trail entries."""
        from .booking_history_repository import BookingHistoryRepository

        return BookingHistoryRepository(db)
