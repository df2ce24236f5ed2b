# backend/barberbook/repositories/__init__.py
"""
Repository Pattern Implementation for the booking core

Key Components:
- BaseRepository: Foundation for all repositories with generic data access
- IRepository: Interface defining required methods for all repositories
- RepositoryFactory: Factory for creating repository instances
- BookingRepository: Active-booking scans, locking, conditional updates, stats
- BookingHistoryRepository: Append-only audit trail storage

Usage:
    from barberbook.repositories import RepositoryFactory

    repository = RepositoryFactory.create_booking_repository(db)
    bookings = repository.find_active_bookings(provider_id, start, end)
"""

from .base_repository import BaseRepository, IRepository
from .booking_history_repository import BookingHistoryRepository
from .booking_repository import BookingRepository
from .factory import RepositoryFactory

__all__ = [
    "BaseRepository",
    "IRepository",
    "RepositoryFactory",
    "BookingRepository",
    "BookingHistoryRepository",
]
