# backend/barberbook/repositories/booking_history_repository.py
"""
Repository for the append-only booking history table.

Entries are only ever inserted and read back; there is no update path.
"""

import logging
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from barberbook.core.exceptions import RepositoryException
from barberbook.models.booking_history import BookingHistory
from barberbook.repositories.base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingHistoryRepository(BaseRepository[BookingHistory]):
    def __init__(self, db: Session):
        super().__init__(db, BookingHistory)

    def append(self, **fields: object) -> BookingHistory:
        """Insert one history row in the caller's transaction."""
        return self.create(**fields)

    def update(self, id: int, **kwargs: object) -> None:  # type: ignore[override]
        raise RepositoryException("Booking history entries are immutable")

    def list_for_booking(self, booking_id: int, newest_first: bool = True) -> List[BookingHistory]:
        try:
            query = self.db.query(BookingHistory).filter(BookingHistory.booking_id == booking_id)
            if newest_first:
                query = query.order_by(BookingHistory.created_at.desc(), BookingHistory.id.desc())
            else:
                query = query.order_by(BookingHistory.created_at, BookingHistory.id)
            return query.all()
        except SQLAlchemyError as e:
            self.logger.error("Error listing history for booking %s: %s", booking_id, e)
            raise RepositoryException(f"Failed to list booking history: {e}") from e
