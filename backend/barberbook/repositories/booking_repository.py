# backend/barberbook/repositories/booking_repository.py
"""
Booking Repository for the booking core

Implements all data access operations for booking management:
- Active-booking range scans used by the availability check
- Provider schedule locking for the check-then-insert sequence
- Booking number sequence allocation
- Conditional (optimistic) status and schedule updates
- Provider, customer and upcoming listings plus statistics aggregation
"""

from datetime import date, datetime
from decimal import Decimal
import logging
from typing import Any, Collection, Dict, List, Mapping, Optional, Tuple, cast

from sqlalchemy import func, text, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from barberbook.core.constants import (
    BOOKING_NUMBER_DATE_FORMAT,
    BOOKING_NUMBER_PREFIX,
    DEFAULT_LIST_LIMIT,
)
from barberbook.core.enums import INACTIVE_BOOKING_STATUSES, BookingStatus
from barberbook.core.exceptions import BookingIntegrityError, RepositoryException
from barberbook.models.booking import Booking
from barberbook.repositories.base_repository import BaseRepository, constraint_name_from

logger = logging.getLogger(__name__)

# Advisory lock namespace for booking-number allocation; provider locks use the raw id
_BOOKING_NUMBER_LOCK_NAMESPACE = 0x42_4B


class BookingRepository(BaseRepository[Booking]):
    """
    Repository for booking data access.

    Conditional updates return the affected-row count so the service can
    tell a lost race (zero rows) from success without re-reading.
    """

    def __init__(self, db: Session):
        """Initialize with Booking model."""
        super().__init__(db, Booking)
        self.logger = logging.getLogger(__name__)

    # Lookups

    def get_by_uuid(self, booking_uuid: str) -> Optional[Booking]:
        return self.find_one_by(uuid=booking_uuid)

    def get_by_booking_number(self, booking_number: str) -> Optional[Booking]:
        return self.find_one_by(booking_number=booking_number)

    # Availability reads

    def find_active_bookings(
        self,
        provider_id: int,
        range_start: datetime,
        range_end: datetime,
        exclude_booking_id: Optional[int] = None,
        for_update: bool = False,
    ) -> List[Booking]:
        """
        Get a provider's bookings overlapping ``[range_start, range_end)``.

        Cancelled and no-show bookings never occupy a slot and are skipped.
        ``for_update`` locks the returned rows where the dialect supports it.

        Returns:
            Overlapping bookings ordered by start time
        """
        try:
            query = self.db.query(Booking).filter(
                Booking.provider_id == provider_id,
                Booking.status.notin_(list(INACTIVE_BOOKING_STATUSES)),
                Booking.scheduled_start_time < range_end,
                Booking.scheduled_end_time > range_start,
            )
            if exclude_booking_id is not None:
                query = query.filter(Booking.id != exclude_booking_id)
            if for_update and self.supports_row_locks:
                query = query.with_for_update()

            return cast(List[Booking], query.order_by(Booking.scheduled_start_time).all())
        except SQLAlchemyError as e:
            self.logger.error("Error finding active bookings for provider %s: %s", provider_id, e)
            raise RepositoryException(f"Failed to find active bookings: {e}") from e

    def lock_provider_schedule(self, provider_id: int) -> None:
        """
        Serialize schedule writers for one provider until the transaction ends.

        PostgreSQL only. SQLite engines from ``build_engine`` open every
        transaction with ``BEGIN IMMEDIATE``, which already serializes writers.
        """
        if not self.supports_row_locks:
            return
        try:
            self.db.execute(text("SELECT pg_advisory_xact_lock(:key)"), {"key": provider_id})
        except SQLAlchemyError as e:
            self.logger.error("Failed to lock schedule for provider %s: %s", provider_id, e)
            raise RepositoryException(f"Failed to lock provider schedule: {e}") from e

    # Booking numbers

    def next_booking_sequence(self, booking_day: date) -> int:
        """
        Next free per-day sequence for ``BK-YYYYMMDD-NNNN`` numbers.

        Concurrent allocators on PostgreSQL are serialized per day; anywhere
        else a collision surfaces as a unique violation on insert.
        """
        prefix = f"{BOOKING_NUMBER_PREFIX}-{booking_day.strftime(BOOKING_NUMBER_DATE_FORMAT)}-"
        try:
            if self.supports_row_locks:
                self.db.execute(
                    text("SELECT pg_advisory_xact_lock(:namespace, :day)"),
                    {"namespace": _BOOKING_NUMBER_LOCK_NAMESPACE, "day": booking_day.toordinal()},
                )
            latest = (
                self.db.query(func.max(Booking.booking_number))
                .filter(Booking.booking_number.like(f"{prefix}%"))
                .scalar()
            )
        except SQLAlchemyError as e:
            self.logger.error("Error allocating booking number for %s: %s", booking_day, e)
            raise RepositoryException(f"Failed to allocate booking number: {e}") from e

        if not latest:
            return 1
        return int(latest[len(prefix) :]) + 1

    # Conditional writes

    def conditional_update_status(
        self,
        booking_id: int,
        expected_status: str,
        new_status: str,
        **extra_values: Any,
    ) -> int:
        """
        ``UPDATE bookings SET status=:new ... WHERE id=:id AND status=:expected``.

        Returns:
            Number of affected rows (0 when another writer changed the status)
        """
        values: Dict[str, Any] = {"status": new_status, **extra_values}
        return self._conditional_update(
            booking_id, (expected_status,), values, operation="status update"
        )

    def update_schedule(
        self,
        booking_id: int,
        expected_statuses: Collection[str],
        new_start: datetime,
        new_end: datetime,
        duration_minutes: int,
    ) -> int:
        """Move a booking's window while it is still in one of ``expected_statuses``."""
        values = {
            "scheduled_start_time": new_start,
            "scheduled_end_time": new_end,
            "estimated_duration_minutes": duration_minutes,
        }
        return self._conditional_update(
            booking_id, tuple(expected_statuses), values, operation="reschedule"
        )

    def update_fields(self, booking_id: int, **values: Any) -> Optional[Booking]:
        """Plain attribute update for non-status fields (contact details, payment)."""
        return self.update(booking_id, **values)

    def _conditional_update(
        self,
        booking_id: int,
        expected_statuses: Tuple[str, ...],
        values: Mapping[str, Any],
        operation: str,
    ) -> int:
        stmt = (
            update(Booking)
            .where(Booking.id == booking_id, Booking.status.in_(expected_statuses))
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        try:
            result = self.db.execute(stmt)
        except IntegrityError as exc:
            constraint = constraint_name_from(exc)
            self.logger.warning(
                "Integrity error during %s of booking %s (constraint=%s)",
                operation,
                booking_id,
                constraint,
            )
            raise BookingIntegrityError(
                f"Integrity constraint violated: {exc.orig}", constraint_name=constraint
            ) from exc
        except SQLAlchemyError as e:
            self.logger.error("Error during %s of booking %s: %s", operation, booking_id, e)
            raise RepositoryException(f"Failed to apply {operation}: {e}") from e

        affected = int(result.rowcount or 0)
        if affected == 0:
            self.logger.info(
                "Conditional %s matched no rows for booking %s (expected %s)",
                operation,
                booking_id,
                list(expected_statuses),
            )
        return affected

    # Listings and statistics

    def list_provider_bookings(
        self,
        provider_id: int,
        start: datetime,
        end: datetime,
        statuses: Optional[Collection[str]] = None,
    ) -> List[Booking]:
        query = self.db.query(Booking).filter(
            Booking.provider_id == provider_id,
            Booking.scheduled_start_time >= start,
            Booking.scheduled_start_time < end,
        )
        if statuses:
            query = query.filter(Booking.status.in_(list(statuses)))
        return self._execute_query(query.order_by(Booking.scheduled_start_time))

    def list_customer_bookings(
        self,
        customer_id: int,
        statuses: Optional[Collection[str]] = None,
        limit: int = DEFAULT_LIST_LIMIT,
        offset: int = 0,
    ) -> List[Booking]:
        query = self.db.query(Booking).filter(Booking.customer_id == customer_id)
        if statuses:
            query = query.filter(Booking.status.in_(list(statuses)))
        query = query.order_by(Booking.created_at.desc(), Booking.id.desc())
        return self._execute_query(query.offset(offset).limit(limit))

    def list_upcoming_bookings(
        self,
        now: datetime,
        provider_id: Optional[int] = None,
        customer_id: Optional[int] = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> List[Booking]:
        """Pending or confirmed bookings starting at or after ``now``, soonest first."""
        query = self.db.query(Booking).filter(
            Booking.status.in_([BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value]),
            Booking.scheduled_start_time >= now,
        )
        if provider_id is not None:
            query = query.filter(Booking.provider_id == provider_id)
        if customer_id is not None:
            query = query.filter(Booking.customer_id == customer_id)
        return self._execute_query(query.order_by(Booking.scheduled_start_time).limit(limit))

    def count_bookings_by_status(
        self,
        provider_id: int,
        start: datetime,
        end: datetime,
        filters: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Tuple[int, Decimal]]:
        """
        Count bookings and sum their totals grouped by status.

        Returns:
            ``{status: (count, total_price_sum)}`` with every status present
        """
        try:
            query = self.db.query(
                Booking.status,
                func.count(Booking.id).label("count"),
                func.coalesce(func.sum(Booking.total_price), 0).label("revenue"),
            ).filter(
                Booking.provider_id == provider_id,
                Booking.scheduled_start_time >= start,
                Booking.scheduled_start_time < end,
            )
            query = self._apply_stats_filters(query, filters)
            rows = query.group_by(Booking.status).all()
        except SQLAlchemyError as e:
            self.logger.error("Error counting bookings by status: %s", e)
            raise RepositoryException(f"Failed to count bookings by status: {e}") from e

        counts: Dict[str, Tuple[int, Decimal]] = {
            status.value: (0, Decimal("0.00")) for status in BookingStatus
        }
        for row in rows:
            if row.status:
                counts[row.status] = (int(row.count), Decimal(str(row.revenue)))
        return counts

    def get_stats_rows(
        self,
        provider_id: int,
        start: datetime,
        end: datetime,
        filters: Optional[Mapping[str, Any]] = None,
    ) -> List[Tuple[datetime, str, Decimal]]:
        """(start time, status, total) tuples for period bucketing."""
        query = self.db.query(
            Booking.scheduled_start_time, Booking.status, Booking.total_price
        ).filter(
            Booking.provider_id == provider_id,
            Booking.scheduled_start_time >= start,
            Booking.scheduled_start_time < end,
        )
        query = self._apply_stats_filters(query, filters)
        try:
            return [
                (row[0], row[1], row[2])
                for row in query.order_by(Booking.scheduled_start_time).all()
            ]
        except SQLAlchemyError as e:
            self.logger.error("Error loading stats rows: %s", e)
            raise RepositoryException(f"Failed to load stats rows: {e}") from e

    @staticmethod
    def _apply_stats_filters(query: Any, filters: Optional[Mapping[str, Any]]) -> Any:
        for key, value in (filters or {}).items():
            column = getattr(Booking, key)
            if isinstance(value, (list, tuple, set, frozenset)):
                query = query.filter(column.in_(list(value)))
            else:
                query = query.filter(column == value)
        return query
