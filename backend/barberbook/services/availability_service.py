# backend/barberbook/services/availability_service.py
"""
Availability Service for the booking core

Decides whether a candidate window for a provider collides with an
existing active booking:

- the candidate window is widened by the buffer (stored bookings are not)
- a booking conflicts when ``existing.start < effective_end`` and
  ``existing.end > effective_start``
- cancelled and no-show bookings never conflict
- the excluded booking (the one being rescheduled) never conflicts
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from barberbook.core.config import Settings, settings as default_settings
from barberbook.core.enums import INACTIVE_BOOKING_STATUSES
from barberbook.core.exceptions import TimeSlotConflictException, ValidationException
from barberbook.domain.time_slot_options import TimeSlotCheckOptions
from barberbook.models.booking import Booking
from barberbook.repositories import RepositoryFactory
from barberbook.repositories.booking_repository import BookingRepository

from .base import BaseService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AvailabilityResult:
    available: bool
    conflicts: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def conflicting_booking_ids(self) -> List[int]:
        return [conflict["booking_id"] for conflict in self.conflicts]


def _conflict_payload(booking: Booking) -> Dict[str, Any]:
    return {
        "booking_id": booking.id,
        "booking_number": booking.booking_number,
        "start_time": booking.scheduled_start_time.isoformat(),
        "end_time": booking.scheduled_end_time.isoformat(),
        "status": booking.status,
    }


def find_conflicts(bookings: List[Booking], options: TimeSlotCheckOptions) -> List[Booking]:
    """Apply the overlap predicate to already-loaded bookings."""
    return [
        booking
        for booking in bookings
        if booking.status not in INACTIVE_BOOKING_STATUSES
        and booking.id != options.exclude_booking_id
        and options.overlaps(booking.scheduled_start_time, booking.scheduled_end_time)
    ]


class AvailabilityService(BaseService):
    """
    Service for provider availability and time-slot conflict checks.

    Reads go through ``BookingRepository.find_active_bookings``; the overlap
    predicate is re-applied here so the result never depends on how a
    particular database compares timestamps at the boundaries.
    """

    def __init__(
        self,
        db: Session,
        repository: Optional[BookingRepository] = None,
        app_settings: Optional[Settings] = None,
    ):
        super().__init__(db)
        self.logger = logging.getLogger(__name__)
        self.repository = repository or RepositoryFactory.create_booking_repository(db)
        self.settings = app_settings or default_settings

    @BaseService.measure_operation("check_availability")
    def check_availability(
        self,
        provider_id: int,
        options: TimeSlotCheckOptions,
        lock: bool = False,
    ) -> AvailabilityResult:
        """
        Check a candidate window against the provider's active bookings.

        Args:
            provider_id: Provider whose schedule is checked
            options: Candidate window with exclusion/buffer modifiers
            lock: Take the provider schedule lock and row locks first; only
                meaningful inside a write transaction

        Returns:
            AvailabilityResult listing any conflicting bookings
        """
        if lock:
            self.repository.lock_provider_schedule(provider_id)

        candidates = self.repository.find_active_bookings(
            provider_id,
            options.effective_start,
            options.effective_end,
            exclude_booking_id=options.exclude_booking_id,
            for_update=lock,
        )
        conflicts = [_conflict_payload(booking) for booking in find_conflicts(candidates, options)]

        if conflicts:
            self.logger.warning(
                "Found %s booking conflicts for provider %s between %s and %s",
                len(conflicts),
                provider_id,
                options.effective_start.isoformat(),
                options.effective_end.isoformat(),
            )

        return AvailabilityResult(available=not conflicts, conflicts=conflicts)

    def ensure_available(
        self,
        provider_id: int,
        options: TimeSlotCheckOptions,
        lock: bool = False,
    ) -> None:
        """
        Raises:
            TimeSlotConflictException: The window collides with an active booking
        """
        result = self.check_availability(provider_id, options, lock=lock)
        if not result.available:
            raise TimeSlotConflictException(
                details={
                    "provider_id": provider_id,
                    "requested_start": options.start_time.isoformat(),
                    "requested_end": options.end_time.isoformat(),
                    "buffer_minutes": options.buffer_minutes if options.check_buffer_time else 0,
                    "conflicting_booking_ids": result.conflicting_booking_ids,
                }
            )

    def is_available(self, provider_id: int, start_time: datetime, duration_minutes: int) -> bool:
        """Boolean check of ``[start, start + duration)`` with no buffer or exclusion."""
        if duration_minutes <= 0:
            raise ValidationException(
                "Duration must be positive",
                code="INVALID_DURATION",
                details={"duration_minutes": duration_minutes},
            )
        options = TimeSlotCheckOptions.create(
            start_time, start_time + timedelta(minutes=duration_minutes)
        )
        return self.check_availability(provider_id, options).available

    @BaseService.measure_operation("suggest_available_slots")
    def suggest_available_slots(
        self,
        provider_id: int,
        day: date,
        duration_minutes: int,
        limit: int = 5,
        buffer_minutes: Optional[int] = None,
        not_before: Optional[datetime] = None,
    ) -> List[Tuple[datetime, datetime]]:
        """
        Free windows of ``duration_minutes`` within business hours on ``day``.

        Candidates start on the configured slot interval (UTC). The provider's
        bookings for the day are loaded once and tested in memory.
        """
        if duration_minutes <= 0:
            raise ValidationException(
                "Duration must be positive",
                code="INVALID_DURATION",
                details={"duration_minutes": duration_minutes},
            )

        opening = datetime.combine(day, time(hour=self.settings.business_hours_start), timezone.utc)
        closing = datetime.combine(day, time(), timezone.utc) + timedelta(
            hours=self.settings.business_hours_end
        )
        step = timedelta(minutes=self.settings.time_slot_interval_minutes)
        duration = timedelta(minutes=duration_minutes)
        buffer = self.settings.booking_buffer_minutes if buffer_minutes is None else buffer_minutes

        padding = timedelta(minutes=buffer)
        existing = self.repository.find_active_bookings(
            provider_id, opening - padding, closing + padding
        )

        suggestions: List[Tuple[datetime, datetime]] = []
        start = opening
        while start + duration <= closing and len(suggestions) < limit:
            if not_before is None or start >= not_before:
                options = TimeSlotCheckOptions.create(start, start + duration).with_buffer_time(buffer)
                if not find_conflicts(existing, options):
                    suggestions.append((start, start + duration))
            start += step

        self.logger.debug(
            "Suggested %s slots for provider %s on %s", len(suggestions), provider_id, day
        )
        return suggestions
