# backend/barberbook/services/booking_validation.py
"""
Time-window validation for booking requests.

``BookingValidator`` is constructed once at startup with the settings and a
clock, then handed to ``BookingService``; there is no module-level instance.
"""

from datetime import datetime, timedelta, timezone
import logging
from typing import Callable, Optional

from barberbook.core.config import Settings, settings as default_settings
from barberbook.core.exceptions import ValidationException

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BookingValidator:
    """Checks a requested window against duration and advance-notice rules."""

    def __init__(self, app_settings: Optional[Settings] = None, clock: Clock = utc_now):
        self.settings = app_settings or default_settings
        self.clock = clock

    def now(self) -> datetime:
        return self.clock()

    def validate_window(self, start_time: datetime, end_time: datetime) -> int:
        """
        Validate ordering, timezone and duration bounds.

        Returns:
            Duration in whole minutes

        Raises:
            ValidationException: Naive datetimes, inverted window, or a
                duration outside the configured bounds
        """
        if start_time.tzinfo is None or end_time.tzinfo is None:
            raise ValidationException(
                "Booking times must be timezone-aware",
                code="NAIVE_DATETIME",
            )
        if end_time <= start_time:
            raise ValidationException(
                "End time must be after start time",
                code="INVALID_TIME_WINDOW",
                details={"start_time": start_time.isoformat(), "end_time": end_time.isoformat()},
            )

        duration_minutes = int((end_time - start_time).total_seconds() // 60)
        minimum = self.settings.min_booking_duration_minutes
        maximum = self.settings.max_booking_duration_minutes
        if duration_minutes < minimum or duration_minutes > maximum:
            raise ValidationException(
                f"Booking duration must be between {minimum} and {maximum} minutes",
                code="INVALID_DURATION",
                details={"duration_minutes": duration_minutes},
            )
        return duration_minutes

    def validate_advance_notice(self, start_time: datetime) -> None:
        """Reject past starts, starts inside the minimum notice, and starts too far out."""
        if not self.settings.enforce_advance_notice:
            return

        now = self.now()
        if start_time <= now:
            raise ValidationException(
                "Booking time must be in the future",
                code="BOOKING_IN_PAST",
                details={"start_time": start_time.isoformat()},
            )

        min_notice = timedelta(hours=self.settings.min_advance_booking_hours)
        if start_time - now < min_notice:
            raise ValidationException(
                f"Bookings require at least {self.settings.min_advance_booking_hours} "
                "hour(s) advance notice",
                code="INSUFFICIENT_NOTICE",
                details={"start_time": start_time.isoformat()},
            )

        max_ahead = timedelta(days=self.settings.max_advance_booking_days)
        if start_time - now > max_ahead:
            raise ValidationException(
                f"Bookings cannot be made more than {self.settings.max_advance_booking_days} "
                "days in advance",
                code="TOO_FAR_IN_ADVANCE",
                details={"start_time": start_time.isoformat()},
            )

    def validate_request_window(self, start_time: datetime, end_time: datetime) -> int:
        duration = self.validate_window(start_time, end_time)
        self.validate_advance_notice(start_time)
        return duration
