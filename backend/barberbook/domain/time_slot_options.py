"""Immutable description of a single availability check."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Optional

from barberbook.core.exceptions import ValidationException


@dataclass(frozen=True)
class TimeSlotCheckOptions:
    """Candidate window plus the modifiers applied while checking it.

    Build with ``create`` and chain ``with_exclude_booking`` /
    ``with_buffer_time``; each call returns a new instance.
    """

    start_time: datetime
    end_time: datetime
    exclude_booking_id: Optional[int] = None
    check_buffer_time: bool = False
    buffer_minutes: int = 0

    @classmethod
    def create(cls, start_time: datetime, end_time: datetime) -> "TimeSlotCheckOptions":
        if end_time <= start_time:
            raise ValidationException(
                "End time must be after start time",
                code="INVALID_TIME_WINDOW",
                details={"start_time": start_time.isoformat(), "end_time": end_time.isoformat()},
            )
        return cls(start_time=start_time, end_time=end_time)

    def with_exclude_booking(self, booking_id: int) -> "TimeSlotCheckOptions":
        return replace(self, exclude_booking_id=booking_id)

    def with_buffer_time(self, minutes: int) -> "TimeSlotCheckOptions":
        if minutes < 0:
            raise ValidationException(
                "Buffer time cannot be negative",
                code="INVALID_BUFFER",
                details={"buffer_minutes": minutes},
            )
        return replace(self, check_buffer_time=True, buffer_minutes=minutes)

    @property
    def buffer(self) -> timedelta:
        if self.check_buffer_time and self.buffer_minutes > 0:
            return timedelta(minutes=self.buffer_minutes)
        return timedelta(0)

    @property
    def effective_start(self) -> datetime:
        return self.start_time - self.buffer

    @property
    def effective_end(self) -> datetime:
        return self.end_time + self.buffer

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """Half-open overlap of ``[start, end)`` with the buffered candidate window."""
        return start < self.effective_end and end > self.effective_start
