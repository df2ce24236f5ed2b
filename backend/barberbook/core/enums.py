# backend/barberbook/core/enums.py
"""
Core enums for the booking platform.

Values are the wire-level vocabulary shared with API clients and stored
verbatim in the database, so members must never be renamed.
"""

from enum import Enum


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"

    @classmethod
    def values(cls) -> tuple[str, ...]:
        return tuple(member.value for member in cls)


# Statuses that never block a time slot
INACTIVE_BOOKING_STATUSES: frozenset[str] = frozenset(
    {BookingStatus.CANCELLED.value, BookingStatus.NO_SHOW.value}
)

# Statuses from which a booking may still be moved to a new window
RESCHEDULABLE_STATUSES: frozenset[str] = frozenset(
    {BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value}
)

# Statuses of bookings that still belong on the day's schedule
SCHEDULED_BOOKING_STATUSES: frozenset[str] = frozenset(
    {
        BookingStatus.PENDING.value,
        BookingStatus.CONFIRMED.value,
        BookingStatus.IN_PROGRESS.value,
    }
)


class PaymentStatus(str, Enum):
    """Payment reconciliation statuses."""

    PENDING = "pending"
    PAID = "paid"
    PARTIALLY_PAID = "partially_paid"
    REFUNDED = "refunded"
    FAILED = "failed"

    @classmethod
    def values(cls) -> tuple[str, ...]:
        return tuple(member.value for member in cls)


class BookingChangeType(str, Enum):
    """Kinds of booking history entries."""

    CREATED = "created"
    STATUS_CHANGED = "status_changed"
    RESCHEDULED = "rescheduled"
    CANCELLED = "cancelled"
    UPDATED = "updated"
    PAYMENT_UPDATED = "payment_updated"


class BookingSource(str, Enum):
    """Where a booking originated."""

    MOBILE_APP = "mobile_app"
    WEB_APP = "web_app"
    PHONE = "phone"
    WALK_IN = "walk_in"
    ADMIN = "admin"
