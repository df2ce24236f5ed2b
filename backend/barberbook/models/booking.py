# backend/barberbook/models/booking.py
"""
Booking model for the barber booking platform.

A booking is a self-contained record of one customer (or guest) occupying
one provider for a half-open window ``[scheduled_start_time,
scheduled_end_time)``. Service and pricing details are snapshotted at
creation time. Bookings are never deleted; cancellation is a status.
"""

from datetime import datetime, timezone
from decimal import Decimal
import logging
from typing import Any, Dict

from sqlalchemy import (
    CheckConstraint,
    Column,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    text,
)
from sqlalchemy.orm import relationship

from barberbook.core.constants import (
    CONSTRAINT_BOOKING_NUMBER,
    CONSTRAINT_BOOKING_UUID,
    CONSTRAINT_PROVIDER_ACTIVE_START,
    DEFAULT_BOOKING_SOURCE,
    DEFAULT_CURRENCY,
)
from barberbook.core.enums import BookingStatus, PaymentStatus
from barberbook.database import Base
from barberbook.models.types import UTCDateTime

logger = logging.getLogger(__name__)

_ACTIVE_SLOT_PREDICATE = "status NOT IN ('cancelled', 'no_show')"


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _quoted(values: tuple[str, ...]) -> str:
    return ", ".join(f"'{value}'" for value in values)


class Booking(Base):
    """
    Provider booking with pricing, payment and cancellation metadata.

    ``total_price`` is always derived from ``service_price``,
    ``discount_amount`` and ``tax_rate`` through ``PricingBreakdown``;
    tips are tracked separately in ``tip_amount``.
    """

    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    uuid = Column(String(36), nullable=False)
    booking_number = Column(String(16), nullable=False)

    # Relationships (provider/customer/time slot tables live outside this core)
    provider_id = Column(Integer, nullable=False, index=True)
    customer_id = Column(Integer, nullable=True, index=True)
    time_slot_id = Column(Integer, nullable=True)

    # Guest contact details
    customer_name = Column(String(255), nullable=True)
    customer_email = Column(String(255), nullable=True)
    customer_phone = Column(String(50), nullable=True)

    # Service snapshot
    service_name = Column(String(255), nullable=False)
    service_category = Column(String(100), nullable=True)
    estimated_duration_minutes = Column(Integer, nullable=False)

    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value, index=True)

    # Pricing breakdown
    service_price = Column(Numeric(10, 2), nullable=False)
    discount_amount = Column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    tax_rate = Column(Numeric(5, 4), nullable=False, default=Decimal("0"))
    tax_amount = Column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    tip_amount = Column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    total_price = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False, default=DEFAULT_CURRENCY)

    # Payment
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)
    payment_method = Column(String(50), nullable=True)
    payment_reference = Column(String(255), nullable=True)
    paid_at = Column(UTCDateTime(), nullable=True)

    # Free text
    notes = Column(Text, nullable=True)
    special_requests = Column(Text, nullable=True)
    internal_notes = Column(Text, nullable=True)

    # Scheduling window
    scheduled_start_time = Column(UTCDateTime(), nullable=False, index=True)
    scheduled_end_time = Column(UTCDateTime(), nullable=False)
    actual_start_time = Column(UTCDateTime(), nullable=True)
    actual_end_time = Column(UTCDateTime(), nullable=True)

    # Cancellation
    cancelled_at = Column(UTCDateTime(), nullable=True)
    cancelled_by = Column(Integer, nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    cancellation_fee = Column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))

    # Source and attribution
    booking_source = Column(String(20), nullable=False, default=DEFAULT_BOOKING_SOURCE)
    referral_source = Column(String(100), nullable=True)
    utm_campaign = Column(String(100), nullable=True)

    created_at = Column(UTCDateTime(), nullable=False, default=_now_utc)
    updated_at = Column(UTCDateTime(), nullable=True, onupdate=_now_utc)

    history = relationship(
        "BookingHistory",
        back_populates="booking",
        order_by="BookingHistory.id",
        lazy="selectin",
        viewonly=True,
    )

    __table_args__ = (
        Index(CONSTRAINT_BOOKING_UUID, "uuid", unique=True),
        Index(CONSTRAINT_BOOKING_NUMBER, "booking_number", unique=True),
        # Storage-level guard against two active bookings starting together
        Index(
            CONSTRAINT_PROVIDER_ACTIVE_START,
            "provider_id",
            "scheduled_start_time",
            unique=True,
            sqlite_where=text(_ACTIVE_SLOT_PREDICATE),
            postgresql_where=text(_ACTIVE_SLOT_PREDICATE),
        ),
        Index("ix_bookings_provider_window", "provider_id", "scheduled_start_time", "scheduled_end_time"),
        CheckConstraint(
            f"status IN ({_quoted(BookingStatus.values())})", name="ck_bookings_status"
        ),
        CheckConstraint(
            f"payment_status IN ({_quoted(PaymentStatus.values())})",
            name="ck_bookings_payment_status",
        ),
        CheckConstraint("scheduled_end_time > scheduled_start_time", name="ck_bookings_window_order"),
        CheckConstraint("estimated_duration_minutes > 0", name="ck_bookings_duration_positive"),
        CheckConstraint("service_price >= 0", name="ck_bookings_service_price_non_negative"),
        CheckConstraint(
            "discount_amount >= 0 AND discount_amount <= service_price",
            name="ck_bookings_discount_range",
        ),
        CheckConstraint("tax_rate >= 0 AND tax_rate <= 1", name="ck_bookings_tax_rate_range"),
        CheckConstraint("tip_amount >= 0", name="ck_bookings_tip_non_negative"),
        CheckConstraint("cancellation_fee >= 0", name="ck_bookings_cancellation_fee_non_negative"),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking {self.id} {self.booking_number}: provider={self.provider_id}, "
            f"window={self.scheduled_start_time}-{self.scheduled_end_time}, status={self.status}>"
        )

    def snapshot(self) -> Dict[str, Any]:
        """Key fields recorded in the ``created`` history entry."""
        return {
            "status": self.status,
            "provider_id": self.provider_id,
            "customer_id": self.customer_id,
            "booking_number": self.booking_number,
            "scheduled_start_time": self.scheduled_start_time,
            "scheduled_end_time": self.scheduled_end_time,
            "service_price": self.service_price,
            "discount_amount": self.discount_amount,
            "tax_rate": self.tax_rate,
            "total_price": self.total_price,
            "currency": self.currency,
        }
