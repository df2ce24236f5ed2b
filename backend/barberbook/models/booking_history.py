# backend/barberbook/models/booking_history.py
"""
Append-only audit trail for booking mutations.

One row per lifecycle mutation. Rows are never updated or deleted.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.types import JSON

from barberbook.core.enums import BookingChangeType
from barberbook.database import Base
from barberbook.models.types import UTCDateTime


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class BookingHistory(Base):
    """Persistence model for booking history entries."""

    __tablename__ = "booking_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False)
    changed_by = Column(Integer, nullable=True)
    change_type = Column(String(30), nullable=False)
    old_values = Column(JSONB(astext_type=Text()).with_variant(JSON(), "sqlite"), nullable=True)
    new_values = Column(JSONB(astext_type=Text()).with_variant(JSON(), "sqlite"), nullable=True)
    change_reason = Column(Text, nullable=True)
    request_id = Column(String(64), nullable=True)
    created_at = Column(UTCDateTime(), nullable=False, default=_now_utc)

    booking = relationship("Booking", back_populates="history")

    __table_args__ = (
        Index("ix_booking_history_booking_created", "booking_id", "created_at"),
        CheckConstraint(
            "change_type IN ("
            + ", ".join(f"'{member.value}'" for member in BookingChangeType)
            + ")",
            name="ck_booking_history_change_type",
        ),
    )

    def __repr__(self) -> str:
        return f"<BookingHistory {self.id}: booking={self.booking_id}, type={self.change_type}>"
