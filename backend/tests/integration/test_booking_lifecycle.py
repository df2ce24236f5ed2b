"""
End-to-end booking lifecycle through BookingService.

create -> confirm -> failed reschedule into an occupied window -> cancel,
then check that a terminal booking refuses further transitions and that
the history reflects exactly the successful mutations.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from barberbook.core.constants import BOOKING_NUMBER_PATTERN
from barberbook.core.exceptions import (
    CancellationNotAllowedException,
    ConflictException,
    ErrorKind,
    InvalidStateTransitionException,
    RescheduleNotAllowedException,
)


def utc(year, month, day, hour=0, minute=0):
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


@pytest.mark.integration
class TestBookingLifecycle:
    def test_full_lifecycle(self, booking_service, booking_factory, make_request) -> None:
        booking = booking_service.create_booking(
            make_request(
                provider_id=5,
                scheduled_start_time=utc(2024, 1, 15, 10),
                scheduled_end_time=utc(2024, 1, 15, 11),
                service_price=Decimal("50"),
                tax_rate=Decimal("0.08"),
            ),
            actor_id=42,
        )
        booking_id = booking.id

        assert booking.status == "pending"
        assert booking.total_price == Decimal("54.00")
        assert BOOKING_NUMBER_PATTERN.match(booking.booking_number)

        confirmed = booking_service.update_status(booking_id, "confirmed", actor_id=5)
        assert confirmed.status == "confirmed"

        other = booking_factory(provider_id=5, start=utc(2024, 1, 15, 14))
        with pytest.raises(ConflictException) as exc_info:
            booking_service.reschedule_booking(
                booking_id, utc(2024, 1, 15, 14, 30), utc(2024, 1, 15, 15, 30), actor_id=42
            )
        assert exc_info.value.kind is ErrorKind.CONFLICT
        assert exc_info.value.details["conflicting_booking_ids"] == [other.id]

        # Failed reschedule leaves the window untouched
        unchanged = booking_service.get_booking(booking_id)
        assert unchanged.scheduled_start_time == utc(2024, 1, 15, 10)

        cancelled = booking_service.cancel_booking(booking_id, reason="schedule change", actor_id=42)
        assert cancelled.status == "cancelled"
        assert cancelled.cancelled_by == 42

        with pytest.raises(InvalidStateTransitionException):
            booking_service.update_status(booking_id, "confirmed")
        with pytest.raises(CancellationNotAllowedException):
            booking_service.cancel_booking(booking_id)
        with pytest.raises(RescheduleNotAllowedException):
            booking_service.reschedule_booking(booking_id, utc(2024, 1, 16, 10), utc(2024, 1, 16, 11))

        history = booking_service.get_booking_history(booking_id)
        assert [entry.change_type for entry in history] == ["cancelled", "status_changed", "created"]

    def test_cancelled_slot_can_be_rebooked(self, booking_service, make_request) -> None:
        first = booking_service.create_booking(make_request())
        booking_service.cancel_booking(first.id)

        second = booking_service.create_booking(make_request(customer_id=43))

        assert second.id != first.id
        assert second.scheduled_start_time == first.scheduled_start_time
        assert second.booking_number == "BK-20240110-0002"

    def test_service_day_from_start_to_payment(self, booking_service, make_request) -> None:
        booking = booking_service.create_booking(make_request())

        for status in ("confirmed", "in_progress", "completed"):
            booking_service.update_status(booking.id, status, actor_id=5)
        paid = booking_service.record_payment(booking.id, "paid", tip_amount=Decimal("10"))

        response = booking_service.to_response(paid)
        assert response.status == "completed"
        assert response.payment_status == "paid"
        assert response.tip_amount == Decimal("10.00")
        assert response.total_price == Decimal("54.00")
        assert response.can_cancel is False
        assert len(booking_service.get_booking_history(booking.id)) == 5

    def test_guest_booking(self, booking_service, make_request) -> None:
        booking = booking_service.create_booking(
            make_request(customer_id=None, customer_name="Walk-in", customer_phone="555-0100")
        )

        assert booking.customer_id is None
        assert booking.customer_phone == "555-0100"
