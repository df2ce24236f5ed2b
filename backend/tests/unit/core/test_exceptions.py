from fastapi import HTTPException
import pytest

from barberbook.core.exceptions import (
    BookingNotFoundException,
    CancellationNotAllowedException,
    ConcurrentModificationException,
    DomainException,
    ErrorKind,
    InvalidTargetStatusException,
    PricingValidationException,
    RescheduleNotAllowedException,
    ServiceException,
    TimeSlotConflictException,
)


@pytest.mark.unit
class TestErrorKinds:
    @pytest.mark.parametrize(
        "error, kind, status_code",
        [
            (BookingNotFoundException(7), ErrorKind.NOT_FOUND, 404),
            (TimeSlotConflictException(), ErrorKind.CONFLICT, 409),
            (ConcurrentModificationException(7, "pending"), ErrorKind.CONFLICT, 409),
            (CancellationNotAllowedException("completed"), ErrorKind.INVALID_STATE_TRANSITION, 422),
            (RescheduleNotAllowedException("in_progress"), ErrorKind.INVALID_STATE_TRANSITION, 422),
            (InvalidTargetStatusException("archived"), ErrorKind.VALIDATION, 400),
            (PricingValidationException("bad", field="tax_rate"), ErrorKind.VALIDATION, 400),
            (ServiceException("db down"), ErrorKind.INTERNAL, 500),
        ],
    )
    def test_kind_and_status(self, error: DomainException, kind: ErrorKind, status_code: int) -> None:
        assert error.kind is kind
        assert error.http_status == status_code

    def test_to_http_exception(self) -> None:
        http_error = BookingNotFoundException("BK-20240110-0001", field="booking_number").to_http_exception()

        assert isinstance(http_error, HTTPException)
        assert http_error.status_code == 404
        assert http_error.detail == {
            "message": "Booking with booking_number BK-20240110-0001 not found",
            "code": "BOOKING_NOT_FOUND",
            "kind": "not_found",
            "details": {"booking_number": "BK-20240110-0001"},
        }

    def test_conflict_defaults(self) -> None:
        error = TimeSlotConflictException(details={"provider_id": 5})

        assert error.code == "TIME_SLOT_CONFLICT"
        assert "not available" in error.message
        assert error.details == {"provider_id": 5}

    def test_concurrent_modification_details(self) -> None:
        error = ConcurrentModificationException(12, "pending")

        assert error.details == {"booking_id": 12, "expected": "pending"}
        assert "12" in error.message

    def test_cancellation_not_allowed_lists_no_transitions(self) -> None:
        error = CancellationNotAllowedException("no_show")

        assert error.current_status == "no_show"
        assert error.target_status == "cancelled"
        assert error.allowed_transitions == ()
