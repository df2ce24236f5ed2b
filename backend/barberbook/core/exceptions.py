# backend/barberbook/core/exceptions.py
"""
Domain-specific exceptions for the booking platform.

Every domain exception carries an ``ErrorKind`` so callers can branch on
the kind of failure instead of parsing messages. The API layer converts
them with ``to_http_exception``.
"""

from enum import Enum
from typing import Any, ClassVar, Dict, Iterable, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class ErrorKind(str, Enum):
    """Closed set of failure kinds exposed by the booking core."""

    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INVALID_STATE_TRANSITION = "invalid_state_transition"
    VALIDATION = "validation"
    INTERNAL = "internal"


_HTTP_STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.INVALID_STATE_TRANSITION: HTTP_422_UNPROCESSABLE,
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    kind: ClassVar[ErrorKind] = ErrorKind.INTERNAL

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS_BY_KIND[self.kind]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "code": self.code,
            "kind": self.kind.value,
            "details": self.details,
        }

    def to_http_exception(self) -> HTTPException:
        """Convert to an HTTPException using the status mapped to this error kind."""
        return HTTPException(status_code=self.http_status, detail=self.to_dict())


class ValidationException(DomainException):
    """Raised when input validation fails (bad price, inverted window, ...)."""

    kind = ErrorKind.VALIDATION


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    kind = ErrorKind.NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    kind = ErrorKind.CONFLICT


class InvalidStateTransitionException(DomainException):
    """Raised when a booking cannot move to the requested state."""

    kind = ErrorKind.INVALID_STATE_TRANSITION

    def __init__(
        self,
        message: str,
        *,
        current_status: Optional[str] = None,
        target_status: Optional[str] = None,
        allowed_transitions: Iterable[str] = (),
        code: Optional[str] = None,
    ) -> None:
        self.current_status = current_status
        self.target_status = target_status
        self.allowed_transitions = tuple(allowed_transitions)
        super().__init__(
            message=message,
            code=code or "INVALID_STATE_TRANSITION",
            details={
                "current_status": current_status,
                "target_status": target_status,
                "allowed_transitions": list(self.allowed_transitions),
            },
        )


class ServiceException(DomainException):
    """Raised when a service operation fails for infrastructure reasons."""

    kind = ErrorKind.INTERNAL

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["message"] = self.message or "An error occurred processing your request"
        return payload


# Specific business exceptions


class BookingNotFoundException(NotFoundException):
    """Raised when a booking lookup comes back empty."""

    def __init__(self, lookup: Any, field: str = "id") -> None:
        super().__init__(
            message=f"Booking with {field} {lookup} not found",
            code="BOOKING_NOT_FOUND",
            details={field: lookup},
        )


class TimeSlotConflictException(ConflictException):
    """Raised when a time slot overlaps an existing active booking."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message or "Time slot is not available, please choose another time",
            code="TIME_SLOT_CONFLICT",
            details=details or {},
        )


class ConcurrentModificationException(ConflictException):
    """Raised when an optimistic update loses the race to another writer."""

    def __init__(
        self,
        booking_id: Any,
        expected: Any,
        message: Optional[str] = None,
    ) -> None:
        super().__init__(
            message=message
            or f"Booking {booking_id} was modified by another request; reload and retry",
            code="CONCURRENT_MODIFICATION",
            details={"booking_id": booking_id, "expected": expected},
        )


class DisallowedTransitionException(InvalidStateTransitionException):
    """Raised when the transition table has no edge from current to target."""

    def __init__(self, current_status: str, target_status: str, allowed: Iterable[str]) -> None:
        allowed_list = list(allowed)
        super().__init__(
            (
                f"Cannot change status from '{current_status}' to '{target_status}'. "
                f"Allowed transitions: {allowed_list}"
            ),
            current_status=current_status,
            target_status=target_status,
            allowed_transitions=allowed_list,
            code="DISALLOWED_TRANSITION",
        )


class CancellationNotAllowedException(InvalidStateTransitionException):
    """Raised when cancelling a booking that already reached a terminal state."""

    def __init__(self, current_status: str) -> None:
        super().__init__(
            f"Booking is already in a terminal state: {current_status}",
            current_status=current_status,
            target_status="cancelled",
            allowed_transitions=(),
            code="CANCELLATION_NOT_ALLOWED",
        )


class RescheduleNotAllowedException(InvalidStateTransitionException):
    """Raised when rescheduling a booking outside pending/confirmed."""

    def __init__(self, current_status: str, allowed_transitions: Iterable[str] = ()) -> None:
        super().__init__(
            f"Booking cannot be rescheduled in current status: {current_status}",
            current_status=current_status,
            allowed_transitions=allowed_transitions,
            code="RESCHEDULE_NOT_ALLOWED",
        )


class InvalidStatusException(ValidationException):
    """Raised when a status string is not part of the booking vocabulary."""

    def __init__(self, value: Any, role: str) -> None:
        super().__init__(
            message=f"Invalid {role} status: {value}",
            code=f"INVALID_{role.upper()}_STATUS",
            details={"status": value},
        )


class InvalidCurrentStatusException(InvalidStatusException):
    def __init__(self, value: Any) -> None:
        super().__init__(value, "current")


class InvalidTargetStatusException(InvalidStatusException):
    def __init__(self, value: Any) -> None:
        super().__init__(value, "target")


class PricingValidationException(ValidationException):
    """Raised when a pricing breakdown violates its invariants."""

    def __init__(self, message: str, *, field: Optional[str] = None) -> None:
        super().__init__(
            message=message,
            code="INVALID_PRICING",
            details={"field": field} if field else {},
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """


class BookingIntegrityError(RepositoryException):
    """A storage constraint rejected a booking write."""

    def __init__(self, message: str, constraint_name: Optional[str] = None) -> None:
        self.constraint_name = constraint_name
        super().__init__(message)
