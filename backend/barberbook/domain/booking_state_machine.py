"""Booking status transition table shared by services, models, and schemas."""

from __future__ import annotations

from typing import Mapping

from barberbook.core.enums import BookingStatus
from barberbook.core.exceptions import (
    DisallowedTransitionException,
    InvalidCurrentStatusException,
    InvalidTargetStatusException,
)

_PENDING = BookingStatus.PENDING.value
_CONFIRMED = BookingStatus.CONFIRMED.value
_IN_PROGRESS = BookingStatus.IN_PROGRESS.value
_COMPLETED = BookingStatus.COMPLETED.value
_CANCELLED = BookingStatus.CANCELLED.value
_NO_SHOW = BookingStatus.NO_SHOW.value

# Directed edges; order is preserved for client display
TRANSITIONS: Mapping[str, tuple[str, ...]] = {
    _PENDING: (_CONFIRMED, _CANCELLED, _NO_SHOW),
    _CONFIRMED: (_IN_PROGRESS, _CANCELLED, _NO_SHOW),
    _IN_PROGRESS: (_COMPLETED, _CANCELLED),
    _COMPLETED: (),
    _CANCELLED: (),
    _NO_SHOW: (),
}

TERMINAL_STATUSES: frozenset[str] = frozenset(
    status for status, targets in TRANSITIONS.items() if not targets
)


def _normalize(status: object) -> str | None:
    if isinstance(status, BookingStatus):
        return status.value
    if isinstance(status, str) and status in TRANSITIONS:
        return status
    return None


def get_allowed_transitions(status: object) -> tuple[str, ...]:
    """Return the outgoing edges for ``status``.

    Raises:
        InvalidCurrentStatusException: ``status`` is not a booking status.
    """
    current = _normalize(status)
    if current is None:
        raise InvalidCurrentStatusException(status)
    return TRANSITIONS[current]


def is_terminal_state(status: object) -> bool:
    """True iff ``status`` has no outgoing edges. Unknown statuses are not terminal."""
    current = _normalize(status)
    return current is not None and current in TERMINAL_STATUSES


def validate_transition(current: object, target: object) -> None:
    """Reject anything that is not an edge of the transition table.

    ``current == target`` is never an edge, so "already in that state" is
    reported as a disallowed transition rather than treated as a no-op.
    """
    current_value = _normalize(current)
    if current_value is None:
        raise InvalidCurrentStatusException(current)
    target_value = _normalize(target)
    if target_value is None:
        raise InvalidTargetStatusException(target)

    allowed = TRANSITIONS[current_value]
    if target_value not in allowed:
        raise DisallowedTransitionException(current_value, target_value, allowed)


def can_transition(current: object, target: object) -> bool:
    current_value = _normalize(current)
    target_value = _normalize(target)
    if current_value is None or target_value is None:
        return False
    return target_value in TRANSITIONS[current_value]


__all__ = [
    "TERMINAL_STATUSES",
    "TRANSITIONS",
    "can_transition",
    "get_allowed_transitions",
    "is_terminal_state",
    "validate_transition",
]
