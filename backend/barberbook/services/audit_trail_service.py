"""Append-only booking history recorder."""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, List, Mapping

from sqlalchemy.orm import Session

from barberbook.core.enums import BookingChangeType
from barberbook.core.exceptions import ValidationException
from barberbook.core.request_context import get_actor_id, get_request_id
from barberbook.models.booking_history import BookingHistory
from barberbook.repositories.booking_history_repository import BookingHistoryRepository
from barberbook.repositories.factory import RepositoryFactory


class BookingAuditTrail:
    """Write one history row per booking mutation, inside the caller's transaction."""

    def __init__(self, db: Session, repository: BookingHistoryRepository | None = None):
        self.db = db
        self.repository = repository or RepositoryFactory.create_booking_history_repository(db)

    def record(
        self,
        booking_id: int,
        change_type: BookingChangeType | str,
        *,
        actor_id: int | None = None,
        old_values: Mapping[str, Any] | None = None,
        new_values: Mapping[str, Any] | None = None,
        reason: str | None = None,
        request_id: str | None = None,
        timestamp: datetime | None = None,
    ) -> BookingHistory:
        """Append a history entry; never commits."""
        return self.repository.append(
            booking_id=booking_id,
            change_type=_resolve_change_type(change_type),
            changed_by=actor_id if actor_id is not None else get_actor_id(),
            old_values=_snapshot(old_values),
            new_values=_snapshot(new_values),
            change_reason=reason,
            request_id=request_id or get_request_id(),
            created_at=timestamp or datetime.now(timezone.utc),
        )

    def record_changes(
        self,
        booking_id: int,
        change_type: BookingChangeType | str,
        old_values: Mapping[str, Any],
        new_values: Mapping[str, Any],
        **kwargs: Any,
    ) -> BookingHistory | None:
        """Record only the keys whose values differ; nothing is written when none do."""
        changes = _diff_changes(old_values, new_values)
        if not changes:
            return None
        return self.record(
            booking_id,
            change_type,
            old_values={key: diff["old"] for key, diff in changes.items()},
            new_values={key: diff["new"] for key, diff in changes.items()},
            **kwargs,
        )

    def list_history(self, booking_id: int, newest_first: bool = True) -> List[BookingHistory]:
        return self.repository.list_for_booking(booking_id, newest_first=newest_first)


def _resolve_change_type(change_type: BookingChangeType | str) -> str:
    try:
        return BookingChangeType(change_type).value
    except ValueError as exc:
        raise ValidationException(
            f"Unknown booking change type: {change_type}",
            code="INVALID_CHANGE_TYPE",
        ) from exc


def _snapshot(values: Mapping[str, Any] | None) -> dict[str, Any] | None:
    if values is None:
        return None
    return {key: _normalize_value(value) for key, value in values.items()}


def _diff_changes(
    old_values: Mapping[str, Any] | None,
    new_values: Mapping[str, Any] | None,
) -> dict[str, dict[str, Any]]:
    old_values = old_values or {}
    new_values = new_values or {}
    changes: dict[str, dict[str, Any]] = {}
    for key in sorted(set(old_values.keys()) | set(new_values.keys())):
        old_value = _normalize_value(old_values.get(key))
        new_value = _normalize_value(new_values.get(key))
        if old_value != new_value:
            changes[key] = {"old": old_value, "new": new_value}
    return changes


def _normalize_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, time):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _normalize_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize_value(v) for v in value]
    return value
