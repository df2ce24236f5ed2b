# backend/barberbook/services/booking_service.py
"""
Booking Service for the booking core

Orchestrates the booking lifecycle:
- create: validate window, price, check availability under the provider
  lock, allocate a booking number, insert as ``pending``
- status changes through the transition table with conditional updates
- reschedule with self-exclusion and the configured buffer
- cancel with a pluggable fee policy
- detail edits, payment reconciliation, listings and statistics

Every successful mutation writes exactly one history row in the same
transaction, then invalidates provider cache entries after commit.
Typed errors from the state machine, availability check and pricing are
forwarded unchanged and nothing is retried here.
"""

from collections import OrderedDict
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
import logging
from typing import Any, Collection, Dict, List, Optional, Tuple
import uuid

from sqlalchemy.orm import Session

from barberbook.core.config import Settings, settings as default_settings
from barberbook.core.constants import (
    BOOKING_NUMBER_DATE_FORMAT,
    BOOKING_NUMBER_MAX_SEQUENCE,
    BOOKING_NUMBER_PATTERN,
    BOOKING_NUMBER_PREFIX,
    BOOKING_NUMBER_SEQUENCE_DIGITS,
    CONSTRAINT_BOOKING_NUMBER,
    CONSTRAINT_BOOKING_UUID,
    DEFAULT_LIST_LIMIT,
    MAX_LIST_LIMIT,
    UNKNOWN_SERVICE_NAME,
)
from barberbook.core.enums import (
    RESCHEDULABLE_STATUSES,
    SCHEDULED_BOOKING_STATUSES,
    BookingChangeType,
    BookingSource,
    BookingStatus,
    PaymentStatus,
)
from barberbook.core.exceptions import (
    BookingIntegrityError,
    BookingNotFoundException,
    CancellationNotAllowedException,
    ConcurrentModificationException,
    DomainException,
    PricingValidationException,
    RescheduleNotAllowedException,
    ServiceException,
    TimeSlotConflictException,
    ValidationException,
)
from barberbook.domain.booking_state_machine import (
    get_allowed_transitions,
    is_terminal_state,
    validate_transition,
)
from barberbook.domain.pricing import calculate_pricing, quantize_money, to_decimal, to_money
from barberbook.domain.stats_options import StatsQueryOptions
from barberbook.domain.time_slot_options import TimeSlotCheckOptions
from barberbook.models.booking import Booking
from barberbook.models.booking_history import BookingHistory
from barberbook.repositories import RepositoryFactory
from barberbook.repositories.booking_repository import BookingRepository
from barberbook.schemas.booking import (
    BookingCreate,
    BookingDetailsUpdate,
    BookingResponse,
    ProviderStats,
    StatsPeriod,
)

from .audit_trail_service import BookingAuditTrail
from .availability_service import AvailabilityService
from .base import BaseService
from .booking_validation import BookingValidator, Clock, utc_now
from .cache_service import CacheKeyBuilder, CacheService
from .cancellation_policy import CancellationFeePolicy, no_cancellation_fee

logger = logging.getLogger(__name__)

GENERIC_CONFLICT_MESSAGE = "This time slot conflicts with an existing booking"
_ZERO_MONEY = Decimal("0.00")


class BookingService(BaseService):
    """
    Service layer for booking lifecycle operations.

    Collaborators are injected so tests can swap the clock, the fee policy
    and the cache without patching module state.
    """

    def __init__(
        self,
        db: Session,
        cache_service: Optional[CacheService] = None,
        validator: Optional[BookingValidator] = None,
        cancellation_policy: CancellationFeePolicy = no_cancellation_fee,
        app_settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
        repository: Optional[BookingRepository] = None,
        availability_service: Optional[AvailabilityService] = None,
        audit_trail: Optional[BookingAuditTrail] = None,
    ):
        super().__init__(db, cache_service)
        self.logger = logging.getLogger(__name__)
        self.settings = app_settings or default_settings
        self.clock: Clock = clock or (validator.clock if validator else utc_now)
        self.validator = validator or BookingValidator(self.settings, self.clock)
        self.cancellation_policy = cancellation_policy
        self.repository = repository or RepositoryFactory.create_booking_repository(db)
        self.availability = availability_service or AvailabilityService(
            db, repository=self.repository, app_settings=self.settings
        )
        self.audit_trail = audit_trail or BookingAuditTrail(db)

    # Lookups

    def get_booking(self, booking_id: int) -> Booking:
        """
        Raises:
            BookingNotFoundException: No booking has this id
        """
        booking = self.repository.get_by_id(booking_id)
        if booking is None:
            raise BookingNotFoundException(booking_id)
        return booking

    def get_booking_by_uuid(self, booking_uuid: str) -> Booking:
        booking = self.repository.get_by_uuid(booking_uuid)
        if booking is None:
            raise BookingNotFoundException(booking_uuid, field="uuid")
        return booking

    def get_booking_by_number(self, booking_number: str) -> Booking:
        if not BOOKING_NUMBER_PATTERN.match(booking_number or ""):
            raise ValidationException(
                f"Malformed booking number: {booking_number}",
                code="INVALID_BOOKING_NUMBER",
                details={"booking_number": booking_number},
            )
        booking = self.repository.get_by_booking_number(booking_number)
        if booking is None:
            raise BookingNotFoundException(booking_number, field="booking_number")
        return booking

    def get_allowed_status_transitions(self, booking_id: int) -> Tuple[str, ...]:
        return get_allowed_transitions(self.get_booking(booking_id).status)

    def get_booking_history(self, booking_id: int) -> List[BookingHistory]:
        """History entries for one booking, newest first."""
        self.get_booking(booking_id)
        return self.audit_trail.list_history(booking_id)

    # Lifecycle mutations

    @BaseService.measure_operation("create_booking")
    def create_booking(self, request: BookingCreate, actor_id: Optional[int] = None) -> Booking:
        """
        Create a ``pending`` booking for the requested provider window.

        Args:
            request: Validated booking payload
            actor_id: User performing the action (None for system/guest flows)

        Returns:
            The persisted booking

        Raises:
            ValidationException: Bad window, notice period or pricing
            TimeSlotConflictException: The window overlaps an active booking
            ConcurrentModificationException: Booking number allocation raced
        """
        start = request.scheduled_start_time
        end = request.scheduled_end_time
        duration_minutes = self.validator.validate_request_window(start, end)

        pricing = calculate_pricing(
            request.service_price,
            request.discount_amount,
            request.tax_rate if request.tax_rate is not None else self.settings.default_tax_rate,
            currency=request.currency or self.settings.default_currency,
        )
        pricing.validate()

        now = self.clock()
        options = TimeSlotCheckOptions.create(start, end)

        try:
            with self.transaction():
                self.availability.ensure_available(request.provider_id, options, lock=True)
                booking = self.repository.create(
                    uuid=str(uuid.uuid4()),
                    booking_number=self._allocate_booking_number(now.date()),
                    provider_id=request.provider_id,
                    customer_id=request.customer_id,
                    time_slot_id=request.time_slot_id,
                    customer_name=request.customer_name,
                    customer_email=request.customer_email,
                    customer_phone=request.customer_phone,
                    service_name=request.service_name or UNKNOWN_SERVICE_NAME,
                    service_category=request.service_category,
                    estimated_duration_minutes=duration_minutes,
                    status=BookingStatus.PENDING.value,
                    service_price=pricing.service_price,
                    discount_amount=pricing.discount_amount,
                    tax_rate=pricing.tax_rate,
                    tax_amount=pricing.tax_amount,
                    tip_amount=_ZERO_MONEY,
                    total_price=pricing.total_price,
                    currency=pricing.currency,
                    payment_status=PaymentStatus.PENDING.value,
                    notes=request.notes,
                    special_requests=request.special_requests,
                    scheduled_start_time=start,
                    scheduled_end_time=end,
                    booking_source=BookingSource(request.booking_source).value,
                    referral_source=request.referral_source,
                    utm_campaign=request.utm_campaign,
                    created_at=now,
                )
                self.audit_trail.record(
                    booking.id,
                    BookingChangeType.CREATED,
                    actor_id=actor_id,
                    new_values=booking.snapshot(),
                    timestamp=now,
                )
        except BookingIntegrityError as exc:
            raise self._conflict_from_integrity(exc, request.provider_id, start, end) from exc

        self.logger.info(
            "Created booking %s for provider %s",
            booking.booking_number,
            booking.provider_id,
            extra={"booking_id": booking.id, "provider_id": booking.provider_id},
        )
        self._invalidate_booking_caches(booking)
        return booking

    @BaseService.measure_operation("update_booking_status")
    def update_status(
        self,
        booking_id: int,
        new_status: Any,
        actor_id: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> Booking:
        """
        Move a booking along the transition table.

        Raises:
            BookingNotFoundException: Unknown booking
            InvalidTargetStatusException: ``new_status`` is not a status
            DisallowedTransitionException: No edge from the current status
            ConcurrentModificationException: Another writer changed the status first
        """
        booking = self.get_booking(booking_id)
        current = booking.status
        validate_transition(current, new_status)
        target = BookingStatus(new_status).value

        now = self.clock()
        extra: Dict[str, Any] = {}
        if target == BookingStatus.IN_PROGRESS.value:
            extra["actual_start_time"] = now
        elif target == BookingStatus.COMPLETED.value:
            extra["actual_end_time"] = now
        elif target == BookingStatus.CANCELLED.value:
            extra.update(cancelled_at=now, cancelled_by=actor_id, cancellation_reason=reason)

        with self.transaction():
            self._apply_status_change(booking_id, current, target, extra)
            self.audit_trail.record(
                booking_id,
                BookingChangeType.STATUS_CHANGED,
                actor_id=actor_id,
                old_values={"status": current},
                new_values={"status": target, **extra},
                reason=reason,
                timestamp=now,
            )

        self.logger.info(
            "Booking %s status changed %s -> %s",
            booking_id,
            current,
            target,
            extra={"booking_id": booking_id},
        )
        self._invalidate_booking_caches(booking)
        return booking

    @BaseService.measure_operation("reschedule_booking")
    def reschedule_booking(
        self,
        booking_id: int,
        new_start: datetime,
        new_end: datetime,
        actor_id: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> Booking:
        """
        Move a pending or confirmed booking to a new window.

        The booking's own current window is excluded from the conflict scan
        and the configured buffer is applied to the new window.

        Raises:
            RescheduleNotAllowedException: Status is not pending/confirmed
            TimeSlotConflictException: The new window is occupied
            ConcurrentModificationException: Status changed during the update
        """
        booking = self.get_booking(booking_id)
        current = booking.status
        if current not in RESCHEDULABLE_STATUSES:
            raise RescheduleNotAllowedException(current, get_allowed_transitions(current))

        duration_minutes = self.validator.validate_request_window(new_start, new_end)
        options = (
            TimeSlotCheckOptions.create(new_start, new_end)
            .with_exclude_booking(booking_id)
            .with_buffer_time(self.settings.booking_buffer_minutes)
        )
        old_values = {
            "scheduled_start_time": booking.scheduled_start_time,
            "scheduled_end_time": booking.scheduled_end_time,
        }
        now = self.clock()

        try:
            with self.transaction():
                self.availability.ensure_available(booking.provider_id, options, lock=True)
                affected = self.repository.update_schedule(
                    booking_id, (current,), new_start, new_end, duration_minutes
                )
                if affected == 0:
                    raise ConcurrentModificationException(booking_id, current)
                self.audit_trail.record(
                    booking_id,
                    BookingChangeType.RESCHEDULED,
                    actor_id=actor_id,
                    old_values=old_values,
                    new_values={"scheduled_start_time": new_start, "scheduled_end_time": new_end},
                    reason=reason,
                    timestamp=now,
                )
        except BookingIntegrityError as exc:
            raise self._conflict_from_integrity(
                exc, booking.provider_id, new_start, new_end
            ) from exc

        self.logger.info(
            "Rescheduled booking %s to %s - %s",
            booking_id,
            new_start.isoformat(),
            new_end.isoformat(),
            extra={"booking_id": booking_id},
        )
        self._invalidate_booking_caches(booking)
        return booking

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(
        self,
        booking_id: int,
        reason: Optional[str] = None,
        actor_id: Optional[int] = None,
    ) -> Booking:
        """
        Cancel a booking and record the policy fee.

        Raises:
            CancellationNotAllowedException: Booking is already terminal
            ConcurrentModificationException: Status changed during the update
        """
        booking = self.get_booking(booking_id)
        current = booking.status
        if is_terminal_state(current):
            raise CancellationNotAllowedException(current)
        validate_transition(current, BookingStatus.CANCELLED.value)

        now = self.clock()
        fee = self._cancellation_fee(booking, now)
        values = {
            "cancelled_at": now,
            "cancelled_by": actor_id,
            "cancellation_reason": reason,
            "cancellation_fee": fee,
        }

        with self.transaction():
            self._apply_status_change(booking_id, current, BookingStatus.CANCELLED.value, values)
            self.audit_trail.record(
                booking_id,
                BookingChangeType.CANCELLED,
                actor_id=actor_id,
                old_values={"status": current},
                new_values={"status": BookingStatus.CANCELLED.value, "cancellation_fee": fee},
                reason=reason,
                timestamp=now,
            )

        self.logger.info(
            "Cancelled booking %s (fee %s)", booking_id, fee, extra={"booking_id": booking_id}
        )
        self._invalidate_booking_caches(booking)
        return booking

    @BaseService.measure_operation("update_booking_details")
    def update_booking_details(
        self,
        booking_id: int,
        update: BookingDetailsUpdate,
        actor_id: Optional[int] = None,
    ) -> Booking:
        """Edit contact details and notes. No history row is written when nothing changed."""
        booking = self.get_booking(booking_id)
        changes = update.changes()
        if booking.customer_id is None:
            self._ensure_guest_contact(booking, changes)

        old_values = {key: getattr(booking, key) for key in changes}
        with self.transaction():
            self.repository.update_fields(booking_id, **changes)
            self.audit_trail.record_changes(
                booking_id,
                BookingChangeType.UPDATED,
                old_values,
                changes,
                actor_id=actor_id,
                timestamp=self.clock(),
            )

        self._invalidate_booking_caches(booking)
        return booking

    @BaseService.measure_operation("record_payment")
    def record_payment(
        self,
        booking_id: int,
        payment_status: Any,
        actor_id: Optional[int] = None,
        tip_amount: Any = None,
        payment_method: Optional[str] = None,
        payment_reference: Optional[str] = None,
    ) -> Booking:
        """
        Reconcile payment state. The tip is stored separately; ``total_price``
        is never touched.
        """
        try:
            status_value = PaymentStatus(payment_status).value
        except ValueError as exc:
            raise ValidationException(
                f"Invalid payment status: {payment_status}",
                code="INVALID_PAYMENT_STATUS",
                details={"allowed": list(PaymentStatus.values())},
            ) from exc

        booking = self.get_booking(booking_id)
        now = self.clock()
        values: Dict[str, Any] = {"payment_status": status_value}
        if tip_amount is not None:
            tip = to_money(tip_amount, "tip_amount")
            if tip < 0:
                raise PricingValidationException("Tip amount cannot be negative", field="tip_amount")
            values["tip_amount"] = tip
        if payment_method is not None:
            values["payment_method"] = payment_method
        if payment_reference is not None:
            values["payment_reference"] = payment_reference
        if status_value == PaymentStatus.PAID.value and booking.paid_at is None:
            values["paid_at"] = now

        old_values = {key: getattr(booking, key) for key in values}
        with self.transaction():
            self.repository.update_fields(booking_id, **values)
            self.audit_trail.record(
                booking_id,
                BookingChangeType.PAYMENT_UPDATED,
                actor_id=actor_id,
                old_values=old_values,
                new_values=values,
                timestamp=now,
            )

        self.logger.info(
            "Recorded payment status %s for booking %s",
            status_value,
            booking_id,
            extra={"booking_id": booking_id},
        )
        self._invalidate_booking_caches(booking)
        return booking

    # Availability

    def check_availability(self, provider_id: int, start_time: datetime, duration_minutes: int) -> bool:
        """Read-only: is ``[start, start + duration)`` free for the provider."""
        return self.availability.is_available(provider_id, start_time, duration_minutes)

    def suggest_alternative_slots(
        self,
        provider_id: int,
        day: date,
        duration_minutes: int,
        limit: int = 5,
    ) -> List[Tuple[datetime, datetime]]:
        """Free windows on ``day`` that also satisfy the minimum notice period."""
        not_before = self.clock() + timedelta(hours=self.settings.min_advance_booking_hours)
        return self.availability.suggest_available_slots(
            provider_id, day, duration_minutes, limit=limit, not_before=not_before
        )

    # Listings and statistics

    def get_provider_bookings(
        self,
        provider_id: int,
        start: datetime,
        end: datetime,
        statuses: Optional[Collection[str]] = None,
    ) -> List[Booking]:
        if end <= start:
            raise ValidationException("Range end must be after its start", code="INVALID_RANGE")
        return self.repository.list_provider_bookings(provider_id, start, end, statuses)

    def get_customer_bookings(
        self,
        customer_id: int,
        statuses: Optional[Collection[str]] = None,
        limit: int = DEFAULT_LIST_LIMIT,
        offset: int = 0,
    ) -> List[Booking]:
        """A customer's bookings, most recently created first."""
        self._validate_page(limit, offset)
        return self.repository.list_customer_bookings(customer_id, statuses, limit, offset)

    def get_upcoming_bookings(
        self,
        provider_id: Optional[int] = None,
        customer_id: Optional[int] = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> List[Booking]:
        """Pending and confirmed bookings that have not started yet, soonest first."""
        self._validate_page(limit, 0)
        return self.repository.list_upcoming_bookings(
            self.clock(), provider_id=provider_id, customer_id=customer_id, limit=limit
        )

    def get_today_bookings(self, provider_id: int) -> List[Booking]:
        """The provider's still-open bookings starting on the current UTC day."""
        day_start = self.clock().astimezone(timezone.utc).replace(
            hour=0, minute=0, second=0, microsecond=0
        )
        return self.repository.list_provider_bookings(
            provider_id, day_start, day_start + timedelta(days=1), SCHEDULED_BOOKING_STATUSES
        )

    @BaseService.measure_operation("get_provider_stats")
    def get_provider_stats(self, provider_id: int, options: StatsQueryOptions) -> ProviderStats:
        """
        Counts by status plus revenue from completed bookings, bucketed by period.

        Results are cached per provider and query until the provider's
        schedule next changes.
        """
        cache_key: Optional[str] = None
        if self.cache:
            cache_key = self._stats_cache_key(self.cache, provider_id, options)
            cached = self.cache.get(cache_key)
            if cached is not None:
                return ProviderStats.model_validate(cached)

        stats = self._compute_provider_stats(provider_id, options)
        if cache_key:
            self.cache.set(cache_key, stats.model_dump(mode="json"))
        return stats

    def _compute_provider_stats(self, provider_id: int, options: StatsQueryOptions) -> ProviderStats:
        counts = self.repository.count_bookings_by_status(
            provider_id, options.from_date, options.to_date, options.filters
        )
        completed_count, completed_revenue = counts[BookingStatus.COMPLETED.value]
        total_revenue = quantize_money(completed_revenue)
        average_price = (
            quantize_money(completed_revenue / completed_count) if completed_count else _ZERO_MONEY
        )

        periods = self._bucket_stats(
            self.repository.get_stats_rows(
                provider_id, options.from_date, options.to_date, options.filters
            ),
            options,
        )

        return ProviderStats(
            provider_id=provider_id,
            from_date=options.from_date,
            to_date=options.to_date,
            group_by=options.group_by,
            total_bookings=sum(count for count, _ in counts.values()),
            completed_bookings=completed_count,
            cancelled_bookings=counts[BookingStatus.CANCELLED.value][0],
            no_show_bookings=counts[BookingStatus.NO_SHOW.value][0],
            status_counts={status: count for status, (count, _) in counts.items()},
            total_revenue=total_revenue if options.include_revenue else None,
            average_price=average_price if options.include_revenue else None,
            periods=periods,
        )

    # Responses

    def to_response(self, booking: Booking) -> BookingResponse:
        now = self.clock()
        status = booking.status
        time_until = booking.scheduled_start_time - now
        response = BookingResponse.model_validate(booking)
        return response.model_copy(
            update={
                "can_cancel": not is_terminal_state(status),
                "can_reschedule": status in RESCHEDULABLE_STATUSES and time_until > timedelta(0),
                "allowed_transitions": list(get_allowed_transitions(status)),
                "time_until_minutes": int(time_until.total_seconds() // 60),
            }
        )

    # Helpers

    def _apply_status_change(
        self, booking_id: int, expected: str, target: str, values: Dict[str, Any]
    ) -> None:
        affected = self.repository.conditional_update_status(booking_id, expected, target, **values)
        if affected == 0:
            raise ConcurrentModificationException(booking_id, expected)

    def _allocate_booking_number(self, booking_day: date) -> str:
        sequence = self.repository.next_booking_sequence(booking_day)
        if sequence > BOOKING_NUMBER_MAX_SEQUENCE:
            raise ServiceException(
                f"Booking number sequence exhausted for {booking_day.isoformat()}",
                code="BOOKING_NUMBER_EXHAUSTED",
            )
        return (
            f"{BOOKING_NUMBER_PREFIX}-{booking_day.strftime(BOOKING_NUMBER_DATE_FORMAT)}-"
            f"{sequence:0{BOOKING_NUMBER_SEQUENCE_DIGITS}d}"
        )

    def _cancellation_fee(self, booking: Booking, now: datetime) -> Decimal:
        total = Decimal(str(booking.total_price))
        fee = quantize_money(
            to_decimal(self.cancellation_policy(booking.scheduled_start_time - now, total), "fee")
        )
        if fee < 0:
            return _ZERO_MONEY
        return min(fee, total)

    @staticmethod
    def _ensure_guest_contact(booking: Booking, changes: Dict[str, Any]) -> None:
        def _resolved(field: str) -> Any:
            return changes[field] if field in changes else getattr(booking, field)

        if not _resolved("customer_name"):
            raise ValidationException("Guest bookings require customer_name", code="GUEST_CONTACT")
        if not (_resolved("customer_email") or _resolved("customer_phone")):
            raise ValidationException(
                "Guest bookings require customer_email or customer_phone", code="GUEST_CONTACT"
            )

    def _conflict_from_integrity(
        self,
        exc: BookingIntegrityError,
        provider_id: int,
        start: datetime,
        end: datetime,
    ) -> DomainException:
        """
        Map a storage constraint violation to a typed error by constraint name.

        CHECK violations are named on every dialect. SQLite does not name the
        unique index that failed, so an unnamed violation is reported as a
        slot conflict, the only unique rule a correct request can still hit.
        """
        constraint = exc.constraint_name
        if constraint in (CONSTRAINT_BOOKING_NUMBER, CONSTRAINT_BOOKING_UUID):
            return ConcurrentModificationException(
                None,
                constraint,
                message="Booking number was allocated by a concurrent request; retry",
            )
        if constraint and constraint.startswith("ck_"):
            return ValidationException(
                "Booking violates a data constraint",
                code="CONSTRAINT_VIOLATION",
                details={"constraint": constraint},
            )
        self.logger.warning(
            "Storage rejected booking window for provider %s (constraint=%s)",
            provider_id,
            constraint,
        )
        return TimeSlotConflictException(
            GENERIC_CONFLICT_MESSAGE,
            details={
                "provider_id": provider_id,
                "requested_start": start.isoformat(),
                "requested_end": end.isoformat(),
                "constraint": constraint,
            },
        )

    @staticmethod
    def _validate_page(limit: int, offset: int) -> None:
        if limit <= 0 or limit > MAX_LIST_LIMIT:
            raise ValidationException(
                f"limit must be between 1 and {MAX_LIST_LIMIT}",
                code="INVALID_PAGE",
                details={"field": "limit", "value": limit},
            )
        if offset < 0:
            raise ValidationException(
                "offset cannot be negative", code="INVALID_PAGE", details={"field": "offset"}
            )

    @staticmethod
    def _stats_cache_key(cache: CacheService, provider_id: int, options: StatsQueryOptions) -> str:
        filters = ",".join(f"{key}={value}" for key, value in sorted(options.filters.items()))
        return cache.provider_stats_key(
            provider_id,
            options.from_date,
            options.to_date,
            options.group_by,
            "revenue" if options.include_revenue else "counts",
            filters or "all",
        )

    def _invalidate_booking_caches(self, booking: Booking) -> None:
        """Best-effort, after commit; the database stays the source of truth."""
        if not self.cache:
            return
        self.invalidate_cache(CacheKeyBuilder.build("booking", booking.id))
        try:
            self.cache.invalidate_provider(booking.provider_id)
        except Exception as e:
            self.logger.warning("Failed to invalidate provider %s cache: %s", booking.provider_id, e)

    @staticmethod
    def _period_start(moment: datetime, group_by: str) -> date:
        day = moment.date()
        if group_by == "week":
            return day - timedelta(days=day.weekday())
        if group_by == "month":
            return day.replace(day=1)
        return day

    def _bucket_stats(
        self,
        rows: List[Tuple[datetime, str, Decimal]],
        options: StatsQueryOptions,
    ) -> List[StatsPeriod]:
        buckets: "OrderedDict[date, Dict[str, Any]]" = OrderedDict()
        for start_time, status, total in rows:
            bucket = buckets.setdefault(
                self._period_start(start_time, options.group_by),
                {"total": 0, "completed": 0, "cancelled": 0, "revenue": _ZERO_MONEY},
            )
            bucket["total"] += 1
            if status == BookingStatus.COMPLETED.value:
                bucket["completed"] += 1
                bucket["revenue"] += Decimal(str(total))
            elif status == BookingStatus.CANCELLED.value:
                bucket["cancelled"] += 1

        return [
            StatsPeriod(
                period_start=period,
                total_bookings=data["total"],
                completed_bookings=data["completed"],
                cancelled_bookings=data["cancelled"],
                revenue=quantize_money(data["revenue"]) if options.include_revenue else None,
            )
            for period, data in buckets.items()
        ]
