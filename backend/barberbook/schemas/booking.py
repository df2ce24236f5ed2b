# backend/barberbook/schemas/booking.py
"""
Booking request and response schemas.

Requests are strict (unknown fields rejected). Responses are built from ORM
rows via ``from_attributes``; derived flags (``can_cancel``,
``can_reschedule``, ``time_until_minutes``) are filled in by
``BookingService.to_response``.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator, model_validator

from barberbook.core.enums import BookingSource, BookingStatus, PaymentStatus

from .base import AwareDatetime, Money, ResponseModel, StrictRequestModel, TaxRate


class BookingCreate(StrictRequestModel):
    """
    Create a booking for one provider window.

    A guest booking (no ``customer_id``) must carry a name and at least one
    way to reach the guest.
    """

    provider_id: int = Field(..., gt=0)
    customer_id: Optional[int] = Field(default=None, gt=0)
    time_slot_id: Optional[int] = None

    customer_name: Optional[str] = Field(default=None, max_length=255)
    customer_email: Optional[str] = Field(default=None, max_length=255)
    customer_phone: Optional[str] = Field(default=None, max_length=50)

    service_name: Optional[str] = Field(default=None, max_length=255)
    service_category: Optional[str] = Field(default=None, max_length=100)

    scheduled_start_time: AwareDatetime
    scheduled_end_time: AwareDatetime

    service_price: Money
    discount_amount: Money = Decimal("0")
    tax_rate: Optional[TaxRate] = Field(
        default=None, description="Defaults to the configured tax rate when omitted"
    )
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)

    notes: Optional[str] = None
    special_requests: Optional[str] = None
    booking_source: BookingSource = BookingSource.WEB_APP
    referral_source: Optional[str] = Field(default=None, max_length=100)
    utm_campaign: Optional[str] = Field(default=None, max_length=100)

    @field_validator("customer_name", "customer_email", "customer_phone", "service_name")
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        stripped = value.strip()
        return stripped or None

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, value: Optional[str]) -> Optional[str]:
        return value.upper() if value else value

    @model_validator(mode="after")
    def _guest_contact_required(self) -> "BookingCreate":
        if self.customer_id is None:
            if not self.customer_name:
                raise ValueError("Guest bookings require customer_name")
            if not (self.customer_email or self.customer_phone):
                raise ValueError("Guest bookings require customer_email or customer_phone")
        return self


class BookingDetailsUpdate(StrictRequestModel):
    """Contact details and notes; status, window and pricing have dedicated operations."""

    customer_name: Optional[str] = Field(default=None, max_length=255)
    customer_email: Optional[str] = Field(default=None, max_length=255)
    customer_phone: Optional[str] = Field(default=None, max_length=50)
    service_category: Optional[str] = Field(default=None, max_length=100)
    notes: Optional[str] = None
    special_requests: Optional[str] = None
    internal_notes: Optional[str] = None

    @model_validator(mode="after")
    def _at_least_one_field(self) -> "BookingDetailsUpdate":
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        return self

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class BookingResponse(ResponseModel):
    id: int
    uuid: str
    booking_number: str
    provider_id: int
    customer_id: Optional[int] = None
    time_slot_id: Optional[int] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None

    service_name: str
    service_category: Optional[str] = None
    estimated_duration_minutes: int

    status: BookingStatus
    scheduled_start_time: datetime
    scheduled_end_time: datetime
    actual_start_time: Optional[datetime] = None
    actual_end_time: Optional[datetime] = None

    service_price: Decimal
    discount_amount: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    tip_amount: Decimal
    total_price: Decimal
    currency: str

    payment_status: PaymentStatus
    payment_method: Optional[str] = None
    paid_at: Optional[datetime] = None

    notes: Optional[str] = None
    special_requests: Optional[str] = None

    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[int] = None
    cancellation_reason: Optional[str] = None
    cancellation_fee: Decimal = Decimal("0.00")

    booking_source: BookingSource
    created_at: datetime
    updated_at: Optional[datetime] = None

    can_cancel: bool = False
    can_reschedule: bool = False
    allowed_transitions: List[BookingStatus] = Field(default_factory=list)
    time_until_minutes: Optional[int] = Field(
        default=None, description="Minutes until the scheduled start; negative once started"
    )


class BookingHistoryResponse(ResponseModel):
    id: int
    booking_id: int
    changed_by: Optional[int] = None
    change_type: str
    old_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None
    change_reason: Optional[str] = None
    request_id: Optional[str] = None
    created_at: datetime


class StatsPeriod(ResponseModel):
    period_start: date
    total_bookings: int = 0
    completed_bookings: int = 0
    cancelled_bookings: int = 0
    revenue: Optional[Decimal] = None


class ProviderStats(ResponseModel):
    provider_id: int
    from_date: datetime
    to_date: datetime
    group_by: str
    total_bookings: int
    completed_bookings: int
    cancelled_bookings: int
    no_show_bookings: int
    status_counts: Dict[str, int]
    total_revenue: Optional[Decimal] = None
    average_price: Optional[Decimal] = None
    periods: List[StatsPeriod] = Field(default_factory=list)
