"""Cancellation fee policies.

A policy is any callable ``(time_until_start, total_price) -> fee``.
``time_until_start`` is negative when the booking already started.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import Callable

from barberbook.core.config import Settings
from barberbook.domain.pricing import quantize_money

CancellationFeePolicy = Callable[[timedelta, Decimal], Decimal]

_ZERO = Decimal("0.00")


def no_cancellation_fee(time_until_start: timedelta, total_price: Decimal) -> Decimal:
    return _ZERO


@dataclass(frozen=True)
class TieredCancellationFeePolicy:
    """Charge ``fee_percent`` of the total when cancelling inside the notice window."""

    notice_hours: int
    fee_percent: Decimal

    @classmethod
    def from_settings(cls, app_settings: Settings) -> "TieredCancellationFeePolicy":
        return cls(
            notice_hours=app_settings.cancellation_notice_hours,
            fee_percent=app_settings.late_cancellation_fee_percent,
        )

    def __call__(self, time_until_start: timedelta, total_price: Decimal) -> Decimal:
        if time_until_start >= timedelta(hours=self.notice_hours):
            return _ZERO
        fee = quantize_money(Decimal(str(total_price)) * self.fee_percent / Decimal("100"))
        return min(fee, quantize_money(Decimal(str(total_price))))
