from datetime import timedelta
from decimal import Decimal

import pytest

from barberbook.core.config import Settings
from barberbook.services.cancellation_policy import (
    TieredCancellationFeePolicy,
    no_cancellation_fee,
)


@pytest.mark.unit
class TestCancellationPolicies:
    def test_default_policy_is_free(self) -> None:
        assert no_cancellation_fee(timedelta(minutes=5), Decimal("54.00")) == Decimal("0.00")

    def test_tiered_policy_free_outside_notice_window(self) -> None:
        policy = TieredCancellationFeePolicy(notice_hours=24, fee_percent=Decimal("50"))

        assert policy(timedelta(hours=24), Decimal("54.00")) == Decimal("0.00")

    def test_tiered_policy_charges_inside_notice_window(self) -> None:
        policy = TieredCancellationFeePolicy(notice_hours=24, fee_percent=Decimal("50"))

        assert policy(timedelta(hours=2), Decimal("54.00")) == Decimal("27.00")

    def test_fee_rounds_to_cents(self) -> None:
        policy = TieredCancellationFeePolicy(notice_hours=24, fee_percent=Decimal("33"))

        assert policy(timedelta(hours=1), Decimal("10.00")) == Decimal("3.30")

    def test_fee_never_exceeds_total(self) -> None:
        policy = TieredCancellationFeePolicy(notice_hours=24, fee_percent=Decimal("150"))

        assert policy(timedelta(hours=-1), Decimal("20.00")) == Decimal("20.00")

    def test_from_settings(self) -> None:
        app_settings = Settings(
            _env_file=None, cancellation_notice_hours=12, late_cancellation_fee_percent=Decimal("25")
        )

        policy = TieredCancellationFeePolicy.from_settings(app_settings)

        assert policy == TieredCancellationFeePolicy(12, Decimal("25"))
