"""Tests for the pricing breakdown."""

from dataclasses import FrozenInstanceError
from decimal import Decimal

import pytest

from barberbook.core.exceptions import ErrorKind, PricingValidationException
from barberbook.domain.pricing import PricingBreakdown, calculate_pricing


@pytest.mark.unit
class TestCalculatePricing:
    def test_reference_breakdown(self) -> None:
        pricing = calculate_pricing(100, 10, Decimal("0.08"))

        assert pricing.sub_total == Decimal("90")
        assert pricing.tax_amount == Decimal("7.2")
        assert pricing.total_price == Decimal("97.2")
        assert pricing.currency == "USD"
        pricing.validate()

    def test_float_inputs_do_not_leak_binary_rounding(self) -> None:
        pricing = calculate_pricing(19.99, 0.1, 0.08)

        assert pricing.service_price == Decimal("19.99")
        assert pricing.discount_amount == Decimal("0.10")
        assert pricing.tax_amount == Decimal("1.59")  # 19.89 * 0.08 = 1.5912
        assert pricing.total_price == Decimal("21.48")

    def test_tax_rounds_half_up_to_cents(self) -> None:
        pricing = calculate_pricing("10.00", "0", "0.0125")  # 0.125

        assert pricing.tax_amount == Decimal("0.13")
        assert pricing.total_price == Decimal("10.13")

    def test_total_is_reproducible(self) -> None:
        first = calculate_pricing("50", "5", "0.08")
        second = calculate_pricing(Decimal("50.00"), Decimal("5.00"), Decimal("0.08"))

        assert first == second

    def test_currency_is_normalized(self) -> None:
        assert calculate_pricing(10, 0, 0, currency="eur").currency == "EUR"

    def test_non_numeric_input(self) -> None:
        with pytest.raises(PricingValidationException) as exc_info:
            calculate_pricing("ten", 0, 0)

        assert exc_info.value.details == {"field": "service_price"}

    def test_breakdown_is_frozen(self) -> None:
        pricing = calculate_pricing(100, 10, "0.08")
        with pytest.raises(FrozenInstanceError):
            pricing.total_price = Decimal("1")  # type: ignore[misc]


@pytest.mark.unit
class TestBreakdownOperations:
    @pytest.fixture
    def pricing(self) -> PricingBreakdown:
        return calculate_pricing(100, 10, "0.08")

    def test_add_tip_quotes_without_mutating(self, pricing: PricingBreakdown) -> None:
        assert pricing.add_tip(15) == Decimal("112.2")
        assert pricing.total_price == Decimal("97.2")
        assert pricing.tax_amount == Decimal("7.2")
        assert pricing.discount_amount == Decimal("10")

    def test_negative_tip_rejected(self, pricing: PricingBreakdown) -> None:
        with pytest.raises(PricingValidationException):
            pricing.add_tip(-1)

    def test_savings_and_effective_price(self, pricing: PricingBreakdown) -> None:
        assert pricing.get_savings() == Decimal("10")
        assert pricing.get_effective_price() == Decimal("90")

    def test_to_dict_uses_strings(self, pricing: PricingBreakdown) -> None:
        assert pricing.to_dict()["total_price"] == "97.20"


@pytest.mark.unit
class TestValidate:
    @pytest.mark.parametrize(
        "price, discount, rate, field",
        [
            (-1, 0, 0, "service_price"),
            (10, -1, 0, "discount_amount"),
            (10, 11, 0, "discount_amount"),
            (10, 0, "-0.01", "tax_rate"),
            (10, 0, "1.01", "tax_rate"),
        ],
    )
    def test_invalid_breakdowns(self, price, discount, rate, field) -> None:
        pricing = calculate_pricing(price, discount, rate)

        with pytest.raises(PricingValidationException) as exc_info:
            pricing.validate()

        assert exc_info.value.kind is ErrorKind.VALIDATION
        assert exc_info.value.details["field"] == field

    @pytest.mark.parametrize("rate", ["0", "1"])
    def test_tax_rate_bounds_are_inclusive(self, rate: str) -> None:
        calculate_pricing(10, 0, rate).validate()

    def test_full_discount_is_allowed(self) -> None:
        pricing = calculate_pricing(10, 10, "0.08")
        pricing.validate()
        assert pricing.total_price == Decimal("0")

    @pytest.mark.parametrize(
        "price, discount, field",
        [
            ("10.005", "0", "service_price"),
            (10.001, 0, "service_price"),
            ("10", "0.999", "discount_amount"),
        ],
    )
    def test_sub_cent_amounts_are_rejected(self, price, discount, field) -> None:
        with pytest.raises(PricingValidationException) as exc_info:
            calculate_pricing(price, discount, "0.08")

        assert exc_info.value.details["field"] == field

    def test_trailing_zeros_are_not_sub_cent(self) -> None:
        pricing = calculate_pricing("10.500", "0.0", "0.08")

        assert pricing.service_price == Decimal("10.50")
        assert pricing.discount_amount == Decimal("0.00")

    def test_sub_cent_tip_rejected(self) -> None:
        with pytest.raises(PricingValidationException):
            calculate_pricing(100, 0, 0).add_tip("1.005")
