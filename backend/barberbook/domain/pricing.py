"""Deterministic booking price breakdown.

All arithmetic is ``Decimal``. Inputs are coerced through ``str`` so float
callers do not leak binary rounding into stored amounts. The tax amount is
rounded to cents (half up); subtotal and total are exact sums of cent
amounts. Prices, discounts and tips with sub-cent precision are rejected.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from barberbook.core.constants import DEFAULT_CURRENCY, MONEY_QUANTUM
from barberbook.core.exceptions import PricingValidationException

_CENT = Decimal(MONEY_QUANTUM)
_ZERO = Decimal("0")
_ONE = Decimal("1")

MoneyInput = Decimal | int | float | str


def to_decimal(value: MoneyInput, field: str = "amount") -> Decimal:
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise PricingValidationException(f"{field} must be numeric", field=field)
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError) as exc:
            raise PricingValidationException(f"{field} must be numeric", field=field) from exc
    if not result.is_finite():
        raise PricingValidationException(f"{field} must be finite", field=field)
    return result


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def to_money(value: MoneyInput, field: str = "amount") -> Decimal:
    """Coerce to a cent amount. Sub-cent input is rejected, never rounded."""
    amount = to_decimal(value, field)
    cents = quantize_money(amount)
    if cents != amount:
        raise PricingValidationException(
            f"{field} cannot have more than two decimal places", field=field
        )
    return cents


@dataclass(frozen=True)
class PricingBreakdown:
    service_price: Decimal
    discount_amount: Decimal
    tax_rate: Decimal
    sub_total: Decimal
    tax_amount: Decimal
    total_price: Decimal
    currency: str = DEFAULT_CURRENCY

    @classmethod
    def calculate(
        cls,
        service_price: MoneyInput,
        discount_amount: MoneyInput = 0,
        tax_rate: MoneyInput = 0,
        currency: str = DEFAULT_CURRENCY,
    ) -> "PricingBreakdown":
        price = to_money(service_price, "service_price")
        discount = to_money(discount_amount, "discount_amount")
        rate = to_decimal(tax_rate, "tax_rate")

        sub_total = price - discount
        tax_amount = quantize_money(sub_total * rate)
        return cls(
            service_price=price,
            discount_amount=discount,
            tax_rate=rate,
            sub_total=sub_total,
            tax_amount=tax_amount,
            total_price=sub_total + tax_amount,
            currency=(currency or DEFAULT_CURRENCY).upper(),
        )

    def add_tip(self, amount: MoneyInput) -> Decimal:
        """Quote the total including a tip; the breakdown itself is unchanged."""
        tip = to_money(amount, "tip_amount")
        if tip < _ZERO:
            raise PricingValidationException("Tip amount cannot be negative", field="tip_amount")
        return self.total_price + tip

    def get_savings(self) -> Decimal:
        return self.discount_amount

    def get_effective_price(self) -> Decimal:
        return self.service_price - self.discount_amount

    def validate(self) -> None:
        if self.service_price < _ZERO:
            raise PricingValidationException(
                "Service price cannot be negative", field="service_price"
            )
        if self.discount_amount < _ZERO:
            raise PricingValidationException(
                "Discount amount cannot be negative", field="discount_amount"
            )
        if self.discount_amount > self.service_price:
            raise PricingValidationException(
                "Discount amount cannot exceed service price", field="discount_amount"
            )
        if self.tax_rate < _ZERO or self.tax_rate > _ONE:
            raise PricingValidationException("Tax rate must be between 0 and 1", field="tax_rate")

    def to_dict(self) -> dict[str, str]:
        return {
            "service_price": str(self.service_price),
            "discount_amount": str(self.discount_amount),
            "tax_rate": str(self.tax_rate),
            "sub_total": str(self.sub_total),
            "tax_amount": str(self.tax_amount),
            "total_price": str(self.total_price),
            "currency": self.currency,
        }


def calculate_pricing(
    service_price: MoneyInput,
    discount_amount: MoneyInput = 0,
    tax_rate: MoneyInput = 0,
    currency: str = DEFAULT_CURRENCY,
) -> PricingBreakdown:
    """Build a breakdown; call ``validate()`` on the result before persisting."""
    return PricingBreakdown.calculate(service_price, discount_amount, tax_rate, currency)


__all__ = ["PricingBreakdown", "calculate_pricing", "quantize_money", "to_decimal", "to_money"]
