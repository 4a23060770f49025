"""
Rental Pricing Calculator.

Turns (unit price per day, day count, discount percent) into a whole-unit
total. Used identically when a reservation is created and when it is
amended.

Rounding is half-up on the exact decimal product (2.5 -> 3), matching the
totals the back office has always issued.
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any, Optional

from rental_backend.app.core.exceptions import ValidationError
from rental_backend.app.models.car import Car


def _decimal(value: Any) -> Decimal:
    return Decimal(str(value))


def price(unit_per_day: float, days: int, discount_percent: float = 0) -> int:
    """
    Total rental price.

    ``round_half_up(unit_per_day * days * (1 - discount_percent / 100))``.
    The discount is used as given; callers validate the 0-100 range first.
    """
    factor = Decimal(1) - _decimal(discount_percent) / Decimal(100)
    total = _decimal(unit_per_day) * _decimal(days) * factor
    return int(total.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def validate_discount(discount_percent: Any) -> float:
    """
    Check that a discount is a number within 0-100.

    Raises:
        ValidationError: If the discount is not numeric or out of range
    """
    try:
        value = _decimal(0 if discount_percent is None else discount_percent)
    except (InvalidOperation, ValueError):
        raise ValidationError("Discount must be a number", reason="invalid_discount")
    if not value.is_finite() or value < 0 or value > 100:
        raise ValidationError(
            "Discount must be between 0 and 100 percent",
            reason="invalid_discount",
            details={"discount_percent": str(discount_percent)}
        )
    return float(value)


def validate_unit_price(unit_per_day: Any) -> float:
    """
    Check that a daily price is a non-negative number.

    Raises:
        ValidationError: If the price is not numeric or negative
    """
    try:
        value = _decimal(unit_per_day)
    except (InvalidOperation, ValueError):
        raise ValidationError("Price per day must be a number", reason="invalid_price")
    if not value.is_finite() or value < 0:
        raise ValidationError(
            "Price per day cannot be negative",
            reason="invalid_price",
            details={"price_per_day": str(unit_per_day)}
        )
    return float(value)


def resolve_unit_price(requested: Optional[float], car: Optional[Car]) -> float:
    """Requested daily price, else the car's base price, else 0."""
    if requested is not None:
        return validate_unit_price(requested)
    if car is not None:
        return validate_unit_price(car.base_price_per_day)
    return 0.0
