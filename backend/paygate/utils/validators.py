"""
Validators — Rule-based checks for checkout session input.
"""
import math
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

# payments.amount is Numeric(12, 2)
AMOUNT_PLACES = 2
MAX_AMOUNT = Decimal(10) ** 10


def validate_amount(amount: Any) -> tuple[Optional[Decimal], str]:
    """Validate a checkout amount in major units.

    Accepts numbers and numeric strings. Booleans, NaN, infinities,
    values <= 0, more than two decimal places and values that do not
    fit the amount column are rejected.

    Returns:
        (Decimal amount, "Valid") on success, (None, reason) otherwise.
    """
    if amount is None or isinstance(amount, bool):
        return None, "Invalid amount"
    if isinstance(amount, float) and not math.isfinite(amount):
        return None, "Invalid amount"
    if isinstance(amount, str):
        amount = amount.strip()
        if not amount:
            return None, "Invalid amount"
    elif not isinstance(amount, (int, float, Decimal)):
        return None, "Invalid amount"

    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        return None, "Invalid amount"

    if not value.is_finite() or value <= 0 or value >= MAX_AMOUNT:
        return None, "Invalid amount"
    if value.normalize().as_tuple().exponent < -AMOUNT_PLACES:
        return None, "Invalid amount"
    return value, "Valid"


def validate_currency(code: str | None) -> bool:
    """Validate an ISO-4217 style code: exactly three letters."""
    if not code:
        return False
    return bool(re.match(r"^[A-Za-z]{3}$", code.strip()))
