"""
Module: rental_kernel.db.types
Responsibility: Annotated column aliases and the money helpers every layer
    shares.  Rent, deposits and due amounts are Decimal end to end.
Architecture position: Kernel > DB.  Imported by models/, domain/ and
    services/; imports nothing from them.

Failure modes:
    - TypeError when a float is passed where money is expected.
    - ValueError on a non-numeric string.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Annotated

from sqlalchemy import Numeric, String

# 38 digits total, 9 decimal places
Money = Annotated[Decimal, Numeric(38, 9)]

# Enum values persisted as lowercase strings
StatusCode = Annotated[str, String(20)]

CURRENCY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP

ZERO = Decimal("0")


def to_money(value: Decimal | int | str) -> Decimal:
    """Coerce ``value`` to Decimal. Floats are rejected."""
    if isinstance(value, float):
        raise TypeError("Monetary amounts must not be float")
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(value)
    except InvalidOperation:
        raise ValueError(f"Invalid monetary amount: {value!r}") from None


def round_money(amount: Decimal, places: int = CURRENCY_DECIMAL_PLACES) -> Decimal:
    """Round to currency precision with ROUND_HALF_UP."""
    quantum = Decimal(1).scaleb(-places)
    return amount.quantize(quantum, rounding=DEFAULT_ROUNDING)
