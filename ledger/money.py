"""
Fixed-point money helpers.

Amounts travel through the service as ``decimal.Decimal`` with exactly two
fractional digits (e.g. ``Decimal("10.50")``). They are persisted as integer
minor units (1050) through the ``Money`` column type, so neither the database
driver nor SQLite's REAL affinity ever sees a binary float.

Why not round?
  An amount such as 10.005 is rejected instead of being rounded to 10.00 or
  10.01. Silently rounding a client's request would move a different amount
  of money than the one they asked for.
"""

from decimal import Decimal, InvalidOperation

from sqlalchemy import BigInteger
from sqlalchemy.types import TypeDecorator

from ledger.exceptions import InvalidAmountError


CENT = Decimal("0.01")
ZERO = Decimal("0.00")

# Largest amount or balance the ledger accepts. In cents it stays well inside
# a signed 64-bit column, and it has few enough digits that quantizing to
# cents never exceeds the default decimal context precision.
MAX_AMOUNT = Decimal("999999999999999.99")


def parse_amount(value) -> Decimal:
    """
    Normalize a client-supplied amount into a positive two-place Decimal.

    Accepts Decimal, int, or str. Floats are converted through their string
    form so ``0.1`` becomes ``Decimal("0.1")``, not its binary expansion.

    Raises:
        InvalidAmountError: If the value is not a finite number, is zero or
            negative, is above MAX_AMOUNT, or has more than two fractional
            digits.
    """
    if isinstance(value, bool):
        raise InvalidAmountError(value)

    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidAmountError(value)

    if not amount.is_finite() or amount <= 0 or amount > MAX_AMOUNT:
        raise InvalidAmountError(value)

    try:
        quantized = amount.quantize(CENT)
    except InvalidOperation:
        raise InvalidAmountError(value)

    if amount != quantized:
        raise InvalidAmountError(value)

    return quantized


def to_minor_units(amount: Decimal) -> int:
    """Decimal("10.50") -> 1050."""
    return int(amount.quantize(CENT) * 100)


def from_minor_units(cents: int) -> Decimal:
    """1050 -> Decimal("10.50")."""
    return (Decimal(cents) / 100).quantize(CENT)


class Money(TypeDecorator):
    """Decimal on the Python side, integer minor units in the database."""

    impl = BigInteger
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return to_minor_units(Decimal(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return from_minor_units(value)
