"""
Conversion between decimal credit amounts and integer cents.

Balances and amounts are stored and computed as integer cents (1 credit =
100 cents) so arithmetic is exact. The API speaks decimal credits with two
fractional digits (e.g. "30.00"); these helpers are the only place the two
representations meet.
"""

from decimal import Decimal, ROUND_HALF_UP

CENTS_PER_CREDIT = 100
TWO_PLACES = Decimal("0.01")


def to_cents(amount: Decimal) -> int:
    """Convert a decimal credit amount to integer cents (half-up at the 3rd digit)."""
    quantized = Decimal(amount).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    return int(quantized * CENTS_PER_CREDIT)


def from_cents(cents: int) -> Decimal:
    """Convert integer cents to a two-place decimal credit amount."""
    return (Decimal(cents) / CENTS_PER_CREDIT).quantize(TWO_PLACES)
