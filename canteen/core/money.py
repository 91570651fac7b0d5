# canteen/core/money.py
from decimal import Decimal, InvalidOperation

CENT = Decimal("0.01")

# 100 billion pesos; keeps every stored total well inside a 64-bit integer
MAX_CENTS = 10 ** 13


def to_cents(amount) -> int:
    """
    Converts a peso amount (Decimal, str, int) to integer centavos.

    Raises ValueError for anything that is not a whole number of centavos
    (10.005), not finite, or larger than MAX_CENTS. Nothing is rounded.
    """
    try:
        value = Decimal(str(amount))
        if not value.is_finite():
            raise InvalidOperation
        exact = value.quantize(CENT)
    except InvalidOperation:
        raise ValueError(f"Not a valid amount: {amount}")
    if exact != value:
        raise ValueError(f"Amount has fractions of a centavo: {amount}")
    cents = int(exact * 100)
    if abs(cents) > MAX_CENTS:
        raise ValueError(f"Amount is too large: {amount}")
    return cents


def from_cents(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(CENT)
