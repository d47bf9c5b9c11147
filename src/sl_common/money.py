"""Fixed-point money utilities.

All amounts are stored and computed as int minor units (cents, 2 fractional
digits). Decimal is accepted only at the API boundary and converted here.
No float anywhere.
"""

from decimal import Decimal, InvalidOperation

from src.sl_common.errors import InvalidInputError

MINOR_UNIT_DIGITS = 2
_MINOR_UNITS_PER_MAJOR = 10**MINOR_UNIT_DIGITS
_ONE_CENT = Decimal(1).scaleb(-MINOR_UNIT_DIGITS)

# Amount columns are BIGINT
MAX_AMOUNT_CENTS = 2**63 - 1


def to_cents(amount: Decimal | int | str) -> int:
    """Convert a decimal amount to cents: Decimal('33.34') -> 3334.

    Raises InvalidInputError for non-finite values, more than two fractional
    digits (never rounds), or a magnitude beyond MAX_AMOUNT_CENTS. Floats are
    rejected outright.
    """
    if isinstance(amount, float):
        raise InvalidInputError("float amounts are not accepted")
    try:
        value = Decimal(amount)
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidInputError(f"not a decimal amount: {amount!r}") from None
    if not value.is_finite():
        raise InvalidInputError(f"not a finite amount: {amount!r}")
    # Bounded on the exponent first so quantize stays within the decimal context
    if value and value.adjusted() > len(str(MAX_AMOUNT_CENTS)) - MINOR_UNIT_DIGITS:
        raise InvalidInputError(f"amount out of range: {amount!r}")

    whole_cents = value.quantize(_ONE_CENT)
    if whole_cents != value:
        raise InvalidInputError(
            f"amount {amount} has more than {MINOR_UNIT_DIGITS} fractional digits"
        )
    cents = int(whole_cents * _MINOR_UNITS_PER_MAJOR)
    if abs(cents) > MAX_AMOUNT_CENTS:
        raise InvalidInputError(f"amount out of range: {amount!r}")
    return cents


def cents_to_decimal(cents: int) -> Decimal:
    """3334 -> Decimal('33.34')."""
    return Decimal(cents).scaleb(-MINOR_UNIT_DIGITS)


def cents_to_display(cents: int) -> str:
    """Convert cents to display string: 6500 -> '$65.00', -1200 -> '-$12.00'."""
    if cents < 0:
        abs_cents = -cents
        return f"-${abs_cents // 100:,}.{abs_cents % 100:02d}"
    return f"${cents // 100:,}.{cents % 100:02d}"
