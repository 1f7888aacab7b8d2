"""
Module: mfi_kernel.db.types
Responsibility: Money precision constants and the rounding helpers shared by
    every model and calculation.  Centralizes precision so that the calculator,
    the scheduler and the ledger all round the same way.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, selectors/ and modules.  MUST NOT import from any of those.

Invariants enforced:
    - Money at rest has 2 fractional digits (Numeric(18, 2)).
    - round_money() is the ONLY sanctioned rounding function for financial
      values (ROUND_HALF_UP).
    - No floats: to_decimal() refuses float input.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP

# |debits - credits| allowed on a journal entry
BALANCE_TOLERANCE = Decimal("0.001")

ZERO = Decimal("0")


def to_decimal(value: Decimal | int | str) -> Decimal:
    """
    Coerce an inbound numeric value to Decimal.

    Raises:
        TypeError: If value is a float (binary floats are never accepted).
        ValueError: If value is not a valid number.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise TypeError(f"Monetary values must not be {type(value).__name__}: {value!r}")
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"Not a valid number: {value!r}") from exc


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the given number of decimal places.

    This is the ONLY sanctioned rounding function for financial values.
    Callers round at the point of emission, never mid-calculation.
    """
    quantize_str = "0." + "0" * decimal_places if decimal_places > 0 else "1"
    return value.quantize(Decimal(quantize_str), rounding=rounding)
