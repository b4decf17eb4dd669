"""
Module: recurring_kernel.db.types
Responsibility: Annotated type aliases and rounding helpers for financial-grade
    column types.  Centralizes precision so that every model and service uses
    identical type definitions.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    CRITICAL: No floats anywhere in the kernel.  All monetary amounts use
           Decimal with explicit precision; round_money() is the ONLY
           sanctioned rounding function for financial values.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated

from sqlalchemy import Numeric, String

# Monetary amount: 38 digits total, 9 decimal places
Money = Annotated[Decimal, Numeric(38, 9)]

# Short identifier strings (kinds, frequencies, plates)
ShortCode = Annotated[str, String(50)]

# Counterparty names and similar labels
Label = Annotated[str, String(255)]

# Long text for descriptions
LongText = Annotated[str, String(4000)]


# Ledger amounts are kept in currency minor units (centavos)
MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to specified decimal places.

    This is the ONLY sanctioned rounding function for financial values.

    Args:
        value: The Decimal value to round.
        decimal_places: Number of decimal places to round to.
        rounding: Rounding mode (default: ROUND_HALF_UP).

    Returns:
        Rounded Decimal value.
    """
    quantize_str = "0." + "0" * decimal_places
    return value.quantize(Decimal(quantize_str), rounding=rounding)
