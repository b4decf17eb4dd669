"""
Validation -- pure input parsing for template and correction operations.

Responsibility:
    Convert raw caller input (strings from an HTTP body, values read back
    from storage) into typed values, raising the typed ValidationError
    subclasses from ``recurring_kernel.exceptions``.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Dates are ISO ``YYYY-MM-DD`` (or ``date`` instances, never datetimes).
    - Amounts are exact Decimals, strictly positive, rounded to minor units.
      Floats are rejected.
    - Due day is an integer in 1..31.
    - End date is on or after start date.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID

from recurring_kernel.db.types import round_money
from recurring_kernel.exceptions import (
    InvalidAmountError,
    InvalidDateError,
    InvalidDateRangeError,
    InvalidDueDayError,
    InvalidFieldError,
)

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Integer digits that fit the Money column (Numeric(38, 9))
MAX_AMOUNT_DIGITS = 29

MIN_DUE_DAY = 1
MAX_DUE_DAY = 31


def parse_date(value: Any, field_name: str = "date") -> date:
    """Parse a ``YYYY-MM-DD`` string (or pass a ``date`` through).

    Raises:
        InvalidDateError: on any other type or a malformed/impossible date.
    """
    if isinstance(value, datetime):
        raise InvalidDateError(field_name, value)
    if isinstance(value, date):
        return value
    if isinstance(value, str) and _ISO_DATE.match(value):
        try:
            return date.fromisoformat(value)
        except ValueError:
            raise InvalidDateError(field_name, value) from None
    raise InvalidDateError(field_name, value)


def parse_optional_date(value: Any, field_name: str) -> date | None:
    if value is None:
        return None
    return parse_date(value, field_name)


def parse_amount(value: Any) -> Decimal:
    """Parse a strictly positive monetary amount.

    Accepts Decimal, int, or a numeric string.  Bools and floats are rejected
    so that money never passes through binary floating point.

    Raises:
        InvalidAmountError: if the value is not numeric or not > 0 after
            rounding to minor units.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise InvalidAmountError(value, "must be a Decimal, int or numeric string")
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, str)):
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            raise InvalidAmountError(value, "is not a number") from None
    else:
        raise InvalidAmountError(value, "is not a number")

    if not amount.is_finite():
        raise InvalidAmountError(value, "is not a finite number")

    try:
        amount = round_money(amount)
    except InvalidOperation:
        raise InvalidAmountError(value, "is too large") from None
    if amount.adjusted() >= MAX_AMOUNT_DIGITS:
        raise InvalidAmountError(value, "is too large")
    if amount <= 0:
        raise InvalidAmountError(value)
    return amount


def parse_due_day(value: Any) -> int | None:
    """Parse an optional due day of month (1..31).

    Raises:
        InvalidDueDayError: if the value is not an integer in range.
    """
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidDueDayError(value)
    if not MIN_DUE_DAY <= value <= MAX_DUE_DAY:
        raise InvalidDueDayError(value)
    return value


def validate_date_range(start_date: date, end_date: date | None) -> None:
    """Raise InvalidDateRangeError if ``end_date`` precedes ``start_date``."""
    if end_date is not None and end_date < start_date:
        raise InvalidDateRangeError(start_date.isoformat(), end_date.isoformat())


def require_text(value: Any, field_name: str) -> str:
    """Return a stripped, non-empty string."""
    if not isinstance(value, str) or not value.strip():
        raise InvalidFieldError(field_name, "must be a non-empty string")
    return value.strip()


def optional_text(value: Any, field_name: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidFieldError(field_name, "must be a string")
    return value.strip() or None


def parse_uuid(value: Any, field_name: str) -> UUID:
    """Accept a UUID or its string form."""
    if isinstance(value, UUID):
        return value
    if isinstance(value, str):
        try:
            return UUID(value)
        except ValueError:
            pass
    raise InvalidFieldError(field_name, "must be a UUID")


def parse_optional_uuid(value: Any, field_name: str) -> UUID | None:
    if value is None:
        return None
    return parse_uuid(value, field_name)
