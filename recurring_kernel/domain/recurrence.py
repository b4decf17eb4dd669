"""
Recurrence -- pure occurrence-date expansion for recurring templates.

Contract:
    ``first_occurrence()``, ``next_occurrence()`` and ``occurrence_dates()``
    are PURE -- no I/O, no clock, no side effects.  The materialization
    service feeds them the template's current fields and the latest
    materialized date, and writes whatever they return.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Sequences are strictly ascending and never exceed
      ``min(through, end_date)``.
    - No candidate precedes the rule's ``start_date``.
    - Monthly stepping targets a fixed day of month (``due_day`` or the
      start date's day) clamped to the month length, so a short month never
      shifts later occurrences (Jan 31 -> Feb 29 -> Mar 31).
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Any, Iterator

from recurring_kernel.domain.validation import parse_due_day, validate_date_range
from recurring_kernel.exceptions import InvalidFrequencyError


class Frequency(str, Enum):
    """Recurrence interval of a template."""

    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"

    @property
    def step_days(self) -> int | None:
        """Fixed day step, or None for calendar-month stepping."""
        return _STEP_DAYS.get(self)

    @classmethod
    def parse(cls, value: Any) -> Frequency:
        """Coerce a stored or submitted value into a Frequency.

        Raises:
            InvalidFrequencyError: if the value is not a known frequency.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidFrequencyError(
                value, tuple(f.value for f in cls)
            ) from None


_STEP_DAYS = {
    Frequency.WEEKLY: 7,
    Frequency.BIWEEKLY: 14,
}


@dataclass(frozen=True)
class RecurrenceRule:
    """The date-relevant part of a recurring template.

    ``due_day`` is only meaningful for MONTHLY and is ignored otherwise.
    """

    frequency: Frequency
    start_date: date
    end_date: date | None = None
    due_day: int | None = None

    @classmethod
    def from_values(
        cls,
        frequency: Any,
        start_date: date,
        end_date: date | None = None,
        due_day: Any = None,
    ) -> RecurrenceRule:
        """Build a rule from raw values, re-validating each one.

        Stored template rows are re-validated here so that a corrupt row
        fails its own generation instead of producing wrong dates.
        """
        freq = Frequency.parse(frequency)
        day = parse_due_day(due_day) if freq is Frequency.MONTHLY else None
        validate_date_range(start_date, end_date)
        return cls(
            frequency=freq,
            start_date=start_date,
            end_date=end_date,
            due_day=day,
        )

    @property
    def target_day(self) -> int:
        """Day of month monthly occurrences aim for."""
        return self.due_day if self.due_day is not None else self.start_date.day


def clamp_day(year: int, month: int, day: int) -> date:
    """Return ``year-month-day``, clamping ``day`` to the month's last day."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last_day))


def add_months(year: int, month: int, months: int) -> tuple[int, int]:
    """Shift a (year, month) pair by ``months`` calendar months."""
    total = year * 12 + (month - 1) + months
    return total // 12, total % 12 + 1


def first_occurrence(rule: RecurrenceRule) -> date:
    """The first date a never-materialized template is due.

    Weekly/biweekly and monthly-without-due-day start on ``start_date``.
    Monthly with a due day starts on that day in the start month when it is
    on/after ``start_date``, otherwise on that day in the following month.
    """
    if rule.frequency is not Frequency.MONTHLY or rule.due_day is None:
        return rule.start_date

    start = rule.start_date
    candidate = clamp_day(start.year, start.month, rule.due_day)
    if candidate < start:
        year, month = add_months(start.year, start.month, 1)
        candidate = clamp_day(year, month, rule.due_day)
    return candidate


def next_occurrence(rule: RecurrenceRule, current: date) -> date:
    """The occurrence that follows ``current`` under ``rule``."""
    step = rule.frequency.step_days
    if step is not None:
        return current + timedelta(days=step)

    year, month = add_months(current.year, current.month, 1)
    return clamp_day(year, month, rule.target_day)


def iter_occurrences(
    rule: RecurrenceRule,
    last_occurrence: date | None = None,
) -> Iterator[date]:
    """Yield occurrences without bound (callers stop the iteration).

    Starts with ``first_occurrence(rule)`` when ``last_occurrence`` is None,
    otherwise strictly after ``last_occurrence``.  Dates before the rule's
    start date are skipped, which matters when a template's start date was
    moved forward after some entries were generated.
    """
    if last_occurrence is None:
        current = first_occurrence(rule)
    else:
        current = next_occurrence(rule, last_occurrence)

    while True:
        if current >= rule.start_date:
            yield current
        current = next_occurrence(rule, current)


def occurrence_dates(
    rule: RecurrenceRule,
    through: date,
    last_occurrence: date | None = None,
) -> tuple[date, ...]:
    """All occurrences due up to and including ``through``.

    The horizon is truncated at ``rule.end_date`` (inclusive) when set.

    Args:
        rule: Recurrence rule built from the template's current fields.
        through: Horizon date (inclusive).
        last_occurrence: Latest already-materialized occurrence, or None if
            the template was never materialized.

    Returns:
        Ascending tuple of dates; empty if the horizon precedes the start.
    """
    limit = through
    if rule.end_date is not None and rule.end_date < limit:
        limit = rule.end_date
    if limit < rule.start_date:
        return ()

    dates: list[date] = []
    for occurrence in iter_occurrences(rule, last_occurrence):
        if occurrence > limit:
            break
        dates.append(occurrence)
    return tuple(dates)
