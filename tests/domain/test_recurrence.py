"""
Tests for recurring_kernel.domain.recurrence -- pure occurrence expansion.

Covers first/next occurrence for every frequency, month-end clamping
(including leap years), end-date and start-date boundaries, anchoring on
the last materialized occurrence, and Hypothesis properties of the
generated sequences.
"""

import calendar
from datetime import date, timedelta

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from recurring_kernel.domain.recurrence import (
    Frequency,
    RecurrenceRule,
    add_months,
    clamp_day,
    first_occurrence,
    next_occurrence,
    occurrence_dates,
)
from recurring_kernel.exceptions import (
    InvalidDateRangeError,
    InvalidDueDayError,
    InvalidFrequencyError,
)


def weekly(start, end=None):
    return RecurrenceRule(Frequency.WEEKLY, start, end)


def monthly(start, due_day=None, end=None):
    return RecurrenceRule(Frequency.MONTHLY, start, end, due_day)


class TestFrequency:
    def test_step_days(self):
        assert Frequency.WEEKLY.step_days == 7
        assert Frequency.BIWEEKLY.step_days == 14
        assert Frequency.MONTHLY.step_days is None

    def test_parse_accepts_values_and_members(self):
        assert Frequency.parse("weekly") is Frequency.WEEKLY
        assert Frequency.parse(Frequency.MONTHLY) is Frequency.MONTHLY

    @pytest.mark.parametrize("value", ["daily", "", None, 7, "WEEKLY"])
    def test_parse_rejects_unknown(self, value):
        with pytest.raises(InvalidFrequencyError) as exc_info:
            Frequency.parse(value)
        assert exc_info.value.code == "INVALID_FREQUENCY"
        assert "biweekly" in exc_info.value.allowed


class TestRecurrenceRuleFromValues:
    def test_builds_monthly_rule(self):
        rule = RecurrenceRule.from_values("monthly", date(2024, 1, 1), None, 10)
        assert rule.frequency is Frequency.MONTHLY
        assert rule.due_day == 10
        assert rule.target_day == 10

    def test_due_day_ignored_for_weekly(self):
        rule = RecurrenceRule.from_values("weekly", date(2024, 1, 1), None, 40)
        assert rule.due_day is None

    def test_target_day_defaults_to_start_day(self):
        rule = RecurrenceRule.from_values("monthly", date(2024, 1, 17))
        assert rule.target_day == 17

    @pytest.mark.parametrize("due_day", [0, 32, -1, "5", True])
    def test_corrupt_due_day_rejected(self, due_day):
        with pytest.raises(InvalidDueDayError):
            RecurrenceRule.from_values("monthly", date(2024, 1, 1), None, due_day)

    def test_corrupt_frequency_rejected(self):
        with pytest.raises(InvalidFrequencyError):
            RecurrenceRule.from_values("yearly", date(2024, 1, 1))

    def test_end_before_start_rejected(self):
        with pytest.raises(InvalidDateRangeError):
            RecurrenceRule.from_values("weekly", date(2024, 2, 1), date(2024, 1, 31))


class TestCalendarHelpers:
    def test_clamp_day_short_months(self):
        assert clamp_day(2024, 2, 31) == date(2024, 2, 29)
        assert clamp_day(2023, 2, 31) == date(2023, 2, 28)
        assert clamp_day(2024, 4, 31) == date(2024, 4, 30)
        assert clamp_day(2024, 5, 31) == date(2024, 5, 31)

    def test_add_months_wraps_years(self):
        assert add_months(2024, 12, 1) == (2025, 1)
        assert add_months(2024, 1, -1) == (2023, 12)
        assert add_months(2024, 11, 14) == (2026, 1)


class TestFirstOccurrence:
    def test_weekly_starts_on_start_date(self):
        assert first_occurrence(weekly(date(2024, 3, 6))) == date(2024, 3, 6)

    def test_monthly_without_due_day_starts_on_start_date(self):
        assert first_occurrence(monthly(date(2024, 3, 6))) == date(2024, 3, 6)

    def test_monthly_due_day_later_in_start_month(self):
        assert first_occurrence(monthly(date(2024, 1, 1), 31)) == date(2024, 1, 31)

    def test_monthly_due_day_already_passed_moves_to_next_month(self):
        assert first_occurrence(monthly(date(2024, 1, 20), 15)) == date(2024, 2, 15)

    def test_monthly_due_day_equal_to_start(self):
        assert first_occurrence(monthly(date(2024, 1, 15), 15)) == date(2024, 1, 15)

    def test_monthly_due_day_clamped_in_start_month(self):
        assert first_occurrence(monthly(date(2024, 2, 10), 31)) == date(2024, 2, 29)


class TestNextOccurrence:
    def test_weekly_and_biweekly_steps(self):
        start = date(2024, 1, 1)
        assert next_occurrence(weekly(start), start) == date(2024, 1, 8)
        biweekly = RecurrenceRule(Frequency.BIWEEKLY, start)
        assert next_occurrence(biweekly, start) == date(2024, 1, 15)

    def test_monthly_returns_to_target_day_after_short_month(self):
        rule = monthly(date(2024, 1, 31))
        assert next_occurrence(rule, date(2024, 2, 29)) == date(2024, 3, 31)


class TestOccurrenceDates:
    def test_weekly_coverage(self):
        dates = occurrence_dates(weekly(date(2024, 1, 1)), date(2024, 1, 29))
        assert dates == (
            date(2024, 1, 1),
            date(2024, 1, 8),
            date(2024, 1, 15),
            date(2024, 1, 22),
            date(2024, 1, 29),
        )

    def test_biweekly_coverage(self):
        rule = RecurrenceRule(Frequency.BIWEEKLY, date(2024, 1, 1))
        assert occurrence_dates(rule, date(2024, 2, 1)) == (
            date(2024, 1, 1),
            date(2024, 1, 15),
            date(2024, 1, 29),
        )

    def test_monthly_due_day_31_clamps_in_leap_year(self):
        dates = occurrence_dates(monthly(date(2024, 1, 1), 31), date(2024, 4, 30))
        assert dates == (
            date(2024, 1, 31),
            date(2024, 2, 29),
            date(2024, 3, 31),
            date(2024, 4, 30),
        )

    def test_monthly_without_due_day_does_not_drift(self):
        dates = occurrence_dates(monthly(date(2023, 1, 31)), date(2023, 5, 31))
        assert dates == (
            date(2023, 1, 31),
            date(2023, 2, 28),
            date(2023, 3, 31),
            date(2023, 4, 30),
            date(2023, 5, 31),
        )

    def test_end_date_is_inclusive_upper_bound(self):
        rule = weekly(date(2024, 1, 1), end=date(2024, 1, 15))
        assert occurrence_dates(rule, date(2024, 3, 1)) == (
            date(2024, 1, 1),
            date(2024, 1, 8),
            date(2024, 1, 15),
        )

    def test_horizon_before_start_is_empty(self):
        assert occurrence_dates(weekly(date(2024, 6, 1)), date(2024, 5, 31)) == ()

    def test_horizon_on_start_date_yields_start(self):
        assert occurrence_dates(weekly(date(2024, 6, 1)), date(2024, 6, 1)) == (
            date(2024, 6, 1),
        )

    def test_anchor_resumes_strictly_after_last_occurrence(self):
        dates = occurrence_dates(
            weekly(date(2024, 1, 1)), date(2024, 1, 22), last_occurrence=date(2024, 1, 8)
        )
        assert dates == (date(2024, 1, 15), date(2024, 1, 22))

    def test_anchor_at_horizon_yields_nothing(self):
        dates = occurrence_dates(
            weekly(date(2024, 1, 1)), date(2024, 1, 22), last_occurrence=date(2024, 1, 22)
        )
        assert dates == ()

    def test_dates_before_moved_start_are_skipped(self):
        # Start moved from Jan 1 to Jan 10 after Jan 1 was materialized
        dates = occurrence_dates(
            weekly(date(2024, 1, 10)), date(2024, 1, 22), last_occurrence=date(2024, 1, 1)
        )
        assert dates == (date(2024, 1, 15), date(2024, 1, 22))


# =============================================================================
# Properties
# =============================================================================


@st.composite
def rules(draw):
    frequency = draw(st.sampled_from(list(Frequency)))
    start = draw(st.dates(min_value=date(2000, 1, 1), max_value=date(2030, 12, 31)))
    due_day = draw(st.one_of(st.none(), st.integers(min_value=1, max_value=31)))
    end = draw(
        st.one_of(
            st.none(),
            st.integers(min_value=0, max_value=900).map(lambda d: start + timedelta(days=d)),
        )
    )
    return RecurrenceRule.from_values(frequency, start, end, due_day)


horizons = st.integers(min_value=-30, max_value=800)


class TestOccurrenceProperties:
    @given(rule=rules(), span=horizons)
    @settings(max_examples=200, deadline=None)
    def test_sequence_is_strictly_ascending_and_bounded(self, rule, span):
        through = rule.start_date + timedelta(days=span)
        dates = occurrence_dates(rule, through)

        limit = min(through, rule.end_date) if rule.end_date else through
        assert list(dates) == sorted(set(dates))
        assert all(rule.start_date <= d <= limit for d in dates)

    @given(rule=rules(), span=horizons, split=st.integers(min_value=0, max_value=800))
    @settings(max_examples=200, deadline=None)
    def test_split_horizon_equals_single_run(self, rule, span, split):
        through = rule.start_date + timedelta(days=span)
        mid = min(through, rule.start_date + timedelta(days=split))

        first = occurrence_dates(rule, mid)
        anchor = first[-1] if first else None
        second = occurrence_dates(rule, through, last_occurrence=anchor)

        assert first + second == occurrence_dates(rule, through)

    @given(rule=rules(), span=st.integers(min_value=0, max_value=800))
    @settings(max_examples=200, deadline=None)
    def test_monthly_dates_hit_clamped_target_day(self, rule, span):
        if rule.frequency is not Frequency.MONTHLY:
            return
        for d in occurrence_dates(rule, rule.start_date + timedelta(days=span)):
            last_day = calendar.monthrange(d.year, d.month)[1]
            assert d.day == min(rule.target_day, last_day)

    @given(rule=rules(), span=st.integers(min_value=0, max_value=800))
    @settings(max_examples=200, deadline=None)
    def test_fixed_step_frequencies_have_constant_spacing(self, rule, span):
        step = rule.frequency.step_days
        if step is None:
            return
        dates = occurrence_dates(rule, rule.start_date + timedelta(days=span))
        assert all((b - a).days == step for a, b in zip(dates, dates[1:]))
