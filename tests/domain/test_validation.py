"""
Tests for recurring_kernel.domain.validation and domain.terms.

Input parsing is the first line of defence for the template store and the
retroactive corrector: dates must be YYYY-MM-DD, money must stay exact,
and bulk patches may only touch the entry fields that are safe to change.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

import pytest

from recurring_kernel.domain.terms import (
    GENERATED_MARKER,
    PATCHABLE_ENTRY_FIELDS,
    marked_description,
    parse_entry_patch,
)
from recurring_kernel.domain.validation import (
    optional_text,
    parse_amount,
    parse_date,
    parse_due_day,
    parse_uuid,
    require_text,
    validate_date_range,
)
from recurring_kernel.exceptions import (
    EmptyChangeSetError,
    InvalidAmountError,
    InvalidDateError,
    InvalidDateRangeError,
    InvalidDueDayError,
    InvalidFieldError,
    ValidationError,
)


class TestParseDate:
    def test_iso_string(self):
        assert parse_date("2024-02-29") == date(2024, 2, 29)

    def test_date_passes_through(self):
        assert parse_date(date(2024, 1, 1)) == date(2024, 1, 1)

    @pytest.mark.parametrize(
        "value",
        ["2024-02-30", "2023-02-29", "2024-1-5", "05/01/2024", "2024-01-01T00:00:00", "", None, 20240101],
    )
    def test_rejects_malformed(self, value):
        with pytest.raises(InvalidDateError) as exc_info:
            parse_date(value, "start_date")
        assert exc_info.value.code == "INVALID_DATE"
        assert exc_info.value.field_name == "start_date"

    def test_rejects_datetime(self):
        with pytest.raises(InvalidDateError):
            parse_date(datetime(2024, 1, 1, 8, 30))


class TestParseAmount:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("100", Decimal("100.00")),
            ("1500.50", Decimal("1500.50")),
            (" 12.3 ", Decimal("12.30")),
            (42, Decimal("42.00")),
            (Decimal("10.005"), Decimal("10.01")),
            ("0.005", Decimal("0.01")),
        ],
    )
    def test_accepts_and_rounds_half_up(self, value, expected):
        assert parse_amount(value) == expected

    @pytest.mark.parametrize(
        "value",
        [0, "0", "-5", "0.004", "abc", "", None, "NaN", "Infinity", 1.5, True, [1]],
    )
    def test_rejects_non_positive_or_non_numeric(self, value):
        with pytest.raises(InvalidAmountError) as exc_info:
            parse_amount(value)
        assert exc_info.value.code == "INVALID_AMOUNT"

    @pytest.mark.parametrize(
        "value",
        ["1e26", "1e30", Decimal("1E+40"), 10**30, "123456789012345678901234567890.5"],
    )
    def test_rejects_amounts_beyond_column_precision(self, value):
        with pytest.raises(InvalidAmountError) as exc_info:
            parse_amount(value)
        assert exc_info.value.reason == "is too large"

    def test_largest_storable_magnitude_accepted(self):
        assert parse_amount("1e25") == Decimal("1E+25").quantize(Decimal("0.01"))

    def test_oversized_patch_amount(self):
        with pytest.raises(InvalidAmountError):
            parse_entry_patch({"amount": "1e30"})


class TestParseDueDay:
    @pytest.mark.parametrize("value", [1, 15, 31])
    def test_accepts_range(self, value):
        assert parse_due_day(value) == value

    def test_none_means_no_due_day(self):
        assert parse_due_day(None) is None

    @pytest.mark.parametrize("value", [0, 32, -3, "10", 10.0, False])
    def test_rejects_out_of_range_or_non_integer(self, value):
        with pytest.raises(InvalidDueDayError):
            parse_due_day(value)


class TestMiscValidators:
    def test_date_range(self):
        validate_date_range(date(2024, 1, 1), None)
        validate_date_range(date(2024, 1, 1), date(2024, 1, 1))
        with pytest.raises(InvalidDateRangeError) as exc_info:
            validate_date_range(date(2024, 1, 2), date(2024, 1, 1))
        assert exc_info.value.start_date == "2024-01-02"
        assert exc_info.value.end_date == "2024-01-01"

    def test_require_text_strips(self):
        assert require_text("  Aluguel ", "description") == "Aluguel"
        with pytest.raises(InvalidFieldError):
            require_text("   ", "description")

    def test_optional_text_blank_is_none(self):
        assert optional_text("  ", "plate") is None
        assert optional_text(None, "plate") is None
        with pytest.raises(InvalidFieldError):
            optional_text(123, "plate")

    def test_parse_uuid(self):
        value = uuid4()
        assert parse_uuid(str(value), "owner_id") == value
        with pytest.raises(InvalidFieldError):
            parse_uuid("not-a-uuid", "owner_id")

    def test_all_validation_errors_share_base(self):
        for exc_type in (InvalidDateError, InvalidAmountError, InvalidDueDayError):
            assert issubclass(exc_type, ValidationError)


class TestEntryPatch:
    def test_description_gets_marker(self):
        values = parse_entry_patch({"description": "Aluguel novo"})
        assert values == {"description": "Aluguel novo" + GENERATED_MARKER}

    def test_custom_marker(self):
        values = parse_entry_patch({"description": "Rent"}, marker=" [recurring]")
        assert values["description"] == "Rent [recurring]"

    def test_marked_description_default_suffix(self):
        assert marked_description("Seguro") == "Seguro (Recorrente)"

    def test_amount_is_validated(self):
        assert parse_entry_patch({"amount": "99.9"}) == {"amount": Decimal("99.90")}
        with pytest.raises(InvalidAmountError):
            parse_entry_patch({"amount": "0"})

    def test_reference_fields(self):
        vehicle = uuid4()
        values = parse_entry_patch(
            {"vehicle_id": str(vehicle), "plate": "ABC1D23", "counterparty": None}
        )
        assert values == {"vehicle_id": vehicle, "plate": "ABC1D23", "counterparty": None}

    def test_empty_patch_rejected(self):
        with pytest.raises(EmptyChangeSetError):
            parse_entry_patch({})

    @pytest.mark.parametrize("field_name", ["occurrence_date", "is_paid", "owner_id", "id"])
    def test_non_patchable_field_rejected(self, field_name):
        assert field_name not in PATCHABLE_ENTRY_FIELDS
        with pytest.raises(InvalidFieldError) as exc_info:
            parse_entry_patch({field_name: "x"})
        assert exc_info.value.field_name == field_name
