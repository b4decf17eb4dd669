"""
Typed Exception Hierarchy for the Recurring Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the engine (HTTP handlers, scheduled jobs) must map errors onto
responses without parsing message strings.  Every error therefore has:
  1. A TYPED exception class (catch by type, not message)
  2. A CODE attribute (machine-readable, API-safe)
  3. Structured DATA attributes (not just a message string)

Example - RIGHT way:
    try:
        service.delete(template_id)
    except TemplateHasHistoryError as e:
        api_response(status=409, code=e.code, records=e.record_count)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    RecurringKernelError (base)
    |
    +-- ValidationError
    |   +-- InvalidDateError
    |   +-- InvalidAmountError
    |   +-- InvalidFrequencyError
    |   +-- InvalidDueDayError
    |   +-- InvalidDateRangeError
    |   +-- InvalidFieldError
    |   +-- EmptyChangeSetError
    |
    +-- NotFoundError
    |   +-- TemplateNotFoundError
    |
    +-- ConflictError
    |   +-- TemplateHasHistoryError
    |
    +-- BatchError
        +-- PartialBatchFailureError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                   | When Raised
----------------|------------------------|----------------------------------------
Validation      | INVALID_DATE           | Date is not YYYY-MM-DD / not a date
                | INVALID_AMOUNT         | Amount missing, non-numeric or <= 0
                | INVALID_FREQUENCY      | Not weekly / biweekly / monthly
                | INVALID_DUE_DAY        | Due day outside 1..31
                | INVALID_DATE_RANGE     | End date before start date
                | INVALID_FIELD          | Unknown or empty field in a change set
                | EMPTY_CHANGE_SET       | Update/patch with nothing to change
----------------|------------------------|----------------------------------------
Not found       | TEMPLATE_NOT_FOUND     | Template id doesn't exist (or not in scope)
----------------|------------------------|----------------------------------------
Conflict        | TEMPLATE_HAS_HISTORY   | Delete without cascade, history exists
----------------|------------------------|----------------------------------------
Batch           | PARTIAL_BATCH_FAILURE  | Raised on request by a batch result that
                |                        | carries one or more template failures
"""

from typing import Any


class RecurringKernelError(Exception):
    """
    Base exception for all recurring kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "RECURRING_KERNEL_ERROR"


# Validation exceptions


class ValidationError(RecurringKernelError):
    """Base exception for rejected input."""

    code: str = "VALIDATION_ERROR"


class InvalidDateError(ValidationError):
    """A date value is malformed."""

    code: str = "INVALID_DATE"

    def __init__(self, field_name: str, value: Any):
        self.field_name = field_name
        self.value = str(value)
        super().__init__(
            f"Invalid date for {field_name}: {value!r} (expected YYYY-MM-DD)"
        )


class InvalidAmountError(ValidationError):
    """Amount is missing, not numeric, or not strictly positive."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, value: Any, reason: str = "must be a positive number"):
        self.value = str(value)
        self.reason = reason
        super().__init__(f"Invalid amount {value!r}: {reason}")


class InvalidFrequencyError(ValidationError):
    """Frequency is not one of the supported recurrence intervals."""

    code: str = "INVALID_FREQUENCY"

    def __init__(self, value: Any, allowed: tuple[str, ...]):
        self.value = str(value)
        self.allowed = allowed
        super().__init__(
            f"Invalid frequency {value!r}; expected one of {', '.join(allowed)}"
        )


class InvalidDueDayError(ValidationError):
    """Due day of month is outside 1..31."""

    code: str = "INVALID_DUE_DAY"

    def __init__(self, value: Any):
        self.value = str(value)
        super().__init__(f"Invalid due day {value!r}: must be an integer in 1..31")


class InvalidDateRangeError(ValidationError):
    """End date precedes start date."""

    code: str = "INVALID_DATE_RANGE"

    def __init__(self, start_date: str, end_date: str):
        self.start_date = start_date
        self.end_date = end_date
        super().__init__(
            f"End date {end_date} is before start date {start_date}"
        )


class InvalidFieldError(ValidationError):
    """A change set names a field that cannot be changed, or leaves a required one empty."""

    code: str = "INVALID_FIELD"

    def __init__(self, field_name: str, reason: str):
        self.field_name = field_name
        self.reason = reason
        super().__init__(f"Invalid field '{field_name}': {reason}")


class EmptyChangeSetError(ValidationError):
    """An update or patch carried no fields."""

    code: str = "EMPTY_CHANGE_SET"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"{operation} requires at least one field to change")


# Not-found exceptions


class NotFoundError(RecurringKernelError):
    """Base exception for missing entities."""

    code: str = "NOT_FOUND"


class TemplateNotFoundError(NotFoundError):
    """Recurring template was not found (or is outside the caller's scope)."""

    code: str = "TEMPLATE_NOT_FOUND"

    def __init__(self, template_id: str):
        self.template_id = template_id
        super().__init__(f"Recurring template not found: {template_id}")


# Conflict exceptions


class ConflictError(RecurringKernelError):
    """Base exception for operations that conflict with existing state."""

    code: str = "CONFLICT"


class TemplateHasHistoryError(ConflictError):
    """Template still has generation history and cascading was not requested."""

    code: str = "TEMPLATE_HAS_HISTORY"

    def __init__(self, template_id: str, record_count: int):
        self.template_id = template_id
        self.record_count = record_count
        super().__init__(
            f"Recurring template {template_id} has {record_count} generation "
            "record(s); delete with cascade_history=True to remove them"
        )


# Batch exceptions


class BatchError(RecurringKernelError):
    """Base exception for batch generation errors."""

    code: str = "BATCH_ERROR"


class PartialBatchFailureError(BatchError):
    """One or more templates failed during a batch generation run."""

    code: str = "PARTIAL_BATCH_FAILURE"

    def __init__(self, total_created: int, failed_template_ids: list[str]):
        self.total_created = total_created
        self.failed_template_ids = failed_template_ids
        super().__init__(
            f"{len(failed_template_ids)} template(s) failed during batch "
            f"generation ({total_created} entries created)"
        )
