"""
Terms copied from a template onto the ledger entries it generates.

Contract:
    ``parse_entry_patch()`` is the single validator for bulk patches of
    generated entries; ``marked_description()`` is the single place the
    generated-marker suffix is applied.

Architecture position:
    Kernel > Domain -- pure, zero I/O.
"""

from __future__ import annotations

from typing import Any, Mapping
from uuid import UUID

from recurring_kernel.domain.validation import (
    optional_text,
    parse_amount,
    parse_optional_uuid,
    require_text,
)
from recurring_kernel.exceptions import EmptyChangeSetError, InvalidFieldError

# Suffix that marks a ledger entry as produced by a recurring template
GENERATED_MARKER = " (Recorrente)"

# Recorded as creator when a scheduled run has no human actor
SYSTEM_ACTOR_ID = UUID("00000000-0000-0000-0000-000000000000")

# Fields of a generated ledger entry that retroactive correction may change.
# Dates are excluded: an entry's date is its identity in the history ledger.
PATCHABLE_ENTRY_FIELDS = (
    "kind",
    "plate",
    "vehicle_id",
    "category_id",
    "counterparty",
    "amount",
    "description",
)


def marked_description(description: str, marker: str = GENERATED_MARKER) -> str:
    return f"{description}{marker}"


def parse_entry_patch(
    patch: Mapping[str, Any],
    marker: str = GENERATED_MARKER,
) -> dict[str, Any]:
    """Validate a patch for generated entries and return column values.

    Raises:
        EmptyChangeSetError: if the patch is empty.
        InvalidFieldError: for a field outside PATCHABLE_ENTRY_FIELDS or an
            empty required value.
        InvalidAmountError: if ``amount`` is not strictly positive.
    """
    if not patch:
        raise EmptyChangeSetError("update_future")

    values: dict[str, Any] = {}
    for name, raw in patch.items():
        if name not in PATCHABLE_ENTRY_FIELDS:
            raise InvalidFieldError(name, "cannot be changed on generated entries")
        if name == "amount":
            values[name] = parse_amount(raw)
        elif name == "description":
            values[name] = marked_description(require_text(raw, name), marker)
        elif name == "kind":
            values[name] = require_text(raw, name)
        elif name in ("vehicle_id", "category_id"):
            values[name] = parse_optional_uuid(raw, name)
        else:
            values[name] = optional_text(raw, name)
    return values
