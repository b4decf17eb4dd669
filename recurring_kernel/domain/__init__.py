"""
recurring_kernel.domain -- pure types and functions.

ZERO I/O: recurrence expansion, validation, DTOs, clock, collaborator
protocols.
"""

from recurring_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from recurring_kernel.domain.collaborators import AuditAction, AuditSink, ChangeNotifier
from recurring_kernel.domain.dtos import (
    AccessScope,
    GenerationRecordDTO,
    LedgerEntryDTO,
    RecurringTemplateDTO,
)
from recurring_kernel.domain.recurrence import (
    Frequency,
    RecurrenceRule,
    first_occurrence,
    next_occurrence,
    occurrence_dates,
)
from recurring_kernel.domain.terms import (
    GENERATED_MARKER,
    SYSTEM_ACTOR_ID,
    marked_description,
)

__all__ = [
    "AccessScope",
    "AuditAction",
    "AuditSink",
    "ChangeNotifier",
    "Clock",
    "DeterministicClock",
    "Frequency",
    "GENERATED_MARKER",
    "GenerationRecordDTO",
    "LedgerEntryDTO",
    "RecurrenceRule",
    "RecurringTemplateDTO",
    "SYSTEM_ACTOR_ID",
    "SystemClock",
    "first_occurrence",
    "marked_description",
    "next_occurrence",
    "occurrence_dates",
]
