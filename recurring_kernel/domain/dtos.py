"""
DTOs -- frozen value objects crossing the service boundary.

Responsibility:
    Services and selectors return these instead of ORM rows, so callers
    (HTTP layer, batch executor, tests) never hold a live session object.
    ``AccessScope`` carries the owner filter that the caller derives from
    its own role/tenant context.

Architecture position:
    Kernel > Domain -- pure, zero I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from recurring_kernel.domain.recurrence import Frequency


@dataclass(frozen=True)
class AccessScope:
    """Owner (tenant/franchise) filter applied to list and batch calls.

    ``owner_ids is None`` means unrestricted (administrators, system-triggered
    batch runs).  An empty frozenset matches nothing.
    """

    owner_ids: frozenset[UUID] | None = None

    @classmethod
    def unrestricted(cls) -> AccessScope:
        return cls(owner_ids=None)

    @classmethod
    def for_owners(cls, *owner_ids: UUID) -> AccessScope:
        return cls(owner_ids=frozenset(owner_ids))

    @property
    def is_unrestricted(self) -> bool:
        return self.owner_ids is None

    def allows(self, owner_id: UUID) -> bool:
        return self.owner_ids is None or owner_id in self.owner_ids


@dataclass(frozen=True)
class RecurringTemplateDTO:
    """Snapshot of a recurring template."""

    id: UUID
    owner_id: UUID
    kind: str
    amount: Decimal
    description: str
    frequency: Frequency | str  # raw string when the stored value is unknown
    start_date: date
    is_active: bool
    created_by_id: UUID
    due_day: int | None = None
    end_date: date | None = None
    plate: str | None = None
    vehicle_id: UUID | None = None
    category_id: UUID | None = None
    counterparty: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class LedgerEntryDTO:
    """Snapshot of a ledger entry written by the engine."""

    id: UUID
    owner_id: UUID
    kind: str
    amount: Decimal
    occurrence_date: date
    description: str
    is_paid: bool
    created_by_id: UUID
    plate: str | None = None
    vehicle_id: UUID | None = None
    category_id: UUID | None = None
    counterparty: str | None = None


@dataclass(frozen=True)
class GenerationRecordDTO:
    """One History Ledger row: template -> materialized ledger entry."""

    id: UUID
    template_id: UUID
    ledger_entry_id: UUID
    occurrence_date: date
    created_at: datetime | None = None
