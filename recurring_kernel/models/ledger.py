"""
Module: recurring_kernel.models.ledger
Responsibility: ORM mapping of the finance ledger table that the engine
    writes to.  The table is owned by the surrounding finance module (which
    marks entries paid and renders them); this engine only inserts entries,
    and the CorrectionService bulk-updates or deletes the ones it generated.
Architecture position: Kernel > Models.  May import from db/ only.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from recurring_kernel.db.base import TrackedBase, UUIDString
from recurring_kernel.db.types import Label, LongText, Money, ShortCode
from recurring_kernel.domain.dtos import LedgerEntryDTO


class LedgerEntry(TrackedBase):
    """
    A concrete, dated income/expense entry.

    Guarantees:
        - Entries created by the engine carry the template's terms as they
          were at generation time; later template edits do not touch them.
    """

    __tablename__ = "ledger_entries"

    __table_args__ = (
        Index("idx_ledger_entry_owner_date", "owner_id", "occurrence_date"),
        Index("idx_ledger_entry_occurrence_date", "occurrence_date"),
    )

    owner_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    kind: Mapped[ShortCode] = mapped_column(nullable=False)
    amount: Mapped[Money] = mapped_column(nullable=False)
    occurrence_date: Mapped[date] = mapped_column(Date, nullable=False)
    description: Mapped[LongText] = mapped_column(nullable=False)
    is_paid: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    plate: Mapped[str | None] = mapped_column(String(20), nullable=True)
    vehicle_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    category_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    counterparty: Mapped[Label | None] = mapped_column(nullable=True)

    def to_dto(self) -> LedgerEntryDTO:
        return LedgerEntryDTO(
            id=self.id,
            owner_id=self.owner_id,
            kind=self.kind,
            amount=Decimal(self.amount),
            occurrence_date=self.occurrence_date,
            description=self.description,
            is_paid=self.is_paid,
            created_by_id=self.created_by_id,
            plate=self.plate,
            vehicle_id=self.vehicle_id,
            category_id=self.category_id,
            counterparty=self.counterparty,
        )

    def __repr__(self) -> str:
        return f"<LedgerEntry {self.id} {self.occurrence_date} {self.amount}>"
