"""
Module: recurring_kernel.models.generation
Responsibility: ORM persistence for the Generation History Ledger -- the
    append-only link between a recurring template and every ledger entry it
    materialized.
Architecture position: Kernel > Models.  May import from db/ and sibling
    models only.

Invariants enforced:
    - UNIQUE (template_id, occurrence_date): a template never materializes
      the same occurrence twice, even under concurrent generation.
    - UNIQUE ledger_entry_id: a ledger entry belongs to at most one record.
    - occurrence_date mirrors the linked entry's occurrence_date; the
      CorrectionService never patches dates, so the two cannot diverge.

Failure modes:
    - IntegrityError on a duplicate (template_id, occurrence_date).  The
      MaterializationService inserts inside a SAVEPOINT and treats this as
      "already materialized by a concurrent writer".
"""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Date, DateTime, ForeignKey, Index, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from recurring_kernel.db.base import Base, UUIDString
from recurring_kernel.domain.dtos import GenerationRecordDTO

if TYPE_CHECKING:
    from recurring_kernel.models.ledger import LedgerEntry


class GenerationRecord(Base):
    """One materialized occurrence of a recurring template."""

    __tablename__ = "recurring_generation_records"

    __table_args__ = (
        UniqueConstraint(
            "template_id",
            "occurrence_date",
            name="uq_generation_template_occurrence",
        ),
        UniqueConstraint("ledger_entry_id", name="uq_generation_ledger_entry"),
        Index("idx_generation_template", "template_id"),
    )

    template_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("recurring_templates.id"),
        nullable=False,
    )
    ledger_entry_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("ledger_entries.id", ondelete="CASCADE"),
        nullable=False,
    )
    occurrence_date: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    ledger_entry: Mapped["LedgerEntry"] = relationship(
        "LedgerEntry",
        foreign_keys=[ledger_entry_id],
    )

    def to_dto(self) -> GenerationRecordDTO:
        return GenerationRecordDTO(
            id=self.id,
            template_id=self.template_id,
            ledger_entry_id=self.ledger_entry_id,
            occurrence_date=self.occurrence_date,
            created_at=self.created_at,
        )

    def __repr__(self) -> str:
        return (
            f"<GenerationRecord template={self.template_id} "
            f"date={self.occurrence_date} entry={self.ledger_entry_id}>"
        )
