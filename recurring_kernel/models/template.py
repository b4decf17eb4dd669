"""
Module: recurring_kernel.models.template
Responsibility: ORM persistence for recurring obligation templates.
Architecture position: Kernel > Models.  May import from db/ and domain/
    value types only.  MUST NOT import from services/ or selectors/.

Invariants enforced:
    - amount > 0 (CHECK constraint; also validated by TemplateService).
    - end_date >= start_date when present (CHECK constraint).

Deliberately NOT constrained at the database level:
    - frequency and due_day.  TemplateService validates them on write and
      the materialization engine re-validates on read, so a row corrupted
      outside the service fails its own generation (and is reported by the
      batch executor) instead of being silently skipped by the database.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, Date, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from recurring_kernel.db.base import TrackedBase, UUIDString
from recurring_kernel.db.types import Label, LongText, Money, ShortCode
from recurring_kernel.domain.dtos import RecurringTemplateDTO
from recurring_kernel.domain.recurrence import Frequency


def _stored_frequency(value: str) -> Frequency | str:
    # Rows written by other systems may hold an unknown frequency; reads keep
    # the raw value and generation reports the row as failed.
    try:
        return Frequency(value)
    except ValueError:
        return value


class RecurringTemplate(TrackedBase):
    """
    A recurrence rule plus fixed financial terms.

    Contract:
        Edits change only what future generation produces; existing ledger
        entries are touched exclusively by the CorrectionService.
    """

    __tablename__ = "recurring_templates"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_recurring_template_amount_positive"),
        CheckConstraint(
            "end_date IS NULL OR end_date >= start_date",
            name="ck_recurring_template_date_range",
        ),
        Index("idx_recurring_template_owner", "owner_id"),
        Index("idx_recurring_template_active", "is_active"),
    )

    owner_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    kind: Mapped[ShortCode] = mapped_column(nullable=False)
    plate: Mapped[str | None] = mapped_column(String(20), nullable=True)
    vehicle_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    category_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    counterparty: Mapped[Label | None] = mapped_column(nullable=True)
    amount: Mapped[Money] = mapped_column(nullable=False)
    description: Mapped[LongText] = mapped_column(nullable=False)
    frequency: Mapped[str] = mapped_column(String(20), nullable=False)
    due_day: Mapped[int | None] = mapped_column(Integer, nullable=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def to_dto(self) -> RecurringTemplateDTO:
        return RecurringTemplateDTO(
            id=self.id,
            owner_id=self.owner_id,
            kind=self.kind,
            amount=Decimal(self.amount),
            description=self.description,
            frequency=_stored_frequency(self.frequency),
            start_date=self.start_date,
            is_active=self.is_active,
            created_by_id=self.created_by_id,
            due_day=self.due_day,
            end_date=self.end_date,
            plate=self.plate,
            vehicle_id=self.vehicle_id,
            category_id=self.category_id,
            counterparty=self.counterparty,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    def __repr__(self) -> str:
        return (
            f"<RecurringTemplate {self.id} {self.frequency} "
            f"{self.amount} active={self.is_active}>"
        )
