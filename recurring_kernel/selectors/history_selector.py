"""
Module: recurring_kernel.selectors.history_selector
Responsibility: Read-only queries over the Generation History Ledger
    (recurring_generation_records) and the ledger entries it links.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Read-only: never adds, flushes or deletes.
    - Ordering: record and entry lists are ascending by occurrence date.
    - Scoping: ``since`` filters are inclusive (occurrence_date >= since),
      matching the cutoff semantics of the CorrectionService.

Failure modes:
    - Returns empty collections / None for templates without history; never
      raises on absence of data.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import exists, func, select
from sqlalchemy.orm import Session

from recurring_kernel.domain.dtos import GenerationRecordDTO, LedgerEntryDTO
from recurring_kernel.models.generation import GenerationRecord
from recurring_kernel.models.ledger import LedgerEntry
from recurring_kernel.selectors.base import BaseSelector


class HistorySelector(BaseSelector[GenerationRecord]):
    """
    Query the generation history of recurring templates.

    Contract:
        The MaterializationService uses latest_occurrence() as its anchor and
        occurrence_dates() / has_occurrence() as its idempotency check; the
        CorrectionService uses ledger_entry_ids() as the set of entries it is
        allowed to touch.
    """

    def __init__(self, session: Session):
        super().__init__(session)

    def _records_query(self, template_id: UUID, since: date | None):
        query = select(GenerationRecord).where(
            GenerationRecord.template_id == template_id,
        )
        if since is not None:
            query = query.where(GenerationRecord.occurrence_date >= since)
        return query

    def records_for_template(
        self,
        template_id: UUID,
        since: date | None = None,
    ) -> list[GenerationRecordDTO]:
        records = self.session.execute(
            self._records_query(template_id, since).order_by(
                GenerationRecord.occurrence_date,
            )
        ).scalars().all()
        return [r.to_dto() for r in records]

    def latest_occurrence(self, template_id: UUID) -> date | None:
        """Latest materialized occurrence date, or None if never materialized."""
        return self.session.execute(
            select(func.max(GenerationRecord.occurrence_date)).where(
                GenerationRecord.template_id == template_id,
            )
        ).scalar_one_or_none()

    def occurrence_dates(self, template_id: UUID) -> set[date]:
        rows = self.session.execute(
            select(GenerationRecord.occurrence_date).where(
                GenerationRecord.template_id == template_id,
            )
        ).scalars().all()
        return set(rows)

    def has_occurrence(self, template_id: UUID, occurrence_date: date) -> bool:
        return bool(
            self.session.execute(
                select(
                    exists().where(
                        GenerationRecord.template_id == template_id,
                        GenerationRecord.occurrence_date == occurrence_date,
                    )
                )
            ).scalar()
        )

    def count_for_template(self, template_id: UUID) -> int:
        return self.session.execute(
            select(func.count(GenerationRecord.id)).where(
                GenerationRecord.template_id == template_id,
            )
        ).scalar_one()

    def ledger_entry_ids(
        self,
        template_id: UUID,
        since: date | None = None,
    ) -> list[UUID]:
        """
        Ids of ledger entries this template produced.

        Args:
            template_id: Template whose history to read.
            since: If given, only entries whose occurrence date is on or
                after it.

        Returns:
            Entry ids ordered by occurrence date.
        """
        query = select(GenerationRecord.ledger_entry_id).where(
            GenerationRecord.template_id == template_id,
        )
        if since is not None:
            query = query.where(GenerationRecord.occurrence_date >= since)
        query = query.order_by(GenerationRecord.occurrence_date)
        return list(self.session.execute(query).scalars().all())

    def entries_for_template(
        self,
        template_id: UUID,
        since: date | None = None,
    ) -> list[LedgerEntryDTO]:
        """Ledger entries this template produced, ascending by date."""
        query = (
            select(LedgerEntry)
            .join(GenerationRecord, GenerationRecord.ledger_entry_id == LedgerEntry.id)
            .where(GenerationRecord.template_id == template_id)
        )
        if since is not None:
            query = query.where(GenerationRecord.occurrence_date >= since)
        query = query.order_by(GenerationRecord.occurrence_date)
        entries = self.session.execute(query).scalars().all()
        return [e.to_dto() for e in entries]
