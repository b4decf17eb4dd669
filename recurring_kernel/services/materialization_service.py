"""
MaterializationService -- turn a template's due occurrences into ledger entries.

Responsibility:
    For one template and a horizon date, write exactly one LedgerEntry plus
    one GenerationRecord for every due occurrence that has not been
    materialized yet.  Recurrence arithmetic lives in the pure
    ``recurring_kernel.domain.recurrence`` module; this service only reads
    state, calls it, and writes the result.

Architecture position:
    Kernel > Services -- imperative shell around the pure recurrence core.

Invariants enforced:
    - Idempotence: the template row is locked (SELECT ... FOR UPDATE) for the
      duration of generation, candidates already in the history are
      skipped, and UNIQUE (template_id, occurrence_date) rejects whatever a
      concurrent writer got to first.  Running twice with the same horizon
      creates nothing the second time.
    - Atomic pairs: entry and history record are inserted in one SAVEPOINT;
      neither exists without the other.
    - Entries carry the template's terms at generation time, with the
      generated-marker suffix appended to the description.

Failure modes:
    - TemplateNotFoundError for unknown ids.
    - InvalidDateError for a malformed horizon.
    - InvalidFrequencyError / InvalidDueDayError / InvalidDateRangeError when
      the stored template row is corrupt.  Nothing is written in that case.
    - A UNIQUE violation on a single occurrence is NOT an error: the
      savepoint is rolled back, the occurrence is skipped and not counted.

Audit relevance:
    Logs ``recurring_generation_completed`` with the created count and
    reports ``recurring.generate`` to the audit sink when entries were made.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from recurring_kernel.domain.clock import Clock
from recurring_kernel.domain.collaborators import AuditAction, AuditSink, ChangeNotifier
from recurring_kernel.domain.recurrence import RecurrenceRule, occurrence_dates
from recurring_kernel.domain.terms import (
    GENERATED_MARKER,
    SYSTEM_ACTOR_ID,
    marked_description,
)
from recurring_kernel.domain.validation import parse_date
from recurring_kernel.exceptions import TemplateNotFoundError
from recurring_kernel.logging_config import LogContext, get_logger
from recurring_kernel.models.generation import GenerationRecord
from recurring_kernel.models.ledger import LedgerEntry
from recurring_kernel.models.template import RecurringTemplate
from recurring_kernel.selectors.history_selector import HistorySelector
from recurring_kernel.services.base import BaseService

logger = get_logger("services.materialization")


def _rule_for(template: RecurringTemplate) -> RecurrenceRule:
    return RecurrenceRule.from_values(
        frequency=template.frequency,
        start_date=template.start_date,
        end_date=template.end_date,
        due_day=template.due_day,
    )


class MaterializationService(BaseService[LedgerEntry]):
    """
    Materialize due occurrences of recurring templates.

    Contract:
        ``generate_for_template()`` flushes within the caller's transaction
        and returns the number of entries created.  Retrying after a crash
        or timeout is always safe.

    Guarantees:
        - No occurrence is materialized twice for the same template.
        - No occurrence after ``min(through_date, end_date)`` or before
          ``start_date`` is materialized.

    Non-goals:
        - Does NOT commit.  The batch executor or HTTP handler does.
        - Does NOT iterate templates (GenerationBatchExecutor).
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        marker: str = GENERATED_MARKER,
        audit_sink: AuditSink | None = None,
        notifier: ChangeNotifier | None = None,
    ):
        super().__init__(session, clock, audit_sink, notifier)
        self._marker = marker
        self._history = HistorySelector(session)

    def generate_for_template(
        self,
        template_id: UUID,
        through_date: date | str,
        actor_id: UUID | None = None,
    ) -> int:
        """
        Materialize every due, not-yet-materialized occurrence up to a horizon.

        Preconditions:
            - The caller has an open transaction on ``self.session``.

        Postconditions:
            - Every occurrence of the template in
              ``[start_date, min(through_date, end_date)]`` has exactly one
              history record (for an active template).

        Args:
            template_id: Template to materialize.
            through_date: Horizon (inclusive), ``date`` or ``YYYY-MM-DD``.
            actor_id: Creator recorded on the new entries; the system actor
                when None.

        Returns:
            Number of ledger entries created by this call.
        """
        through = parse_date(through_date, "through_date")

        with LogContext.bind(template_id=str(template_id)):
            template = self.session.execute(
                select(RecurringTemplate)
                .where(RecurringTemplate.id == template_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            ).scalar_one_or_none()
            if template is None:
                raise TemplateNotFoundError(str(template_id))

            if not template.is_active:
                logger.debug("recurring_generation_skipped_inactive")
                return 0

            rule = _rule_for(template)
            anchor = self._history.latest_occurrence(template.id)
            candidates = occurrence_dates(rule, through, anchor)

            created = 0
            if candidates:
                existing = self._history.occurrence_dates(template.id)
                for occurrence in candidates:
                    if occurrence in existing:
                        continue
                    if self._materialize(template, occurrence, actor_id):
                        created += 1

            logger.info(
                "recurring_generation_completed",
                extra={
                    "through_date": through,
                    "anchor": anchor,
                    "candidates": len(candidates),
                    "created_count": created,
                },
            )

        if created:
            self._publish(
                AuditAction.ENTRIES_GENERATED,
                template.id,
                template.owner_id,
                actor_id,
                {"created": created, "through_date": through.isoformat()},
            )
        return created

    def preview(self, template_id: UUID, through_date: date | str) -> tuple[date, ...]:
        """Dates ``generate_for_template`` would create now, without writing."""
        through = parse_date(through_date, "through_date")
        template = self.session.get(RecurringTemplate, template_id)
        if template is None:
            raise TemplateNotFoundError(str(template_id))
        if not template.is_active:
            return ()

        rule = _rule_for(template)
        anchor = self._history.latest_occurrence(template.id)
        existing = self._history.occurrence_dates(template.id)
        return tuple(
            d for d in occurrence_dates(rule, through, anchor) if d not in existing
        )

    def _materialize(
        self,
        template: RecurringTemplate,
        occurrence: date,
        actor_id: UUID | None,
    ) -> bool:
        """Insert one entry + history pair.  False if another writer won the race."""
        now = self._clock.now()
        creator = actor_id or SYSTEM_ACTOR_ID

        savepoint = self.session.begin_nested()
        try:
            entry = LedgerEntry(
                owner_id=template.owner_id,
                kind=template.kind,
                amount=template.amount,
                occurrence_date=occurrence,
                description=marked_description(template.description, self._marker),
                is_paid=False,
                plate=template.plate,
                vehicle_id=template.vehicle_id,
                category_id=template.category_id,
                counterparty=template.counterparty,
                created_by_id=creator,
                created_at=now,
                updated_at=now,
            )
            record = GenerationRecord(
                template_id=template.id,
                occurrence_date=occurrence,
                created_at=now,
            )
            record.ledger_entry = entry
            self.session.add_all([entry, record])
            self.session.flush()
            savepoint.commit()
        except IntegrityError:
            savepoint.rollback()
            logger.info(
                "recurring_occurrence_already_materialized",
                extra={"occurrence_date": occurrence},
            )
            return False

        logger.debug(
            "recurring_occurrence_materialized",
            extra={
                "occurrence_date": occurrence,
                "ledger_entry_id": str(entry.id),
            },
        )
        return True
