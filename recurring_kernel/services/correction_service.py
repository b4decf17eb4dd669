"""
CorrectionService -- bulk edits of entries a template has already generated.

Responsibility:
    Delete or patch the ledger entries produced by one template, scoped
    strictly by the Generation History Ledger.  Entries the template did not
    produce are never touched, whatever their description or date.

Architecture position:
    Kernel > Services -- imperative shell.  The scoping set comes from
    HistorySelector.ledger_entry_ids().

Invariants enforced:
    - Scope: only entries linked to the template through a GenerationRecord.
    - Cutoff: ``*_future`` operations touch entries whose occurrence date is
      on or after the cutoff, never earlier ones.
    - Entry and history row are deleted together.
    - The template itself is never altered.
    - Paid entries are NOT protected; callers that must preserve settled
      entries should pick a cutoff after the last paid date.

Failure modes:
    - TemplateNotFoundError for unknown ids.
    - InvalidDateError for a malformed cutoff.
    - EmptyChangeSetError / InvalidFieldError / InvalidAmountError for a
      rejected patch.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Mapping
from uuid import UUID

from sqlalchemy import delete, update
from sqlalchemy.orm import Session

from recurring_kernel.domain.clock import Clock
from recurring_kernel.domain.collaborators import AuditAction, AuditSink, ChangeNotifier
from recurring_kernel.domain.terms import GENERATED_MARKER, parse_entry_patch
from recurring_kernel.domain.validation import parse_date
from recurring_kernel.exceptions import TemplateNotFoundError
from recurring_kernel.logging_config import get_logger
from recurring_kernel.models.generation import GenerationRecord
from recurring_kernel.models.ledger import LedgerEntry
from recurring_kernel.models.template import RecurringTemplate
from recurring_kernel.selectors.history_selector import HistorySelector
from recurring_kernel.services.base import BaseService

logger = get_logger("services.correction")


class CorrectionService(BaseService[LedgerEntry]):
    """Retroactive correction of generated ledger entries."""

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

    def _require_template(self, template_id: UUID) -> RecurringTemplate:
        template = self.session.get(RecurringTemplate, template_id)
        if template is None:
            raise TemplateNotFoundError(str(template_id))
        return template

    def _delete_entries(self, entry_ids: list[UUID]) -> int:
        if not entry_ids:
            return 0
        self.session.execute(
            delete(GenerationRecord).where(
                GenerationRecord.ledger_entry_id.in_(entry_ids),
            )
        )
        self.session.execute(
            delete(LedgerEntry).where(LedgerEntry.id.in_(entry_ids))
        )
        self.session.flush()
        return len(entry_ids)

    def delete_all_generated(
        self,
        template_id: UUID,
        actor_id: UUID | None = None,
    ) -> int:
        """
        Delete every ledger entry the template ever produced, with its history.

        Returns:
            Number of ledger entries deleted.
        """
        template = self._require_template(template_id)
        count = self._delete_entries(self._history.ledger_entry_ids(template.id))

        logger.info(
            "generated_entries_deleted",
            extra={"template_id": str(template.id), "deleted_count": count},
        )
        if count:
            self._publish(
                AuditAction.GENERATED_DELETED,
                template.id,
                template.owner_id,
                actor_id,
                {"deleted": count},
            )
        return count

    def delete_future(
        self,
        template_id: UUID,
        cutoff_date: date | str,
        actor_id: UUID | None = None,
    ) -> int:
        """
        Delete the template's entries dated on or after ``cutoff_date``.

        Returns:
            Number of ledger entries deleted.
        """
        cutoff = parse_date(cutoff_date, "cutoff_date")
        template = self._require_template(template_id)
        count = self._delete_entries(
            self._history.ledger_entry_ids(template.id, since=cutoff)
        )

        logger.info(
            "future_entries_deleted",
            extra={
                "template_id": str(template.id),
                "cutoff_date": cutoff,
                "deleted_count": count,
            },
        )
        if count:
            self._publish(
                AuditAction.FUTURE_DELETED,
                template.id,
                template.owner_id,
                actor_id,
                {"deleted": count, "cutoff_date": cutoff.isoformat()},
            )
        return count

    def update_future(
        self,
        template_id: UUID,
        cutoff_date: date | str,
        patch: Mapping[str, Any],
        actor_id: UUID,
    ) -> int:
        """
        Patch the template's entries dated on or after ``cutoff_date``.

        ``description`` in the patch gets the generated-marker suffix, so the
        entries keep identifying as generated.  Occurrence dates and payment
        status cannot be patched.

        Returns:
            Number of ledger entries updated.
        """
        cutoff = parse_date(cutoff_date, "cutoff_date")
        values = parse_entry_patch(patch, self._marker)
        template = self._require_template(template_id)

        entry_ids = self._history.ledger_entry_ids(template.id, since=cutoff)
        if entry_ids:
            self.session.execute(
                update(LedgerEntry)
                .where(LedgerEntry.id.in_(entry_ids))
                .values(
                    **values,
                    updated_by_id=actor_id,
                    updated_at=self._clock.now(),
                )
            )
            self.session.flush()
        count = len(entry_ids)

        logger.info(
            "future_entries_updated",
            extra={
                "template_id": str(template.id),
                "cutoff_date": cutoff,
                "fields": sorted(values),
                "updated_count": count,
            },
        )
        if count:
            self._publish(
                AuditAction.FUTURE_UPDATED,
                template.id,
                template.owner_id,
                actor_id,
                {
                    "updated": count,
                    "cutoff_date": cutoff.isoformat(),
                    "fields": sorted(values),
                },
            )
        return count
