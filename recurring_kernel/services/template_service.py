"""
TemplateService -- create, edit, toggle and delete recurring templates.

Responsibility:
    The write side of the template store.  Validates every field on the
    way in, so the materialization engine can rely on well-formed rows
    (it still re-validates, to surface rows corrupted by other writers).

Architecture position:
    Kernel > Services -- imperative shell.  Reads go through
    TemplateSelector; history counts through HistorySelector.

Invariants enforced:
    - amount > 0, rounded to minor units; floats rejected.
    - end_date >= start_date, checked against the MERGED template on update.
    - frequency in {weekly, biweekly, monthly}; due_day in 1..31.
    - A template with generation history is not deleted unless the caller
      asks to cascade; cascading removes the history rows and keeps the
      ledger entries.

Failure modes:
    - ValidationError subclasses for rejected input.
    - TemplateNotFoundError for unknown ids.
    - TemplateHasHistoryError on delete without cascade.

Audit relevance:
    Every mutation is logged (``template_created``, ``template_updated``,
    ``template_toggled``, ``template_deleted``) and reported to the
    optional AuditSink / ChangeNotifier.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Callable, Mapping
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from recurring_kernel.domain.clock import Clock
from recurring_kernel.domain.collaborators import AuditAction, AuditSink, ChangeNotifier
from recurring_kernel.domain.dtos import RecurringTemplateDTO
from recurring_kernel.domain.recurrence import Frequency
from recurring_kernel.domain.validation import (
    optional_text,
    parse_amount,
    parse_date,
    parse_due_day,
    parse_optional_date,
    parse_optional_uuid,
    parse_uuid,
    require_text,
    validate_date_range,
)
from recurring_kernel.exceptions import (
    EmptyChangeSetError,
    InvalidFieldError,
    TemplateHasHistoryError,
    TemplateNotFoundError,
)
from recurring_kernel.logging_config import get_logger
from recurring_kernel.models.generation import GenerationRecord
from recurring_kernel.models.template import RecurringTemplate
from recurring_kernel.selectors.history_selector import HistorySelector
from recurring_kernel.services.base import BaseService

logger = get_logger("services.template")


def _parse_bool(value: Any, field_name: str) -> bool:
    if not isinstance(value, bool):
        raise InvalidFieldError(field_name, "must be a boolean")
    return value


def _parse_frequency(value: Any, field_name: str) -> str:
    return Frequency.parse(value).value


# Field name -> parser for partial updates.  owner_id is not editable.
_FIELD_PARSERS: dict[str, Callable[[Any, str], Any]] = {
    "kind": require_text,
    "plate": optional_text,
    "vehicle_id": parse_optional_uuid,
    "category_id": parse_optional_uuid,
    "counterparty": optional_text,
    "amount": lambda value, _name: parse_amount(value),
    "description": require_text,
    "frequency": _parse_frequency,
    "due_day": lambda value, _name: parse_due_day(value),
    "start_date": parse_date,
    "end_date": parse_optional_date,
    "is_active": _parse_bool,
}

UPDATABLE_FIELDS = frozenset(_FIELD_PARSERS)


def _audit_value(value: Any) -> Any:
    if isinstance(value, (UUID, date, Decimal)):
        return str(value)
    return value


class TemplateService(BaseService[RecurringTemplate]):
    """
    Write operations on recurring templates.

    Contract:
        Methods flush and return DTOs; the caller commits.

    Non-goals:
        - Does NOT materialize entries (MaterializationService).
        - Does NOT touch existing ledger entries (CorrectionService).
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        audit_sink: AuditSink | None = None,
        notifier: ChangeNotifier | None = None,
    ):
        super().__init__(session, clock, audit_sink, notifier)
        self._history = HistorySelector(session)

    def _load(self, template_id: UUID, lock: bool = False) -> RecurringTemplate:
        query = select(RecurringTemplate).where(RecurringTemplate.id == template_id)
        if lock:
            query = query.with_for_update()
        template = self.session.execute(query).scalar_one_or_none()
        if template is None:
            raise TemplateNotFoundError(str(template_id))
        return template

    def create(
        self,
        *,
        owner_id: UUID | str,
        kind: str,
        amount: Decimal | int | str,
        description: str,
        frequency: Frequency | str,
        start_date: date | str,
        actor_id: UUID,
        due_day: int | None = None,
        end_date: date | str | None = None,
        plate: str | None = None,
        vehicle_id: UUID | str | None = None,
        category_id: UUID | str | None = None,
        counterparty: str | None = None,
        is_active: bool = True,
    ) -> RecurringTemplateDTO:
        """
        Create a recurring template.

        Preconditions:
            - ``actor_id`` identifies the authenticated caller.

        Postconditions:
            - The template is flushed (visible in this transaction) and no
              ledger entry has been generated for it yet.

        Raises:
            ValidationError: on any rejected field.
        """
        start = parse_date(start_date, "start_date")
        end = parse_optional_date(end_date, "end_date")
        validate_date_range(start, end)

        now = self._clock.now()
        template = RecurringTemplate(
            owner_id=parse_uuid(owner_id, "owner_id"),
            kind=require_text(kind, "kind"),
            amount=parse_amount(amount),
            description=require_text(description, "description"),
            frequency=_parse_frequency(frequency, "frequency"),
            due_day=parse_due_day(due_day),
            start_date=start,
            end_date=end,
            plate=optional_text(plate, "plate"),
            vehicle_id=parse_optional_uuid(vehicle_id, "vehicle_id"),
            category_id=parse_optional_uuid(category_id, "category_id"),
            counterparty=optional_text(counterparty, "counterparty"),
            is_active=_parse_bool(is_active, "is_active"),
            created_by_id=actor_id,
            created_at=now,
            updated_at=now,
        )
        self.session.add(template)
        self.session.flush()

        logger.info(
            "template_created",
            extra={
                "template_id": str(template.id),
                "owner_id": str(template.owner_id),
                "frequency": template.frequency,
                "start_date": template.start_date,
            },
        )
        self._publish(
            AuditAction.TEMPLATE_CREATED,
            template.id,
            template.owner_id,
            actor_id,
            {"frequency": template.frequency, "amount": str(template.amount)},
        )
        return template.to_dto()

    def update(
        self,
        template_id: UUID,
        changes: Mapping[str, Any],
        actor_id: UUID,
    ) -> RecurringTemplateDTO:
        """
        Apply a partial update.

        Only future materialization is affected; entries already generated
        keep the terms they were created with.

        Raises:
            EmptyChangeSetError: if ``changes`` is empty.
            InvalidFieldError: for an unknown or non-editable field.
            ValidationError: if a value, or the merged template, is invalid.
            TemplateNotFoundError: if the template does not exist.
        """
        if not changes:
            raise EmptyChangeSetError("update")
        unknown = sorted(set(changes) - UPDATABLE_FIELDS)
        if unknown:
            raise InvalidFieldError(unknown[0], "is not an editable template field")

        parsed = {
            name: _FIELD_PARSERS[name](value, name)
            for name, value in changes.items()
        }

        template = self._load(template_id, lock=True)
        validate_date_range(
            parsed.get("start_date", template.start_date),
            parsed.get("end_date", template.end_date),
        )

        for name, value in parsed.items():
            setattr(template, name, value)
        template.updated_by_id = actor_id
        template.updated_at = self._clock.now()
        self.session.flush()

        logger.info(
            "template_updated",
            extra={
                "template_id": str(template.id),
                "fields": sorted(parsed),
            },
        )
        self._publish(
            AuditAction.TEMPLATE_UPDATED,
            template.id,
            template.owner_id,
            actor_id,
            {"changes": {k: _audit_value(v) for k, v in parsed.items()}},
        )
        return template.to_dto()

    def set_active(
        self,
        template_id: UUID,
        active: bool,
        actor_id: UUID,
    ) -> RecurringTemplateDTO:
        """Activate or deactivate a template.  History is never touched."""
        active = _parse_bool(active, "is_active")
        template = self._load(template_id, lock=True)
        template.is_active = active
        template.updated_by_id = actor_id
        template.updated_at = self._clock.now()
        self.session.flush()

        logger.info(
            "template_toggled",
            extra={"template_id": str(template.id), "is_active": active},
        )
        self._publish(
            AuditAction.TEMPLATE_TOGGLED,
            template.id,
            template.owner_id,
            actor_id,
            {"is_active": active},
        )
        return template.to_dto()

    def delete(
        self,
        template_id: UUID,
        *,
        cascade_history: bool = False,
        actor_id: UUID | None = None,
    ) -> int:
        """
        Delete a template.

        Args:
            template_id: Template to delete.
            cascade_history: Also delete its generation history rows.  The
                ledger entries themselves are kept.
            actor_id: Caller, for the audit record.

        Returns:
            Number of history rows removed.

        Raises:
            TemplateNotFoundError: if the template does not exist.
            TemplateHasHistoryError: if history exists and
                ``cascade_history`` is False.
        """
        template = self._load(template_id, lock=True)
        record_count = self._history.count_for_template(template.id)
        if record_count and not cascade_history:
            raise TemplateHasHistoryError(str(template.id), record_count)

        if record_count:
            self.session.execute(
                delete(GenerationRecord).where(
                    GenerationRecord.template_id == template.id,
                )
            )
        owner_id = template.owner_id
        self.session.delete(template)
        self.session.flush()

        logger.info(
            "template_deleted",
            extra={
                "template_id": str(template_id),
                "history_removed": record_count,
            },
        )
        self._publish(
            AuditAction.TEMPLATE_DELETED,
            template_id,
            owner_id,
            actor_id,
            {"history_removed": record_count},
        )
        return record_count
