"""
Tests for MaterializationService.

The engine must write exactly one ledger entry per due occurrence, never
twice, never before start_date and never after min(horizon, end_date).
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import update

from recurring_kernel.domain.collaborators import AuditAction
from recurring_kernel.domain.terms import SYSTEM_ACTOR_ID
from recurring_kernel.exceptions import (
    InvalidDateError,
    InvalidDueDayError,
    InvalidFrequencyError,
    TemplateNotFoundError,
)
from recurring_kernel.models.generation import GenerationRecord
from recurring_kernel.models.ledger import LedgerEntry
from recurring_kernel.models.template import RecurringTemplate
from recurring_kernel.services.materialization_service import MaterializationService


def _dates(history_selector, template_id):
    return [r.occurrence_date for r in history_selector.records_for_template(template_id)]


class TestGenerateCoverage:
    def test_weekly_month(self, make_template, materialization_service, history_selector):
        template = make_template(frequency="weekly")

        created = materialization_service.generate_for_template(template.id, "2024-01-29")

        assert created == 5
        assert _dates(history_selector, template.id) == [
            date(2024, 1, 1),
            date(2024, 1, 8),
            date(2024, 1, 15),
            date(2024, 1, 22),
            date(2024, 1, 29),
        ]

    def test_biweekly(self, make_template, materialization_service, history_selector):
        template = make_template(frequency="biweekly", start_date=date(2024, 3, 4))
        assert materialization_service.generate_for_template(template.id, date(2024, 4, 1)) == 3
        assert _dates(history_selector, template.id)[-1] == date(2024, 4, 1)

    def test_monthly_due_day_clamped_to_month_end(
        self, make_template, materialization_service, history_selector,
    ):
        template = make_template(due_day=31)

        created = materialization_service.generate_for_template(template.id, date(2024, 4, 30))

        assert created == 4
        assert _dates(history_selector, template.id) == [
            date(2024, 1, 31),
            date(2024, 2, 29),
            date(2024, 3, 31),
            date(2024, 4, 30),
        ]

    def test_end_date_is_inclusive_bound(self, make_template, materialization_service, history_selector):
        template = make_template(end_date=date(2024, 3, 1))
        assert materialization_service.generate_for_template(template.id, date(2024, 12, 31)) == 3
        assert _dates(history_selector, template.id)[-1] == date(2024, 3, 1)

    def test_horizon_before_start(self, make_template, materialization_service, session):
        template = make_template(start_date=date(2024, 6, 1))
        assert materialization_service.generate_for_template(template.id, date(2024, 5, 31)) == 0
        assert session.query(LedgerEntry).count() == 0

    def test_horizon_on_start(self, make_template, materialization_service):
        template = make_template(start_date=date(2024, 6, 1))
        assert materialization_service.generate_for_template(template.id, date(2024, 6, 1)) == 1

    def test_inactive_template_generates_nothing(
        self, make_template, materialization_service, session,
    ):
        template = make_template(is_active=False)
        assert materialization_service.generate_for_template(template.id, date(2024, 12, 31)) == 0
        assert session.query(GenerationRecord).count() == 0


class TestIdempotence:
    def test_second_run_creates_nothing(self, make_template, materialization_service, session):
        template = make_template(frequency="weekly")
        first = materialization_service.generate_for_template(template.id, date(2024, 2, 29))
        second = materialization_service.generate_for_template(template.id, date(2024, 2, 29))

        assert first == 9
        assert second == 0
        assert session.query(LedgerEntry).count() == 9

    def test_extending_horizon_continues_from_last(
        self, make_template, materialization_service, history_selector,
    ):
        template = make_template()
        assert materialization_service.generate_for_template(template.id, date(2024, 2, 15)) == 2
        assert materialization_service.generate_for_template(template.id, date(2024, 4, 15)) == 2
        assert _dates(history_selector, template.id) == [
            date(2024, 1, 1),
            date(2024, 2, 1),
            date(2024, 3, 1),
            date(2024, 4, 1),
        ]

    def test_shorter_horizon_after_longer_is_noop(self, make_template, materialization_service):
        template = make_template()
        materialization_service.generate_for_template(template.id, date(2024, 6, 1))
        assert materialization_service.generate_for_template(template.id, date(2024, 3, 1)) == 0

    def test_each_record_links_one_entry(self, make_template, materialization_service, session):
        template = make_template(frequency="weekly")
        materialization_service.generate_for_template(template.id, date(2024, 1, 31))

        records = session.query(GenerationRecord).all()
        entry_ids = {r.ledger_entry_id for r in records}
        assert len(entry_ids) == len(records)
        for record in records:
            entry = session.get(LedgerEntry, record.ledger_entry_id)
            assert entry.occurrence_date == record.occurrence_date


class TestEntryContents:
    def test_entry_copies_template_terms(
        self, make_template, materialization_service, history_selector, owner_id, test_actor_id,
    ):
        vehicle_id = uuid4()
        template = make_template(
            kind="income",
            amount="320.10",
            description="Frete contrato",
            plate="ABC1D23",
            vehicle_id=vehicle_id,
            counterparty="Transportes Silva",
        )

        materialization_service.generate_for_template(template.id, date(2024, 1, 1), test_actor_id)

        [entry] = history_selector.entries_for_template(template.id)
        assert entry.owner_id == owner_id
        assert entry.kind == "income"
        assert entry.amount == Decimal("320.10")
        assert entry.description == "Frete contrato (Recorrente)"
        assert entry.is_paid is False
        assert entry.plate == "ABC1D23"
        assert entry.vehicle_id == vehicle_id
        assert entry.counterparty == "Transportes Silva"
        assert entry.created_by_id == test_actor_id

    def test_system_actor_when_none_given(self, make_template, materialization_service, history_selector):
        template = make_template()
        materialization_service.generate_for_template(template.id, date(2024, 1, 1))
        [entry] = history_selector.entries_for_template(template.id)
        assert entry.created_by_id == SYSTEM_ACTOR_ID

    def test_custom_marker(self, make_template, session, deterministic_clock, history_selector):
        template = make_template()
        service = MaterializationService(session, clock=deterministic_clock, marker=" [auto]")
        service.generate_for_template(template.id, date(2024, 1, 1))
        [entry] = history_selector.entries_for_template(template.id)
        assert entry.description == "Aluguel [auto]"

    def test_template_edit_does_not_rewrite_existing_entries(
        self, make_template, template_service, materialization_service, history_selector, test_actor_id,
    ):
        template = make_template()
        materialization_service.generate_for_template(template.id, date(2024, 2, 1))
        template_service.update(template.id, {"amount": "150"}, test_actor_id)
        materialization_service.generate_for_template(template.id, date(2024, 3, 1))

        amounts = [e.amount for e in history_selector.entries_for_template(template.id)]
        assert amounts == [Decimal("100.00"), Decimal("100.00"), Decimal("150.00")]


class TestFailures:
    def test_unknown_template(self, materialization_service):
        with pytest.raises(TemplateNotFoundError):
            materialization_service.generate_for_template(uuid4(), date(2024, 1, 1))

    def test_malformed_horizon(self, make_template, materialization_service):
        template = make_template()
        with pytest.raises(InvalidDateError):
            materialization_service.generate_for_template(template.id, "2024-13-01")

    @pytest.mark.parametrize(
        "values, exc_type",
        [
            ({"due_day": 40}, InvalidDueDayError),
            ({"frequency": "daily"}, InvalidFrequencyError),
        ],
    )
    def test_corrupt_row_writes_nothing(
        self, make_template, materialization_service, session, values, exc_type,
    ):
        template = make_template()
        session.execute(
            update(RecurringTemplate)
            .where(RecurringTemplate.id == template.id)
            .values(**values)
        )

        with pytest.raises(exc_type):
            materialization_service.generate_for_template(template.id, date(2024, 6, 1))
        assert session.query(LedgerEntry).count() == 0


class TestPreview:
    def test_preview_lists_pending_dates_without_writing(
        self, make_template, materialization_service, session,
    ):
        template = make_template()
        materialization_service.generate_for_template(template.id, date(2024, 2, 1))

        pending = materialization_service.preview(template.id, date(2024, 4, 30))

        assert pending == (date(2024, 3, 1), date(2024, 4, 1))
        assert session.query(LedgerEntry).count() == 2

    def test_preview_inactive(self, make_template, materialization_service):
        template = make_template(is_active=False)
        assert materialization_service.preview(template.id, date(2024, 4, 30)) == ()


class TestReporting:
    def test_logs_completion(self, make_template, materialization_service, captured_logs):
        template = make_template()
        materialization_service.generate_for_template(template.id, date(2024, 3, 1))

        [record] = [
            r for r in captured_logs() if r["message"] == "recurring_generation_completed"
        ]
        assert record["template_id"] == str(template.id)
        assert record["created_count"] == 3
        assert record["through_date"] == "2024-03-01"
        assert record["anchor"] is None

    def test_audit_only_when_entries_created(
        self, make_template, materialization_service, audit_sink, notifier, owner_id,
    ):
        template = make_template()
        materialization_service.generate_for_template(template.id, date(2024, 2, 1))
        materialization_service.generate_for_template(template.id, date(2024, 2, 1))

        generated = [r for r in audit_sink.records if r[0] is AuditAction.ENTRIES_GENERATED]
        assert len(generated) == 1
        assert generated[0][3] == {"created": 2, "through_date": "2024-02-01"}

        owner, message = notifier.notifications[-1]
        assert owner == owner_id
        assert message["action"] == "recurring.generate"
        assert message["created"] == 2
