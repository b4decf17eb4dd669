"""
GenerationBatchExecutor -- materialize every active template, one unit per template.

Contract:
    ``generate_all()`` runs MaterializationService.generate_for_template for
    every active template in scope and reports per-template outcomes.  A
    failure on one template never aborts the others and is never raised.

Architecture: recurring_batch/services.  Imports from recurring_batch.domain
    and kernel services/selectors.

Invariants enforced:
    - SAVEPOINT isolation per template in sequential mode: a failing
      template's partial work is rolled back, the others' work stays in the
      caller's transaction.
    - Session isolation per template in parallel mode: each template runs in
      its own session and transaction, committed on success and rolled back
      on failure.
    - All timestamps from the injected Clock; the default horizon is the
      clock's today.
"""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Callable
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from recurring_kernel.domain.clock import Clock, SystemClock
from recurring_kernel.domain.collaborators import AuditSink, ChangeNotifier
from recurring_kernel.domain.dtos import AccessScope
from recurring_kernel.domain.terms import GENERATED_MARKER
from recurring_kernel.domain.validation import parse_date
from recurring_kernel.exceptions import RecurringKernelError
from recurring_kernel.logging_config import LogContext, get_logger
from recurring_kernel.selectors.template_selector import TemplateSelector
from recurring_kernel.services.materialization_service import MaterializationService

from recurring_batch.domain.types import (
    BatchItemStatus,
    GenerationBatchResult,
    TemplateGenerationResult,
    run_status,
)

logger = get_logger("batch.executor")


class GenerationBatchExecutor:
    """Batch generation with per-template isolation.

    Contract:
        - Sequential mode (default): uses the caller's ``session``; one
          SAVEPOINT per template.  Does NOT commit.
        - Parallel mode (``max_workers > 1`` and ``session_factory``): a
          bounded thread pool, one session per template, each committed or
          rolled back independently.

    Non-goals:
        - Does NOT manage background threads -- that is the scheduler's job.
        - Does NOT retry failed templates; the next run picks them up.
    """

    def __init__(
        self,
        session: Session | None = None,
        clock: Clock | None = None,
        marker: str = GENERATED_MARKER,
        max_workers: int = 1,
        session_factory: Callable[[], Session] | None = None,
        audit_sink: AuditSink | None = None,
        notifier: ChangeNotifier | None = None,
    ):
        if session is None and session_factory is None:
            raise ValueError("GenerationBatchExecutor needs a session or a session_factory")
        self._session = session
        self._clock = clock or SystemClock()
        self._marker = marker
        self._max_workers = max(1, max_workers)
        self._session_factory = session_factory
        self._audit_sink = audit_sink
        self._notifier = notifier

    @property
    def is_parallel(self) -> bool:
        """True when templates run in their own sessions (and maybe threads)."""
        if self._session_factory is None:
            return False
        return self._max_workers > 1 or self._session is None

    def generate_all(
        self,
        through_date: date | str | None = None,
        scope: AccessScope | None = None,
        actor_id: UUID | None = None,
    ) -> GenerationBatchResult:
        """Generate every active template in ``scope`` up to ``through_date``.

        Args:
            through_date: Horizon (inclusive); the clock's today when None.
            scope: Owner filter; None processes all owners.
            actor_id: Creator recorded on new entries (system actor if None).

        Returns:
            GenerationBatchResult with per-template outcomes.

        Raises:
            InvalidDateError: if ``through_date`` is malformed.  Nothing else
                is raised for per-template failures.
        """
        through = (
            self._clock.today()
            if through_date is None
            else parse_date(through_date, "through_date")
        )
        batch_id = uuid4()
        started_at = self._clock.now()
        start_time = time.monotonic()

        with LogContext.bind(batch_id=str(batch_id)):
            template_ids = self._template_ids(scope)
            logger.info(
                "generation_batch_started",
                extra={
                    "through_date": through,
                    "template_count": len(template_ids),
                    "parallel": self.is_parallel,
                },
            )

            if self.is_parallel:
                item_results = self._run_parallel(template_ids, through, actor_id, batch_id)
            else:
                item_results = [
                    self._run_in_savepoint(tid, through, actor_id)
                    for tid in template_ids
                ]

            failures = tuple(
                r.failure for r in item_results if r.failure is not None
            )
            succeeded = len(item_results) - len(failures)
            total_created = sum(r.created for r in item_results)
            status = run_status(succeeded, len(failures))
            duration_ms = int((time.monotonic() - start_time) * 1000)

            logger.info(
                "generation_batch_completed",
                extra={
                    "status": status.value,
                    "templates_processed": len(item_results),
                    "succeeded": succeeded,
                    "failed": len(failures),
                    "total_created": total_created,
                    "duration_ms": duration_ms,
                },
            )

        return GenerationBatchResult(
            batch_id=batch_id,
            through_date=through,
            status=status,
            templates_processed=len(item_results),
            succeeded=succeeded,
            total_created=total_created,
            failures=failures,
            item_results=tuple(item_results),
            started_at=started_at,
            completed_at=self._clock.now(),
            duration_ms=duration_ms,
        )

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _template_ids(self, scope: AccessScope | None) -> list[UUID]:
        if self.is_parallel:
            # Short-lived read so no transaction stays open while workers write
            session = self._session_factory()
            try:
                return TemplateSelector(session).active_template_ids(scope)
            finally:
                session.close()
        return TemplateSelector(self._session).active_template_ids(scope)

    def _service(self, session: Session) -> MaterializationService:
        return MaterializationService(
            session,
            clock=self._clock,
            marker=self._marker,
            audit_sink=self._audit_sink,
            notifier=self._notifier,
        )

    def _generate(
        self,
        session: Session,
        template_id: UUID,
        through: date,
        actor_id: UUID | None,
    ) -> TemplateGenerationResult:
        item_start = time.monotonic()
        try:
            created = self._service(session).generate_for_template(
                template_id, through, actor_id,
            )
        except Exception as exc:
            error_code = (
                exc.code if isinstance(exc, RecurringKernelError)
                else "UNHANDLED_EXCEPTION"
            )
            logger.warning(
                "generation_template_failed",
                extra={
                    "template_id": str(template_id),
                    "error_code": error_code,
                    "error_message": str(exc),
                },
            )
            return TemplateGenerationResult(
                template_id=template_id,
                status=BatchItemStatus.FAILED,
                error_code=error_code,
                error_message=str(exc),
                duration_ms=int((time.monotonic() - item_start) * 1000),
            )

        return TemplateGenerationResult(
            template_id=template_id,
            status=BatchItemStatus.SUCCEEDED,
            created=created,
            duration_ms=int((time.monotonic() - item_start) * 1000),
        )

    def _run_in_savepoint(
        self,
        template_id: UUID,
        through: date,
        actor_id: UUID | None,
    ) -> TemplateGenerationResult:
        savepoint = self._session.begin_nested()
        result = self._generate(self._session, template_id, through, actor_id)
        if result.status is BatchItemStatus.SUCCEEDED:
            savepoint.commit()
        else:
            savepoint.rollback()
        return result

    def _run_in_own_session(
        self,
        template_id: UUID,
        through: date,
        actor_id: UUID | None,
        batch_id: UUID,
    ) -> TemplateGenerationResult:
        with LogContext.bind(batch_id=str(batch_id)):
            session = self._session_factory()
            try:
                result = self._generate(session, template_id, through, actor_id)
                if result.status is not BatchItemStatus.SUCCEEDED:
                    session.rollback()
                    return result
                try:
                    session.commit()
                except Exception as exc:
                    session.rollback()
                    logger.exception(
                        "generation_template_commit_failed",
                        extra={"template_id": str(template_id)},
                    )
                    return TemplateGenerationResult(
                        template_id=template_id,
                        status=BatchItemStatus.FAILED,
                        error_code="COMMIT_FAILED",
                        error_message=str(exc),
                        duration_ms=result.duration_ms,
                    )
                return result
            finally:
                session.close()

    def _run_parallel(
        self,
        template_ids: list[UUID],
        through: date,
        actor_id: UUID | None,
        batch_id: UUID,
    ) -> list[TemplateGenerationResult]:
        with ThreadPoolExecutor(
            max_workers=self._max_workers,
            thread_name_prefix="recurring-generation",
        ) as pool:
            futures = [
                pool.submit(self._run_in_own_session, tid, through, actor_id, batch_id)
                for tid in template_ids
            ]
            return [f.result() for f in futures]
