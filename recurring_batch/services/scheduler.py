"""
GenerationScheduler -- in-process polling scheduler for batch generation.

Contract:
    Every ``tick_interval_seconds`` runs ``generate_all`` with a horizon of
    the clock's today plus ``horizon_days``, in a fresh session that is
    committed when the run returns.

Architecture: recurring_batch/services.  Uses
    recurring_batch.services.executor for execution.

Invariants enforced:
    - All dates from the injected Clock.
    - Graceful shutdown: ``stop()`` signals the loop and waits for the
      current tick to finish.
    - A failing tick is logged and rolled back; the loop keeps running.
"""

from __future__ import annotations

import threading
from datetime import timedelta
from typing import Callable
from uuid import UUID

from sqlalchemy.orm import Session

from recurring_kernel.domain.clock import Clock, SystemClock
from recurring_kernel.domain.dtos import AccessScope
from recurring_kernel.domain.terms import SYSTEM_ACTOR_ID
from recurring_kernel.logging_config import get_logger

from recurring_batch.domain.types import GenerationBatchResult
from recurring_batch.services.executor import GenerationBatchExecutor

logger = get_logger("batch.scheduler")


class GenerationScheduler:
    """Polls on an interval and materializes due occurrences.

    Contract:
        - ``tick()`` runs one batch and returns its result (None on failure).
        - ``start()`` / ``stop()`` for background thread operation.

    Non-goals:
        - NOT a distributed scheduler; running several is safe (generation is
          idempotent) but wasteful.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        executor_factory: Callable[[Session], GenerationBatchExecutor],
        clock: Clock | None = None,
        actor_id: UUID | None = None,
        horizon_days: int = 0,
        tick_interval_seconds: int = 3600,
        scope: AccessScope | None = None,
    ):
        self._session_factory = session_factory
        self._executor_factory = executor_factory
        self._clock = clock or SystemClock()
        self._actor_id = actor_id or SYSTEM_ACTOR_ID
        self._horizon_days = horizon_days
        self._tick_interval = tick_interval_seconds
        self._scope = scope
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def tick(self) -> GenerationBatchResult | None:
        """Run one generation batch (public for testing)."""
        through = self._clock.today() + timedelta(days=self._horizon_days)
        session = self._session_factory()
        try:
            executor = self._executor_factory(session)
            result = executor.generate_all(
                through_date=through,
                scope=self._scope,
                actor_id=self._actor_id,
            )
            session.commit()
        except Exception:
            session.rollback()
            logger.exception("scheduler_tick_failed")
            return None
        finally:
            session.close()

        logger.info(
            "scheduler_tick_completed",
            extra={
                "through_date": through,
                "status": result.status.value,
                "total_created": result.total_created,
            },
        )
        return result

    def start(self) -> None:
        """Start the scheduler in a background thread."""
        if self._thread is not None and self._thread.is_alive():
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop,
            name="recurring-generation-scheduler",
            daemon=True,
        )
        self._thread.start()
        logger.info("scheduler_started", extra={"tick_interval": self._tick_interval})

    def stop(self, timeout: float = 30.0) -> None:
        """Signal stop and wait for the scheduler to finish.

        Args:
            timeout: Max seconds to wait for the thread to finish.
        """
        self._stop_event.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        logger.info("scheduler_stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.tick()
            except Exception:
                logger.exception("scheduler_tick_exception")
            self._stop_event.wait(timeout=self._tick_interval)
