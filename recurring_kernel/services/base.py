"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every service in the kernel layer.  All concrete services inherit
    from BaseService, receiving a SQLAlchemy ``Session`` that they use
    via ``session.flush()`` -- never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    Transaction boundaries: services flush within the caller's transaction
    and never commit or rollback themselves.  The caller (HTTP handler,
    GenerationBatchExecutor, scheduler, or test harness) owns
    commit/rollback.  Services MAY open SAVEPOINTs (``begin_nested``) to
    isolate a unit of work inside the caller's transaction.

Failure modes:
    - If a subclass calls ``session.commit()``, a batch run can no longer
      roll back one template's work without losing the others'.
"""

from abc import ABC
from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from recurring_kernel.db.base import Base
from recurring_kernel.domain.clock import Clock, SystemClock
from recurring_kernel.domain.collaborators import AuditAction, AuditSink, ChangeNotifier
from recurring_kernel.logging_config import get_logger

ModelType = TypeVar("ModelType", bound=Base)

logger = get_logger("services.base")


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and uses
        ``session.flush()`` to persist changes within the active
        transaction.  Optional audit sink and change notifier are called
        after a successful mutation.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``.
        - A collaborator failure is logged with its traceback and never
          propagates to the caller.

    Non-goals:
        - Does NOT provide query-only (read) methods -- those belong
          in ``recurring_kernel/selectors/``.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        audit_sink: AuditSink | None = None,
        notifier: ChangeNotifier | None = None,
    ):
        self.session = session
        self._clock = clock or SystemClock()
        self._audit_sink = audit_sink
        self._notifier = notifier

    def _publish(
        self,
        action: AuditAction,
        entity_id: UUID,
        owner_id: UUID,
        actor_id: UUID | None,
        payload: dict[str, Any],
    ) -> None:
        """Report a completed mutation to the audit sink and change notifier."""
        if self._audit_sink is not None:
            try:
                self._audit_sink.record(action, entity_id, actor_id, payload)
            except Exception:
                logger.exception(
                    "audit_sink_failed",
                    extra={"action": action.value, "entity_id": str(entity_id)},
                )

        if self._notifier is not None:
            try:
                self._notifier.notify(
                    owner_id,
                    {"action": action.value, "template_id": str(entity_id), **payload},
                )
            except Exception:
                logger.exception(
                    "change_notifier_failed",
                    extra={"action": action.value, "entity_id": str(entity_id)},
                )
