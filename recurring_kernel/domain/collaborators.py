"""
Collaborators -- protocols for the fire-and-forget side channels.

Responsibility:
    The HTTP layer owns audit storage and realtime push.  Services accept
    optional implementations of these protocols and call them after a
    successful mutation; a collaborator failure is logged and never fails
    the operation.

Architecture position:
    Kernel > Domain -- protocols only, zero I/O.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Protocol, runtime_checkable
from uuid import UUID


class AuditAction(str, Enum):
    """Actions reported to the audit sink."""

    TEMPLATE_CREATED = "recurring.create"
    TEMPLATE_UPDATED = "recurring.update"
    TEMPLATE_DELETED = "recurring.delete"
    TEMPLATE_TOGGLED = "recurring.toggle"
    ENTRIES_GENERATED = "recurring.generate"
    GENERATED_DELETED = "recurring.delete_generated"
    FUTURE_DELETED = "recurring.delete_future"
    FUTURE_UPDATED = "recurring.update_future"


@runtime_checkable
class AuditSink(Protocol):
    """Receives an audit record after each mutating operation."""

    def record(
        self,
        action: AuditAction,
        entity_id: UUID,
        actor_id: UUID | None,
        payload: dict[str, Any],
    ) -> None: ...


@runtime_checkable
class ChangeNotifier(Protocol):
    """Pushes a change notification to the owner's realtime channel."""

    def notify(self, owner_id: UUID, payload: dict[str, Any]) -> None: ...
