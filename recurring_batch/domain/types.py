"""
recurring_batch.domain.types -- Pure frozen dataclasses for batch generation.

ZERO I/O.  Frozen dataclasses with enum status fields and tuples for
immutable collections.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from uuid import UUID

from recurring_kernel.exceptions import PartialBatchFailureError


class BatchItemStatus(str, Enum):
    """Outcome of generating one template within a batch run."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"


class BatchRunStatus(str, Enum):
    """Outcome of a whole batch run."""

    COMPLETED = "completed"  # No template failed (including an empty run)
    PARTIALLY_COMPLETED = "partially_completed"  # Some templates failed
    FAILED = "failed"  # Every template failed


@dataclass(frozen=True)
class TemplateFailure:
    """A template whose generation raised; its work was rolled back."""

    template_id: UUID
    error_code: str
    error_message: str


@dataclass(frozen=True)
class TemplateGenerationResult:
    """Result of generating one template."""

    template_id: UUID
    status: BatchItemStatus
    created: int = 0
    error_code: str | None = None
    error_message: str | None = None
    duration_ms: int = 0

    @property
    def failure(self) -> TemplateFailure | None:
        if self.status is not BatchItemStatus.FAILED:
            return None
        return TemplateFailure(
            template_id=self.template_id,
            error_code=self.error_code or "UNKNOWN",
            error_message=self.error_message or "",
        )


@dataclass(frozen=True)
class GenerationBatchResult:
    """Immutable result of ``GenerationBatchExecutor.generate_all()``."""

    batch_id: UUID
    through_date: date
    status: BatchRunStatus
    templates_processed: int
    succeeded: int
    total_created: int
    failures: tuple[TemplateFailure, ...] = ()
    item_results: tuple[TemplateGenerationResult, ...] = ()
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int = 0

    @property
    def failed(self) -> int:
        return len(self.failures)

    def raise_for_failures(self) -> None:
        """Raise PartialBatchFailureError if any template failed."""
        if self.failures:
            raise PartialBatchFailureError(
                self.total_created,
                [str(f.template_id) for f in self.failures],
            )


def run_status(succeeded: int, failed: int) -> BatchRunStatus:
    """Overall status from per-template counts."""
    if failed == 0:
        return BatchRunStatus.COMPLETED
    if succeeded == 0:
        return BatchRunStatus.FAILED
    return BatchRunStatus.PARTIALLY_COMPLETED
