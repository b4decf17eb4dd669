"""Pure batch types."""

from recurring_batch.domain.types import (
    BatchItemStatus,
    BatchRunStatus,
    GenerationBatchResult,
    TemplateFailure,
    TemplateGenerationResult,
    run_status,
)

__all__ = [
    "BatchItemStatus",
    "BatchRunStatus",
    "GenerationBatchResult",
    "TemplateFailure",
    "TemplateGenerationResult",
    "run_status",
]
