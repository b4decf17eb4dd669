"""Batch generation services."""

from recurring_batch.services.executor import GenerationBatchExecutor
from recurring_batch.services.scheduler import GenerationScheduler

__all__ = [
    "GenerationBatchExecutor",
    "GenerationScheduler",
]
