"""ORM models. Importing this package registers every table on Base.metadata."""

from recurring_kernel.models.generation import GenerationRecord
from recurring_kernel.models.ledger import LedgerEntry
from recurring_kernel.models.template import RecurringTemplate

__all__ = [
    "GenerationRecord",
    "LedgerEntry",
    "RecurringTemplate",
]
