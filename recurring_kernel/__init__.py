"""
Recurring Kernel

Materialization engine for recurring financial obligations:
- Template store for periodically repeating ledger entries
- Idempotent expansion of templates into dated ledger entries
- Generation history linking every entry back to its template
- Retroactive correction of generated entries on/after a cutoff date
"""

__version__ = "0.1.0"
