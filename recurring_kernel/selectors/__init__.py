"""Selectors for the recurring kernel (read side)."""

from recurring_kernel.selectors.history_selector import HistorySelector
from recurring_kernel.selectors.template_selector import TemplateSelector

__all__ = [
    "HistorySelector",
    "TemplateSelector",
]
