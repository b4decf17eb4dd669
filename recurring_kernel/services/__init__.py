"""Services for the recurring kernel (write side)."""

from recurring_kernel.services.correction_service import CorrectionService
from recurring_kernel.services.materialization_service import MaterializationService
from recurring_kernel.services.template_service import TemplateService

__all__ = [
    "CorrectionService",
    "MaterializationService",
    "TemplateService",
]
