"""Read-only selectors returning frozen DTOs."""

from materials_kernel.selectors.alert_selector import AlertSelector
from materials_kernel.selectors.base import BaseSelector
from materials_kernel.selectors.material_selector import MaterialSelector
from materials_kernel.selectors.project_selector import ProjectSelector

__all__ = [
    "AlertSelector",
    "BaseSelector",
    "MaterialSelector",
    "ProjectSelector",
]
