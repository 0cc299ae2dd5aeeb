"""
materials_services -- orchestration over the pure engines and the kernel.

``ProjectionEngine`` is the entry point; the services below it flush and
never commit.
"""

from materials_services.alert_engine import AlertRuleEngine
from materials_services.engine import ProjectionEngine
from materials_services.inventory_service import InventoryService, Receipt, Withdrawal
from materials_services.planning_service import PlanningService
from materials_services.progress_confirmation import (
    ConfirmationResult,
    ConsumptionRequest,
    ConsumptionWarning,
    ProgressConfirmationService,
    RiskyMaterial,
    SuggestedConsumption,
)
from materials_services.simulator import SimulatorService

__all__ = [
    "AlertRuleEngine",
    "ConfirmationResult",
    "ConsumptionRequest",
    "ConsumptionWarning",
    "InventoryService",
    "PlanningService",
    "ProgressConfirmationService",
    "ProjectionEngine",
    "Receipt",
    "RiskyMaterial",
    "SimulatorService",
    "SuggestedConsumption",
    "Withdrawal",
]
