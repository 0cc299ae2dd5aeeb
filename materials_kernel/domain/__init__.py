"""Pure domain layer: clock, value enums and alert payloads."""

from materials_kernel.domain.alert_details import (
    AlertDetails,
    BlockedDependencyDetails,
    BlockingPredecessor,
    ConsumptionDeviationDetails,
    ExpiringBatchDetails,
    PriceVariationDetails,
    StagnantStockDetails,
    StockoutDetails,
    details_from_payload,
    details_to_payload,
)
from materials_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from materials_kernel.domain.values import (
    GLOBAL_ALERT_TYPES,
    PROJECT_ALERT_TYPES,
    AlertStatus,
    AlertType,
    DependencyType,
    MovementDirection,
    Severity,
    StockBand,
)

__all__ = [
    "AlertDetails",
    "AlertStatus",
    "AlertType",
    "BlockedDependencyDetails",
    "BlockingPredecessor",
    "Clock",
    "ConsumptionDeviationDetails",
    "DependencyType",
    "DeterministicClock",
    "ExpiringBatchDetails",
    "GLOBAL_ALERT_TYPES",
    "MovementDirection",
    "PROJECT_ALERT_TYPES",
    "PriceVariationDetails",
    "Severity",
    "StagnantStockDetails",
    "StockBand",
    "StockoutDetails",
    "SystemClock",
    "details_from_payload",
    "details_to_payload",
]
