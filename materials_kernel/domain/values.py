"""
Value enumerations shared by models, engines and services.

Responsibility:
    Closed vocabularies for alert types, severities, alert statuses,
    inventory movement directions, precedence types and stock bands.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Imported by models (column values),
    engines (classification results) and services.

All enums subclass ``str`` so that values round-trip through String columns
and JSON payloads unchanged and compare equal to their raw string form.
"""

from enum import Enum


class AlertType(str, Enum):
    """Kinds of alert produced by the alert rule engine."""

    STOCK_MINIMUM = "stock_minimum"
    IMMINENT_STOCKOUT = "imminent_stockout"
    SUGGESTED_REORDER = "suggested_reorder"
    CONSUMPTION_DEVIATION = "consumption_deviation"
    STAGNANT_STOCK = "stagnant_stock"
    EXPIRING_MATERIAL = "expiring_material"
    PRICE_VARIATION = "price_variation"
    BLOCKED_DEPENDENCY = "blocked_dependency"


# Regenerated per project; deleted and rebuilt by a project run.
PROJECT_ALERT_TYPES: frozenset[AlertType] = frozenset({
    AlertType.STOCK_MINIMUM,
    AlertType.IMMINENT_STOCKOUT,
    AlertType.SUGGESTED_REORDER,
    AlertType.CONSUMPTION_DEVIATION,
    AlertType.BLOCKED_DEPENDENCY,
})

# Regenerated system-wide; not tied to any project.
GLOBAL_ALERT_TYPES: frozenset[AlertType] = frozenset({
    AlertType.STAGNANT_STOCK,
    AlertType.EXPIRING_MATERIAL,
    AlertType.PRICE_VARIATION,
})


class Severity(str, Enum):
    """Alert severity, from informational to urgent."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Sort key: critical first."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.CRITICAL: 0,
    Severity.HIGH: 1,
    Severity.MEDIUM: 2,
    Severity.LOW: 3,
}


class AlertStatus(str, Enum):
    """Alert lifecycle: PENDING -> ACKNOWLEDGED | DISMISSED."""

    PENDING = "pending"
    ACKNOWLEDGED = "acknowledged"
    DISMISSED = "dismissed"


class MovementDirection(str, Enum):
    """Direction of an inventory movement."""

    IN = "in"
    OUT = "out"
    ADJUST = "adjust"


class DependencyType(str, Enum):
    """
    Precedence relation between a predecessor and a successor activity.

    FS: predecessor must finish (100%) before the successor starts.
    SS: predecessor must have started (>0%).
    SF: predecessor must have started (>0%) for the successor to finish.
    FF: informational only, never blocks.
    """

    FINISH_TO_START = "FS"
    START_TO_START = "SS"
    FINISH_TO_FINISH = "FF"
    START_TO_FINISH = "SF"


class StockBand(str, Enum):
    """Stock level band relative to the material's minimum."""

    CRITICAL = "critical"
    LOW = "low"
    WARNING = "warning"
    OK = "ok"

    @property
    def rank(self) -> int:
        return _BAND_RANK[self]


_BAND_RANK = {
    StockBand.CRITICAL: 0,
    StockBand.LOW: 1,
    StockBand.WARNING: 2,
    StockBand.OK: 3,
}
