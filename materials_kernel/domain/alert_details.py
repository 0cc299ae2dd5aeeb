"""
Alert details -- typed payloads carried by each alert type.

Responsibility:
    Each alert type has exactly one frozen details dataclass.  The alert
    row stores the details as a JSON column; ``details_to_payload`` and
    ``details_from_payload`` convert in both directions, tagged by the
    AlertType so a row can always be decoded into the right shape.

Architecture position:
    Kernel > Domain -- pure, zero I/O.

Decimal values are serialized as strings and dates as ISO strings so the
payload survives JSON without float drift.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import date
from decimal import Decimal
from typing import Any, ClassVar

from materials_kernel.domain.values import AlertType, DependencyType


def _encode(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, tuple):
        return [_encode(v) for v in value]
    if hasattr(value, "to_payload"):
        return value.to_payload()
    if isinstance(value, DependencyType):
        return value.value
    return value


class _PayloadMixin:
    """Shared field-by-field serialization."""

    alert_type: ClassVar[AlertType]

    def to_payload(self) -> dict[str, Any]:
        return {f.name: _encode(getattr(self, f.name)) for f in fields(self)}


@dataclass(frozen=True)
class StockoutDetails(_PayloadMixin):
    """Shared by stock_minimum, imminent_stockout and suggested_reorder."""

    alert_type: ClassVar[AlertType] = AlertType.STOCK_MINIMUM

    current_stock: Decimal
    minimum_stock: Decimal
    pending_consumption: Decimal
    days_of_stock: int
    lead_time_days: int

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> StockoutDetails:
        return cls(
            current_stock=Decimal(data["current_stock"]),
            minimum_stock=Decimal(data["minimum_stock"]),
            pending_consumption=Decimal(data["pending_consumption"]),
            days_of_stock=int(data["days_of_stock"]),
            lead_time_days=int(data["lead_time_days"]),
        )


@dataclass(frozen=True)
class ConsumptionDeviationDetails(_PayloadMixin):
    alert_type: ClassVar[AlertType] = AlertType.CONSUMPTION_DEVIATION

    progress_pct: Decimal
    consumption_pct: Decimal
    deviation_pct: Decimal
    projected_deficit: Decimal

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> ConsumptionDeviationDetails:
        return cls(
            progress_pct=Decimal(data["progress_pct"]),
            consumption_pct=Decimal(data["consumption_pct"]),
            deviation_pct=Decimal(data["deviation_pct"]),
            projected_deficit=Decimal(data["projected_deficit"]),
        )


@dataclass(frozen=True)
class StagnantStockDetails(_PayloadMixin):
    alert_type: ClassVar[AlertType] = AlertType.STAGNANT_STOCK

    idle_days: int
    last_activity_on: date
    current_stock: Decimal
    idle_capital: Decimal

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> StagnantStockDetails:
        return cls(
            idle_days=int(data["idle_days"]),
            last_activity_on=date.fromisoformat(data["last_activity_on"]),
            current_stock=Decimal(data["current_stock"]),
            idle_capital=Decimal(data["idle_capital"]),
        )


@dataclass(frozen=True)
class ExpiringBatchDetails(_PayloadMixin):
    """Batch fields are None for the material-level default expiry fallback."""

    alert_type: ClassVar[AlertType] = AlertType.EXPIRING_MATERIAL

    batch_id: str | None
    batch_code: str | None
    expiry_date: date
    days_to_expire: int
    remaining_quantity: Decimal

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> ExpiringBatchDetails:
        return cls(
            batch_id=data.get("batch_id"),
            batch_code=data.get("batch_code"),
            expiry_date=date.fromisoformat(data["expiry_date"]),
            days_to_expire=int(data["days_to_expire"]),
            remaining_quantity=Decimal(data["remaining_quantity"]),
        )


@dataclass(frozen=True)
class PriceVariationDetails(_PayloadMixin):
    alert_type: ClassVar[AlertType] = AlertType.PRICE_VARIATION

    previous_price: Decimal
    current_price: Decimal
    variation_pct: Decimal
    previous_ordered_on: date
    current_ordered_on: date
    supplier_name: str | None = None

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> PriceVariationDetails:
        return cls(
            previous_price=Decimal(data["previous_price"]),
            current_price=Decimal(data["current_price"]),
            variation_pct=Decimal(data["variation_pct"]),
            previous_ordered_on=date.fromisoformat(data["previous_ordered_on"]),
            current_ordered_on=date.fromisoformat(data["current_ordered_on"]),
            supplier_name=data.get("supplier_name"),
        )


@dataclass(frozen=True)
class BlockingPredecessor:
    """One unsatisfied precedence edge."""

    activity_id: str
    name: str
    progress: Decimal
    dependency_type: DependencyType

    def to_payload(self) -> dict[str, Any]:
        return {
            "activity_id": self.activity_id,
            "name": self.name,
            "progress": str(self.progress),
            "dependency_type": self.dependency_type.value,
        }

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> BlockingPredecessor:
        return cls(
            activity_id=data["activity_id"],
            name=data["name"],
            progress=Decimal(data["progress"]),
            dependency_type=DependencyType(data["dependency_type"]),
        )


@dataclass(frozen=True)
class BlockedDependencyDetails(_PayloadMixin):
    alert_type: ClassVar[AlertType] = AlertType.BLOCKED_DEPENDENCY

    blockers: tuple[BlockingPredecessor, ...] = field(default_factory=tuple)
    affected_materials: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> BlockedDependencyDetails:
        return cls(
            blockers=tuple(
                BlockingPredecessor.from_payload(b) for b in data.get("blockers", [])
            ),
            affected_materials=tuple(data.get("affected_materials", [])),
        )


AlertDetails = (
    StockoutDetails
    | ConsumptionDeviationDetails
    | StagnantStockDetails
    | ExpiringBatchDetails
    | PriceVariationDetails
    | BlockedDependencyDetails
)

_DETAILS_BY_TYPE: dict[AlertType, type] = {
    AlertType.STOCK_MINIMUM: StockoutDetails,
    AlertType.IMMINENT_STOCKOUT: StockoutDetails,
    AlertType.SUGGESTED_REORDER: StockoutDetails,
    AlertType.CONSUMPTION_DEVIATION: ConsumptionDeviationDetails,
    AlertType.STAGNANT_STOCK: StagnantStockDetails,
    AlertType.EXPIRING_MATERIAL: ExpiringBatchDetails,
    AlertType.PRICE_VARIATION: PriceVariationDetails,
    AlertType.BLOCKED_DEPENDENCY: BlockedDependencyDetails,
}


def details_to_payload(details: AlertDetails | None) -> dict[str, Any] | None:
    """Serialize details for the alert's JSON column."""
    if details is None:
        return None
    return details.to_payload()


def details_from_payload(
    alert_type: AlertType | str,
    payload: dict[str, Any] | None,
) -> AlertDetails | None:
    """
    Decode a stored payload into the details class for ``alert_type``.

    Raises:
        ValueError: If ``alert_type`` is not a known AlertType.
    """
    if payload is None:
        return None
    details_cls = _DETAILS_BY_TYPE[AlertType(alert_type)]
    return details_cls.from_payload(payload)
