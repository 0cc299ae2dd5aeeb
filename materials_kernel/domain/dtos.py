"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Immutable snapshots of projects, activities, materials, assignments,
    batches, precedence edges and price observations.  Selectors return
    them; engines compute over them.  Engines never see ORM entities.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    from_model() class methods are boundary converters invoked only from
    the selector and service layers.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from materials_kernel.domain.values import AlertStatus, AlertType, DependencyType, Severity

if TYPE_CHECKING:
    from materials_kernel.models.alert import AlertModel
    from materials_kernel.models.inventory import BatchModel
    from materials_kernel.models.material import MaterialModel
    from materials_kernel.models.project import ActivityModel, ProjectModel


@dataclass(frozen=True)
class ProjectSnapshot:
    project_id: UUID
    name: str
    estimated_finish: date
    overall_progress: Decimal

    @classmethod
    def from_model(cls, model: ProjectModel) -> ProjectSnapshot:
        return cls(
            project_id=model.id,
            name=model.name,
            estimated_finish=model.estimated_finish,
            overall_progress=model.overall_progress,
        )


@dataclass(frozen=True)
class ActivitySnapshot:
    activity_id: UUID
    project_id: UUID
    name: str
    real_progress: Decimal
    planned_progress: Decimal

    @property
    def is_complete(self) -> bool:
        return self.real_progress >= 100

    @classmethod
    def from_model(cls, model: ActivityModel) -> ActivitySnapshot:
        return cls(
            activity_id=model.id,
            project_id=model.project_id,
            name=model.name,
            real_progress=model.real_progress,
            planned_progress=model.planned_progress,
        )


@dataclass(frozen=True)
class MaterialSnapshot:
    """
    A material with its supplier's lead time folded in.

    ``lead_time_days`` is None when the material has no supplier.
    """

    material_id: UUID
    name: str
    unit: str
    stock: Decimal
    minimum_stock: Decimal
    unit_price: Decimal
    is_critical: bool
    is_perishable: bool
    supplier_id: UUID | None
    supplier_name: str | None
    lead_time_days: int | None
    default_expiry_date: date | None
    expiry_warning_days: int
    created_at: datetime

    @classmethod
    def from_model(cls, model: MaterialModel) -> MaterialSnapshot:
        supplier = model.supplier
        return cls(
            material_id=model.id,
            name=model.name,
            unit=model.unit,
            stock=model.stock,
            minimum_stock=model.minimum_stock,
            unit_price=model.unit_price,
            is_critical=model.is_critical,
            is_perishable=model.is_perishable,
            supplier_id=model.supplier_id,
            supplier_name=supplier.name if supplier is not None else None,
            lead_time_days=supplier.lead_time_days if supplier is not None else None,
            default_expiry_date=model.default_expiry_date,
            expiry_warning_days=model.expiry_warning_days,
            created_at=model.created_at,
        )


@dataclass(frozen=True)
class ActivityMaterialSnapshot:
    """An activity-material assignment joined with its activity's progress."""

    link_id: UUID
    activity_id: UUID
    activity_name: str
    activity_progress: Decimal
    material_id: UUID
    material_name: str
    estimated_quantity: Decimal
    consumed_quantity: Decimal


@dataclass(frozen=True)
class BatchSnapshot:
    batch_id: UUID
    material_id: UUID
    code: str
    remaining_quantity: Decimal
    expiry_date: date | None
    intake_date: date
    is_active: bool

    @classmethod
    def from_model(cls, model: BatchModel) -> BatchSnapshot:
        return cls(
            batch_id=model.id,
            material_id=model.material_id,
            code=model.code,
            remaining_quantity=model.remaining_quantity,
            expiry_date=model.expiry_date,
            intake_date=model.intake_date,
            is_active=model.is_active,
        )


@dataclass(frozen=True)
class DependencyEdge:
    """A precedence edge with the predecessor's current state joined in."""

    activity_id: UUID
    predecessor_id: UUID
    predecessor_name: str
    predecessor_progress: Decimal
    dependency_type: DependencyType
    wait_days: int = 0


@dataclass(frozen=True)
class PriceObservation:
    """One non-cancelled purchase-order line price."""

    material_id: UUID
    unit_price: Decimal
    ordered_at: datetime
    supplier_name: str | None = None


@dataclass(frozen=True)
class AlertRecord:
    """A persisted alert, as read back by selectors."""

    alert_id: UUID
    alert_type: AlertType
    severity: Severity
    status: AlertStatus
    message: str
    project_id: UUID | None
    material_id: UUID | None
    activity_id: UUID | None
    days_to_stockout: int | None
    suggested_quantity: Decimal | None
    suggested_order_date: date | None
    details: dict | None
    created_at: datetime
    resolved_at: datetime | None

    @classmethod
    def from_model(cls, model: AlertModel) -> AlertRecord:
        return cls(
            alert_id=model.id,
            alert_type=AlertType(model.alert_type),
            severity=Severity(model.severity),
            status=AlertStatus(model.status),
            message=model.message,
            project_id=model.project_id,
            material_id=model.material_id,
            activity_id=model.activity_id,
            days_to_stockout=model.days_to_stockout,
            suggested_quantity=model.suggested_quantity,
            suggested_order_date=model.suggested_order_date,
            details=model.details,
            created_at=model.created_at,
            resolved_at=model.resolved_at,
        )
