"""
Module: materials_kernel.models.alert
Responsibility: ORM persistence for generated alerts.
Architecture position: Kernel > Models.  May import from db/ and
    domain/values only.

Invariants enforced:
    - Regeneration deletes only PENDING alerts of the regenerated types;
      acknowledged and dismissed alerts are history and never deleted.
    - ``details`` holds the JSON payload of the alert type's details class
      (see materials_kernel.domain.alert_details).
    - Status transitions: PENDING -> ACKNOWLEDGED | DISMISSED (service layer).
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import JSON, Date, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from materials_kernel.db.base import TimestampedBase, UUIDString
from materials_kernel.db.types import UTCDateTime
from materials_kernel.domain.values import AlertStatus, AlertType, Severity


class AlertModel(TimestampedBase):
    """
    A persisted alert.

    Project-scoped alerts carry project_id; global alerts (stagnant stock,
    expiring material, price variation) leave it NULL.
    """

    __tablename__ = "alerts"

    __table_args__ = (
        Index("idx_alert_project_type_status", "project_id", "alert_type", "status"),
        Index("idx_alert_status_created", "status", "created_at"),
    )

    project_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("projects.id"),
        nullable=True,
    )

    material_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("materials.id"),
        nullable=True,
    )

    activity_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("activities.id"),
        nullable=True,
    )

    alert_type: Mapped[AlertType] = mapped_column(
        String(30),
        nullable=False,
    )

    severity: Mapped[Severity] = mapped_column(
        String(20),
        nullable=False,
    )

    message: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )

    days_to_stockout: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
    )

    suggested_quantity: Mapped[Decimal | None] = mapped_column(
        nullable=True,
    )

    suggested_order_date: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
    )

    details: Mapped[dict | None] = mapped_column(
        JSON,
        nullable=True,
    )

    status: Mapped[AlertStatus] = mapped_column(
        String(20),
        nullable=False,
        default=AlertStatus.PENDING,
    )

    resolved_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime(),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Alert {self.id}: {self.alert_type} {self.severity} {self.status}>"
