"""
Module: materials_kernel.models.purchase_order
Responsibility: ORM persistence for purchase orders and their lines.  The
    alert engine reads line unit prices to detect price variation.
Architecture position: Kernel > Models.  May import from db/ only.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from materials_kernel.db.base import TimestampedBase, UUIDString
from materials_kernel.db.types import UTCDateTime

ORDER_STATUS_CANCELLED = "cancelled"


class PurchaseOrderModel(TimestampedBase):
    """A purchase order issued to a supplier."""

    __tablename__ = "purchase_orders"

    supplier_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("suppliers.id"),
        nullable=False,
    )

    project_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("projects.id"),
        nullable=True,
    )

    # draft, issued, received, cancelled
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="issued",
    )

    issued_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
    )

    lines: Mapped[list[PurchaseOrderLineModel]] = relationship(
        back_populates="order",
    )

    def __repr__(self) -> str:
        return f"<PurchaseOrder {self.id}: {self.status} at {self.issued_at}>"


class PurchaseOrderLineModel(TimestampedBase):
    """One material line on a purchase order."""

    __tablename__ = "purchase_order_lines"

    __table_args__ = (
        Index("idx_order_line_material", "material_id"),
    )

    order_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("purchase_orders.id"),
        nullable=False,
    )

    material_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("materials.id"),
        nullable=False,
    )

    quantity: Mapped[Decimal] = mapped_column(
        nullable=False,
    )

    unit_price: Mapped[Decimal] = mapped_column(
        nullable=False,
    )

    order: Mapped[PurchaseOrderModel] = relationship(back_populates="lines")

    def __repr__(self) -> str:
        return (
            f"<PurchaseOrderLine {self.id}: material={self.material_id} "
            f"{self.quantity} @ {self.unit_price}>"
        )
