"""
Module: materials_kernel.models.material
Responsibility: ORM persistence for suppliers, materials and the
    activity-material assignments that carry estimated and consumed
    quantities.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - stock >= 0 (enforced at service layer; withdrawals are capped).
    - consumed_quantity only grows, and estimated_quantity is raised to
      consumed_quantity whenever consumption overruns the estimate.
    - At most one assignment per (activity, material) pair
      (uq_activity_material).
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Boolean,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from materials_kernel.db.base import TimestampedBase, UUIDString


class SupplierModel(TimestampedBase):
    """A supplier and the delivery lead time the reorder rules plan around."""

    __tablename__ = "suppliers"

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    lead_time_days: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    def __repr__(self) -> str:
        return f"<Supplier {self.id}: {self.name} lead={self.lead_time_days}d>"


class MaterialModel(TimestampedBase):
    """
    A stocked material.

    Contract:
        ``stock`` is the on-hand quantity.  For perishable materials it
        equals the sum of remaining_quantity over active batches plus any
        stock received before batch tracking (un-batched remainder).

    Guarantees:
        - A material without supplier_id is skipped by the stock rules
          (no lead time to plan against).
    """

    __tablename__ = "materials"

    __table_args__ = (
        Index("idx_material_supplier", "supplier_id"),
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    unit: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="u",
    )

    supplier_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("suppliers.id"),
        nullable=True,
    )

    stock: Mapped[Decimal] = mapped_column(
        nullable=False,
        default=Decimal("0"),
    )

    minimum_stock: Mapped[Decimal] = mapped_column(
        nullable=False,
        default=Decimal("0"),
    )

    maximum_stock: Mapped[Decimal | None] = mapped_column(
        nullable=True,
    )

    unit_price: Mapped[Decimal] = mapped_column(
        nullable=False,
        default=Decimal("0"),
    )

    is_critical: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    is_perishable: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    # Used when a perishable material has stock but no tracked batch
    default_expiry_date: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
    )

    expiry_warning_days: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=30,
    )

    supplier: Mapped[SupplierModel | None] = relationship()

    def __repr__(self) -> str:
        return f"<Material {self.id}: {self.name} stock={self.stock} {self.unit}>"


class ActivityMaterialModel(TimestampedBase):
    """
    Assignment of a material to an activity.

    ``estimated_quantity`` is the total the activity is expected to use at
    100% progress; ``consumed_quantity`` is what progress confirmations have
    withdrawn so far.
    """

    __tablename__ = "activity_materials"

    __table_args__ = (
        UniqueConstraint("activity_id", "material_id", name="uq_activity_material"),
        Index("idx_activity_material_material", "material_id"),
    )

    activity_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("activities.id"),
        nullable=False,
    )

    material_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("materials.id"),
        nullable=False,
    )

    estimated_quantity: Mapped[Decimal] = mapped_column(
        nullable=False,
        default=Decimal("0"),
    )

    consumed_quantity: Mapped[Decimal] = mapped_column(
        nullable=False,
        default=Decimal("0"),
    )

    material: Mapped[MaterialModel] = relationship()

    @property
    def unconsumed_quantity(self) -> Decimal:
        """Estimated minus consumed, never negative."""
        pending = self.estimated_quantity - self.consumed_quantity
        return pending if pending > 0 else Decimal("0")

    def __repr__(self) -> str:
        return (
            f"<ActivityMaterial {self.id}: activity={self.activity_id} "
            f"material={self.material_id} "
            f"{self.consumed_quantity}/{self.estimated_quantity}>"
        )
