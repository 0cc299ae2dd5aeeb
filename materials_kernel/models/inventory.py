"""
Module: materials_kernel.models.inventory
Responsibility: ORM persistence for perishable batches (lots with an expiry
    date) and the inventory movement ledger.
Architecture position: Kernel > Models.  May import from db/ and
    domain/values only.

Invariants enforced:
    - remaining_quantity >= 0; a batch reaching zero is deactivated.
    - Movements are append-only.  Every stock change writes exactly one
      movement per touched batch, plus one un-batched movement for any
      quantity taken outside batch tracking.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from materials_kernel.db.base import Base, TimestampedBase, UUIDString
from materials_kernel.db.types import UTCDateTime
from materials_kernel.domain.values import MovementDirection


class BatchModel(TimestampedBase):
    """
    A perishable lot of a material.

    Guarantees:
        - (material_id, is_active, expiry_date) index supports the FEFO scan.
    """

    __tablename__ = "inventory_batches"

    __table_args__ = (
        Index("idx_batch_material_expiry", "material_id", "is_active", "expiry_date"),
    )

    material_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("materials.id"),
        nullable=False,
    )

    code: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    remaining_quantity: Mapped[Decimal] = mapped_column(
        nullable=False,
    )

    # NULL for lots without shelf life; FEFO visits them last
    expiry_date: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
    )

    intake_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    def __repr__(self) -> str:
        return (
            f"<Batch {self.code}: material={self.material_id} "
            f"remaining={self.remaining_quantity} expires={self.expiry_date}>"
        )


class InventoryMovementModel(Base):
    """
    One entry in the movement ledger.

    For IN and OUT ``quantity`` is positive and ``direction`` carries the
    sign.  ADJUST movements record a count correction and carry the signed
    delta in ``quantity``.
    """

    __tablename__ = "inventory_movements"

    __table_args__ = (
        Index("idx_movement_material_time", "material_id", "occurred_at"),
        Index("idx_movement_project", "project_id"),
    )

    material_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("materials.id"),
        nullable=False,
    )

    batch_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("inventory_batches.id"),
        nullable=True,
    )

    project_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("projects.id"),
        nullable=True,
    )

    direction: Mapped[MovementDirection] = mapped_column(
        String(20),
        nullable=False,
    )

    quantity: Mapped[Decimal] = mapped_column(
        nullable=False,
    )

    reason: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default="",
    )

    responsible: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )

    occurred_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<Movement {self.id}: {self.direction} {self.quantity} "
            f"material={self.material_id} batch={self.batch_id}>"
        )
