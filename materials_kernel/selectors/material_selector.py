"""
Material query selector.

Read-only access to materials (with supplier lead time), batches, the
movement ledger's last-activity timestamps and purchase price history.

Price history is resolved as a two-pass in-memory computation: one ordered
query over non-cancelled order lines, then a per-material cut of the two
most recent observations.  Behaviour is identical on every backend.
"""

from collections import defaultdict
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

from materials_kernel.domain.dtos import BatchSnapshot, MaterialSnapshot, PriceObservation
from materials_kernel.models.inventory import BatchModel, InventoryMovementModel
from materials_kernel.models.material import MaterialModel, SupplierModel
from materials_kernel.models.purchase_order import (
    ORDER_STATUS_CANCELLED,
    PurchaseOrderLineModel,
    PurchaseOrderModel,
)
from materials_kernel.selectors.base import BaseSelector


class MaterialSelector(BaseSelector[MaterialModel]):
    """Selector for material, batch, movement and price queries."""

    def get_material(self, material_id: UUID) -> MaterialSnapshot | None:
        material = self.session.get(MaterialModel, material_id)
        if material is None:
            return None
        return MaterialSnapshot.from_model(material)

    def materials(self, material_ids: list[UUID] | None = None) -> list[MaterialSnapshot]:
        """Materials ordered by name; all of them when ``material_ids`` is None."""
        query = (
            select(MaterialModel)
            .options(selectinload(MaterialModel.supplier))
            .order_by(MaterialModel.name, MaterialModel.id)
        )
        if material_ids is not None:
            if not material_ids:
                return []
            query = query.where(MaterialModel.id.in_(material_ids))
        rows = self.session.execute(query).scalars().all()
        return [MaterialSnapshot.from_model(row) for row in rows]

    def active_batches(
        self,
        material_id: UUID | None = None,
        *,
        perishable_only: bool = False,
    ) -> list[BatchSnapshot]:
        """Active batches with remaining quantity, ordered by material then expiry."""
        query = (
            select(BatchModel)
            .where(
                BatchModel.is_active.is_(True),
                BatchModel.remaining_quantity > 0,
            )
            .order_by(BatchModel.material_id, BatchModel.expiry_date, BatchModel.intake_date)
        )
        if material_id is not None:
            query = query.where(BatchModel.material_id == material_id)
        if perishable_only:
            query = query.join(MaterialModel, BatchModel.material_id == MaterialModel.id).where(
                MaterialModel.is_perishable.is_(True)
            )
        rows = self.session.execute(query).scalars().all()
        return [BatchSnapshot.from_model(row) for row in rows]

    def last_movement_times(self) -> dict[UUID, datetime]:
        """Most recent movement timestamp per material (materials with no
        movement are absent)."""
        rows = self.session.execute(
            select(
                InventoryMovementModel.material_id,
                func.max(InventoryMovementModel.occurred_at),
            ).group_by(InventoryMovementModel.material_id)
        ).all()
        return {material_id: last_at for material_id, last_at in rows}

    def recent_prices(self, per_material: int = 2) -> dict[UUID, list[PriceObservation]]:
        """
        The ``per_material`` most recent non-cancelled order-line prices for
        every material that has been ordered, newest first.
        """
        rows = self.session.execute(
            select(
                PurchaseOrderLineModel.material_id,
                PurchaseOrderLineModel.unit_price,
                PurchaseOrderModel.issued_at,
                SupplierModel.name,
            )
            .join(PurchaseOrderModel, PurchaseOrderLineModel.order_id == PurchaseOrderModel.id)
            .outerjoin(SupplierModel, PurchaseOrderModel.supplier_id == SupplierModel.id)
            .where(PurchaseOrderModel.status != ORDER_STATUS_CANCELLED)
            .order_by(
                PurchaseOrderLineModel.material_id,
                PurchaseOrderModel.issued_at.desc(),
                PurchaseOrderLineModel.created_at.desc(),
            )
        ).all()

        history: dict[UUID, list[PriceObservation]] = defaultdict(list)
        for material_id, unit_price, issued_at, supplier_name in rows:
            observations = history[material_id]
            if len(observations) < per_material:
                observations.append(
                    PriceObservation(
                        material_id=material_id,
                        unit_price=unit_price,
                        ordered_at=issued_at,
                        supplier_name=supplier_name,
                    )
                )
        return dict(history)
