"""
materials_services.inventory_service -- Stock movements with FEFO batch depletion.

Responsibility:
    The single routine through which stock leaves inventory.  Progress
    confirmation and direct inventory movements both withdraw through
    ``InventoryService.withdraw``, so batches and material stock are never
    decremented by two different code paths.

Architecture position:
    Services -- stateful orchestration over engines + kernel.
    Composes FefoAllocator (pure plan) with batch/material/movement models.

Invariants enforced:
    - Material and batch rows are read with SELECT ... FOR UPDATE before
      they are changed.
    - Stock never goes below zero: a withdrawal larger than stock raises
      InsufficientStockError.
    - Perishable withdrawals follow the FEFO plan: one movement per batch
      touched, plus one un-batched movement for any remainder the batches
      could not cover (stock received before batch tracking).
    - A batch whose remaining quantity reaches zero is deactivated.
    - Flush only; the caller owns the transaction, so a later failure rolls
      back every draw.

Failure modes:
    - MaterialNotFoundError for an unknown material.
    - InvalidQuantityError for non-positive quantities.
    - InsufficientStockError when the request exceeds stock.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from materials_engines.fefo import FefoAllocator, LotDraw
from materials_kernel.domain.clock import Clock
from materials_kernel.domain.dtos import BatchSnapshot
from materials_kernel.domain.values import MovementDirection
from materials_kernel.exceptions import (
    InsufficientStockError,
    InvalidQuantityError,
    MaterialNotFoundError,
)
from materials_kernel.logging_config import get_logger
from materials_kernel.models.inventory import BatchModel, InventoryMovementModel
from materials_kernel.models.material import MaterialModel
from materials_kernel.services.base import BaseService

logger = get_logger("services.inventory")

_ZERO = Decimal("0")


@dataclass(frozen=True)
class Withdrawal:
    """Outcome of one withdrawal."""

    material_id: UUID
    quantity: Decimal
    draws: tuple[LotDraw, ...]
    unbatched_quantity: Decimal
    stock_after: Decimal
    movement_ids: tuple[UUID, ...]


@dataclass(frozen=True)
class Receipt:
    """Outcome of one inbound movement."""

    material_id: UUID
    quantity: Decimal
    batch_id: UUID | None
    stock_after: Decimal
    movement_id: UUID


class InventoryService(BaseService[MaterialModel]):
    """
    Stock mutation within the caller's transaction.

    Contract:
        Receives Session and Clock via constructor injection.
        Every mutation appends InventoryMovementModel rows stamped with the
        clock's time.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock,
        allocator: FefoAllocator | None = None,
    ):
        super().__init__(session)
        self._clock = clock
        self._allocator = allocator or FefoAllocator()

    # =========================================================================
    # Locking reads
    # =========================================================================

    def lock_material(self, material_id: UUID) -> MaterialModel:
        """Load a material row FOR UPDATE."""
        material = self.session.execute(
            select(MaterialModel)
            .where(MaterialModel.id == material_id)
            .with_for_update()
        ).scalar_one_or_none()
        if material is None:
            raise MaterialNotFoundError(str(material_id))
        return material

    def _lock_active_batches(self, material_id: UUID) -> list[BatchModel]:
        return list(
            self.session.execute(
                select(BatchModel)
                .where(
                    BatchModel.material_id == material_id,
                    BatchModel.is_active.is_(True),
                    BatchModel.remaining_quantity > 0,
                )
                .with_for_update()
            ).scalars().all()
        )

    # =========================================================================
    # Outbound
    # =========================================================================

    def withdraw(
        self,
        material: MaterialModel,
        quantity: Decimal,
        *,
        reason: str,
        direction: MovementDirection = MovementDirection.OUT,
        project_id: UUID | None = None,
        responsible: str | None = None,
    ) -> Withdrawal:
        """
        Take ``quantity`` out of a locked material.

        Args:
            material: Row previously returned by lock_material().
            quantity: Positive quantity to withdraw, at most the stock.
            reason: Free-text reason recorded on every movement.
            direction: OUT for consumption, ADJUST for count corrections.
            project_id: Project the withdrawal is charged to, if any.
            responsible: Who performed it.

        Raises:
            InvalidQuantityError: If ``quantity`` is not positive.
            InsufficientStockError: If ``quantity`` exceeds stock.
        """
        if quantity <= _ZERO:
            raise InvalidQuantityError(str(quantity), "withdrawal must be positive")
        if quantity > material.stock:
            logger.warning(
                "withdrawal_insufficient_stock",
                extra={
                    "material_id": str(material.id),
                    "requested_quantity": str(quantity),
                    "available_quantity": str(material.stock),
                },
            )
            raise InsufficientStockError(str(material.id), str(quantity), str(material.stock))

        sign = Decimal("-1") if direction == MovementDirection.ADJUST else Decimal("1")
        movement_ids: list[UUID] = []
        draws: tuple[LotDraw, ...] = ()
        unbatched = quantity

        if material.is_perishable:
            batches = self._lock_active_batches(material.id)
            by_id = {b.id: b for b in batches}
            plan = self._allocator.plan(
                material.id,
                quantity,
                [BatchSnapshot.from_model(b) for b in batches],
            )
            for draw in plan.draws:
                batch = by_id[draw.batch_id]
                batch.remaining_quantity = draw.remaining_after
                if draw.depleted:
                    batch.is_active = False
                movement_ids.append(
                    self._record(
                        material.id,
                        direction,
                        draw.quantity * sign,
                        reason,
                        batch_id=batch.id,
                        project_id=project_id,
                        responsible=responsible,
                    )
                )
            draws = plan.draws
            unbatched = plan.shortfall

        if unbatched > _ZERO:
            movement_ids.append(
                self._record(
                    material.id,
                    direction,
                    unbatched * sign,
                    reason,
                    project_id=project_id,
                    responsible=responsible,
                )
            )

        material.stock = material.stock - quantity
        self.session.flush()

        logger.info(
            "stock_withdrawn",
            extra={
                "material_id": str(material.id),
                "quantity": str(quantity),
                "batch_count": len(draws),
                "unbatched_quantity": str(unbatched),
                "stock_after": str(material.stock),
            },
        )
        return Withdrawal(
            material_id=material.id,
            quantity=quantity,
            draws=draws,
            unbatched_quantity=unbatched,
            stock_after=material.stock,
            movement_ids=tuple(movement_ids),
        )

    # =========================================================================
    # Inbound
    # =========================================================================

    def receive(
        self,
        material: MaterialModel,
        quantity: Decimal,
        *,
        reason: str,
        direction: MovementDirection = MovementDirection.IN,
        batch_code: str | None = None,
        expiry_date: date | None = None,
        project_id: UUID | None = None,
        responsible: str | None = None,
    ) -> Receipt:
        """
        Add ``quantity`` to a locked material.

        For a perishable material, ``batch_code`` opens a new batch that the
        FEFO allocator will draw from.  Without a code the quantity is
        un-batched stock.
        """
        if quantity <= _ZERO:
            raise InvalidQuantityError(str(quantity), "receipt must be positive")

        batch_id = None
        if material.is_perishable and batch_code:
            batch = BatchModel(
                material_id=material.id,
                code=batch_code,
                remaining_quantity=quantity,
                expiry_date=expiry_date,
                intake_date=self._clock.today(),
                is_active=True,
                created_at=self._clock.now_utc(),
            )
            self.session.add(batch)
            self.session.flush()
            batch_id = batch.id

        movement_id = self._record(
            material.id,
            direction,
            quantity,
            reason,
            batch_id=batch_id,
            project_id=project_id,
            responsible=responsible,
        )
        material.stock = material.stock + quantity
        self.session.flush()

        logger.info(
            "stock_received",
            extra={
                "material_id": str(material.id),
                "quantity": str(quantity),
                "batch_id": str(batch_id) if batch_id else None,
                "stock_after": str(material.stock),
            },
        )
        return Receipt(
            material_id=material.id,
            quantity=quantity,
            batch_id=batch_id,
            stock_after=material.stock,
            movement_id=movement_id,
        )

    # =========================================================================
    # Internal
    # =========================================================================

    def _record(
        self,
        material_id: UUID,
        direction: MovementDirection,
        quantity: Decimal,
        reason: str,
        *,
        batch_id: UUID | None = None,
        project_id: UUID | None = None,
        responsible: str | None = None,
    ) -> UUID:
        movement = InventoryMovementModel(
            material_id=material_id,
            batch_id=batch_id,
            project_id=project_id,
            direction=direction.value,
            quantity=quantity,
            reason=reason,
            responsible=responsible,
            occurred_at=self._clock.now_utc(),
        )
        self.session.add(movement)
        self.session.flush()
        return movement.id
