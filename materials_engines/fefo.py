"""
Module: materials_engines.fefo
Responsibility:
    FEFO (first-expired-first-out) lot allocator.  Given the batches of a
    material and a quantity to withdraw, produce a deterministic plan of
    per-batch draws, earliest expiry first.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    The plan is applied to batch rows by InventoryService inside the
    caller's transaction, so a failed operation never leaves a partial
    allocation behind.

Invariants enforced:
    - Visit order: dated batches by ascending expiry date, then undated
      batches by ascending intake date; ties broken by intake date, code
      and id so the order is total.
    - Only active batches with remaining quantity > 0 are visited.
    - Each draw takes ``min(remaining, still_needed)``; the sum of draws plus
      the shortfall equals the request.
    - A draw that empties a batch is flagged ``depleted`` (the batch must be
      deactivated).

Failure modes:
    - ValueError on a negative quantity.

Usage:
    plan = FefoAllocator().plan(material_id=mid, quantity=Decimal("12"), batches=lots)
    for draw in plan.draws:
        ...
    if plan.shortfall > 0:
        ...  # caller decides: reject or record un-batched withdrawal
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from materials_engines.tracer import traced_engine
from materials_kernel.domain.dtos import BatchSnapshot
from materials_kernel.logging_config import get_logger

logger = get_logger("engines.fefo")

_ZERO = Decimal("0")


@dataclass(frozen=True)
class LotDraw:
    """Quantity taken from one batch."""

    batch_id: UUID
    batch_code: str
    expiry_date: date | None
    quantity: Decimal
    remaining_after: Decimal

    @property
    def depleted(self) -> bool:
        return self.remaining_after <= _ZERO


@dataclass(frozen=True)
class FefoPlan:
    """
    Complete allocation of one withdrawal.

    Guarantees:
        - ``allocated + shortfall == requested``.
    """

    material_id: UUID
    requested: Decimal
    draws: tuple[LotDraw, ...]
    shortfall: Decimal

    @property
    def allocated(self) -> Decimal:
        return sum((d.quantity for d in self.draws), _ZERO)

    @property
    def is_fully_allocated(self) -> bool:
        return self.shortfall <= _ZERO


def fefo_sort_key(batch: BatchSnapshot) -> tuple:
    """Total FEFO order: dated first by expiry, undated last by intake."""
    has_no_expiry = batch.expiry_date is None
    return (
        has_no_expiry,
        batch.expiry_date or date.max,
        batch.intake_date,
        batch.code,
        str(batch.batch_id),
    )


class FefoAllocator:
    """Earliest-expiry-first withdrawal planner."""

    @traced_engine("fefo", "1.0", fingerprint_fields=("material_id", "quantity"))
    def plan(
        self,
        material_id: UUID,
        quantity: Decimal,
        batches: Sequence[BatchSnapshot],
    ) -> FefoPlan:
        """
        Distribute ``quantity`` across ``batches``.

        Batches of other materials are ignored.

        Raises:
            ValueError: If ``quantity`` is negative.
        """
        if quantity < _ZERO:
            raise ValueError(f"Withdrawal quantity cannot be negative: {quantity}")

        candidates = sorted(
            (
                b for b in batches
                if b.material_id == material_id
                and b.is_active
                and b.remaining_quantity > _ZERO
            ),
            key=fefo_sort_key,
        )

        still_needed = quantity
        draws: list[LotDraw] = []
        for batch in candidates:
            if still_needed <= _ZERO:
                break
            take = min(batch.remaining_quantity, still_needed)
            draws.append(
                LotDraw(
                    batch_id=batch.batch_id,
                    batch_code=batch.code,
                    expiry_date=batch.expiry_date,
                    quantity=take,
                    remaining_after=batch.remaining_quantity - take,
                )
            )
            still_needed -= take

        plan = FefoPlan(
            material_id=material_id,
            requested=quantity,
            draws=tuple(draws),
            shortfall=max(still_needed, _ZERO),
        )

        logger.info(
            "fefo_allocation_planned",
            extra={
                "material_id": str(material_id),
                "requested": str(quantity),
                "batch_count": len(draws),
                "shortfall": str(plan.shortfall),
            },
        )
        return plan
