"""
Module: materials_engines.projection
Responsibility:
    Consumption Projector.  Computes, per material, the quantity still to be
    consumed by the not-yet-complete activities of a project, and derives the
    time-based figures the stock rules use (days remaining, days of stock).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import materials_kernel/domain.

Invariants enforced:
    - A link contributes ``(estimated - consumed) * (100 - progress) / 100``.
      Contributions are clamped at zero, so data drift where consumption
      overran the estimate never produces negative demand.
    - Activities at 100% progress contribute nothing.
    - With zero pending demand or no stock, days of stock equals days
      remaining.

Usage:
    projector = ConsumptionProjector()
    pending = projector.pending_by_material(assignments)
    days = days_of_stock(stock, pending[material_id], days_remaining)
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from decimal import ROUND_FLOOR, Decimal
from uuid import UUID

from materials_engines.tracer import traced_engine
from materials_kernel.domain.dtos import ActivityMaterialSnapshot
from materials_kernel.logging_config import get_logger

logger = get_logger("engines.projection")

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


def link_pending_quantity(link: ActivityMaterialSnapshot) -> Decimal:
    """Pending demand of one assignment at its activity's current progress."""
    if link.activity_progress >= _HUNDRED:
        return _ZERO
    remaining = link.estimated_quantity - link.consumed_quantity
    contribution = remaining * (_HUNDRED - link.activity_progress) / _HUNDRED
    if contribution < _ZERO:
        return _ZERO
    return contribution


def days_remaining(estimated_finish: date, today: date) -> int:
    """Whole days from ``today`` to the project's estimated finish."""
    return (estimated_finish - today).days


def days_of_stock(stock: Decimal, pending: Decimal, remaining_days: int) -> int:
    """
    How many days the current stock lasts at the projected consumption rate.

    The rate is ``pending / remaining_days`` per day.  Zero pending demand or
    non-positive stock yields ``remaining_days`` unchanged.
    """
    if pending <= _ZERO or stock <= _ZERO:
        return remaining_days
    daily_rate = pending / Decimal(remaining_days)
    return int((stock / daily_rate).to_integral_value(rounding=ROUND_FLOOR))


class ConsumptionProjector:
    """
    Aggregate pending demand per material.

    Contract:
        Pure; the same assignments always give the same mapping.  Materials
        whose links are all complete still appear, with zero demand, so the
        caller can evaluate every material referenced by the project.
    """

    @traced_engine("consumption_projection", "1.0", fingerprint_fields=("assignments",))
    def pending_by_material(
        self,
        assignments: Sequence[ActivityMaterialSnapshot],
    ) -> dict[UUID, Decimal]:
        pending: dict[UUID, Decimal] = {}
        for link in assignments:
            pending[link.material_id] = (
                pending.get(link.material_id, _ZERO) + link_pending_quantity(link)
            )

        logger.debug(
            "consumption_projected",
            extra={"link_count": len(assignments), "material_count": len(pending)},
        )
        return pending
