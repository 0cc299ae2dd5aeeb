"""
Module: materials_engines.simulation
Responsibility:
    What-if consumption simulation.  Answers "what would stock levels be if
    the project reached X% overall progress" with a per-material report
    ranked critical first and an aggregate reorder-cost estimate.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The read-only service in
    materials_services.simulator feeds it snapshots.

Invariants enforced:
    - Each assignment's simulated progress is
      ``min(100, real_progress + (hypothetical - project_progress))``.
    - A link adds ``max(0, estimated * simulated / 100 - consumed)`` of
      consumption, so already-consumed material is never counted twice.
    - Bands: CRITICAL if projected <= 0 or < critical_ratio * minimum;
      LOW if < minimum; WARNING if < warning_ratio * minimum; else OK.
    - Materials with projected < minimum need an order of
      ``reorder_factor * minimum - projected``; its cost is
      ``quantity * unit_price``.

Failure modes:
    - ValueError when the hypothetical progress is below the project's
      current progress (the service raises the typed error first).
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from decimal import ROUND_FLOOR, Decimal
from uuid import UUID

from materials_engines.rules import RuleThresholds
from materials_engines.tracer import traced_engine
from materials_kernel.domain.dtos import (
    ActivityMaterialSnapshot,
    MaterialSnapshot,
    ProjectSnapshot,
)
from materials_kernel.domain.values import StockBand
from materials_kernel.logging_config import get_logger

logger = get_logger("engines.simulation")

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class MaterialProjection:
    """Simulated position of one material."""

    material_id: UUID
    material_name: str
    unit: str
    current_stock: Decimal
    minimum_stock: Decimal
    projected_consumption: Decimal
    projected_stock: Decimal
    stock_percentage: Decimal | None
    band: StockBand
    days_to_depletion: int | None
    needs_order: bool
    order_quantity: Decimal
    order_cost: Decimal
    supplier_name: str | None
    lead_time_days: int | None


@dataclass(frozen=True)
class SimulationSummary:
    total_materials: int
    critical_materials: int
    materials_needing_order: int
    estimated_order_cost: Decimal


@dataclass(frozen=True)
class SimulationReport:
    project_id: UUID
    current_progress: Decimal
    simulated_progress: Decimal
    materials: tuple[MaterialProjection, ...]
    summary: SimulationSummary


def simulated_link_progress(
    link: ActivityMaterialSnapshot,
    progress_increment: Decimal,
) -> Decimal:
    return min(_HUNDRED, link.activity_progress + progress_increment)


def simulated_link_consumption(
    link: ActivityMaterialSnapshot,
    progress_increment: Decimal,
) -> Decimal:
    """Additional consumption of one assignment at the simulated progress."""
    target = link.estimated_quantity * simulated_link_progress(link, progress_increment) / _HUNDRED
    return max(_ZERO, target - link.consumed_quantity)


class WhatIfSimulator:
    """Project-level consumption simulation."""

    def __init__(self, thresholds: RuleThresholds | None = None):
        self.thresholds = thresholds or RuleThresholds()

    def classify(self, projected: Decimal, minimum: Decimal) -> StockBand:
        t = self.thresholds
        if projected <= _ZERO or projected < minimum * t.simulator_critical_ratio:
            return StockBand.CRITICAL
        if projected < minimum:
            return StockBand.LOW
        if projected < minimum * t.simulator_warning_ratio:
            return StockBand.WARNING
        return StockBand.OK

    @traced_engine(
        "what_if_simulation",
        "1.0",
        fingerprint_fields=("project", "hypothetical_progress"),
    )
    def simulate(
        self,
        project: ProjectSnapshot,
        hypothetical_progress: Decimal,
        assignments: Sequence[ActivityMaterialSnapshot],
        materials: Mapping[UUID, MaterialSnapshot],
    ) -> SimulationReport:
        """
        Simulate the project at ``hypothetical_progress``.

        Args:
            project: The project being simulated.
            hypothetical_progress: Target overall progress, 0..100.
            assignments: Every activity-material assignment of the project.
            materials: Snapshot of each material referenced by ``assignments``.
        """
        increment = hypothetical_progress - project.overall_progress
        if increment < _ZERO:
            raise ValueError(
                f"Hypothetical progress {hypothetical_progress} is below current "
                f"progress {project.overall_progress}"
            )

        consumption: dict[UUID, Decimal] = {}
        for link in assignments:
            consumption[link.material_id] = consumption.get(
                link.material_id, _ZERO
            ) + simulated_link_consumption(link, increment)

        t = self.thresholds
        rows: list[MaterialProjection] = []
        for material_id, projected_consumption in consumption.items():
            material = materials[material_id]
            projected = material.stock - projected_consumption
            band = self.classify(projected, material.minimum_stock)

            days_to_depletion = None
            if projected_consumption > _ZERO and projected > _ZERO and increment > _ZERO:
                rate = projected_consumption / increment
                days_to_depletion = int(
                    (projected / rate).to_integral_value(rounding=ROUND_FLOOR)
                )

            needs_order = projected < material.minimum_stock
            order_quantity = (
                material.minimum_stock * t.simulator_reorder_factor - projected
                if needs_order
                else _ZERO
            )

            rows.append(
                MaterialProjection(
                    material_id=material_id,
                    material_name=material.name,
                    unit=material.unit,
                    current_stock=material.stock,
                    minimum_stock=material.minimum_stock,
                    projected_consumption=projected_consumption,
                    projected_stock=projected,
                    stock_percentage=(
                        projected / material.minimum_stock * _HUNDRED
                        if material.minimum_stock > _ZERO
                        else None
                    ),
                    band=band,
                    days_to_depletion=days_to_depletion,
                    needs_order=needs_order,
                    order_quantity=order_quantity,
                    order_cost=order_quantity * material.unit_price,
                    supplier_name=material.supplier_name,
                    lead_time_days=material.lead_time_days,
                )
            )

        rows.sort(key=lambda r: (r.band.rank, r.material_name))
        summary = SimulationSummary(
            total_materials=len(rows),
            critical_materials=sum(1 for r in rows if r.band == StockBand.CRITICAL),
            materials_needing_order=sum(1 for r in rows if r.needs_order),
            estimated_order_cost=sum((r.order_cost for r in rows), _ZERO),
        )

        logger.info(
            "simulation_computed",
            extra={
                "project_id": str(project.project_id),
                "simulated_progress": str(hypothetical_progress),
                "material_count": summary.total_materials,
                "critical_count": summary.critical_materials,
            },
        )
        return SimulationReport(
            project_id=project.project_id,
            current_progress=project.overall_progress,
            simulated_progress=hypothetical_progress,
            materials=tuple(rows),
            summary=summary,
        )
