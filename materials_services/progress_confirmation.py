"""
materials_services.progress_confirmation -- Progress Confirmation Transaction.

Responsibility:
    Advance an activity's real progress and consume the materials reported
    against it, as one unit of work.  Reports capped consumptions and the
    materials left in a risky stock band.

Architecture position:
    Services -- stateful orchestration over engines + kernel.
    Stock leaves inventory only through InventoryService.withdraw.

Invariants enforced:
    - current progress < new progress <= 100.
    - A consumption is capped at the material's stock; a cap of zero skips
      the item.  Both produce a warning, never an error.
    - consumed_quantity grows by the applied amount and estimated_quantity
      is raised to match whenever consumption overruns it.
    - The project's overall progress is recomputed as the mean of its
      activities' real progress.
    - Flush only.  Any exception leaves the caller's transaction to roll
      back every movement and ledger update already applied.

Failure modes:
    - ActivityNotFoundError, ActivityMaterialNotFoundError for unknown ids.
    - InvalidProgressError for regression or progress above 100.
    - InvalidQuantityError for negative consumption quantities.
    - ForeignActivityMaterialError when a link belongs to another activity.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from materials_engines.rules import RuleThresholds
from materials_engines.simulation import WhatIfSimulator
from materials_kernel.db.types import round_quantity
from materials_kernel.domain.clock import Clock
from materials_kernel.domain.values import StockBand
from materials_kernel.exceptions import (
    ActivityMaterialNotFoundError,
    ActivityNotFoundError,
    ForeignActivityMaterialError,
    InvalidProgressError,
    InvalidQuantityError,
)
from materials_kernel.logging_config import LogContext, get_logger
from materials_kernel.models.material import ActivityMaterialModel, MaterialModel
from materials_kernel.models.project import ActivityModel, ProjectModel
from materials_kernel.selectors.project_selector import ProjectSelector
from materials_services.inventory_service import InventoryService, Withdrawal

logger = get_logger("services.progress_confirmation")

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")

_RISKY_BANDS = (StockBand.CRITICAL, StockBand.LOW)


@dataclass(frozen=True)
class ConsumptionRequest:
    """Quantity of one activity-material link consumed by this confirmation."""

    link_id: UUID
    quantity: Decimal


@dataclass(frozen=True)
class ConsumptionWarning:
    """A consumption that was capped, or skipped because stock was exhausted."""

    link_id: UUID
    material_id: UUID
    material_name: str
    requested_quantity: Decimal
    applied_quantity: Decimal
    available_stock: Decimal
    message: str

    @property
    def skipped(self) -> bool:
        return self.applied_quantity == _ZERO


@dataclass(frozen=True)
class RiskyMaterial:
    material_id: UUID
    material_name: str
    unit: str
    stock: Decimal
    minimum_stock: Decimal
    band: StockBand


@dataclass(frozen=True)
class ConfirmationResult:
    activity_id: UUID
    previous_progress: Decimal
    new_progress: Decimal
    project_progress: Decimal
    withdrawals: tuple[Withdrawal, ...]
    warnings: tuple[ConsumptionWarning, ...]
    risky_materials: tuple[RiskyMaterial, ...]


@dataclass(frozen=True)
class SuggestedConsumption:
    link_id: UUID
    material_id: UUID
    material_name: str
    quantity: Decimal


class ProgressConfirmationService:
    """
    Confirms activity progress within the caller's transaction.

    Contract:
        Receives Session and Clock via constructor injection.  Never commits.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock,
        thresholds: RuleThresholds | None = None,
        inventory: InventoryService | None = None,
    ):
        self._session = session
        self._inventory = inventory or InventoryService(session, clock)
        self._projects = ProjectSelector(session)
        self._bands = WhatIfSimulator(thresholds)

    def confirm(
        self,
        activity_id: UUID,
        new_progress: Decimal,
        consumptions: list[ConsumptionRequest] | tuple[ConsumptionRequest, ...] = (),
        *,
        responsible: str | None = None,
    ) -> ConfirmationResult:
        """
        Advance ``activity_id`` to ``new_progress`` and apply ``consumptions``.

        Returns:
            ConfirmationResult with capped/skipped warnings and the touched
            materials now in the critical or low band.
        """
        with LogContext.bind(activity_id=str(activity_id)):
            activity = self._session.execute(
                select(ActivityModel)
                .where(ActivityModel.id == activity_id)
                .with_for_update()
            ).scalar_one_or_none()
            if activity is None:
                raise ActivityNotFoundError(str(activity_id))

            previous = activity.real_progress
            if new_progress <= previous:
                raise InvalidProgressError(
                    str(activity_id), str(previous), str(new_progress),
                    "new progress must exceed current progress",
                )
            if new_progress > _HUNDRED:
                raise InvalidProgressError(
                    str(activity_id), str(previous), str(new_progress),
                    "progress cannot exceed 100",
                )

            consumptions = tuple(consumptions)
            links = self._load_links(activity_id, consumptions)

            withdrawals: list[Withdrawal] = []
            warnings: list[ConsumptionWarning] = []
            touched: dict[UUID, MaterialModel] = {}

            for request, link in zip(consumptions, links):
                if request.quantity == _ZERO:
                    continue
                material = self._inventory.lock_material(link.material_id)
                touched[material.id] = material

                applied = min(request.quantity, material.stock)
                if applied <= _ZERO:
                    warnings.append(self._warn(link, material, request.quantity, _ZERO))
                    continue
                if applied < request.quantity:
                    warnings.append(self._warn(link, material, request.quantity, applied))

                withdrawals.append(
                    self._inventory.withdraw(
                        material,
                        applied,
                        reason=f"Consumption for activity {activity.name}",
                        project_id=activity.project_id,
                        responsible=responsible,
                    )
                )
                link.consumed_quantity = link.consumed_quantity + applied
                if link.consumed_quantity > link.estimated_quantity:
                    link.estimated_quantity = link.consumed_quantity

            activity.real_progress = new_progress
            self._session.flush()
            project_progress = self._recompute_project_progress(activity.project_id)

            risky = self._risky_materials(touched.values())

            logger.info(
                "progress_confirmed",
                extra={
                    "previous_progress": str(previous),
                    "new_progress": str(new_progress),
                    "project_progress": str(project_progress),
                    "withdrawals": len(withdrawals),
                    "warnings": len(warnings),
                    "risky_materials": len(risky),
                },
            )
            return ConfirmationResult(
                activity_id=activity_id,
                previous_progress=previous,
                new_progress=new_progress,
                project_progress=project_progress,
                withdrawals=tuple(withdrawals),
                warnings=tuple(warnings),
                risky_materials=risky,
            )

    def suggest_consumptions(
        self,
        activity_id: UUID,
        new_progress: Decimal,
    ) -> list[SuggestedConsumption]:
        """Default per-link quantities for advancing to ``new_progress``."""
        activity = self._projects.get_activity(activity_id)
        if activity is None:
            raise ActivityNotFoundError(str(activity_id))

        delta = new_progress - activity.real_progress
        suggestions = []
        for link in self._projects.assignments(activity_id=activity_id):
            if delta <= _ZERO:
                quantity = _ZERO
            else:
                share = delta / _HUNDRED * link.estimated_quantity
                left = max(_ZERO, link.estimated_quantity - link.consumed_quantity)
                quantity = round_quantity(min(share, left), 2)
            suggestions.append(
                SuggestedConsumption(
                    link_id=link.link_id,
                    material_id=link.material_id,
                    material_name=link.material_name,
                    quantity=quantity,
                )
            )
        return suggestions

    # =========================================================================
    # Internal
    # =========================================================================

    def _load_links(
        self,
        activity_id: UUID,
        consumptions,
    ) -> list[ActivityMaterialModel]:
        links = []
        for request in consumptions:
            if request.quantity < _ZERO:
                raise InvalidQuantityError(str(request.quantity), "consumption cannot be negative")
            link = self._session.get(ActivityMaterialModel, request.link_id)
            if link is None:
                raise ActivityMaterialNotFoundError(str(request.link_id))
            if link.activity_id != activity_id:
                raise ForeignActivityMaterialError(str(request.link_id), str(activity_id))
            links.append(link)
        return links

    def _warn(
        self,
        link: ActivityMaterialModel,
        material: MaterialModel,
        requested: Decimal,
        applied: Decimal,
    ) -> ConsumptionWarning:
        if applied == _ZERO:
            message = f"{material.name}: no stock available, consumption skipped"
            event = "consumption_skipped"
        else:
            message = (
                f"{material.name}: requested {requested} {material.unit}, "
                f"only {applied} available"
            )
            event = "consumption_capped"
        logger.warning(
            event,
            extra={
                "material_id": str(material.id),
                "link_id": str(link.id),
                "requested_quantity": str(requested),
                "applied_quantity": str(applied),
                "available_stock": str(material.stock),
            },
        )
        return ConsumptionWarning(
            link_id=link.id,
            material_id=material.id,
            material_name=material.name,
            requested_quantity=requested,
            applied_quantity=applied,
            available_stock=material.stock,
            message=message,
        )

    def _recompute_project_progress(self, project_id: UUID) -> Decimal:
        progress = self._session.execute(
            select(ActivityModel.real_progress).where(ActivityModel.project_id == project_id)
        ).scalars().all()
        project = self._session.get(ProjectModel, project_id)
        if progress:
            project.overall_progress = round_quantity(
                sum(progress, _ZERO) / len(progress), 1
            )
        self._session.flush()
        return project.overall_progress

    def _risky_materials(self, materials) -> tuple[RiskyMaterial, ...]:
        risky = []
        for material in materials:
            band = self._bands.classify(material.stock, material.minimum_stock)
            if band in _RISKY_BANDS:
                risky.append(
                    RiskyMaterial(
                        material_id=material.id,
                        material_name=material.name,
                        unit=material.unit,
                        stock=material.stock,
                        minimum_stock=material.minimum_stock,
                        band=band,
                    )
                )
        risky.sort(key=lambda r: (r.band.rank, r.material_name))
        return tuple(risky)
