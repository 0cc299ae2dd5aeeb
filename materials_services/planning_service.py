"""
materials_services.planning_service -- Activity planning writes.

Responsibility:
    Assign materials to activities and declare precedence edges between
    activities, validating both against the current state.

Architecture position:
    Services -- stateful orchestration over engines + kernel.
    Uses DependencyAnalyzer.find_cycle for cycle rejection.

Invariants enforced:
    - A new assignment's estimate never exceeds the material's stock at
      creation time, and an (activity, material) pair is assigned once.
    - Precedence edges join two distinct activities of the same project,
      are unique per pair, and never close a cycle.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from materials_engines.dependencies import DependencyAnalyzer
from materials_kernel.domain.values import DependencyType
from materials_kernel.exceptions import (
    ActivityNotFoundError,
    DependencyCycleError,
    DuplicateAssignmentError,
    EstimateExceedsStockError,
    InvalidDependencyError,
    InvalidQuantityError,
    MaterialNotFoundError,
)
from materials_kernel.logging_config import get_logger
from materials_kernel.models.dependency import DependencyModel
from materials_kernel.models.material import ActivityMaterialModel, MaterialModel
from materials_kernel.models.project import ActivityModel
from materials_kernel.services.base import BaseService

logger = get_logger("services.planning")


class PlanningService(BaseService[ActivityModel]):
    """Assignments and precedence edges, flushed in the caller's transaction."""

    def __init__(self, session: Session, analyzer: DependencyAnalyzer | None = None):
        super().__init__(session)
        self._analyzer = analyzer or DependencyAnalyzer()

    def assign_material(
        self,
        activity_id: UUID,
        material_id: UUID,
        estimated_quantity: Decimal,
    ) -> ActivityMaterialModel:
        """
        Link a material to an activity with an estimated total quantity.

        Raises:
            ActivityNotFoundError, MaterialNotFoundError: Unknown ids.
            InvalidQuantityError: Negative estimate.
            DuplicateAssignmentError: The pair is already linked.
            EstimateExceedsStockError: Estimate above current stock.
        """
        if self.session.get(ActivityModel, activity_id) is None:
            raise ActivityNotFoundError(str(activity_id))
        material = self.session.get(MaterialModel, material_id)
        if material is None:
            raise MaterialNotFoundError(str(material_id))
        if estimated_quantity < 0:
            raise InvalidQuantityError(str(estimated_quantity), "estimate cannot be negative")

        existing = self.session.execute(
            select(ActivityMaterialModel.id).where(
                ActivityMaterialModel.activity_id == activity_id,
                ActivityMaterialModel.material_id == material_id,
            )
        ).scalar_one_or_none()
        if existing is not None:
            raise DuplicateAssignmentError(str(activity_id), str(material_id))

        if estimated_quantity > material.stock:
            raise EstimateExceedsStockError(
                str(material_id), str(estimated_quantity), str(material.stock)
            )

        link = ActivityMaterialModel(
            activity_id=activity_id,
            material_id=material_id,
            estimated_quantity=estimated_quantity,
            consumed_quantity=Decimal("0"),
        )
        self.session.add(link)
        self.session.flush()
        logger.info(
            "material_assigned",
            extra={
                "activity_id": str(activity_id),
                "material_id": str(material_id),
                "estimated_quantity": str(estimated_quantity),
            },
        )
        return link

    def add_dependency(
        self,
        activity_id: UUID,
        predecessor_id: UUID,
        dependency_type: DependencyType = DependencyType.FINISH_TO_START,
        wait_days: int = 0,
    ) -> DependencyModel:
        """
        Declare that ``activity_id`` depends on ``predecessor_id``.

        Raises:
            ActivityNotFoundError: Either activity is unknown.
            InvalidDependencyError: Self edge, cross-project edge, duplicate
                edge or negative wait.
            DependencyCycleError: The edge would close a cycle.
        """
        if activity_id == predecessor_id:
            raise InvalidDependencyError(
                str(activity_id), str(predecessor_id), "an activity cannot depend on itself"
            )
        activity = self.session.get(ActivityModel, activity_id)
        if activity is None:
            raise ActivityNotFoundError(str(activity_id))
        predecessor = self.session.get(ActivityModel, predecessor_id)
        if predecessor is None:
            raise ActivityNotFoundError(str(predecessor_id))
        if activity.project_id != predecessor.project_id:
            raise InvalidDependencyError(
                str(activity_id), str(predecessor_id), "activities belong to different projects"
            )
        if wait_days < 0:
            raise InvalidDependencyError(
                str(activity_id), str(predecessor_id), "wait_days cannot be negative"
            )

        existing = self.session.execute(
            select(DependencyModel.activity_id, DependencyModel.predecessor_id)
            .join(ActivityModel, DependencyModel.activity_id == ActivityModel.id)
            .where(ActivityModel.project_id == activity.project_id)
        ).all()
        pairs = [(row.activity_id, row.predecessor_id) for row in existing]
        if (activity_id, predecessor_id) in pairs:
            raise InvalidDependencyError(
                str(activity_id), str(predecessor_id), "dependency already exists"
            )

        cycle = self._analyzer.find_cycle(pairs, activity_id, predecessor_id)
        if cycle is not None:
            logger.warning(
                "dependency_cycle_rejected",
                extra={
                    "activity_id": str(activity_id),
                    "predecessor_id": str(predecessor_id),
                    "cycle": [str(node) for node in cycle],
                },
            )
            raise DependencyCycleError(
                str(activity_id), str(predecessor_id), [str(node) for node in cycle]
            )

        edge = DependencyModel(
            activity_id=activity_id,
            predecessor_id=predecessor_id,
            dependency_type=DependencyType(dependency_type).value,
            wait_days=wait_days,
        )
        self.session.add(edge)
        self.session.flush()
        logger.info(
            "dependency_added",
            extra={
                "activity_id": str(activity_id),
                "predecessor_id": str(predecessor_id),
                "dependency_type": edge.dependency_type,
            },
        )
        return edge
