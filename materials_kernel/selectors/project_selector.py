"""
Project query selector.

Read-only access to projects, their activities, activity-material
assignments and the precedence edges between activities.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import aliased

from materials_kernel.domain.dtos import (
    ActivityMaterialSnapshot,
    ActivitySnapshot,
    DependencyEdge,
    ProjectSnapshot,
)
from materials_kernel.domain.values import DependencyType
from materials_kernel.models.dependency import DependencyModel
from materials_kernel.models.material import ActivityMaterialModel, MaterialModel
from materials_kernel.models.project import ActivityModel, ProjectModel
from materials_kernel.selectors.base import BaseSelector


class ProjectSelector(BaseSelector[ProjectModel]):
    """Selector for project structure: activities, assignments, edges."""

    def get_project(self, project_id: UUID) -> ProjectSnapshot | None:
        project = self.session.get(ProjectModel, project_id)
        if project is None:
            return None
        return ProjectSnapshot.from_model(project)

    def get_activity(self, activity_id: UUID) -> ActivitySnapshot | None:
        activity = self.session.get(ActivityModel, activity_id)
        if activity is None:
            return None
        return ActivitySnapshot.from_model(activity)

    def activities(self, project_id: UUID) -> list[ActivitySnapshot]:
        """All activities of a project, in sequence order."""
        rows = self.session.execute(
            select(ActivityModel)
            .where(ActivityModel.project_id == project_id)
            .order_by(ActivityModel.sequence, ActivityModel.name)
        ).scalars().all()
        return [ActivitySnapshot.from_model(row) for row in rows]

    def assignments(
        self,
        *,
        project_id: UUID | None = None,
        activity_id: UUID | None = None,
    ) -> list[ActivityMaterialSnapshot]:
        """
        Activity-material assignments joined with activity progress.

        Filter by project, by activity, or both.  Ordered by activity
        sequence, then material name, so callers get a stable order.
        """
        query = (
            select(ActivityMaterialModel, ActivityModel, MaterialModel)
            .join(ActivityModel, ActivityMaterialModel.activity_id == ActivityModel.id)
            .join(MaterialModel, ActivityMaterialModel.material_id == MaterialModel.id)
            .order_by(ActivityModel.sequence, ActivityModel.name, MaterialModel.name)
        )
        if project_id is not None:
            query = query.where(ActivityModel.project_id == project_id)
        if activity_id is not None:
            query = query.where(ActivityMaterialModel.activity_id == activity_id)

        return [
            ActivityMaterialSnapshot(
                link_id=link.id,
                activity_id=activity.id,
                activity_name=activity.name,
                activity_progress=activity.real_progress,
                material_id=material.id,
                material_name=material.name,
                estimated_quantity=link.estimated_quantity,
                consumed_quantity=link.consumed_quantity,
            )
            for link, activity, material in self.session.execute(query).all()
        ]

    def dependency_edges(self, project_id: UUID) -> list[DependencyEdge]:
        """
        Every precedence edge whose successor belongs to the project, with
        the predecessor's name and current progress.
        """
        successor = aliased(ActivityModel)
        predecessor = aliased(ActivityModel)
        rows = self.session.execute(
            select(DependencyModel, predecessor)
            .join(successor, DependencyModel.activity_id == successor.id)
            .join(predecessor, DependencyModel.predecessor_id == predecessor.id)
            .where(successor.project_id == project_id)
            .order_by(successor.sequence, predecessor.sequence, predecessor.name)
        ).all()
        return [
            DependencyEdge(
                activity_id=edge.activity_id,
                predecessor_id=edge.predecessor_id,
                predecessor_name=pred.name,
                predecessor_progress=pred.real_progress,
                dependency_type=DependencyType(edge.dependency_type),
                wait_days=edge.wait_days,
            )
            for edge, pred in rows
        ]
