"""
Module: materials_kernel.models.project
Responsibility: ORM persistence for construction projects and their
    activities (the units of work whose progress drives consumption).
Architecture position: Kernel > Models.  May import from db/ and
    domain/values only.  MUST NOT import from services/, selectors/ or
    outer layers.

Invariants enforced:
    - Progress values are percentages in [0, 100] (enforced at service layer).
    - overall_progress is the mean of the project's activity progress,
      recomputed whenever an activity's progress is confirmed.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from materials_kernel.db.base import TimestampedBase, UUIDString


class ProjectModel(TimestampedBase):
    """
    A construction project with a planned finish date.

    Guarantees:
        - estimated_finish drives days_remaining for every projection.
        - overall_progress is what the simulator compares hypotheticals to.
    """

    __tablename__ = "projects"

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    estimated_finish: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    overall_progress: Mapped[Decimal] = mapped_column(
        Numeric(7, 3),
        nullable=False,
        default=Decimal("0"),
    )

    activities: Mapped[list[ActivityModel]] = relationship(
        back_populates="project",
        order_by="ActivityModel.sequence",
    )

    def __repr__(self) -> str:
        return f"<Project {self.id}: {self.name} ({self.overall_progress}%)>"


class ActivityModel(TimestampedBase):
    """
    A unit of work inside a project.

    Contract:
        real_progress only moves forward, through progress confirmation.
        planned_progress is informational.
    """

    __tablename__ = "activities"

    __table_args__ = (
        Index("idx_activity_project", "project_id", "sequence"),
    )

    project_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("projects.id"),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    sequence: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    planned_progress: Mapped[Decimal] = mapped_column(
        Numeric(7, 3),
        nullable=False,
        default=Decimal("0"),
    )

    # Confirmed progress, 0..100
    real_progress: Mapped[Decimal] = mapped_column(
        Numeric(7, 3),
        nullable=False,
        default=Decimal("0"),
    )

    project: Mapped[ProjectModel] = relationship(back_populates="activities")

    def __repr__(self) -> str:
        return f"<Activity {self.id}: {self.name} ({self.real_progress}%)>"
