"""
Module: materials_kernel.models.dependency
Responsibility: ORM persistence for precedence edges between activities of
    the same project.
Architecture position: Kernel > Models.  May import from db/ and
    domain/values only.

Invariants enforced:
    - No self edges and no cross-project edges (service layer).
    - The edge set of a project is acyclic; a cycle-closing edge is rejected
      at creation (service layer).
    - At most one edge per (activity, predecessor) pair (uq_dependency_pair).
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from materials_kernel.db.base import TimestampedBase, UUIDString
from materials_kernel.domain.values import DependencyType


class DependencyModel(TimestampedBase):
    """``activity_id`` depends on ``predecessor_id`` with the given relation."""

    __tablename__ = "activity_dependencies"

    __table_args__ = (
        UniqueConstraint("activity_id", "predecessor_id", name="uq_dependency_pair"),
        Index("idx_dependency_predecessor", "predecessor_id"),
    )

    activity_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("activities.id"),
        nullable=False,
    )

    predecessor_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("activities.id"),
        nullable=False,
    )

    dependency_type: Mapped[DependencyType] = mapped_column(
        String(20),
        nullable=False,
        default=DependencyType.FINISH_TO_START,
    )

    # Lag in days; informational
    wait_days: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    def __repr__(self) -> str:
        return (
            f"<Dependency {self.predecessor_id} -{self.dependency_type}-> "
            f"{self.activity_id}>"
        )
