"""
Module: materials_engines.dependencies
Responsibility:
    Dependency Blocking Analyzer.  Decides whether an activity is blocked by
    its declared predecessors, and detects precedence cycles before an edge
    is stored.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - FS blocks while the predecessor is below 100%.
    - SS and SF block while the predecessor is at exactly 0%.
    - FF never blocks.
    - Only activities below 100% are examined.
    - Severity is HIGH when any blocking predecessor has not started (0%),
      MEDIUM otherwise.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from materials_engines.tracer import traced_engine
from materials_kernel.domain.alert_details import BlockingPredecessor
from materials_kernel.domain.dtos import (
    ActivityMaterialSnapshot,
    ActivitySnapshot,
    DependencyEdge,
)
from materials_kernel.domain.values import DependencyType, Severity
from materials_kernel.logging_config import get_logger

logger = get_logger("engines.dependencies")

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


def edge_blocks(dependency_type: DependencyType, predecessor_progress: Decimal) -> bool:
    """Whether one precedence edge currently blocks its successor."""
    if dependency_type == DependencyType.FINISH_TO_START:
        return predecessor_progress < _HUNDRED
    if dependency_type in (DependencyType.START_TO_START, DependencyType.START_TO_FINISH):
        return predecessor_progress == _ZERO
    return False


@dataclass(frozen=True)
class BlockingResult:
    """A blocked activity, its unsatisfied predecessors and its materials."""

    activity_id: UUID
    activity_name: str
    blockers: tuple[BlockingPredecessor, ...]
    affected_materials: tuple[str, ...]

    @property
    def severity(self) -> Severity:
        if any(b.progress == _ZERO for b in self.blockers):
            return Severity.HIGH
        return Severity.MEDIUM


class DependencyAnalyzer:
    """Blocking checks and cycle detection over precedence edges."""

    @traced_engine("dependency_blocking", "1.0", fingerprint_fields=("activities", "edges"))
    def blocked_activities(
        self,
        activities: Sequence[ActivitySnapshot],
        edges: Sequence[DependencyEdge],
        assignments: Sequence[ActivityMaterialSnapshot] = (),
    ) -> list[BlockingResult]:
        """
        Every incomplete activity that has at least one blocking edge, in
        the order of ``activities``.
        """
        edges_by_successor: dict[UUID, list[DependencyEdge]] = defaultdict(list)
        for edge in edges:
            edges_by_successor[edge.activity_id].append(edge)

        materials_by_activity: dict[UUID, list[str]] = defaultdict(list)
        for link in assignments:
            materials_by_activity[link.activity_id].append(link.material_name)

        results: list[BlockingResult] = []
        for activity in activities:
            if activity.real_progress >= _HUNDRED:
                continue
            blockers = tuple(
                BlockingPredecessor(
                    activity_id=str(edge.predecessor_id),
                    name=edge.predecessor_name,
                    progress=edge.predecessor_progress,
                    dependency_type=edge.dependency_type,
                )
                for edge in edges_by_successor.get(activity.activity_id, ())
                if edge_blocks(edge.dependency_type, edge.predecessor_progress)
            )
            if blockers:
                results.append(
                    BlockingResult(
                        activity_id=activity.activity_id,
                        activity_name=activity.name,
                        blockers=blockers,
                        affected_materials=tuple(
                            materials_by_activity.get(activity.activity_id, ())
                        ),
                    )
                )

        logger.info(
            "dependencies_analyzed",
            extra={"activity_count": len(activities), "blocked_count": len(results)},
        )
        return results

    def find_cycle(
        self,
        existing: Iterable[tuple[UUID, UUID]],
        activity_id: UUID,
        predecessor_id: UUID,
    ) -> list[UUID] | None:
        """
        Cycle that adding ``activity_id`` depends-on ``predecessor_id`` would
        close, or None.

        Args:
            existing: (activity_id, predecessor_id) pairs already stored.

        Returns:
            The cycle as a list of activity ids starting and ending with
            ``activity_id``, following depends-on links.
        """
        depends_on: dict[UUID, list[UUID]] = defaultdict(list)
        for successor, predecessor in existing:
            depends_on[successor].append(predecessor)

        # Depth-first search from the new predecessor back to the new successor.
        stack: list[tuple[UUID, list[UUID]]] = [(predecessor_id, [predecessor_id])]
        visited: set[UUID] = set()
        while stack:
            node, path = stack.pop()
            if node == activity_id:
                return [activity_id, *path]
            if node in visited:
                continue
            visited.add(node)
            for upstream in depends_on.get(node, ()):
                if upstream not in visited:
                    stack.append((upstream, [*path, upstream]))
        return None
