"""
materials_services.simulator -- What-If Simulator service.

Responsibility:
    Load the snapshots a simulation needs and hand them to the pure
    WhatIfSimulator.  Strictly read-only: uses selectors only.

Failure modes:
    - ProjectNotFoundError for an unknown project.
    - SimulationBelowCurrentProgressError when the hypothetical progress is
      below the project's current progress.
    - InvalidProgressError when the hypothetical progress exceeds 100.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from materials_engines.rules import RuleThresholds
from materials_engines.simulation import SimulationReport, WhatIfSimulator
from materials_kernel.exceptions import (
    InvalidProgressError,
    ProjectNotFoundError,
    SimulationBelowCurrentProgressError,
)
from materials_kernel.logging_config import get_logger
from materials_kernel.selectors.material_selector import MaterialSelector
from materials_kernel.selectors.project_selector import ProjectSelector

logger = get_logger("services.simulator")


class SimulatorService:
    """Read-only what-if simulation over the caller's session."""

    def __init__(self, session: Session, thresholds: RuleThresholds | None = None):
        self._projects = ProjectSelector(session)
        self._materials = MaterialSelector(session)
        self._simulator = WhatIfSimulator(thresholds)

    def simulate(self, project_id: UUID, hypothetical_progress: Decimal) -> SimulationReport:
        project = self._projects.get_project(project_id)
        if project is None:
            raise ProjectNotFoundError(str(project_id))
        if hypothetical_progress < project.overall_progress:
            raise SimulationBelowCurrentProgressError(
                str(project_id), str(project.overall_progress), str(hypothetical_progress)
            )
        if hypothetical_progress > 100:
            raise InvalidProgressError(
                str(project_id),
                str(project.overall_progress),
                str(hypothetical_progress),
                "progress cannot exceed 100",
            )

        assignments = self._projects.assignments(project_id=project_id)
        material_ids = list(dict.fromkeys(link.material_id for link in assignments))
        materials = {m.material_id: m for m in self._materials.materials(material_ids)}

        return self._simulator.simulate(project, hypothetical_progress, assignments, materials)
