"""
materials_services.engine -- ProjectionEngine, the public entry points.

Responsibility:
    Explicitly constructed engine context.  Holds the session factory,
    clock and rule thresholds and runs every entry point in its own
    transaction via ``session_scope``.

Architecture position:
    Services -- top of the service layer.  This is the only place where
    transactions begin and end; everything below it flushes.

Invariants enforced:
    - Every entry point is all-or-nothing: a failure rolls back every
      change it made, including alert deletions.
    - Return values are frozen DTOs or plain ids, usable after the
      session is closed.

Usage:
    from materials_config import get_active_config
    from materials_services import ProjectionEngine

    engine = ProjectionEngine.from_settings(get_active_config())
    engine.regenerate_project_alerts(project_id)
    report = engine.simulate(project_id, Decimal("60"))
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy.orm import Session, sessionmaker

from materials_config.schema import EngineSettings
from materials_engines.rules import RuleThresholds
from materials_engines.simulation import SimulationReport
from materials_kernel.db.engine import build_engine, session_scope
from materials_kernel.domain.clock import Clock, SystemClock
from materials_kernel.domain.dtos import AlertRecord
from materials_kernel.domain.values import DependencyType, MovementDirection
from materials_kernel.exceptions import InvalidQuantityError
from materials_kernel.logging_config import LogContext, configure_logging, get_logger
from materials_kernel.selectors.alert_selector import AlertSelector
from materials_kernel.services.alert_service import AlertService
from materials_services.alert_engine import AlertRuleEngine
from materials_services.inventory_service import InventoryService, Receipt, Withdrawal
from materials_services.planning_service import PlanningService
from materials_services.progress_confirmation import (
    ConfirmationResult,
    ConsumptionRequest,
    ProgressConfirmationService,
    SuggestedConsumption,
)
from materials_services.simulator import SimulatorService

logger = get_logger("services.engine")

_ZERO = Decimal("0")


class ProjectionEngine:
    """
    Inventory projection and alerting entry points.

    Contract:
        Receives a session factory, Clock and RuleThresholds via
        constructor injection.  Each call opens, commits or rolls back,
        and closes its own session.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
        thresholds: RuleThresholds | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._thresholds = thresholds or RuleThresholds()

    @classmethod
    def from_settings(
        cls,
        settings: EngineSettings,
        clock: Clock | None = None,
    ) -> ProjectionEngine:
        """Build an engine bound to ``settings.database_url`` and log at ``settings.log_level``."""
        configure_logging(level=settings.log_level)
        factory = sessionmaker(bind=build_engine(settings.database_url), expire_on_commit=False)
        return cls(factory, clock=clock, thresholds=settings.thresholds)

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def thresholds(self) -> RuleThresholds:
        return self._thresholds

    # =========================================================================
    # Alert regeneration
    # =========================================================================

    def regenerate_project_alerts(self, project_id: UUID) -> int:
        """Replace the pending project-scoped alerts of ``project_id``."""
        with LogContext.bind(run_id=str(uuid4())):
            with session_scope(self._session_factory) as session:
                return AlertRuleEngine(session, self._clock, self._thresholds).regenerate_project(
                    project_id
                )

    def regenerate_global_alerts(self) -> int:
        """Replace all pending stagnant, expiry and price alerts."""
        with LogContext.bind(run_id=str(uuid4())):
            with session_scope(self._session_factory) as session:
                return AlertRuleEngine(session, self._clock, self._thresholds).regenerate_global()

    # =========================================================================
    # Read-only
    # =========================================================================

    def simulate(self, project_id: UUID, hypothetical_progress: Decimal) -> SimulationReport:
        """What-if projection of stock at a hypothetical overall progress."""
        with LogContext.bind(run_id=str(uuid4()), project_id=str(project_id)):
            with session_scope(self._session_factory) as session:
                return SimulatorService(session, self._thresholds).simulate(
                    project_id, hypothetical_progress
                )

    def suggest_consumptions(
        self,
        activity_id: UUID,
        new_progress: Decimal,
    ) -> list[SuggestedConsumption]:
        with session_scope(self._session_factory) as session:
            return ProgressConfirmationService(
                session, self._clock, self._thresholds
            ).suggest_consumptions(activity_id, new_progress)

    def pending_alerts(self, project_id: UUID | None = None) -> list[AlertRecord]:
        """Pending alerts, critical first, then newest first."""
        with session_scope(self._session_factory) as session:
            return AlertSelector(session).pending(project_id)

    # =========================================================================
    # Mutations
    # =========================================================================

    def confirm_progress(
        self,
        activity_id: UUID,
        new_progress: Decimal,
        consumptions: list[ConsumptionRequest] | tuple[ConsumptionRequest, ...] = (),
        *,
        responsible: str | None = None,
    ) -> ConfirmationResult:
        """
        Advance an activity and consume its materials atomically.

        Alerts are not regenerated here; call regenerate_project_alerts()
        afterwards for the full rule evaluation.
        """
        with LogContext.bind(run_id=str(uuid4()), actor_id=responsible):
            with session_scope(self._session_factory) as session:
                return ProgressConfirmationService(
                    session, self._clock, self._thresholds
                ).confirm(activity_id, new_progress, consumptions, responsible=responsible)

    def acknowledge_alert(self, alert_id: UUID) -> AlertRecord:
        with session_scope(self._session_factory) as session:
            return AlertRecord.from_model(AlertService(session, self._clock).acknowledge(alert_id))

    def dismiss_alert(self, alert_id: UUID) -> AlertRecord:
        with session_scope(self._session_factory) as session:
            return AlertRecord.from_model(AlertService(session, self._clock).dismiss(alert_id))

    def record_movement(
        self,
        material_id: UUID,
        direction: MovementDirection,
        quantity: Decimal,
        reason: str,
        *,
        batch_code: str | None = None,
        expiry_date: date | None = None,
        project_id: UUID | None = None,
        responsible: str | None = None,
    ) -> Withdrawal | Receipt:
        """
        Record a direct inventory movement.

        IN adds stock (opening a batch for perishable materials when
        ``batch_code`` is given).  OUT withdraws through the FEFO routine.
        ADJUST takes a signed quantity: negative withdraws, positive adds.

        Raises:
            InvalidQuantityError: Zero quantity, or a negative one for IN/OUT.
            InsufficientStockError: The withdrawal exceeds stock.
        """
        direction = MovementDirection(direction)
        if quantity == _ZERO:
            raise InvalidQuantityError(str(quantity), "movement quantity cannot be zero")

        with LogContext.bind(actor_id=responsible):
            with session_scope(self._session_factory) as session:
                inventory = InventoryService(session, self._clock)
                material = inventory.lock_material(material_id)
                outbound = direction == MovementDirection.OUT or (
                    direction == MovementDirection.ADJUST and quantity < _ZERO
                )
                if outbound:
                    amount = -quantity if direction == MovementDirection.ADJUST else quantity
                    return inventory.withdraw(
                        material,
                        amount,
                        reason=reason,
                        direction=direction,
                        project_id=project_id,
                        responsible=responsible,
                    )
                return inventory.receive(
                    material,
                    quantity,
                    reason=reason,
                    direction=direction,
                    batch_code=batch_code,
                    expiry_date=expiry_date,
                    project_id=project_id,
                    responsible=responsible,
                )

    def assign_material(
        self,
        activity_id: UUID,
        material_id: UUID,
        estimated_quantity: Decimal,
    ) -> UUID:
        """Link a material to an activity.  Returns the new link id."""
        with session_scope(self._session_factory) as session:
            link = PlanningService(session).assign_material(
                activity_id, material_id, estimated_quantity
            )
            return link.id

    def add_dependency(
        self,
        activity_id: UUID,
        predecessor_id: UUID,
        dependency_type: DependencyType = DependencyType.FINISH_TO_START,
        wait_days: int = 0,
    ) -> UUID:
        """Declare a precedence edge.  Returns the new edge id."""
        with session_scope(self._session_factory) as session:
            edge = PlanningService(session).add_dependency(
                activity_id, predecessor_id, dependency_type, wait_days
            )
            return edge.id
