"""
materials_services.alert_engine -- Alert Rule Engine orchestration.

Responsibility:
    Regenerate alerts per project and globally: read snapshots through the
    selectors, run the pure projector, dependency analyzer and rule set,
    then replace the superseded pending alerts through AlertService.

Architecture position:
    Services -- stateful orchestration over engines + kernel.

Invariants enforced:
    - Delete-then-insert happens in the caller's transaction, so a failed
      run leaves the previously pending alerts intact.
    - A project run only touches project-scoped alert types of that
      project; a global run only touches global alert types.
    - Runs are idempotent for unchanged data and an unchanged clock.
    - A project already past its estimated finish date gets its pending
      project alerts cleared and no new ones.

Failure modes:
    - ProjectNotFoundError for an unknown project.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from materials_engines.dependencies import DependencyAnalyzer
from materials_engines.projection import ConsumptionProjector, days_remaining
from materials_engines.rules import AlertDraft, AlertRules, RuleThresholds
from materials_kernel.domain.clock import Clock
from materials_kernel.domain.values import GLOBAL_ALERT_TYPES, PROJECT_ALERT_TYPES
from materials_kernel.exceptions import ProjectNotFoundError
from materials_kernel.logging_config import LogContext, get_logger
from materials_kernel.selectors.material_selector import MaterialSelector
from materials_kernel.selectors.project_selector import ProjectSelector
from materials_kernel.services.alert_service import AlertService

logger = get_logger("services.alert_engine")


class AlertRuleEngine:
    """
    Regenerates alerts within the caller's transaction.

    Contract:
        Receives Session, Clock and RuleThresholds via constructor injection.
        Never commits.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock,
        thresholds: RuleThresholds | None = None,
    ):
        self._session = session
        self._clock = clock
        self._projects = ProjectSelector(session)
        self._materials = MaterialSelector(session)
        self._alerts = AlertService(session, clock)
        self._projector = ConsumptionProjector()
        self._analyzer = DependencyAnalyzer()
        self._rules = AlertRules(thresholds)

    def regenerate_project(self, project_id: UUID) -> int:
        """
        Replace the pending project-scoped alerts of one project.

        Returns:
            Number of alerts inserted.
        """
        with LogContext.bind(project_id=str(project_id)):
            project = self._projects.get_project(project_id)
            if project is None:
                raise ProjectNotFoundError(str(project_id))

            deleted = self._alerts.delete_pending(PROJECT_ALERT_TYPES, project_id)

            today = self._clock.today()
            remaining = days_remaining(project.estimated_finish, today)
            if remaining <= 0:
                logger.info(
                    "project_alerts_skipped",
                    extra={
                        "reason": "past_estimated_finish",
                        "estimated_finish": project.estimated_finish,
                        "deleted": deleted,
                    },
                )
                return 0

            assignments = self._projects.assignments(project_id=project_id)
            material_ids = list(dict.fromkeys(link.material_id for link in assignments))
            materials = self._materials.materials(material_ids)
            pending = self._projector.pending_by_material(assignments)
            blocked = self._analyzer.blocked_activities(
                self._projects.activities(project_id),
                self._projects.dependency_edges(project_id),
                assignments,
            )

            drafts = self._rules.project_alerts(
                project_id,
                materials,
                pending,
                assignments,
                blocked,
                remaining,
                today,
            )
            for draft in drafts:
                self._persist(draft)

            logger.info(
                "project_alerts_regenerated",
                extra={
                    "deleted": deleted,
                    "created_count": len(drafts),
                    "days_remaining": remaining,
                },
            )
            return len(drafts)

    def regenerate_global(self) -> int:
        """
        Replace all pending global alerts (stagnant stock, expiring
        material, price variation).

        Returns:
            Number of alerts inserted.
        """
        deleted = self._alerts.delete_pending(GLOBAL_ALERT_TYPES)

        drafts = self._rules.global_alerts(
            self._materials.materials(),
            self._materials.last_movement_times(),
            self._materials.active_batches(perishable_only=True),
            self._materials.recent_prices(),
            self._clock.now_utc(),
        )
        for draft in drafts:
            self._persist(draft)

        logger.info(
            "global_alerts_regenerated",
            extra={"deleted": deleted, "created_count": len(drafts)},
        )
        return len(drafts)

    def _persist(self, draft: AlertDraft) -> None:
        self._alerts.create_alert(
            alert_type=draft.alert_type,
            severity=draft.severity,
            message=draft.message,
            project_id=draft.project_id,
            material_id=draft.material_id,
            activity_id=draft.activity_id,
            days_to_stockout=draft.days_to_stockout,
            suggested_quantity=draft.suggested_quantity,
            suggested_order_date=draft.suggested_order_date,
            details=draft.details,
        )
