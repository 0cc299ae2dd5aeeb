"""
AlertService -- persistence and lifecycle of alerts.

Responsibility:
    Write side of the alert table: delete the pending alerts a regeneration
    run supersedes, insert new alerts with their typed details, and move
    alerts through PENDING -> ACKNOWLEDGED | DISMISSED.

Architecture position:
    Kernel > Services -- imperative shell.  Called by the alert rule engine
    orchestration and by ProjectionEngine's lifecycle entry points.

Invariants enforced:
    - Only PENDING alerts are ever deleted; acknowledged and dismissed
      alerts are kept as history.
    - A status change stamps ``resolved_at`` from the injected clock.
    - Services flush, never commit.

Failure modes:
    - AlertNotFoundError for an unknown alert id.
    - InvalidAlertTransitionError when the alert is not PENDING.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import delete

from materials_kernel.domain.alert_details import AlertDetails, details_to_payload
from materials_kernel.domain.clock import Clock
from materials_kernel.domain.values import AlertStatus, AlertType, Severity
from materials_kernel.exceptions import AlertNotFoundError, InvalidAlertTransitionError
from materials_kernel.logging_config import get_logger
from materials_kernel.models.alert import AlertModel
from materials_kernel.services.base import BaseService

logger = get_logger("services.alert")


class AlertService(BaseService[AlertModel]):
    """Alert persistence within the caller's transaction."""

    def __init__(self, session, clock: Clock):
        super().__init__(session)
        self._clock = clock

    def delete_pending(
        self,
        alert_types: Iterable[AlertType],
        project_id: UUID | None = None,
    ) -> int:
        """
        Delete pending alerts of the given types.

        Args:
            alert_types: Types to delete.
            project_id: When set, only alerts of this project.

        Returns:
            Number of rows deleted.
        """
        stmt = delete(AlertModel).where(
            AlertModel.status == AlertStatus.PENDING.value,
            AlertModel.alert_type.in_([t.value for t in alert_types]),
        )
        if project_id is not None:
            stmt = stmt.where(AlertModel.project_id == project_id)

        result = self.session.execute(stmt, execution_options={"synchronize_session": False})
        self.session.flush()
        deleted = result.rowcount or 0
        logger.debug(
            "pending_alerts_deleted",
            extra={
                "project_id": str(project_id) if project_id else None,
                "deleted": deleted,
            },
        )
        return deleted

    def create_alert(
        self,
        *,
        alert_type: AlertType,
        severity: Severity,
        message: str,
        project_id: UUID | None = None,
        material_id: UUID | None = None,
        activity_id: UUID | None = None,
        days_to_stockout: int | None = None,
        suggested_quantity: Decimal | None = None,
        suggested_order_date: date | None = None,
        details: AlertDetails | None = None,
    ) -> AlertModel:
        """Insert one PENDING alert stamped with the clock's time."""
        alert = AlertModel(
            alert_type=alert_type.value,
            severity=severity.value,
            message=message,
            project_id=project_id,
            material_id=material_id,
            activity_id=activity_id,
            days_to_stockout=days_to_stockout,
            suggested_quantity=suggested_quantity,
            suggested_order_date=suggested_order_date,
            details=details_to_payload(details),
            status=AlertStatus.PENDING.value,
            created_at=self._clock.now_utc(),
        )
        self.session.add(alert)
        self.session.flush()
        return alert

    def acknowledge(self, alert_id: UUID) -> AlertModel:
        """Mark a pending alert as acknowledged (attended)."""
        return self._transition(alert_id, AlertStatus.ACKNOWLEDGED)

    def dismiss(self, alert_id: UUID) -> AlertModel:
        """Mark a pending alert as dismissed."""
        return self._transition(alert_id, AlertStatus.DISMISSED)

    def _transition(self, alert_id: UUID, target: AlertStatus) -> AlertModel:
        alert = self.session.get(AlertModel, alert_id)
        if alert is None:
            raise AlertNotFoundError(str(alert_id))
        if alert.status != AlertStatus.PENDING.value:
            raise InvalidAlertTransitionError(str(alert_id), alert.status, target.value)

        alert.status = target.value
        alert.resolved_at = self._clock.now_utc()
        self.session.flush()
        logger.info(
            "alert_status_changed",
            extra={"alert_id": str(alert_id), "status": target.value},
        )
        return alert
