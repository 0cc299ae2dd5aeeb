"""
Alert query selector.

Pending alerts are listed most severe first, newest first within a
severity.
"""

from uuid import UUID

from sqlalchemy import case, select

from materials_kernel.domain.dtos import AlertRecord
from materials_kernel.domain.values import AlertStatus, AlertType, Severity
from materials_kernel.models.alert import AlertModel
from materials_kernel.selectors.base import BaseSelector

_SEVERITY_ORDER = case(
    {severity.value: severity.rank for severity in Severity},
    value=AlertModel.severity,
    else_=len(Severity),
)


class AlertSelector(BaseSelector[AlertModel]):
    """Selector for alert queries."""

    def get_alert(self, alert_id: UUID) -> AlertRecord | None:
        alert = self.session.get(AlertModel, alert_id)
        if alert is None:
            return None
        return AlertRecord.from_model(alert)

    def alerts(
        self,
        *,
        project_id: UUID | None = None,
        status: AlertStatus | None = None,
        alert_types: frozenset[AlertType] | None = None,
    ) -> list[AlertRecord]:
        """
        Alerts matching the filters, ordered by severity then newest first.

        Args:
            project_id: Only alerts of this project (global alerts excluded).
            status: Only alerts in this status.
            alert_types: Only alerts of these types.
        """
        query = select(AlertModel).order_by(
            _SEVERITY_ORDER,
            AlertModel.created_at.desc(),
            AlertModel.alert_type,
            AlertModel.message,
        )
        if project_id is not None:
            query = query.where(AlertModel.project_id == project_id)
        if status is not None:
            query = query.where(AlertModel.status == status.value)
        if alert_types is not None:
            query = query.where(AlertModel.alert_type.in_([t.value for t in alert_types]))

        rows = self.session.execute(query).scalars().all()
        return [AlertRecord.from_model(row) for row in rows]

    def pending(self, project_id: UUID | None = None) -> list[AlertRecord]:
        """Pending alerts, optionally restricted to one project."""
        return self.alerts(project_id=project_id, status=AlertStatus.PENDING)
