"""
Tests for alert regeneration (AlertRuleEngine through ProjectionEngine).

Covers:
- Project runs: stock, deviation and blocked-dependency alerts
- Idempotency of repeated runs
- Scope isolation: project vs project, project vs global
- Acknowledged alerts survive regeneration
- Projects past their finish date
- All-or-nothing: a failed run keeps the previous pending alerts
- Global runs: stagnant stock, expiring batches, price variation
"""

from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from materials_engines.rules import AlertRules
from materials_kernel.domain.alert_details import details_from_payload
from materials_kernel.domain.values import AlertStatus, AlertType, Severity
from materials_kernel.exceptions import ProjectNotFoundError
from materials_kernel.selectors.alert_selector import AlertSelector


@pytest.fixture
def short_project(build):
    """A project whose only material runs out well inside the lead time."""
    supplier = build.supplier(lead_time_days=5)
    rebar = build.material("Rebar", stock="5", minimum="10", supplier=supplier)
    project = build.project(finish_in_days=20)
    slab = build.activity(project, "Slab")
    build.link(slab, rebar, estimated="100")
    return project, rebar


class TestProjectAlerts:

    def test_imminent_stockout(self, engine_context, short_project, today):
        project, rebar = short_project

        created = engine_context.regenerate_project_alerts(project.id)

        assert created == 1
        (alert,) = engine_context.pending_alerts(project.id)
        assert alert.alert_type == AlertType.IMMINENT_STOCKOUT
        assert alert.severity == Severity.CRITICAL
        assert alert.material_id == rebar.id
        # 100 pending over 20 days = 5/day; 5 in stock lasts 1 day
        assert alert.days_to_stockout == 1
        assert alert.suggested_quantity == Decimal("125")
        assert alert.suggested_order_date == today + timedelta(days=1)

        details = details_from_payload(alert.alert_type, alert.details)
        assert details.lead_time_days == 5
        assert details.pending_consumption == Decimal("100")

    def test_consumption_deviation(self, engine_context, build):
        supplier = build.supplier()
        sand = build.material("Sand", stock="1000", supplier=supplier)
        project = build.project()
        slab = build.activity(project, "Slab", progress="20")
        build.link(slab, sand, estimated="100", consumed="60")

        engine_context.regenerate_project_alerts(project.id)

        (alert,) = engine_context.pending_alerts(project.id)
        assert alert.alert_type == AlertType.CONSUMPTION_DEVIATION
        assert alert.severity == Severity.MEDIUM
        assert alert.activity_id == slab.id
        assert alert.details["deviation_pct"] == "40.0"

    def test_blocked_dependency(self, engine_context, build):
        project = build.project()
        walls = build.activity(project, "Walls", sequence=1)
        roof = build.activity(project, "Roof", sequence=2)
        build.dependency(roof, walls)

        engine_context.regenerate_project_alerts(project.id)

        (alert,) = engine_context.pending_alerts(project.id)
        assert alert.alert_type == AlertType.BLOCKED_DEPENDENCY
        assert alert.severity == Severity.HIGH
        assert alert.activity_id == roof.id
        assert '"Walls"' in alert.message

    def test_material_without_supplier_gets_no_stock_alert(self, engine_context, build):
        orphan = build.material("Loose gravel", stock="1", minimum="50")
        project = build.project()
        build.link(build.activity(project), orphan, estimated="30")

        assert engine_context.regenerate_project_alerts(project.id) == 0

    def test_rerun_is_idempotent(self, engine_context, short_project):
        project, _ = short_project

        engine_context.regenerate_project_alerts(project.id)
        first = engine_context.pending_alerts(project.id)
        engine_context.regenerate_project_alerts(project.id)
        second = engine_context.pending_alerts(project.id)

        assert len(second) == len(first) == 1
        assert second[0].message == first[0].message
        assert second[0].alert_id != first[0].alert_id

    def test_other_projects_untouched(self, engine_context, build, short_project):
        project, rebar = short_project
        other = build.project("Tower B")
        build.link(build.activity(other), rebar, estimated="80")

        engine_context.regenerate_project_alerts(other.id)
        engine_context.regenerate_project_alerts(project.id)

        assert len(engine_context.pending_alerts(other.id)) == 1
        assert len(engine_context.pending_alerts(project.id)) == 1

    def test_acknowledged_alert_survives(self, engine_context, short_project, session):
        project, _ = short_project
        engine_context.regenerate_project_alerts(project.id)
        (alert,) = engine_context.pending_alerts(project.id)
        engine_context.acknowledge_alert(alert.alert_id)

        engine_context.regenerate_project_alerts(project.id)

        pending = engine_context.pending_alerts(project.id)
        assert len(pending) == 1
        assert pending[0].alert_id != alert.alert_id
        history = AlertSelector(session).alerts(
            project_id=project.id, status=AlertStatus.ACKNOWLEDGED
        )
        assert [a.alert_id for a in history] == [alert.alert_id]

    def test_past_finish_clears_pending(self, engine_context, short_project, clock, captured_logs):
        project, _ = short_project
        engine_context.regenerate_project_alerts(project.id)

        clock.advance_days(25)
        created = engine_context.regenerate_project_alerts(project.id)

        assert created == 0
        assert engine_context.pending_alerts(project.id) == []
        skipped = [r for r in captured_logs() if r["message"] == "project_alerts_skipped"]
        assert skipped[0]["deleted"] == 1
        assert skipped[0]["project_id"] == str(project.id)

    def test_finish_today_counts_as_past(self, engine_context, build):
        project = build.project(finish_in_days=0)
        assert engine_context.regenerate_project_alerts(project.id) == 0

    def test_unknown_project(self, engine_context):
        with pytest.raises(ProjectNotFoundError) as exc_info:
            engine_context.regenerate_project_alerts(uuid4())
        assert exc_info.value.code == "PROJECT_NOT_FOUND"

    def test_failed_run_keeps_previous_alerts(self, engine_context, short_project, monkeypatch):
        project, _ = short_project
        engine_context.regenerate_project_alerts(project.id)
        before = engine_context.pending_alerts(project.id)

        def _boom(self, *args, **kwargs):
            raise RuntimeError("rule evaluation failed")

        monkeypatch.setattr(AlertRules, "project_alerts", _boom)
        with pytest.raises(RuntimeError):
            engine_context.regenerate_project_alerts(project.id)

        after = engine_context.pending_alerts(project.id)
        assert [a.alert_id for a in after] == [a.alert_id for a in before]

    def test_run_logs_carry_project_and_run_id(self, engine_context, short_project, captured_logs):
        project, _ = short_project

        engine_context.regenerate_project_alerts(project.id)

        done = [r for r in captured_logs() if r["message"] == "project_alerts_regenerated"]
        assert len(done) == 1
        assert done[0]["project_id"] == str(project.id)
        assert done[0]["created_count"] == 1
        assert "run_id" in done[0]
        assert len(engine_context.pending_alerts(project.id)) == 1


@pytest.fixture
def global_scenario(build, clock):
    """One stagnant material, one batch about to expire, one price jump."""
    now = clock.now_utc()
    supplier = build.supplier("Paint & Co")

    old = build.material("Old timber", created_at=now - timedelta(days=100))
    busy = build.material("Bricks", created_at=now - timedelta(days=100))
    build.movement(busy, occurred_at=now - timedelta(days=2))

    glue = build.material("Glue", is_perishable=True, expiry_warning_days=30)
    build.batch(glue, "G-1", "20", expiry_date=clock.today() + timedelta(days=5))

    paint = build.material("Paint")
    build.order(supplier, paint, "10", issued_at=now - timedelta(days=40))
    build.order(supplier, paint, "14", issued_at=now - timedelta(days=1))
    build.order(supplier, paint, "100", issued_at=now, status="cancelled")
    return {"old": old, "glue": glue, "paint": paint}


class TestGlobalAlerts:

    def test_global_rules(self, engine_context, global_scenario):
        created = engine_context.regenerate_global_alerts()

        assert created == 3
        by_type = {a.alert_type: a for a in engine_context.pending_alerts()}

        stagnant = by_type[AlertType.STAGNANT_STOCK]
        assert stagnant.material_id == global_scenario["old"].id
        assert stagnant.severity == Severity.HIGH
        assert stagnant.project_id is None

        expiring = by_type[AlertType.EXPIRING_MATERIAL]
        assert expiring.material_id == global_scenario["glue"].id
        assert expiring.severity == Severity.HIGH
        assert expiring.details["batch_code"] == "G-1"
        assert expiring.details["days_to_expire"] == 5

        price = by_type[AlertType.PRICE_VARIATION]
        assert price.material_id == global_scenario["paint"].id
        assert price.severity == Severity.HIGH
        assert "rose 40.0%" in price.message
        assert "Paint & Co" in price.message

    def test_rerun_is_idempotent(self, engine_context, global_scenario):
        engine_context.regenerate_global_alerts()
        engine_context.regenerate_global_alerts()

        assert len(engine_context.pending_alerts()) == 3

    def test_project_and_global_runs_do_not_interfere(
        self, engine_context, global_scenario, short_project
    ):
        project, _ = short_project

        engine_context.regenerate_global_alerts()
        engine_context.regenerate_project_alerts(project.id)
        engine_context.regenerate_global_alerts()

        assert len(engine_context.pending_alerts()) == 4
        assert len(engine_context.pending_alerts(project.id)) == 1

    def test_dismissed_global_alert_is_not_deleted(self, engine_context, global_scenario):
        engine_context.regenerate_global_alerts()
        stagnant = next(
            a for a in engine_context.pending_alerts()
            if a.alert_type == AlertType.STAGNANT_STOCK
        )
        engine_context.dismiss_alert(stagnant.alert_id)

        engine_context.regenerate_global_alerts()

        pending = engine_context.pending_alerts()
        assert len(pending) == 3
        assert stagnant.alert_id not in {a.alert_id for a in pending}

    def test_run_log_reports_counts(self, engine_context, global_scenario, captured_logs):
        engine_context.regenerate_global_alerts()
        engine_context.regenerate_global_alerts()

        done = [r for r in captured_logs() if r["message"] == "global_alerts_regenerated"]
        assert [(r["deleted"], r["created_count"]) for r in done] == [(0, 3), (3, 3)]
        assert len(engine_context.pending_alerts()) == 3
