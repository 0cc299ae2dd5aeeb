"""Tests for the what-if simulation entry point."""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from materials_kernel.domain.values import StockBand
from materials_kernel.exceptions import (
    InvalidProgressError,
    ProjectNotFoundError,
    SimulationBelowCurrentProgressError,
)
from materials_kernel.models import AlertModel, InventoryMovementModel, MaterialModel


@pytest.fixture
def tower(build):
    supplier = build.supplier("Acme Supplies", lead_time_days=4)
    project = build.project(overall_progress="20")
    slab = build.activity(project, "Slab", progress="20")
    cement = build.material("Cement", stock="60", minimum="20", unit_price="8", supplier=supplier)
    rebar = build.material("Rebar", stock="30", minimum="20", unit_price="2", supplier=supplier)
    build.link(slab, cement, estimated="100", consumed="20")
    build.link(slab, rebar, estimated="100", consumed="20")
    return project, cement, rebar


class TestSimulate:

    def test_report(self, engine_context, tower):
        project, cement, rebar = tower

        report = engine_context.simulate(project.id, Decimal("60"))

        assert report.project_id == project.id
        assert report.current_progress == Decimal("20")
        # both links: 100 * 60% - 20 = 40
        first, second = report.materials
        assert first.material_id == rebar.id
        assert first.projected_stock == Decimal("-10")
        assert first.band == StockBand.CRITICAL
        assert first.order_quantity == Decimal("40")
        assert first.order_cost == Decimal("80")
        assert first.supplier_name == "Acme Supplies"
        assert first.lead_time_days == 4

        assert second.material_id == cement.id
        assert second.band == StockBand.WARNING
        assert not second.needs_order

        assert report.summary.total_materials == 2
        assert report.summary.critical_materials == 1
        assert report.summary.estimated_order_cost == Decimal("80")

    def test_read_only(self, engine_context, session, tower):
        project, cement, _ = tower

        engine_context.simulate(project.id, Decimal("100"))

        session.expire_all()
        assert session.get(MaterialModel, cement.id).stock == Decimal("60")
        assert session.scalar(select(func.count()).select_from(InventoryMovementModel)) == 0
        assert session.scalar(select(func.count()).select_from(AlertModel)) == 0

    def test_current_progress_is_allowed(self, engine_context, tower):
        project, _, _ = tower
        report = engine_context.simulate(project.id, Decimal("20"))
        assert all(m.projected_consumption == Decimal("0") for m in report.materials)

    def test_project_without_assignments(self, engine_context, build):
        project = build.project()
        report = engine_context.simulate(project.id, Decimal("50"))
        assert report.materials == ()
        assert report.summary.estimated_order_cost == Decimal("0")


class TestSimulateValidation:

    def test_below_current_progress(self, engine_context, tower):
        project, _, _ = tower
        with pytest.raises(SimulationBelowCurrentProgressError) as exc_info:
            engine_context.simulate(project.id, Decimal("10"))
        assert exc_info.value.code == "SIMULATION_BELOW_CURRENT_PROGRESS"

    def test_above_100(self, engine_context, tower):
        project, _, _ = tower
        with pytest.raises(InvalidProgressError):
            engine_context.simulate(project.id, Decimal("101"))

    def test_unknown_project(self, engine_context):
        with pytest.raises(ProjectNotFoundError):
            engine_context.simulate(uuid4(), Decimal("50"))
