"""
Pytest fixtures for the materials projection test suite.

Provides:
- A fresh in-memory SQLite database per test (StaticPool, one shared
  connection) with all tables created
- A DeterministicClock and a ProjectionEngine bound to it
- Builders for projects, activities, materials, batches and orders
- Structured log capture
"""

import json
import logging
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from io import StringIO

import pytest
from sqlalchemy.orm import sessionmaker

from materials_kernel.db.engine import build_engine, create_tables, drop_tables
from materials_kernel.domain.clock import DeterministicClock
from materials_kernel.domain.values import DependencyType, MovementDirection
from materials_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from materials_kernel.models import (
    ActivityMaterialModel,
    ActivityModel,
    BatchModel,
    DependencyModel,
    InventoryMovementModel,
    MaterialModel,
    ProjectModel,
    PurchaseOrderLineModel,
    PurchaseOrderModel,
    SupplierModel,
)
from materials_services.engine import ProjectionEngine

# 2024-03-01 12:00 UTC
TEST_NOW = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
TODAY = TEST_NOW.date()


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture materials_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, engine_context):
            engine_context.regenerate_global_alerts()
            logs = captured_logs()
            assert any(r["message"] == "global_alerts_regenerated" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("materials_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def db_engine():
    engine = build_engine("sqlite://")
    create_tables(engine)
    yield engine
    drop_tables(engine)
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, expire_on_commit=False)


@pytest.fixture
def session(session_factory):
    """
    A session for arranging data and reading results.

    Builders commit, so data is visible to ProjectionEngine calls that run
    in their own sessions.  Call ``session.expire_all()`` before reading
    rows an entry point has changed.
    """
    s = session_factory()
    yield s
    s.rollback()
    s.close()


# =============================================================================
# Clock / engine fixtures
# =============================================================================


@pytest.fixture
def clock():
    return DeterministicClock(TEST_NOW)


@pytest.fixture
def engine_context(session_factory, clock):
    return ProjectionEngine(session_factory, clock=clock)


# =============================================================================
# Builders
# =============================================================================


class Builder:
    """Creates and commits rows with sensible defaults."""

    def __init__(self, session, clock):
        self.session = session
        self.clock = clock

    def _save(self, row):
        self.session.add(row)
        self.session.commit()
        return row

    def supplier(self, name="Acme Supplies", lead_time_days=5):
        return self._save(
            SupplierModel(
                name=name,
                lead_time_days=lead_time_days,
                created_at=self.clock.now_utc(),
            )
        )

    def material(
        self,
        name="Cement",
        *,
        stock="100",
        minimum="10",
        supplier=None,
        unit_price="10",
        unit="bag",
        is_critical=False,
        is_perishable=False,
        default_expiry_date=None,
        expiry_warning_days=30,
        created_at=None,
    ):
        return self._save(
            MaterialModel(
                name=name,
                unit=unit,
                supplier_id=supplier.id if supplier is not None else None,
                stock=Decimal(stock),
                minimum_stock=Decimal(minimum),
                unit_price=Decimal(unit_price),
                is_critical=is_critical,
                is_perishable=is_perishable,
                default_expiry_date=default_expiry_date,
                expiry_warning_days=expiry_warning_days,
                created_at=created_at or self.clock.now_utc(),
            )
        )

    def project(self, name="Tower A", *, finish_in_days=20, overall_progress="0"):
        return self._save(
            ProjectModel(
                name=name,
                estimated_finish=self.clock.today() + timedelta(days=finish_in_days),
                overall_progress=Decimal(overall_progress),
                created_at=self.clock.now_utc(),
            )
        )

    def activity(self, project, name="Foundations", *, progress="0", sequence=0):
        return self._save(
            ActivityModel(
                project_id=project.id,
                name=name,
                sequence=sequence,
                planned_progress=Decimal("0"),
                real_progress=Decimal(progress),
                created_at=self.clock.now_utc(),
            )
        )

    def link(self, activity, material, *, estimated="50", consumed="0"):
        return self._save(
            ActivityMaterialModel(
                activity_id=activity.id,
                material_id=material.id,
                estimated_quantity=Decimal(estimated),
                consumed_quantity=Decimal(consumed),
                created_at=self.clock.now_utc(),
            )
        )

    def batch(
        self,
        material,
        code,
        quantity,
        *,
        expiry_date=None,
        intake_date=None,
        is_active=True,
    ):
        return self._save(
            BatchModel(
                material_id=material.id,
                code=code,
                remaining_quantity=Decimal(quantity),
                expiry_date=expiry_date,
                intake_date=intake_date or self.clock.today(),
                is_active=is_active,
                created_at=self.clock.now_utc(),
            )
        )

    def dependency(self, activity, predecessor, dependency_type=DependencyType.FINISH_TO_START):
        return self._save(
            DependencyModel(
                activity_id=activity.id,
                predecessor_id=predecessor.id,
                dependency_type=dependency_type.value,
                wait_days=0,
                created_at=self.clock.now_utc(),
            )
        )

    def order(self, supplier, material, unit_price, *, issued_at, status="issued", quantity="10"):
        order = PurchaseOrderModel(
            supplier_id=supplier.id,
            status=status,
            issued_at=issued_at,
            created_at=self.clock.now_utc(),
        )
        self.session.add(order)
        self.session.flush()
        self.session.add(
            PurchaseOrderLineModel(
                order_id=order.id,
                material_id=material.id,
                quantity=Decimal(quantity),
                unit_price=Decimal(unit_price),
                created_at=self.clock.now_utc(),
            )
        )
        self.session.commit()
        return order

    def movement(self, material, *, occurred_at, quantity="1", direction=MovementDirection.IN):
        return self._save(
            InventoryMovementModel(
                material_id=material.id,
                direction=direction.value,
                quantity=Decimal(quantity),
                reason="test",
                occurred_at=occurred_at,
            )
        )


@pytest.fixture
def build(session, clock):
    return Builder(session, clock)


@pytest.fixture
def today() -> date:
    return TODAY
