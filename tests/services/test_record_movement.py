"""Tests for direct inventory movements (ProjectionEngine.record_movement)."""

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select

from materials_kernel.domain.values import MovementDirection
from materials_kernel.exceptions import (
    InsufficientStockError,
    InvalidQuantityError,
    MaterialNotFoundError,
)
from materials_kernel.models import BatchModel, InventoryMovementModel, MaterialModel

IN = MovementDirection.IN
OUT = MovementDirection.OUT
ADJUST = MovementDirection.ADJUST


def _ledger(session, material_id):
    session.expire_all()
    return session.execute(
        select(InventoryMovementModel)
        .where(InventoryMovementModel.material_id == material_id)
        .order_by(InventoryMovementModel.occurred_at)
    ).scalars().all()


def _stock(session, material_id):
    session.expire_all()
    return session.get(MaterialModel, material_id).stock


class TestInbound:

    def test_receipt(self, engine_context, session, build, today):
        cement = build.material(stock="10")

        receipt = engine_context.record_movement(
            cement.id, IN, Decimal("25"), "Delivery 1044", responsible="warehouse"
        )

        assert receipt.stock_after == Decimal("35")
        assert receipt.batch_id is None
        assert _stock(session, cement.id) == Decimal("35")
        (movement,) = _ledger(session, cement.id)
        assert movement.id == receipt.movement_id
        assert movement.direction == "in"
        assert movement.reason == "Delivery 1044"
        assert movement.responsible == "warehouse"

    def test_perishable_receipt_opens_batch(self, engine_context, session, build, today):
        glue = build.material("Glue", stock="0", is_perishable=True)
        expiry = today + timedelta(days=90)

        receipt = engine_context.record_movement(
            glue.id, IN, Decimal("12"), "Delivery", batch_code="G-77", expiry_date=expiry
        )

        session.expire_all()
        batch = session.get(BatchModel, receipt.batch_id)
        assert batch.code == "G-77"
        assert batch.remaining_quantity == Decimal("12")
        assert batch.expiry_date == expiry
        assert batch.intake_date == today
        assert batch.is_active

    def test_batch_code_ignored_for_durable_material(self, engine_context, build):
        bricks = build.material("Bricks")
        receipt = engine_context.record_movement(
            bricks.id, IN, Decimal("5"), "Delivery", batch_code="X", expiry_date=date(2030, 1, 1)
        )
        assert receipt.batch_id is None

    def test_positive_adjustment_adds_stock(self, engine_context, session, build):
        sand = build.material("Sand", stock="10")

        engine_context.record_movement(sand.id, ADJUST, Decimal("2"), "Recount")

        assert _stock(session, sand.id) == Decimal("12")
        (movement,) = _ledger(session, sand.id)
        assert movement.direction == "adjust"
        assert movement.quantity == Decimal("2")


class TestOutbound:

    def test_withdrawal_follows_fefo(self, engine_context, session, build, today):
        project = build.project()
        glue = build.material("Glue", stock="20", is_perishable=True)
        late = build.batch(glue, "LATE", "10", expiry_date=today + timedelta(days=60))
        early = build.batch(glue, "EARLY", "10", expiry_date=today + timedelta(days=5))

        withdrawal = engine_context.record_movement(
            glue.id, OUT, Decimal("12"), "Site transfer", project_id=project.id
        )

        assert [d.batch_id for d in withdrawal.draws] == [early.id, late.id]
        assert withdrawal.unbatched_quantity == Decimal("0")
        session.expire_all()
        assert not session.get(BatchModel, early.id).is_active
        assert session.get(BatchModel, late.id).remaining_quantity == Decimal("8")
        assert {m.project_id for m in _ledger(session, glue.id)} == {project.id}

    def test_negative_adjustment_withdraws(self, engine_context, session, build):
        sand = build.material("Sand", stock="10")

        withdrawal = engine_context.record_movement(sand.id, ADJUST, Decimal("-3"), "Breakage")

        assert withdrawal.quantity == Decimal("3")
        assert _stock(session, sand.id) == Decimal("7")
        (movement,) = _ledger(session, sand.id)
        assert movement.direction == "adjust"
        assert movement.quantity == Decimal("-3")

    def test_insufficient_stock_changes_nothing(self, engine_context, session, build, captured_logs):
        sand = build.material("Sand", stock="2")

        with pytest.raises(InsufficientStockError) as exc_info:
            engine_context.record_movement(sand.id, OUT, Decimal("5"), "Transfer")

        assert exc_info.value.code == "INSUFFICIENT_STOCK"
        assert _stock(session, sand.id) == Decimal("2")
        assert _ledger(session, sand.id) == []
        assert any(r["message"] == "withdrawal_insufficient_stock" for r in captured_logs())


class TestValidation:

    def test_zero_quantity(self, engine_context, build):
        sand = build.material("Sand")
        with pytest.raises(InvalidQuantityError):
            engine_context.record_movement(sand.id, ADJUST, Decimal("0"), "Noop")

    @pytest.mark.parametrize("direction", [IN, OUT])
    def test_negative_quantity(self, engine_context, build, direction):
        sand = build.material("Sand")
        with pytest.raises(InvalidQuantityError):
            engine_context.record_movement(sand.id, direction, Decimal("-1"), "Bad")

    def test_unknown_material(self, engine_context):
        with pytest.raises(MaterialNotFoundError):
            engine_context.record_movement(uuid4(), IN, Decimal("1"), "Ghost")
