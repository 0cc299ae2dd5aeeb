"""Snapshot factories for the pure engine tests."""

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from materials_kernel.domain.dtos import (
    ActivityMaterialSnapshot,
    BatchSnapshot,
    MaterialSnapshot,
)


@pytest.fixture
def make_material():
    def _make(
        name="Cement",
        *,
        stock="100",
        minimum="10",
        lead_time_days=5,
        unit_price="10",
        is_critical=False,
        is_perishable=False,
        default_expiry_date=None,
        expiry_warning_days=30,
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        material_id=None,
    ):
        return MaterialSnapshot(
            material_id=material_id or uuid4(),
            name=name,
            unit="bag",
            stock=Decimal(stock),
            minimum_stock=Decimal(minimum),
            unit_price=Decimal(unit_price),
            is_critical=is_critical,
            is_perishable=is_perishable,
            supplier_id=uuid4() if lead_time_days is not None else None,
            supplier_name="Acme" if lead_time_days is not None else None,
            lead_time_days=lead_time_days,
            default_expiry_date=default_expiry_date,
            expiry_warning_days=expiry_warning_days,
            created_at=created_at,
        )

    return _make


@pytest.fixture
def make_link():
    def _make(
        material_id,
        *,
        estimated="100",
        consumed="0",
        progress="0",
        activity_id=None,
        activity_name="Slab",
        material_name="Cement",
    ):
        return ActivityMaterialSnapshot(
            link_id=uuid4(),
            activity_id=activity_id or uuid4(),
            activity_name=activity_name,
            activity_progress=Decimal(progress),
            material_id=material_id,
            material_name=material_name,
            estimated_quantity=Decimal(estimated),
            consumed_quantity=Decimal(consumed),
        )

    return _make


@pytest.fixture
def make_batch():
    def _make(
        material_id,
        code,
        remaining,
        *,
        expiry_date=None,
        intake_date=date(2024, 1, 1),
        is_active=True,
    ):
        return BatchSnapshot(
            batch_id=uuid4(),
            material_id=material_id,
            code=code,
            remaining_quantity=Decimal(remaining),
            expiry_date=expiry_date,
            intake_date=intake_date,
            is_active=is_active,
        )

    return _make
