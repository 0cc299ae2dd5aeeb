"""
Module: materials_kernel.db.base
Responsibility: Declarative base shared by every materials table: string
    UUID primary keys, the column type map and the created_at mixin.
Architecture position: Kernel > DB.  Imported by every model module.

Invariants enforced:
    - Primary keys are uuid4 values stored as String(36), so ids look the
      same on SQLite and PostgreSQL.
    - Decimal columns are Numeric(38, 9).  Stock, estimates, consumed
      quantities and unit prices never pass through float.
    - datetime columns are UTCDateTime (tz-aware UTC on load).
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import Integer, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from materials_kernel.db.types import UTCDateTime


class UUIDString(TypeDecorator):
    """
    UUID type stored as String(36) for cross-database portability.

    Guarantees:
        - process_bind_param: UUID -> str on INSERT/UPDATE.
        - process_result_value: str -> UUID on SELECT.
    """

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return None

    def process_result_value(self, value, dialect):
        if value is not None:
            return PyUUID(value)
        return None


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Guarantees:
        - id is always a uuid4-generated UUID stored as String(36).
        - Decimal maps to Numeric(38, 9).
        - datetime maps to UTCDateTime.
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: UTCDateTime(),
        PyUUID: UUIDString(),
        int: Integer,
    }

    id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        primary_key=True,
        default=uuid4,
    )


class TimestampedBase(Base):
    """
    Abstract base carrying a creation timestamp.

    ``created_at`` defaults to the database clock but services pass the
    injected Clock's time explicitly so that date-relative rules (idle stock,
    alert ordering) are deterministic under test.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        server_default=func.now(),
        nullable=False,
    )
