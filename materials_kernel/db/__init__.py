"""Database infrastructure for the materials kernel."""

from materials_kernel.db.base import Base, TimestampedBase, UUIDString
from materials_kernel.db.engine import (
    build_engine,
    create_tables,
    drop_tables,
    session_scope,
)
from materials_kernel.db.types import UTCDateTime

__all__ = [
    "Base",
    "TimestampedBase",
    "UUIDString",
    "UTCDateTime",
    "build_engine",
    "session_scope",
    "create_tables",
    "drop_tables",
]
