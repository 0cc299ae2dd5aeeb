"""
Module: materials_kernel.db.types
Responsibility: The UTC-normalizing timestamp type and
    the quantity rounding helpers shared by models, engines and services.
Architecture position: Kernel > DB.  May be imported by every layer.  MUST NOT
    import from models/, domain/, services/ or selectors/.

Invariants enforced:
    - No floats for stock, quantities or prices: every such column is
      Numeric(38, 9) mapped to Decimal.
    - Timestamps are always returned timezone-aware in UTC, whatever the
      backend does with tzinfo (SQLite drops it, PostgreSQL keeps it).
"""

from datetime import timezone
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import DateTime
from sqlalchemy.types import TypeDecorator

QUANTITY_DECIMAL_PLACES = 9


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware UTC timestamp that survives backends without tz support.

    Contract:
        Values are converted to UTC and stored naive; on load they come back
        with ``tzinfo=timezone.utc``.  Naive inputs are assumed to be UTC.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def round_quantity(
    value: Decimal,
    decimal_places: int = QUANTITY_DECIMAL_PLACES,
) -> Decimal:
    """Round a quantity half-up to the given number of places."""
    quantize_str = "1" if decimal_places == 0 else "0." + "0" * decimal_places
    return value.quantize(Decimal(quantize_str), rounding=ROUND_HALF_UP)
