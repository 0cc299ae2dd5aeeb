"""
Module: materials_engines
Responsibility:
    Package entrypoint that re-exports the pure calculation engines.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import materials_kernel domain values and logging (and
    sibling engine modules).
    MUST NOT import materials_services or materials_config.

Invariants enforced:
    - Purity: engines never read the clock; ``today`` and ``now`` are
      explicit parameters.
    - Decimal-only arithmetic for quantities and money.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from materials_engines import ConsumptionProjector, FefoAllocator
    from materials_engines import AlertRules, RuleThresholds, WhatIfSimulator
"""

from materials_engines.dependencies import (
    BlockingResult,
    DependencyAnalyzer,
    edge_blocks,
)
from materials_engines.fefo import FefoAllocator, FefoPlan, LotDraw, fefo_sort_key
from materials_engines.projection import (
    ConsumptionProjector,
    days_of_stock,
    days_remaining,
    link_pending_quantity,
)
from materials_engines.rules import (
    AlertDraft,
    AlertRules,
    RuleThresholds,
    urgency_level,
)
from materials_engines.simulation import (
    MaterialProjection,
    SimulationReport,
    SimulationSummary,
    WhatIfSimulator,
)
from materials_engines.tracer import traced_engine

__all__ = [
    "AlertDraft",
    "AlertRules",
    "BlockingResult",
    "ConsumptionProjector",
    "DependencyAnalyzer",
    "FefoAllocator",
    "FefoPlan",
    "LotDraw",
    "MaterialProjection",
    "RuleThresholds",
    "SimulationReport",
    "SimulationSummary",
    "WhatIfSimulator",
    "days_of_stock",
    "days_remaining",
    "edge_blocks",
    "fefo_sort_key",
    "link_pending_quantity",
    "traced_engine",
    "urgency_level",
]
