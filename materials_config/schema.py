"""
EngineSettings schema.

The typed result of loading a configuration file.  Rule thresholds are the
engines' own ``RuleThresholds`` so the rule set receives them unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from materials_engines.rules import RuleThresholds

DEFAULT_DATABASE_URL = "sqlite:///materials.db"
DEFAULT_LOG_LEVEL = "INFO"


@dataclass(frozen=True)
class EngineSettings:
    """Runtime settings for a ProjectionEngine."""

    database_url: str = DEFAULT_DATABASE_URL
    log_level: str = DEFAULT_LOG_LEVEL
    thresholds: RuleThresholds = field(default_factory=RuleThresholds)
    source: str | None = None
