"""
materials_config -- single public entrypoint for engine configuration.

Responsibility:
    Provides the ONLY way to obtain settings at runtime through
    ``get_active_config()``.  No other component reads configuration files
    or environment variables directly.

Architecture position:
    Configuration -- sits above ``materials_kernel`` and
    ``materials_engines`` and below ``materials_services``.  The kernel
    MUST NEVER import from ``materials_config``.

Failure modes:
    - ``ConfigurationError`` -- missing file, malformed YAML, unknown keys
      or threshold values the rule set rejects.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``MATERIALS_CONFIG_TRACE`` log entry naming the source file and the
    effective thresholds.
"""

from __future__ import annotations

import dataclasses
import logging
import os
from pathlib import Path

from materials_config.loader import load_settings, parse_settings
from materials_config.schema import EngineSettings

_logger = logging.getLogger("materials_kernel.config")

CONFIG_ENV_VAR = "MATERIALS_CONFIG"

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(path: Path | str | None = None) -> EngineSettings:
    """The ONLY public configuration entrypoint.

    Resolution order: the ``path`` argument, then the ``MATERIALS_CONFIG``
    environment variable, then the packaged ``defaults.yaml``.

    Raises:
        ConfigurationError: If the file cannot be loaded or validated.
    """
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH
    settings = load_settings(Path(path))

    _logger.info(
        "MATERIALS_CONFIG_TRACE",
        extra={
            "trace_type": "MATERIALS_CONFIG_TRACE",
            "source": settings.source,
            "log_level": settings.log_level,
            "thresholds": dataclasses.asdict(settings.thresholds),
        },
    )
    return settings


__all__ = [
    "CONFIG_ENV_VAR",
    "DEFAULT_CONFIG_PATH",
    "EngineSettings",
    "get_active_config",
    "parse_settings",
]
