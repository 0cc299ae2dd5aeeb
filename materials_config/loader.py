"""
Configuration Loader (``materials_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into ``EngineSettings``.  Callers
go through ``materials_config.get_active_config()``.

Invariants enforced
-------------------
* Unknown keys are rejected, so a misspelled threshold never silently
  falls back to its default.
* Numeric thresholds are parsed through ``str`` into ``Decimal`` / ``int``.

Failure modes
-------------
* Missing file, malformed YAML, unknown keys or invalid values all raise
  ``ConfigurationError`` naming the source file.
"""

from __future__ import annotations

import dataclasses
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from materials_config.schema import DEFAULT_DATABASE_URL, DEFAULT_LOG_LEVEL, EngineSettings
from materials_engines.rules import RuleThresholds
from materials_kernel.exceptions import ConfigurationError

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_TOP_LEVEL_KEYS = {"database_url", "log_level", "thresholds"}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        ConfigurationError: if the file is missing, unreadable, not valid
            YAML, or does not hold a mapping.
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except OSError as exc:
        raise ConfigurationError(f"cannot read configuration: {exc}", source=str(path)) from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"invalid YAML: {exc}", source=str(path)) from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError("top level must be a mapping", source=str(path))
    return data


def parse_thresholds(data: dict[str, Any], source: str | None = None) -> RuleThresholds:
    """Parse a ``thresholds`` mapping into RuleThresholds."""
    fields = {f.name: f for f in dataclasses.fields(RuleThresholds)}
    unknown = sorted(set(data) - set(fields))
    if unknown:
        raise ConfigurationError(f"unknown thresholds: {', '.join(unknown)}", source=source)

    values: dict[str, Any] = {}
    for name, raw in data.items():
        default = fields[name].default
        try:
            if isinstance(default, Decimal):
                values[name] = Decimal(str(raw))
            elif isinstance(raw, bool) or int(raw) != raw:
                raise ValueError(f"{raw!r} is not an integer")
            else:
                values[name] = int(raw)
        except (InvalidOperation, TypeError, ValueError) as exc:
            raise ConfigurationError(f"threshold {name}: {exc}", source=source) from exc

    try:
        return RuleThresholds(**values)
    except ValueError as exc:
        raise ConfigurationError(str(exc), source=source) from exc


def parse_settings(data: dict[str, Any], source: str | None = None) -> EngineSettings:
    """
    Parse a settings dict into EngineSettings.

    Missing keys take their defaults.
    """
    unknown = sorted(set(data) - _TOP_LEVEL_KEYS)
    if unknown:
        raise ConfigurationError(f"unknown settings: {', '.join(unknown)}", source=source)

    log_level = str(data.get("log_level", DEFAULT_LOG_LEVEL)).upper()
    if log_level not in _LOG_LEVELS:
        raise ConfigurationError(f"unknown log_level {log_level!r}", source=source)

    thresholds_data = data.get("thresholds") or {}
    if not isinstance(thresholds_data, dict):
        raise ConfigurationError("thresholds must be a mapping", source=source)

    return EngineSettings(
        database_url=str(data.get("database_url", DEFAULT_DATABASE_URL)),
        log_level=log_level,
        thresholds=parse_thresholds(thresholds_data, source),
        source=source,
    )


def load_settings(path: Path) -> EngineSettings:
    """Load and parse one settings file."""
    return parse_settings(load_yaml_file(path), source=str(path))
