"""
Configuration Loader (``recurring_config.loader``).

Responsibility
--------------
Loads a YAML file and parses it into the frozen ``recurring_config.schema``
dataclasses.  The single public entry point for runtime config is
``recurring_config.get_active_config()``.

Invariants enforced
-------------------
* Unknown sections and keys raise ``ValueError``; a typo never silently
  falls back to a default.
* Values are type-checked; ``max_workers`` and ``tick_seconds`` must be
  positive, ``horizon_days`` non-negative.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Bad key or value  -> ``ValueError``.
"""

from __future__ import annotations

from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from recurring_config.schema import (
    BatchConfig,
    DatabaseConfig,
    GenerationConfig,
    LoggingConfig,
    RecurringConfig,
    SchedulerConfig,
)

_SECTIONS: dict[str, type] = {
    "database": DatabaseConfig,
    "generation": GenerationConfig,
    "batch": BatchConfig,
    "scheduler": SchedulerConfig,
    "logging": LoggingConfig,
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data


def _check_type(section: str, key: str, value: Any, expected: Any) -> None:
    if expected is bool:
        ok = isinstance(value, bool)
    elif expected is int:
        ok = isinstance(value, int) and not isinstance(value, bool)
    else:
        ok = isinstance(value, str)
    if not ok:
        raise ValueError(
            f"{section}.{key} must be {getattr(expected, '__name__', expected)}, "
            f"got {value!r}"
        )


def parse_section(name: str, data: Any) -> Any:
    """Parse one section mapping into its dataclass."""
    cls = _SECTIONS[name]
    if data is None:
        return cls()
    if not isinstance(data, dict):
        raise ValueError(f"section '{name}' must be a mapping")

    known = {f.name: f for f in fields(cls)}
    unknown = sorted(set(data) - set(known))
    if unknown:
        raise ValueError(f"unknown key(s) in '{name}': {', '.join(unknown)}")

    types = {"bool": bool, "int": int, "str": str}
    for key, value in data.items():
        _check_type(name, key, value, types[known[key].type])
    return cls(**data)


def parse_config(data: dict[str, Any], source: str | None = None) -> RecurringConfig:
    """Parse a whole configuration mapping."""
    unknown = sorted(set(data) - set(_SECTIONS))
    if unknown:
        raise ValueError(f"unknown configuration section(s): {', '.join(unknown)}")

    sections = {name: parse_section(name, data.get(name)) for name in _SECTIONS}
    config = RecurringConfig(**sections, source=source)

    if config.batch.max_workers < 1:
        raise ValueError("batch.max_workers must be >= 1")
    if config.scheduler.tick_seconds < 1:
        raise ValueError("scheduler.tick_seconds must be >= 1")
    if config.scheduler.horizon_days < 0:
        raise ValueError("scheduler.horizon_days must be >= 0")
    return config


def load_config(path: Path) -> RecurringConfig:
    """Load and parse a configuration file."""
    return parse_config(load_yaml_file(path), source=str(path))
