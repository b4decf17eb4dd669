"""
recurring_config -- single public entrypoint for runtime configuration.

Responsibility:
    ``get_active_config()`` is the ONLY way components obtain settings.  It
    reads the packaged ``defaults.yaml`` unless a path is given or the
    ``RECURRING_CONFIG`` environment variable names another file, and lets
    ``DATABASE_URL`` override ``database.url``.

Architecture position:
    Configuration -- sits above ``recurring_kernel``.  The kernel MUST NEVER
    import from ``recurring_config``; callers pass the relevant values
    (marker, max_workers, ...) into kernel and batch constructors.

Failure modes:
    - ``FileNotFoundError`` -- the configured file does not exist.
    - ``ValueError`` -- unknown keys or bad values.
"""

from __future__ import annotations

import os
from dataclasses import replace
from pathlib import Path

from recurring_config.loader import load_config
from recurring_config.schema import (
    BatchConfig,
    DatabaseConfig,
    GenerationConfig,
    LoggingConfig,
    RecurringConfig,
    SchedulerConfig,
)
from recurring_kernel.logging_config import get_logger

logger = get_logger("config")

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"

CONFIG_ENV_VAR = "RECURRING_CONFIG"
DATABASE_URL_ENV_VAR = "DATABASE_URL"

_active: RecurringConfig | None = None


def get_active_config(path: Path | str | None = None) -> RecurringConfig:
    """The ONLY public configuration entrypoint.

    The result is cached after the first call without an explicit path;
    ``reset()`` clears the cache.

    Args:
        path: Explicit configuration file.  Bypasses the cache.
    """
    global _active
    if path is None and _active is not None:
        return _active

    if path is not None:
        source = Path(path)
    elif os.environ.get(CONFIG_ENV_VAR):
        source = Path(os.environ[CONFIG_ENV_VAR])
    else:
        source = DEFAULTS_PATH

    config = load_config(source)
    database_url = os.environ.get(DATABASE_URL_ENV_VAR)
    if database_url:
        config = replace(config, database=replace(config.database, url=database_url))

    logger.info(
        "recurring_config_loaded",
        extra={
            "config_source": str(source),
            "database_dialect": config.database.url.split(":", 1)[0],
            "max_workers": config.batch.max_workers,
        },
    )

    if path is None:
        _active = config
    return config


def reset() -> None:
    """Forget the cached configuration. FOR TESTING ONLY."""
    global _active
    _active = None


__all__ = [
    "BatchConfig",
    "DatabaseConfig",
    "GenerationConfig",
    "LoggingConfig",
    "RecurringConfig",
    "SchedulerConfig",
    "get_active_config",
    "reset",
]
