"""
RecurringConfig schema.

Frozen dataclasses for the engine's runtime settings.  YAML files are
parsed into these types by the loader; callers only ever see the frozen
result of ``recurring_config.get_active_config()``.
"""

from __future__ import annotations

from dataclasses import dataclass, field

# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection settings passed to ``init_engine_from_url``."""

    url: str = "sqlite:///recurring.db"
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800


@dataclass(frozen=True)
class GenerationConfig:
    """Materialization settings."""

    marker: str = " (Recorrente)"  # Suffix on generated entry descriptions


@dataclass(frozen=True)
class BatchConfig:
    """Batch executor settings."""

    max_workers: int = 1  # 1 = sequential, savepoint per template


@dataclass(frozen=True)
class SchedulerConfig:
    """In-process scheduler settings."""

    horizon_days: int = 0  # Generate through today + horizon_days
    tick_seconds: int = 3600


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RecurringConfig:
    """Complete runtime configuration."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    batch: BatchConfig = field(default_factory=BatchConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    source: str | None = None  # Path the configuration was loaded from
