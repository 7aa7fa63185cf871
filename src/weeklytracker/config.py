"""Runtime configuration models using Pydantic.

Only operational settings live here (paths, logging, storage). KPI targets and
concern thresholds are fixed constants in :mod:`weeklytracker.concerns`.
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator


class PathsConfig(BaseModel):
    """Filesystem locations."""

    logs_dir: str = Field("logs", description="Directory for tracker.log")
    output_dir: str = Field("output", description="Directory for JSON/CSV exports")


class LoggingConfig(BaseModel):
    """Logger settings."""

    level: str = Field("INFO", description="Logging level name")
    file_name: str = Field("tracker.log", description="Log file name inside logs_dir")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v):
        """Accept standard level names in any case."""
        name = str(v).upper()
        if name not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown logging level '{v}'")
        return name


class StorageConfig(BaseModel):
    """Dashboard store settings."""

    database: str = Field("data/dashboards.duckdb", description="DuckDB database file")
    batch_size: int = Field(500, ge=1, description="Maximum rows per insert call")
    history_limit: int = Field(20, ge=1, description="Rows returned by history()")


class TrackerConfig(BaseModel):
    """Complete runtime configuration."""

    paths: PathsConfig = Field(default_factory=PathsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    fiscal_year_label: Optional[str] = Field(None, description="Label used in YTD windows, e.g. 'FY26'")


def load_config(path: str | Path | None = None) -> TrackerConfig:
    """Load and validate a YAML configuration file.

    ``None`` or an empty file yields the defaults. A missing explicit path is an
    error.
    """
    if path is None:
        return TrackerConfig()
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config not found: {p}")
    with open(p, "r", encoding="utf-8") as stream:
        raw = yaml.safe_load(stream) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Config {p} must be a mapping at the top level")
    return TrackerConfig(**raw)
