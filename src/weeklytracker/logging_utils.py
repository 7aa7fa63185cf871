"""Logging setup and step timing for tracker runs.

All modules log under the ``weeklytracker`` logger hierarchy; ``get_logger``
attaches a console handler and a file handler in the configured logs directory
to the root of that hierarchy. If the file handler cannot be attached, logging
continues on the console only.
"""
from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Dict

from .config import TrackerConfig


SYSTEM_FMT = "[%(asctime)s] [%(levelname)s] %(message)s"
ROOT_LOGGER = "weeklytracker"


def _ensure_logs_dir(config: TrackerConfig) -> Path:
    logs_dir = Path(config.paths.logs_dir).expanduser().resolve()
    logs_dir.mkdir(parents=True, exist_ok=True)
    return logs_dir


def _safe_add_file_handler(logger: logging.Logger, path: Path, fmt: str, level: int) -> None:
    try:
        fh = logging.FileHandler(path, encoding="utf-8")
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter(fmt))
        logger.addHandler(fh)
    except OSError as exc:  # pragma: no cover - filesystem dependent
        logger.warning("[WARNING] Failed to attach file handler %s (%s)", str(path), exc)


def get_logger(config: TrackerConfig) -> logging.Logger:
    """Return the ``weeklytracker`` logger with console + file handlers."""
    level = getattr(logging, config.logging.level, logging.INFO)
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    # Reset handlers to avoid duplication across repeated initializations
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers = []

    sh = logging.StreamHandler()
    sh.setLevel(level)
    sh.setFormatter(logging.Formatter(SYSTEM_FMT))
    logger.addHandler(sh)

    try:
        logs_dir = _ensure_logs_dir(config)
    except OSError as exc:  # pragma: no cover - filesystem dependent
        logger.warning("[WARNING] Logs directory unavailable (%s); console only", exc)
        return logger
    _safe_add_file_handler(logger, logs_dir / config.logging.file_name, SYSTEM_FMT, level)
    return logger


def start_phase_timer(step_name: str) -> float:
    return time.perf_counter()


def end_phase_timer(step_name: str, start_time: float, timing_dict: Dict[str, float], logger: logging.Logger) -> float:
    """Record the elapsed time of ``step_name`` and log it."""
    elapsed = time.perf_counter() - float(start_time)
    timing_dict[step_name] = elapsed
    logger.info("%s completed in %.2f seconds", step_name, elapsed)
    return elapsed
