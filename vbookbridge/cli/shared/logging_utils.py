"""Loguru helpers for consistent console and file logging in CLI commands."""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

from vbookbridge.config.loader import get_data_dir

_SINK_IDS: dict[str, int] = {}


def get_log_dir() -> Path:
    return get_data_dir() / "logs"


def ensure_rotating_log_file(name: str, level: str = "INFO") -> Path:
    """Ensure a rotating log sink for the given command name."""
    log_path = get_log_dir() / f"{name}.log"
    if name in _SINK_IDS:
        return log_path
    log_path.parent.mkdir(parents=True, exist_ok=True)
    sink_id = logger.add(
        str(log_path),
        level=level,
        rotation="10 MB",
        retention="14 days",
        enqueue=True,
        encoding="utf-8",
        backtrace=False,
        diagnose=False,
    )
    _SINK_IDS[name] = sink_id
    return log_path


def configure_logging(command: str, verbose: bool = False) -> Path:
    """Replace loguru's default sink with a quiet stderr sink plus a per-command log file."""
    logger.remove()
    _SINK_IDS.clear()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING", colorize=True)
    return ensure_rotating_log_file(command, level="DEBUG" if verbose else "INFO")
