"""Centralized logging bootstrap for gridsync.

The TUI owns the terminal for the whole run, so records go to a rotating
file only. cli.main prints the file's path on exit.

Environment:
    GRIDSYNC_LOG_LEVEL  level name, default INFO
    GRIDSYNC_LOG_FILE   exact file path (wins over GRIDSYNC_LOG_DIR)
    GRIDSYNC_LOG_DIR    directory for per-run files, default ~/.local/share/gridsync/logs

// [LAW:single-enforcer] Logger handler wiring is enforced in this module only.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path

_ROOT_LOGGER = "gridsync"
_MAX_BYTES = 20 * 1024 * 1024
_BACKUPS = 5
_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


@dataclass(frozen=True)
class LoggingRuntime:
    """What configure() set up: the effective level and the file written to."""

    level_name: str
    level: int
    file_path: str


_runtime: LoggingRuntime | None = None


def _level_from_env() -> tuple[str, int]:
    name = os.environ.get("GRIDSYNC_LOG_LEVEL", "").strip().upper() or "INFO"
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        name, level = "INFO", logging.INFO
    return name, level


def _file_stem(session_name: str) -> str:
    stem = "".join(ch if ch.isalnum() or ch in "-_" else "-" for ch in session_name)
    return stem.strip("-_") or _ROOT_LOGGER


def _log_file(session_name: str) -> Path:
    explicit = os.environ.get("GRIDSYNC_LOG_FILE")
    if explicit:
        return Path(explicit)
    log_dir = Path(os.environ.get("GRIDSYNC_LOG_DIR") or Path.home() / ".local/share/gridsync/logs")
    started = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    return log_dir / f"{_file_stem(session_name)}-{started}-{os.getpid()}.log"


def configure(session_name: str = _ROOT_LOGGER) -> LoggingRuntime:
    """Send the gridsync logger hierarchy to a rotating per-run file.

    Idempotent: a second call returns the first call's runtime unchanged.
    """
    global _runtime
    if _runtime is not None:
        return _runtime

    level_name, level = _level_from_env()
    path = _log_file(session_name)
    path.parent.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(path, maxBytes=_MAX_BYTES, backupCount=_BACKUPS, encoding="utf-8")
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S"))

    logger = logging.getLogger(_ROOT_LOGGER)
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    logging.captureWarnings(True)

    _runtime = LoggingRuntime(level_name=level_name, level=level, file_path=str(path))
    return _runtime


def reset_for_tests() -> None:
    """Drop configured handlers so configure() can run again."""
    global _runtime
    logger = logging.getLogger(_ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    _runtime = None
