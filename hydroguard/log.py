"""Package logger for HydroGuard.

All modules log through one logger:
    from hydroguard.log import logger

Records go to <home>/hydroguard.log, where <home> is $HYDROGUARD_HOME or
~/.hydroguard. The file rotates at 5 MB and keeps 3 backups.
HYDROGUARD_LOG_LEVEL sets the threshold (default DEBUG). Nothing reaches the
terminal unless HYDROGUARD_LOG_STDERR is set.
"""

from __future__ import annotations

import logging
import os
import sys
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOGGER_NAME = "hydroguard"
LOG_FILENAME = "hydroguard.log"

_MAX_BYTES = 5 * 1024 * 1024
_BACKUP_COUNT = 3
_FORMAT = "%(asctime)s [%(levelname)s] %(name)s.%(funcName)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_configure_lock = threading.Lock()


def get_home_dir() -> Path:
    """Return the HydroGuard state directory, creating it if needed."""
    override = os.environ.get("HYDROGUARD_HOME")
    home = Path(override) if override else Path.home() / ".hydroguard"
    home.mkdir(parents=True, exist_ok=True)
    return home


def level_from_env(default: int = logging.DEBUG) -> int:
    name = os.environ.get("HYDROGUARD_LOG_LEVEL", "").strip().upper()
    if not name:
        return default
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else default


def _file_handler() -> logging.Handler:
    try:
        path = get_home_dir() / LOG_FILENAME
        return RotatingFileHandler(
            str(path), maxBytes=_MAX_BYTES, backupCount=_BACKUP_COUNT, encoding="utf-8"
        )
    except OSError as exc:
        # Read-only home: logging calls stay harmless
        sys.stderr.write(f"hydroguard: WARNING: could not open log file ({exc}), file logging disabled\n")
        return logging.NullHandler()


def configure(level: int | None = None) -> logging.Logger:
    """Attach handlers to the package logger on first call; later calls only change the level."""
    log = logging.getLogger(LOGGER_NAME)
    with _configure_lock:
        log.setLevel(level if level is not None else level_from_env())
        if log.handlers:
            return log

        log.propagate = False
        formatter = logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT)
        handlers = [_file_handler()]
        if os.environ.get("HYDROGUARD_LOG_STDERR"):
            handlers.append(logging.StreamHandler(sys.stderr))
        for handler in handlers:
            handler.setFormatter(formatter)
            log.addHandler(handler)
    return log


logger = configure()
