"""Process-wide logging for the chatmd watcher.

Records go to ``chatmd.log`` (rotated) and to stderr. The file keeps the full
timestamped layout; the console only shows the level and message so it does
not drown the startup banner.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path

__all__ = ["setup_logging"]

LOG_FILE_NAME = "chatmd.log"
_LOG_DIR_ENV = "CHATMD_LOG_DIR"
_FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_CONSOLE_FORMAT = "%(levelname)s: %(message)s"
_MAX_BYTES = 1_000_000
_BACKUP_COUNT = 3
# Loggers that chatter at DEBUG on every request or filesystem event.
_QUIET_LOGGERS = ("asyncio", "httpx", "httpcore", "openai", "watchdog")

_active_log_path: Path | None = None


def setup_logging(level: int = logging.INFO, *, force: bool = False) -> Path:
    """Install the file and console handlers on the root logger.

    Repeated calls are no-ops unless ``force`` is set, which is how ``--debug``
    coming from the settings file raises the level after startup.
    """

    global _active_log_path
    if _active_log_path is not None and not force:
        return _active_log_path

    log_dir = Path(os.environ.get(_LOG_DIR_ENV) or Path.home() / ".chatmd" / "logs").expanduser()
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / LOG_FILE_NAME

    logging.basicConfig(
        level=level,
        handlers=[_file_handler(log_path, level), _console_handler(level)],
        force=True,
    )
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    _active_log_path = log_path
    return log_path


def _file_handler(path: Path, level: int) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=_MAX_BYTES, backupCount=_BACKUP_COUNT, encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    return handler
