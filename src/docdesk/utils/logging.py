"""Root logger configuration for docdesk processes."""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path

__all__ = ["LOG_FILE_NAME", "resolve_log_dir", "setup_logging"]

LOG_FILE_NAME = "docdesk.log"
LOG_DIR_ENV = "DOCDESK_LOG_DIR"
_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
# transport libraries log every request at INFO/DEBUG
_LIBRARY_LOGGERS = ("asyncio", "httpx", "httpcore")


def resolve_log_dir(log_dir: Path | str | None = None) -> Path:
    """Pick the log directory: explicit argument, then ``DOCDESK_LOG_DIR``, then ``~/.docdesk/logs``."""

    chosen = log_dir or os.environ.get(LOG_DIR_ENV) or Path.home() / ".docdesk" / "logs"
    return Path(chosen).expanduser()


def setup_logging(
    level: int = logging.INFO,
    *,
    log_dir: Path | str | None = None,
    console: bool = True,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
) -> Path:
    """Replace the root handlers with a rotating ``docdesk.log`` and, optionally, stderr.

    Safe to call again when the level changes; previous root handlers are
    closed and dropped. Returns the path of the active log file.
    """

    log_path = resolve_log_dir(log_dir) / LOG_FILE_NAME
    log_path.parent.mkdir(parents=True, exist_ok=True)

    handlers: list[logging.Handler] = [
        RotatingFileHandler(log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
    ]
    if console:
        handlers.append(logging.StreamHandler())
    formatter = logging.Formatter(fmt=_LOG_FORMAT, datefmt=_DATE_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=handlers, force=True)
    library_level = max(level, logging.WARNING)
    for name in _LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)
    return log_path
