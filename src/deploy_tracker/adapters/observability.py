"""Process logging setup: console plus a size-capped rotating file."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler

from deploy_tracker.config import TrackerSettings, load_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

_CONFIGURED = False


def _level(name: str, default: int) -> int:
    value = logging.getLevelName(name)
    return value if isinstance(value, int) else default


def configure_runtime_logging(settings: TrackerSettings | None = None) -> None:
    """Attach handlers to the root logger once per process."""
    global _CONFIGURED
    if _CONFIGURED:
        return
    resolved = settings or load_settings()

    resolved.log_path.parent.mkdir(parents=True, exist_ok=True)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    file_handler = RotatingFileHandler(
        filename=resolved.log_path,
        maxBytes=resolved.log_max_bytes,
        backupCount=resolved.log_backup_count,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(_level(resolved.log_level, logging.INFO))
    root.handlers.clear()
    root.addHandler(stream_handler)
    root.addHandler(file_handler)
    logging.getLogger("uvicorn.access").setLevel(
        _level(resolved.access_log_level, logging.WARNING)
    )
    _CONFIGURED = True
