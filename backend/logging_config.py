"""Logging setup shared by the API, the CLI and the test runner."""
from __future__ import annotations

import logging
from logging.config import dictConfig
from pathlib import Path
from typing import Any, Dict, Union

from backend.runtime import LOGS_DIR, ensure_runtime_directories

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_MAX_BYTES = 5 * 1024 * 1024
LOG_BACKUPS = 3

# loggers whose records also go to upstream.log
UPSTREAM_LOGGERS = ("backend.connectors", "agencyscope.search")


def _coerce_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def _rotating(path: Path, level: int) -> Dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "formatter": "standard",
        "level": level,
        "filename": str(path),
        "maxBytes": LOG_MAX_BYTES,
        "backupCount": LOG_BACKUPS,
        "encoding": "utf-8",
    }


def configure_logging(level: Union[int, str] = logging.INFO) -> Dict[str, Path]:
    """Install console, ``app.log`` and ``upstream.log`` handlers.

    ``level`` accepts an int or a level name such as ``"debug"``; unknown names
    fall back to INFO. Returns the runtime paths plus the two log files.
    """
    level = _coerce_level(level)
    paths = ensure_runtime_directories()
    LOGS_DIR.mkdir(parents=True, exist_ok=True)
    app_log = LOGS_DIR / "app.log"
    upstream_log = LOGS_DIR / "upstream.log"

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"standard": {"format": LOG_FORMAT}},
            "handlers": {
                "console": {"class": "logging.StreamHandler", "formatter": "standard", "level": level},
                "app_file": _rotating(app_log, level),
                "upstream_file": _rotating(upstream_log, level),
            },
            "root": {"handlers": ["console", "app_file"], "level": level},
            "loggers": {
                **{
                    name: {"handlers": ["upstream_file", "app_file", "console"], "level": level, "propagate": False}
                    for name in UPSTREAM_LOGGERS
                },
                # retry chatter from the HTTP adapter
                "urllib3": {"level": max(level, logging.WARNING)},
            },
        }
    )
    return {**paths, "app_log": app_log, "upstream_log": upstream_log}


__all__ = ["configure_logging", "UPSTREAM_LOGGERS"]
