"""Structured local logging for the render engine and CLI."""

from __future__ import annotations

import json
import logging
import logging.handlers
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .config import config_path

_LOGGER_NAME = "cardforge"
_LEVEL_ENV = "CARDFORGE_LOG_LEVEL"

# Structured fields copied from ``extra=`` into the JSON payload when present.
_EXTRA_FIELDS = ("event", "phase", "duration_ms", "path", "effect", "format")


def log_dir() -> Path:
    path = config_path().parent / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


class JsonFormatter(logging.Formatter):
    """One JSON object per line; render timings and asset paths ride along."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts_utc": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for name in _EXTRA_FIELDS:
            if hasattr(record, name):
                payload[name] = getattr(record, name)
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)


def _env_level(default: int) -> int:
    raw = os.environ.get(_LEVEL_ENV, "").strip().upper()
    if not raw:
        return default
    level = logging.getLevelName(raw)
    return level if isinstance(level, int) else default


def configure_logging(
    keep_files: int = 7,
    console: bool = True,
    level: int = logging.INFO,
    directory: Path | None = None,
) -> logging.Logger:
    """Install file (and optionally stderr) handlers on the ``cardforge`` logger once.

    ``CARDFORGE_LOG_LEVEL`` overrides ``level`` when set to a level name.
    """
    logger = logging.getLogger(_LOGGER_NAME)
    if logger.handlers:
        return logger

    logger.setLevel(_env_level(level))
    path = (directory or log_dir()) / "cardforge.log"
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.TimedRotatingFileHandler(
        filename=str(path),
        when="midnight",
        backupCount=max(2, keep_files),
        encoding="utf-8",
    )
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)

    if console:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(logging.Formatter("%(levelname)s %(name)s %(message)s"))
        logger.addHandler(stream_handler)

    logger.info(f"logging configured at {path}", extra={"event": "logging_configured", "path": str(path)})
    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    if not name:
        return logging.getLogger(_LOGGER_NAME)
    return logging.getLogger(f"{_LOGGER_NAME}.{name}")
