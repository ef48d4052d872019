"""
Structured logging setup

Call setup_logging() once at startup; modules then use:

    from lotflow.logging_config import get_logger
    logger = get_logger(__name__)
    logger.info("Lot migrated", extra={"dashboard_id": ..., "lot_id": ...})

LOG_FORMAT=json emits one JSON object per line with any `extra` fields
merged in; LOG_FORMAT=text emits plain formatted lines.
"""
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from lotflow.core.settings import get_settings

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Attributes every LogRecord has; anything else came in through `extra=`
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """Render a record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, ensure_ascii=False)


def setup_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> None:
    """Configure the root logger from settings (idempotent)."""
    settings = get_settings()
    level_name = (level or settings.LOG_LEVEL or "INFO").upper()
    fmt = (fmt or settings.LOG_FORMAT or "json").lower()

    formatter: logging.Formatter
    if fmt == "json":
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(TEXT_FORMAT, DATE_FORMAT)

    root = logging.getLogger()
    root.setLevel(level_name)

    # Remove handlers from a previous setup_logging() call
    for handler in list(root.handlers):
        if getattr(handler, "_lotflow_handler", False):
            root.removeHandler(handler)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)
    stream_handler._lotflow_handler = True  # type: ignore[attr-defined]
    root.addHandler(stream_handler)

    if settings.LOG_FILE:
        log_path = Path(settings.LOG_FILE)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        file_handler._lotflow_handler = True  # type: ignore[attr-defined]
        root.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
