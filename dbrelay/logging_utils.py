"""Structured logging utilities for dbrelay."""
from __future__ import annotations

import json
import logging
import sys
import time
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional

from .config import LOG_TIME_FORMAT

_EXTRA_PREFIX = "_dbr_"


class JsonFormatter(logging.Formatter):
    """Simple JSON formatter for dbrelay logs; timestamps are UTC."""

    converter = time.gmtime

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "timestamp": f"{self.formatTime(record, LOG_TIME_FORMAT)}.{int(record.msecs):03d}Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        for key, value in record.__dict__.items():
            if key.startswith(_EXTRA_PREFIX):
                payload[key[len(_EXTRA_PREFIX):]] = value
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logging(
    name: str = "dbrelay",
    *,
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    max_bytes: int = 20 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """Configure and return a logger with JSON formatting."""

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = JsonFormatter()
    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if log_file:
        rotating = RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count)
        rotating.setFormatter(formatter)
        logger.addHandler(rotating)

    return logger


def log_progress(
    logger: logging.Logger,
    *,
    table: str,
    rows_transferred: int,
    total_rows: int,
    state: str,
    detail: Optional[str] = None,
) -> None:
    """Emit a structured progress log entry."""

    extra = {
        "_dbr_table": table,
        "_dbr_rows_transferred": rows_transferred,
        "_dbr_total_rows": total_rows,
        "_dbr_state": state,
    }
    if detail:
        extra["_dbr_detail"] = detail
    logger.info("progress", extra=extra)
