"""JSON logging for scans, tagged with the network and wallet being scanned."""

from __future__ import annotations

import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import IO, Any, Dict, Optional

from ..config.settings import MonitoringConfig, get_app_config

_SCAN_ID: ContextVar[str] = ContextVar("scan_id", default="-")
_configured = False

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_FIELDS = frozenset(logging.makeLogRecord({}).__dict__) | {"correlation_id"}


def scan_correlation_id(network: str, owner: str) -> str:
    """Short tag for one network scan, e.g. ``Ethereum:0xAbCd1234``."""

    return f"{network}:{owner[:10]}"


def current_correlation_id() -> str:
    return _SCAN_ID.get()


@contextmanager
def correlation_scope(correlation_id: Optional[str]):
    token = _SCAN_ID.set(correlation_id or "-")
    try:
        yield
    finally:
        _SCAN_ID.reset(token)


class _ScanTagFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = current_correlation_id()
        return True


class StructuredFormatter(logging.Formatter):
    """One JSON object per record.

    Batch workers log from pool threads, so the thread name is kept next to
    the scan tag.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", "-"),
        }
        extras = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_FIELDS and not key.startswith("_")
        }
        if extras:
            payload["extra"] = extras
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(config: Optional[MonitoringConfig] = None, stream: Optional[IO[str]] = None) -> None:
    """Install the JSON handler on the root logger, once per process.

    Logs default to stderr; stdout carries the event table and summary.
    """

    global _configured
    if _configured:
        return
    cfg = config or get_app_config().monitoring
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter())
    handler.addFilter(_ScanTagFilter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, cfg.log_level.upper(), logging.INFO))
    logging.captureWarnings(True)
    _configured = True


def get_logger(name: str) -> logging.Logger:
    if not _configured:
        configure_logging()
    return logging.getLogger(name)


__all__ = [
    "StructuredFormatter",
    "configure_logging",
    "correlation_scope",
    "current_correlation_id",
    "get_logger",
    "scan_correlation_id",
]
