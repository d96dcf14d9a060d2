from __future__ import annotations

import json
import logging
import sys
import uuid
from contextvars import ContextVar
from typing import Any

correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")
# VIN or "year make model" of the run in flight, so browser steps can be grouped per vehicle.
vehicle: ContextVar[str] = ContextVar("vehicle", default="")

# Per-request chatter from the HTTP client and the browser driver.
QUIET_LOGGERS = ("httpx", "httpcore", "asyncio")


def new_correlation_id() -> str:
    return uuid.uuid4().hex[:12]


class JSONFormatter(logging.Formatter):
    """One JSON object per line, tagged with the request and vehicle in scope."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "correlation_id": correlation_id.get(""),
        }
        if vehicle.get(""):
            entry["vehicle"] = vehicle.get("")
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        if hasattr(record, "extra_data"):
            entry["data"] = record.extra_data
        return json.dumps(entry, default=str)


class CorrelationFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id.get("") or "-"
        record.vehicle = vehicle.get("") or "-"
        return True


def configure_logging(level: str = "INFO", fmt: str = "json") -> None:
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for existing in list(root.handlers):
        root.removeHandler(existing)

    handler = logging.StreamHandler(sys.stdout)
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.addFilter(CorrelationFilter())
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)-8s [%(name)s] [%(correlation_id)s %(vehicle)s] %(message)s"
        ))
    root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
