from __future__ import annotations

import json
import logging
import sys
import time
import uuid
from datetime import datetime, timezone
from typing import Any

from flask import Flask, g, request

# Session fields first, then the per-request fields set by install_request_logging.
_SESSION_KEYS = (
    "employee_id",
    "company_id",
    "session_id",
    "site_id",
    "transition",
    "operation",
    "status",
    "duplicate_ids",
    "distance_meters",
    "radius_meters",
)
_REQUEST_KEYS = ("request_id", "method", "path", "status_code", "latency_ms")


class JsonFormatter(logging.Formatter):
    """One JSON object per line; only known ``extra`` keys are emitted."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(
            (key, getattr(record, key))
            for key in _SESSION_KEYS + _REQUEST_KEYS
            if getattr(record, key, None) is not None
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(level: str = "INFO") -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    logging.basicConfig(level=level, handlers=[handler], force=True)


def install_request_logging(app: Flask, logger_name: str = "timeclock.request") -> None:
    """Log one line per request and echo ``X-Request-Id`` back to the caller."""
    request_logger = logging.getLogger(logger_name)

    @app.before_request
    def _start_timer():
        g.request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
        g.request_started = time.perf_counter()

    @app.after_request
    def _log_request(response):
        started = g.get("request_started")
        latency_ms = round((time.perf_counter() - started) * 1000, 2) if started is not None else None
        request_logger.info(
            "request",
            extra={
                "request_id": g.get("request_id"),
                "method": request.method,
                "path": request.path,
                "status_code": response.status_code,
                "latency_ms": latency_ms,
            },
        )
        if g.get("request_id"):
            response.headers["X-Request-Id"] = g.request_id
        return response
