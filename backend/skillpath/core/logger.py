"""Structured JSON logging with request and client correlation.

Auth events are only useful when they can be tied back to a request and a
client, so every record emitted inside a request carries ``request_id``,
``client_ip`` and ``path``. Service modules attach ``user_id``, ``event``,
``reason`` or ``session_id`` through ``extra=``; those keys are copied into
the payload when present.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from flask import Flask, g, has_request_context, request

REQUEST_ID_HEADER = "X-Request-ID"
CORRELATION_HEADERS = ("X-Request-ID", "X-Correlation-ID")

# Record attributes copied into the JSON payload when set via ``extra=``
EXTRA_KEYS = ("endpoint", "elapsed_ms", "user_id", "event", "reason", "session_id")

# Third-party loggers too chatty at INFO
QUIET_LOGGERS = ("werkzeug", "urllib3", "sqlalchemy.engine")


class JSONFormatter(logging.Formatter):
    """Render log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "time": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        client_ip = getattr(record, "client_ip", None)
        if client_ip:
            payload["client_ip"] = client_ip
            payload["path"] = getattr(record, "path", None)
        for key in EXTRA_KEYS:
            if hasattr(record, key):
                payload[key] = getattr(record, key)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class RequestContextFilter(logging.Filter):
    """Stamp records with ``request_id``, ``client_ip`` and ``path``."""

    def filter(self, record: logging.LogRecord) -> bool:
        if has_request_context():
            record.request_id = ensure_request_id()
            record.client_ip = request.remote_addr
            record.path = request.path
        else:
            record.request_id = None
            record.client_ip = None
            record.path = None
        return True


def ensure_request_id() -> str:
    """Return the current request identifier, generating one when necessary.

    Incoming ``X-Request-ID`` / ``X-Correlation-ID`` headers are honoured so a
    gateway can correlate its own logs with ours.
    """

    if not has_request_context():
        return str(uuid4())
    if hasattr(g, "request_id"):
        return g.request_id  # type: ignore[return-value]
    for header in CORRELATION_HEADERS:
        value = request.headers.get(header)
        if value:
            g.request_id = value
            return value
    g.request_id = str(uuid4())
    return g.request_id


def configure_logging(level: str | int = "INFO", *, quiet: Iterable[str] = QUIET_LOGGERS) -> None:
    """Send every record to stdout as JSON and set the root level.

    :param level: Root level name or number.
    :param quiet: Logger names capped at ``WARNING`` regardless of ``level``.
    """

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    handler.addFilter(RequestContextFilter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        level = resolved if isinstance(resolved, int) else logging.INFO
    root.setLevel(level)
    for name in quiet:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def init_app(app: Flask) -> None:
    """Seed the request id and echo it back on every response."""

    app.logger.addFilter(RequestContextFilter())

    @app.before_request
    def _seed_request_id() -> None:
        ensure_request_id()

    @app.after_request
    def _inject_response_header(response):
        response.headers.setdefault(REQUEST_ID_HEADER, ensure_request_id())
        return response


__all__ = ["configure_logging", "init_app", "ensure_request_id", "JSONFormatter"]
