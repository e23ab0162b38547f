"""JSON logging with request correlation and bearer-token redaction."""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from flask import Flask, g, has_request_context, request

REQUEST_ID_HEADER = "X-Request-ID"
REQUEST_ID_ENVIRON_KEY = "authlane.request_id"
CORRELATION_HEADERS = (REQUEST_ID_HEADER, "X-Correlation-ID")

# ``extra=`` keys copied onto the JSON line when present
EXTRA_KEYS = ("event", "guard", "principal_id", "kind", "endpoint", "elapsed_ms")

_BEARER_VALUE = re.compile(r"(Bearer\s+)\S+", re.I)


def redact(message: str) -> str:
    """Replace bearer credentials in ``message`` with ``[redacted]``."""
    return _BEARER_VALUE.sub(r"\1[redacted]", message)


class JSONFormatter(logging.Formatter):
    """One JSON object per record; unknown ``extra=`` keys are dropped."""

    def format(self, record: logging.LogRecord) -> str:
        line: dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, UTC).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "name": record.name,
            "message": redact(record.getMessage()),
            "request_id": getattr(record, "request_id", None),
        }
        line.update({key: getattr(record, key) for key in EXTRA_KEYS if hasattr(record, key)})
        if record.exc_info:
            line["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(line, default=str)


class RequestIdFilter(logging.Filter):
    """Stamp ``request_id`` and, once authenticated, ``guard``/``principal_id``."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not has_request_context():
            record.request_id = None
            return True
        record.request_id = ensure_request_id()
        if not hasattr(record, "guard") and "auth_guard" in g:
            record.guard = g.auth_guard
        principal = g.get("principal")
        if not hasattr(record, "principal_id") and principal is not None:
            record.principal_id = str(principal.id)
        return True


def ensure_request_id() -> str:
    """
    Return the request's correlation id, adopting an incoming header if any.

    The id lives in the WSGI environ, so it never outlives its request even
    when an app context is reused across requests.
    """
    if not has_request_context():
        return str(uuid4())
    environ = request.environ
    if REQUEST_ID_ENVIRON_KEY not in environ:
        incoming = (request.headers.get(name) for name in CORRELATION_HEADERS)
        environ[REQUEST_ID_ENVIRON_KEY] = next((v for v in incoming if v), None) or str(uuid4())
    return environ[REQUEST_ID_ENVIRON_KEY]


def configure_logging(level: str | int = "INFO") -> None:
    """Send root logging to stdout as JSON at ``level``."""
    if isinstance(level, str):
        level = logging.getLevelNamesMapping().get(level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    handler.addFilter(RequestIdFilter())

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)


def init_app(app: Flask) -> None:
    """Seed a request id per request and echo it back in ``X-Request-ID``."""
    app.logger.addFilter(RequestIdFilter())

    @app.before_request
    def _seed_request_id() -> None:
        ensure_request_id()

    @app.after_request
    def _echo_request_id(response):
        response.headers.setdefault(REQUEST_ID_HEADER, ensure_request_id())
        return response


__all__ = ["configure_logging", "ensure_request_id", "init_app", "redact"]
