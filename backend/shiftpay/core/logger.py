"""JSON logging to stdout, correlated by request id."""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from flask import Flask, Response, g, has_request_context, request

REQUEST_ID_HEADER = "X-Request-ID"
CORRELATION_HEADERS = (REQUEST_ID_HEADER, "X-Correlation-ID")

# Client-supplied ids are echoed into logs and headers; keep them tame
_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")

# ``extra=`` keys copied into the JSON line
EXTRA_KEYS = ("endpoint", "method", "path", "status", "elapsed_ms")

# Masked even when a caller passes them as extras
REDACTED_KEYS = frozenset({"password", "access_token", "refresh_token", "authorization"})


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        line: dict[str, Any] = {
            "time": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        line.update({k: getattr(record, k) for k in EXTRA_KEYS if hasattr(record, k)})
        line.update({k: "***" for k in REDACTED_KEYS if hasattr(record, k)})
        if record.exc_info:
            line["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(line, default=str)


class RequestIdFilter(logging.Filter):
    """Stamp ``record.request_id`` (``None`` outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = ensure_request_id() if has_request_context() else None
        return True


def _incoming_request_id() -> str | None:
    for header in CORRELATION_HEADERS:
        value = request.headers.get(header, "").strip()
        if value and _REQUEST_ID_PATTERN.match(value):
            return value
    return None


def ensure_request_id() -> str:
    """Return the id of the current request, creating it on first use.

    A well-formed ``X-Request-ID`` or ``X-Correlation-ID`` from the client is
    reused; anything else gets a fresh UUID4. Outside a request every call
    returns a new UUID4.
    """
    if not has_request_context():
        return str(uuid4())
    request_id = g.get("request_id")
    if request_id is None:
        request_id = _incoming_request_id() or str(uuid4())
        g.request_id = request_id
    return request_id


def configure_logging(level: str | int = "INFO") -> None:
    """Replace the root handlers with a single JSON stdout handler."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    handler.addFilter(RequestIdFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        root.setLevel(resolved if isinstance(resolved, int) else logging.INFO)
    else:
        root.setLevel(level)


def init_app(app: Flask) -> None:
    """Assign a request id before each request and echo it in the response.

    ``g`` outlives the request when an app context was already pushed, so the
    id is reassigned on every request and dropped at teardown.
    """
    app.logger.addFilter(RequestIdFilter())

    @app.before_request
    def _assign_request_id() -> None:
        g.request_id = _incoming_request_id() or str(uuid4())

    @app.teardown_request
    def _drop_request_id(exc: BaseException | None) -> None:
        g.pop("request_id", None)

    @app.after_request
    def _echo_request_id(response: Response) -> Response:
        response.headers.setdefault(REQUEST_ID_HEADER, ensure_request_id())
        return response


__all__ = ["REQUEST_ID_HEADER", "configure_logging", "ensure_request_id", "init_app"]
