"""Problem Details (RFC 7807) error responses for the API.

Every error leaving the app is ``application/problem+json`` with a stable
``code`` and the request id, so clients and logs can be correlated.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any

from flask import Flask, Response, jsonify, request
from marshmallow import ValidationError as MarshmallowValidationError
from sqlalchemy.exc import IntegrityError, OperationalError
from werkzeug.exceptions import HTTPException

from shiftpay.core.logger import ensure_request_id

log = logging.getLogger(__name__)

_STATUS_CODES: dict[int, str] = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
    413: "payload_too_large",
    415: "unsupported_media_type",
    422: "unprocessable_entity",
    429: "too_many_requests",
    500: "internal_server_error",
    503: "service_unavailable",
}


def code_for_status(status: int) -> str:
    """Return the canonical error code of an HTTP status (``"error"`` if unknown)."""
    return _STATUS_CODES.get(status, "error")


def build_problem(
    status: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Assemble a Problem Details document.

    :param status: HTTP status code.
    :param code: Machine-readable error code.
    :param message: Client-safe summary, rendered as ``detail``.
    :param details: Optional structured payload (e.g. field errors).
    :returns: JSON-serializable problem dict.
    """
    problem: dict[str, Any] = {
        "type": "about:blank",
        "title": HTTPStatus(status).phrase,
        "status": status,
        "detail": message,
        "instance": request.path if request else None,
        "code": code,
        "request_id": ensure_request_id(),
    }
    if details:
        problem["details"] = details
    return problem


def _respond(problem: dict[str, Any]) -> tuple[Response, int]:
    resp = jsonify(problem)
    resp.mimetype = "application/problem+json"
    return resp, int(problem["status"])


class APIError(Exception):
    """
    Error that renders directly as a problem response.

    Parameters
    ----------
    message : str
        Client-safe description.
    status_code : int, optional
        HTTP status. Defaults to ``400``.
    code : str, optional
        Machine-readable code. Defaults to ``"bad_request"``.
    details : dict[str, Any] | None, optional
        Extra structured data for the client.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        code: str = "bad_request",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = int(status_code)
        self.code = code
        self.details = details or {}

    def to_problem(self) -> dict[str, Any]:
        return build_problem(self.status_code, self.code, self.message, self.details or None)


class NotFound(APIError):
    """404 for a missing resource."""

    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(message, status_code=HTTPStatus.NOT_FOUND, code="not_found")


class Conflict(APIError):
    """409 for a uniqueness collision."""

    def __init__(self, message: str = "Conflict") -> None:
        super().__init__(message, status_code=HTTPStatus.CONFLICT, code="conflict")


class Unauthorized(APIError):
    """401 for a missing or invalid identity."""

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message, status_code=HTTPStatus.UNAUTHORIZED, code="unauthorized")


def render_api_error(err: APIError, *, cause: Exception | None = None) -> tuple[Response, int]:
    """Log ``err`` (5xx as errors, 4xx as warnings) and render it."""
    problem = err.to_problem()
    if err.status_code >= 500:
        log.error(
            "api.error code=%s status=%s request_id=%s",
            err.code,
            err.status_code,
            problem["request_id"],
            exc_info=cause,
        )
    else:
        log.warning(
            "api.error code=%s status=%s detail=%s request_id=%s",
            err.code,
            err.status_code,
            err.message,
            problem["request_id"],
        )
    return _respond(problem)


def init_app(app: Flask) -> None:
    """
    Register the problem+json error handlers on ``app``.

    Service and infrastructure exceptions go through
    :func:`shiftpay.services._shared.base.translate_exception`; anything not
    handled explicitly becomes an opaque 500.
    """
    from shiftpay.services._shared.base import translate_exception
    from shiftpay.services._shared.errors import InfrastructureError, ServiceError

    @app.errorhandler(APIError)
    def handle_api_error(err: APIError):
        return render_api_error(err)

    @app.errorhandler(ServiceError)
    @app.errorhandler(InfrastructureError)
    def handle_domain_error(err: Exception):
        translated = translate_exception(err)
        if isinstance(translated, APIError):
            return render_api_error(translated, cause=err)
        return handle_unexpected_error(err)  # pragma: no cover

    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        status = int(err.code or HTTPStatus.INTERNAL_SERVER_ERROR)
        code = code_for_status(status)
        if status == HTTPStatus.NOT_FOUND and request:
            message = f"Route '{request.path}' not found"
        else:
            message = (err.description or code.replace("_", " ").capitalize()).strip()
        problem = build_problem(status, code, message)
        (log.error if status >= 500 else log.warning)(
            "http.error code=%s status=%s request_id=%s", code, status, problem["request_id"]
        )
        return _respond(problem)

    @app.errorhandler(MarshmallowValidationError)
    def handle_validation_error(err: MarshmallowValidationError):
        problem = build_problem(
            HTTPStatus.UNPROCESSABLE_ENTITY,
            "validation_error",
            "Validation failed",
            {"errors": err.normalized_messages()},
        )
        log.warning("validation.error fields=%s", sorted(problem["details"]["errors"]))
        return _respond(problem)

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(err: IntegrityError):
        problem = build_problem(HTTPStatus.CONFLICT, "conflict", "Resource conflict")
        log.error("db.integrity_error request_id=%s", problem["request_id"], exc_info=err)
        return _respond(problem)

    @app.errorhandler(OperationalError)
    def handle_operational_error(err: OperationalError):
        problem = build_problem(
            HTTPStatus.SERVICE_UNAVAILABLE,
            "service_unavailable",
            "Service temporarily unavailable",
        )
        log.error("db.operational_error request_id=%s", problem["request_id"], exc_info=err)
        return _respond(problem)

    @app.errorhandler(Exception)
    def handle_unexpected_error(err: Exception):
        # Internal details never reach the client
        problem = build_problem(
            HTTPStatus.INTERNAL_SERVER_ERROR, "internal_server_error", "Unexpected error"
        )
        log.error("unhandled.error request_id=%s", problem["request_id"], exc_info=err)
        return _respond(problem)
