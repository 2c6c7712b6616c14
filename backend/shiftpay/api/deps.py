"""Shared API helpers for request parsing and cross-cutting concerns."""

from __future__ import annotations

import functools
import time
from collections.abc import Callable
from typing import Any, TypeVar

from flask import Response, current_app, jsonify, request

from shiftpay.api.cookies import read_access_token
from shiftpay.core.extensions import REFRESH_STORE_KEY
from shiftpay.infra.jwt.flask_jwt_token_provider import JWTTokenProvider
from shiftpay.infra.security.werkzeug_password_hasher import WerkzeugPasswordHasher
from shiftpay.services.auth.dto import AuthTokenConfig
from shiftpay.services.auth.service import AuthService

F = TypeVar("F", bound=Callable[..., Any])


def get_auth_service() -> AuthService:
    """Assemble an :class:`AuthService` from the current app's config and stores.

    The refresh store is shared app-wide (``app.extensions``); the other
    collaborators are stateless and cheap to build per call.
    """
    return AuthService(
        token_provider=JWTTokenProvider(),
        refresh_store=current_app.extensions[REFRESH_STORE_KEY],
        password_hasher=WerkzeugPasswordHasher(
            method=current_app.config.get("PASSWORD_HASH_METHOD", "scrypt")
        ),
        token_cfg=AuthTokenConfig.from_mapping(current_app.config),
    )


def require_auth(func: F) -> F:
    """Resolve the caller from the access cookie and pass it as ``identity``.

    The wrapped view receives the verified
    :class:`~shiftpay.services._shared.ports.AccessClaims` as the ``identity``
    keyword argument. Missing or invalid tokens raise
    :class:`~shiftpay.services._shared.errors.UnauthenticatedError` (401).
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        kwargs["identity"] = get_auth_service().authenticate(read_access_token())
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""
    response = jsonify(payload)
    response.status_code = status
    return response


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            current_app.logger.debug(
                "request.elapsed",
                extra={
                    "endpoint": getattr(request, "endpoint", None),
                    "method": request.method,
                    "elapsed_ms": round(elapsed_ms, 2),
                },
            )

    return wrapper  # type: ignore[return-value]
