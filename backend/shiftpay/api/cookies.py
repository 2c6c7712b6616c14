"""Session cookie helpers.

Both tokens travel as ``HttpOnly`` cookies scoped to ``Path=/`` with
``SameSite=Strict``. ``Domain`` and ``Secure`` come from ``COOKIE_DOMAIN``
and ``COOKIE_SECURE``; each cookie's ``Max-Age`` matches its token lifetime.
"""

from __future__ import annotations

from flask import Response, current_app, request

from shiftpay.services.auth.dto import TokenPairOut

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"


def _set(response: Response, name: str, value: str, max_age: int) -> None:
    response.set_cookie(
        name,
        value,
        max_age=max_age,
        path="/",
        domain=current_app.config.get("COOKIE_DOMAIN") or None,
        secure=bool(current_app.config.get("COOKIE_SECURE", False)),
        httponly=True,
        samesite="Strict",
    )


def set_session_cookies(response: Response, tokens: TokenPairOut) -> Response:
    """Attach the access and refresh cookies for a freshly issued token pair."""
    _set(response, ACCESS_COOKIE, tokens.access_token, tokens.access_expires_in)
    _set(response, REFRESH_COOKIE, tokens.refresh_token, tokens.refresh_expires_in)
    return response


def clear_session_cookies(response: Response) -> Response:
    """Expire both session cookies (``Max-Age=0``, empty value)."""
    for name in (ACCESS_COOKIE, REFRESH_COOKIE):
        _set(response, name, "", 0)
    return response


def read_access_token() -> str | None:
    return request.cookies.get(ACCESS_COOKIE) or None


def read_refresh_token() -> str | None:
    return request.cookies.get(REFRESH_COOKIE) or None
