"""Session endpoints: signup, login, refresh, logout and identity.

Tokens never appear in response bodies; they travel only as the
``accessToken`` / ``refreshToken`` cookies.
"""

from __future__ import annotations

from typing import cast

from flask import Blueprint, request

from shiftpay.api.cookies import clear_session_cookies, read_refresh_token, set_session_cookies
from shiftpay.api.deps import get_auth_service, json_response, require_auth, timing
from shiftpay.core.errors import APIError, render_api_error
from shiftpay.schemas import (
    LoginSchema,
    LogoutAllSchema,
    MessageSchema,
    SignupSchema,
    UserPublicSchema,
)
from shiftpay.services._shared.base import translate_exception
from shiftpay.services._shared.errors import NotFoundError, TokenRefreshError
from shiftpay.services._shared.ports import AccessClaims
from shiftpay.services.auth.dto import LoginIn, LogoutIn, RefreshIn, SignupIn

bp = Blueprint("auth", __name__)

signup_schema = SignupSchema()
login_schema = LoginSchema()
user_schema = UserPublicSchema()
message_schema = MessageSchema()
logout_all_schema = LogoutAllSchema()


@bp.post("/signup")
@timing
def signup():
    """Create an account. Does not sign the user in."""
    data = signup_schema.load(request.get_json(silent=True) or {})
    user = get_auth_service().signup(
        SignupIn(email=data["email"], password=data["password"], display_name=data["display_name"])
    )
    return json_response({"data": user_schema.dump(user)}, status=201)


@bp.post("/login")
@timing
def login():
    """Verify credentials and set both session cookies."""
    data = login_schema.load(request.get_json(silent=True) or {})
    session = get_auth_service().login(LoginIn(email=data["email"], password=data["password"]))
    response = json_response({"data": user_schema.dump(session.user)})
    return set_session_cookies(response, session.tokens)


@bp.post("/refresh")
@timing
def refresh():
    """Rotate the refresh cookie and mint a new access cookie.

    Any failure clears both cookies so the client falls back to login.
    """
    try:
        session = get_auth_service().refresh(RefreshIn(refresh_token=read_refresh_token()))
    except (TokenRefreshError, NotFoundError) as exc:
        response, status = render_api_error(cast(APIError, translate_exception(exc)))
        clear_session_cookies(response)
        return response, status

    body = {"data": message_schema.dump({"message": "Token refreshed successfully"})}
    return set_session_cookies(json_response(body), session.tokens)


@bp.post("/logout")
@timing
def logout():
    """Revoke the refresh cookie's token (if any) and clear both cookies."""
    get_auth_service().logout(LogoutIn(refresh_token=read_refresh_token()))
    response = json_response({"data": message_schema.dump({"message": "Logged out"})})
    return clear_session_cookies(response)


@bp.post("/logout-all")
@require_auth
@timing
def logout_all(identity: AccessClaims):
    """Revoke every refresh token of the caller, on every device."""
    revoked = get_auth_service().logout_all(identity.user_id)
    body = {"data": logout_all_schema.dump({"message": "Logged out everywhere", "revoked": revoked})}
    return clear_session_cookies(json_response(body))


@bp.get("/me")
@require_auth
@timing
def me(identity: AccessClaims):
    """Return the current profile of the authenticated user."""
    user = get_auth_service().current_user(identity.user_id)
    return json_response({"data": user_schema.dump(user)})
