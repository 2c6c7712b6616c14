from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol

from shiftpay.services._shared.errors import (
    InvalidSignatureError,
    MalformedTokenError,
    TokenExpiredError,
)

REFRESH_TOKEN_BYTES = 32


@dataclass(frozen=True, slots=True)
class AccessClaims:
    """
    Verified content of an access token.

    :ivar user_id: Subject (opaque user id).
    :ivar email: Email snapshot at issuance.
    :ivar display_name: Display name snapshot at issuance.
    :ivar issued_at: ``iat`` claim (UTC).
    :ivar expires_at: ``exp`` claim (UTC).
    """

    user_id: str
    email: str
    display_name: str
    issued_at: datetime
    expires_at: datetime


def new_refresh_token() -> str:
    """Return an opaque, URL-safe refresh token with 256 bits of entropy."""
    return secrets.token_urlsafe(REFRESH_TOKEN_BYTES)


class TokenProvider(Protocol):
    """Port for issuing and verifying session tokens."""

    def issue_access_token(
        self,
        *,
        user_id: str,
        email: str,
        display_name: str,
        expires_delta: timedelta | None = None,
    ) -> str: ...

    def verify_access_token(self, token: str) -> AccessClaims: ...

    def issue_refresh_token(self) -> str: ...


class StubTokenProvider(TokenProvider):
    """Deterministic token provider used in unit tests.

    Tokens look like ``access.<seq>`` and are resolved from an in-memory
    registry. Tokens prefixed with ``forged.`` simulate a bad signature.
    """

    def __init__(self, *, access_expires: timedelta = timedelta(minutes=15)) -> None:
        self.access_expires = access_expires
        self._seq = 0
        self._issued: dict[str, dict[str, Any]] = {}
        self.fail_next_issue: Exception | None = None

    def issue_access_token(
        self,
        *,
        user_id: str,
        email: str,
        display_name: str,
        expires_delta: timedelta | None = None,
    ) -> str:
        if self.fail_next_issue is not None:
            exc, self.fail_next_issue = self.fail_next_issue, None
            raise exc
        self._seq += 1
        now = datetime.now(UTC)
        token = f"access.{self._seq}"
        self._issued[token] = {
            "sub": user_id,
            "email": email,
            "display_name": display_name,
            "iat": now,
            "exp": now + (expires_delta if expires_delta is not None else self.access_expires),
        }
        return token

    def verify_access_token(self, token: str) -> AccessClaims:
        if token.startswith("forged."):
            raise InvalidSignatureError()
        payload = self._issued.get(token)
        if payload is None:
            raise MalformedTokenError()
        if payload["exp"] <= datetime.now(UTC):
            raise TokenExpiredError("Access token expired")
        return AccessClaims(
            user_id=payload["sub"],
            email=payload["email"],
            display_name=payload["display_name"],
            issued_at=payload["iat"],
            expires_at=payload["exp"],
        )

    def issue_refresh_token(self) -> str:
        return new_refresh_token()
