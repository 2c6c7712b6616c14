# shiftpay/infra/jwt/flask_jwt_token_provider.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, cast

from jwt import exceptions as jwt_exceptions

from shiftpay.services._shared.errors import (
    InvalidSignatureError,
    MalformedTokenError,
    TokenExpiredError,
)
from shiftpay.services._shared.ports import AccessClaims, TokenProvider, new_refresh_token

ACCESS_TOKEN_TYPE = "access"


@dataclass(slots=True)
class JWTTokenProvider(TokenProvider):
    """
    Token signer backed by Flask-JWT-Extended (HS256 over ``JWT_SECRET_KEY``).

    Access tokens carry ``sub`` (user id), ``email`` and ``display_name``
    besides the standard ``iat``/``exp`` claims. Refresh tokens are opaque
    random strings; only the refresh store gives them meaning.

    .. note::
       Requires an active Flask app context with a configured ``JWTManager``.
    """

    def issue_access_token(
        self,
        *,
        user_id: str,
        email: str,
        display_name: str,
        expires_delta: timedelta | None = None,
    ) -> str:
        from flask_jwt_extended import create_access_token

        return cast(
            str,
            create_access_token(
                identity=str(user_id),
                additional_claims={"email": email, "display_name": display_name},
                # None -> JWT_ACCESS_TOKEN_EXPIRES
                expires_delta=expires_delta,
                fresh=False,
            ),
        )

    def verify_access_token(self, token: str) -> AccessClaims:
        """
        Check signature and expiry, then map the payload to :class:`AccessClaims`.

        :raises InvalidSignatureError: Signature does not match the key.
        :raises TokenExpiredError: ``exp`` is in the past.
        :raises MalformedTokenError: Not a decodable access JWT.
        """
        from flask_jwt_extended import decode_token
        from flask_jwt_extended.exceptions import JWTDecodeError

        try:
            payload = cast(dict[str, Any], decode_token(token))
        except jwt_exceptions.ExpiredSignatureError as exc:
            raise TokenExpiredError("Access token expired") from exc
        except jwt_exceptions.InvalidSignatureError as exc:
            raise InvalidSignatureError() from exc
        except (jwt_exceptions.InvalidTokenError, JWTDecodeError) as exc:
            raise MalformedTokenError() from exc

        if payload.get("type") != ACCESS_TOKEN_TYPE:
            raise MalformedTokenError("Access token required")
        try:
            return AccessClaims(
                user_id=str(payload["sub"]),
                email=str(payload["email"]),
                display_name=str(payload["display_name"]),
                issued_at=datetime.fromtimestamp(int(payload["iat"]), tz=UTC),
                expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=UTC),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedTokenError("Access token lacks required claims") from exc

    def issue_refresh_token(self) -> str:
        return new_refresh_token()
