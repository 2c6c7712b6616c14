# shiftpay/services/auth/dto.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class SignupIn:
    """
    Input DTO for account creation.

    :param email: Login email (normalized by the model).
    :type email: str
    :param password: Raw password, hashed exactly once by the service.
    :type password: str
    :param display_name: Name shown in the UI and embedded in access tokens.
    :type display_name: str
    """

    email: str
    password: str
    display_name: str


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login.

    :param email: User email.
    :type email: str
    :param password: Raw password (to be verified).
    :type password: str
    """

    email: str
    password: str


@dataclass(frozen=True, slots=True)
class RefreshIn:
    """
    Input DTO for token refresh.

    :param refresh_token: Opaque refresh token, ``None`` when the client sent none.
    :type refresh_token: str | None
    """

    refresh_token: str | None


@dataclass(frozen=True, slots=True)
class LogoutIn:
    """
    Input DTO for logout.

    :param refresh_token: Refresh token to revoke, if the client still has one.
    :type refresh_token: str | None
    """

    refresh_token: str | None = None


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class UserPublicOut:
    """Public-safe view of a user (never carries the password hash)."""

    id: str
    email: str
    display_name: str
    created_at: datetime | None


@dataclass(frozen=True, slots=True)
class TokenPairOut:
    """
    Output DTO with access and refresh tokens.

    :param access_token: Encoded access JWT.
    :type access_token: str
    :param refresh_token: Opaque refresh token.
    :type refresh_token: str
    :param access_expires_in: Access token lifetime in seconds.
    :type access_expires_in: int
    :param refresh_expires_in: Refresh token lifetime in seconds.
    :type refresh_expires_in: int
    """

    access_token: str
    refresh_token: str
    access_expires_in: int
    refresh_expires_in: int


@dataclass(frozen=True, slots=True)
class SessionOut:
    """Result of login or refresh: who is signed in and with which tokens."""

    user: UserPublicOut
    tokens: TokenPairOut


# ------------------------------ Config DTO -------------------------------- #


@dataclass(frozen=True, slots=True)
class AuthTokenConfig:
    """
    Token emission configuration.

    :param access_expires: Access token lifetime.
    :type access_expires: timedelta
    :param refresh_expires: Refresh token lifetime.
    :type refresh_expires: timedelta
    """

    access_expires: timedelta
    refresh_expires: timedelta

    @property
    def access_ttl_seconds(self) -> int:
        return int(self.access_expires.total_seconds())

    @property
    def refresh_ttl_seconds(self) -> int:
        return int(self.refresh_expires.total_seconds())

    @classmethod
    def from_mapping(cls, config) -> AuthTokenConfig:
        """Build from a Flask config (``ACCESS_TOKEN_TTL``/``REFRESH_TOKEN_TTL`` seconds)."""
        return cls(
            access_expires=timedelta(seconds=int(config["ACCESS_TOKEN_TTL"])),
            refresh_expires=timedelta(seconds=int(config["REFRESH_TOKEN_TTL"])),
        )
