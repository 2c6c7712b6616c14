"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and never import Flask or HTTP
helpers. They are stable contracts between adapters, repositories and
application services.

The translation to HTTP responses (RFC 7807) is done by
:func:`shiftpay.services._shared.base.translate_exception`, which
``shiftpay/core/errors.py`` calls from its error handlers.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError


def violates(exc: IntegrityError, constraint_name: str) -> bool:
    """
    Check whether an IntegrityError originates from a specific constraint.

    Parameters
    ----------
    exc : IntegrityError
        The exception raised by SQLAlchemy during flush/commit.
    constraint_name : str
        The name of the database constraint to match (e.g., 'uq_users_email').

    Returns
    -------
    bool
        True if the IntegrityError message mentions the constraint. SQLite
        reports the column instead, so ``users.email`` is matched as well.
    """
    message = str(exc.orig).lower() if exc.orig else ""
    if constraint_name.lower() in message:
        return True
    # uq_<table>_<column> -> <table>.<column>
    parts = constraint_name.lower().split("_", 2)
    if len(parts) == 3 and parts[0] == "uq":
        return f"{parts[1]}.{parts[2]}" in message
    return False


# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - ``translate_exception`` maps them to ``APIError`` at the boundary.
    """


class InfrastructureError(Exception):
    """
    Base class for failures of a backing store or external dependency.

    Kept outside the :class:`ServiceError` tree so that an unreachable store
    is never reported as an authentication failure.
    """


class StoreUnavailableError(InfrastructureError):
    """Raised when the refresh token store cannot be reached."""

    def __init__(self, message: str = "Refresh token store unavailable") -> None:
        super().__init__(message)


# --------------------------------------------------------------------------- #
# Authentication errors
# --------------------------------------------------------------------------- #


class InvalidCredentialsError(ServiceError):
    """
    Raised on login failure.

    Unknown email and wrong password both raise this exact error with the
    same message so that callers cannot enumerate accounts.
    """

    def __init__(self) -> None:
        super().__init__("Invalid credentials")


class TokenRefreshError(ServiceError):
    """Raised when a refresh token is missing, unknown, expired or already rotated."""

    def __init__(self, reason: str = "invalid") -> None:
        super().__init__("Refresh token is no longer valid. Please sign in.")
        self.reason = reason


class UnauthenticatedError(ServiceError):
    """Raised when a protected operation has no valid identity."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message)


class TokenVerificationError(UnauthenticatedError):
    """Base class for access token verification failures.

    :cvar kind: Short label used in logs to tell failures apart.
    """

    kind = "invalid"

    def __init__(self, message: str = "Invalid access token") -> None:
        super().__init__(message)


class InvalidSignatureError(TokenVerificationError):
    """The access token signature does not match the configured key."""

    kind = "bad_signature"


class TokenExpiredError(TokenVerificationError):
    """The access token ``exp`` claim is in the past."""

    kind = "expired"


class MalformedTokenError(TokenVerificationError):
    """The access token cannot be decoded or lacks required claims."""

    kind = "malformed"


# --------------------------------------------------------------------------- #
# Entity errors
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class NotFoundError(ServiceError):
    """
    Raised when an entity is not found.

    :param entity: Entity name (e.g., "User").
    :type entity: str
    :param key: Identifier or search key.
    :type key: str | int
    """

    entity: str
    key: str | int

    def __str__(self) -> str:
        return f"{self.entity} not found: {self.key}"


@dataclass(slots=True)
class ConflictError(ServiceError):
    """
    Raised when a unique constraint or business rule conflict occurs.

    :param entity: Entity name (e.g., "User").
    :type entity: str
    :param detail: Short human-readable explanation.
    :type detail: str
    """

    entity: str
    detail: str

    def __str__(self) -> str:
        return f"Conflict on {self.entity}: {self.detail}"
