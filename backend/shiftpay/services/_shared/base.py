"""Shared service plumbing: units of work, clock and HTTP translation."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from http import HTTPStatus

from shiftpay.core import errors as api_errors
from shiftpay.services._shared.errors import (
    ConflictError,
    InfrastructureError,
    InvalidCredentialsError,
    NotFoundError,
    ServiceError,
    TokenRefreshError,
    UnauthenticatedError,
)
from shiftpay.uow.sqlalchemy_uow import (
    SQLAlchemyReadOnlyUnitOfWork,
    SQLAlchemyUnitOfWork,
)

# Most specific first; the first isinstance match wins
_TRANSLATIONS: tuple[tuple[type[Exception], Callable[[Exception], api_errors.APIError]], ...] = (
    (
        InvalidCredentialsError,
        lambda e: api_errors.APIError(
            "Invalid credentials", HTTPStatus.UNAUTHORIZED, "invalid_credentials"
        ),
    ),
    (
        TokenRefreshError,
        lambda e: api_errors.APIError(
            "Session expired. Please sign in again.",
            HTTPStatus.UNAUTHORIZED,
            "token_refresh_failed",
        ),
    ),
    (UnauthenticatedError, lambda e: api_errors.Unauthorized("Authentication required")),
    # The key may be an internal id; only the entity name reaches the client
    (NotFoundError, lambda e: api_errors.NotFound(f"{e.entity} not found")),
    (ConflictError, lambda e: api_errors.Conflict(str(e))),
    (ServiceError, lambda e: api_errors.APIError(str(e), HTTPStatus.BAD_REQUEST, "bad_request")),
    (
        InfrastructureError,
        lambda e: api_errors.APIError(
            "Service temporarily unavailable",
            HTTPStatus.SERVICE_UNAVAILABLE,
            "service_unavailable",
        ),
    ),
)


def translate_exception(exc: Exception) -> Exception:
    """
    Map a service or infrastructure error to its :class:`APIError`.

    Authentication failures get fixed client messages; the precise reason
    stays in the logs. Unknown exceptions are returned unchanged.
    """
    for exc_type, build in _TRANSLATIONS:
        if isinstance(exc, exc_type):
            return build(exc)
    return exc


class BaseService:
    """
    Base class for application services.

    Subclasses open a unit of work per use case (:meth:`rw_uow` or
    :meth:`ro_uow`) and read time from :meth:`now_utc` only.
    """

    DEFAULT_READ_ISOLATION = "READ COMMITTED"

    def rw_uow(self) -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork()

    def ro_uow(
        self, *, isolation: str | None = None, enforce_db_readonly: bool = True
    ) -> SQLAlchemyReadOnlyUnitOfWork:
        """
        Open a read-only unit of work.

        :param isolation: Isolation level; defaults to ``DEFAULT_READ_ISOLATION``.
        :param enforce_db_readonly: Also ask the database for a read-only
            transaction where it supports one.
        """
        return SQLAlchemyReadOnlyUnitOfWork(
            isolation_level=isolation or self.DEFAULT_READ_ISOLATION,
            enforce_db_readonly=enforce_db_readonly,
        )

    @staticmethod
    def now_utc() -> datetime:
        return datetime.now(UTC)
