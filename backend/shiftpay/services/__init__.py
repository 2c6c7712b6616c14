"""Service layer public API.

Re-exports
----------
- :class:`BaseService` and :func:`translate_exception` (``_shared.base``)
- :class:`AuthService` (``auth.service``) with its DTOs
"""

from __future__ import annotations

from ._shared.base import BaseService, translate_exception
from .auth.dto import (
    AuthTokenConfig,
    LoginIn,
    LogoutIn,
    RefreshIn,
    SessionOut,
    SignupIn,
    TokenPairOut,
    UserPublicOut,
)
from .auth.service import AuthService

__all__ = [
    "AuthService",
    "AuthTokenConfig",
    "BaseService",
    "LoginIn",
    "LogoutIn",
    "RefreshIn",
    "SessionOut",
    "SignupIn",
    "TokenPairOut",
    "UserPublicOut",
    "translate_exception",
]
