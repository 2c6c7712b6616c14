"""
shiftpay.services._shared.ports
===============================

*Ports* (hexagonal interfaces) that the authentication services depend on.

Modules
-------
- :mod:`token_provider`:
    :class:`~.TokenProvider`: access token issuance and verification, and
    refresh token generation, plus the :class:`~.StubTokenProvider` double.

- :mod:`refresh_token_store`:
    :class:`~.RefreshTokenStore`, :class:`~.RotationResult` and
    :class:`~.RefreshTokenRecord`, plus the thread-safe
    :class:`~.InMemoryRefreshTokenStore`.

- :mod:`password_hasher`:
    :class:`~.PasswordHasher`: salted adaptive hashing contract.

Concrete adapters (Redis, Flask-JWT-Extended, Werkzeug) live under
``shiftpay.infra``.
"""

from __future__ import annotations

from .password_hasher import PasswordHasher
from .refresh_token_store import (
    InMemoryRefreshTokenStore,
    RefreshTokenRecord,
    RefreshTokenStore,
    RotationResult,
)
from .token_provider import AccessClaims, StubTokenProvider, TokenProvider, new_refresh_token

__all__ = [
    "AccessClaims",
    "InMemoryRefreshTokenStore",
    "PasswordHasher",
    "RefreshTokenRecord",
    "RefreshTokenStore",
    "RotationResult",
    "StubTokenProvider",
    "TokenProvider",
    "new_refresh_token",
]
