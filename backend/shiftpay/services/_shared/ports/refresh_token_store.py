from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum, auto
from typing import Protocol

from shiftpay.services._shared.errors import NotFoundError

# Raw token values never appear in errors or logs
REDACTED = "<redacted>"


class RotationResult(Enum):
    """Outcome of an atomic refresh rotation attempt."""

    OK = auto()
    NOT_FOUND = auto()
    EXPIRED = auto()


@dataclass(frozen=True, slots=True)
class RefreshTokenRecord:
    """
    Server-side record of an issued refresh token.

    :ivar token: Opaque token value (the lookup key).
    :ivar user_id: Owner user id.
    :ivar created_at: Issuance instant (UTC).
    :ivar expires_at: Absolute expiration (UTC).
    """

    token: str
    user_id: str
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now


class RefreshTokenStore(Protocol):
    """
    Stateful store for refresh tokens.

    Writes are idempotent where possible and :meth:`rotate` MUST be atomic:
    among concurrent rotations of the same token exactly one returns
    ``RotationResult.OK``.
    """

    def store(self, token: str, user_id: str, ttl_seconds: int) -> RefreshTokenRecord:
        """Persist a new token for ``user_id`` that expires after ``ttl_seconds``."""

    def lookup(self, token: str) -> RefreshTokenRecord:
        """
        Return the record for ``token``.

        :raises NotFoundError: If the token is unknown or its TTL elapsed.
        """

    def delete(self, token: str) -> bool:
        """Remove ``token``. :returns: True if it existed."""

    def delete_all_for_user(self, user_id: str) -> int:
        """
        Remove every token owned by ``user_id``.

        :returns: Number of tokens removed.
        """

    def rotate(
        self, old_token: str, new_token: str, ttl_seconds: int, now: datetime
    ) -> RotationResult:
        """Atomically consume ``old_token`` and create ``new_token`` for the same user."""

    def list_for_user(self, user_id: str) -> list[RefreshTokenRecord]:
        """List live tokens of a user, oldest first."""


def _utcnow() -> datetime:
    return datetime.now(UTC)


class InMemoryRefreshTokenStore(RefreshTokenStore):
    """
    In-process refresh token store with atomic rotation.

    A single lock serializes every operation, which gives :meth:`rotate` its
    compare-and-delete semantics. Expired entries are purged when touched.

    :param clock: Source of "now" for TTL bookkeeping.
    """

    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._by_token: dict[str, RefreshTokenRecord] = {}
        self._by_user: dict[str, set[str]] = {}
        self._lock = threading.Lock()

    # ------------------------- helpers -------------------------

    def _insert(
        self, token: str, user_id: str, created_at: datetime, ttl_seconds: int
    ) -> RefreshTokenRecord:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        record = RefreshTokenRecord(
            token=token,
            user_id=user_id,
            created_at=created_at,
            expires_at=created_at + timedelta(seconds=ttl_seconds),
        )
        self._by_token[token] = record
        self._by_user.setdefault(user_id, set()).add(token)
        return record

    def _remove(self, token: str) -> RefreshTokenRecord | None:
        record = self._by_token.pop(token, None)
        if record is not None:
            tokens = self._by_user.get(record.user_id)
            if tokens is not None:
                tokens.discard(token)
                if not tokens:
                    del self._by_user[record.user_id]
        return record

    def _live(self, token: str) -> RefreshTokenRecord | None:
        record = self._by_token.get(token)
        if record is not None and record.is_expired(self._clock()):
            self._remove(token)
            return None
        return record

    # -------------------------- API ----------------------------

    def store(self, token: str, user_id: str, ttl_seconds: int) -> RefreshTokenRecord:
        with self._lock:
            return self._insert(token, user_id, self._clock(), ttl_seconds)

    def lookup(self, token: str) -> RefreshTokenRecord:
        with self._lock:
            record = self._live(token)
        if record is None:
            raise NotFoundError("RefreshToken", REDACTED)
        return record

    def delete(self, token: str) -> bool:
        with self._lock:
            return self._remove(token) is not None

    def delete_all_for_user(self, user_id: str) -> int:
        with self._lock:
            tokens = list(self._by_user.get(user_id, ()))
            for token in tokens:
                self._remove(token)
            return len(tokens)

    def rotate(
        self, old_token: str, new_token: str, ttl_seconds: int, now: datetime
    ) -> RotationResult:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        with self._lock:
            record = self._live(old_token)
            if record is None:
                return RotationResult.NOT_FOUND
            self._remove(old_token)
            if record.is_expired(now):
                return RotationResult.EXPIRED
            self._insert(new_token, record.user_id, now, ttl_seconds)
            return RotationResult.OK

    def list_for_user(self, user_id: str) -> list[RefreshTokenRecord]:
        with self._lock:
            live = [self._live(t) for t in list(self._by_user.get(user_id, ()))]
        return sorted((r for r in live if r is not None), key=lambda r: r.created_at)
