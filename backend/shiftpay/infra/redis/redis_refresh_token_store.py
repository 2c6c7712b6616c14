# shiftpay/infra/redis/redis_refresh_token_store.py
from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, cast

import redis  # type: ignore[import-untyped]
from redis.exceptions import RedisError  # type: ignore[import-untyped]

from shiftpay.services._shared.errors import NotFoundError, StoreUnavailableError
from shiftpay.services._shared.ports import RefreshTokenRecord, RefreshTokenStore, RotationResult
from shiftpay.services._shared.ports.refresh_token_store import REDACTED

log = logging.getLogger(__name__)


def _s(value: Any, default: str = "") -> str:
    """Decode a Redis reply that may be ``bytes`` or ``str`` (``decode_responses``)."""
    if value is None:
        return default
    if isinstance(value, bytes | bytearray):
        return value.decode()
    return str(value)


def _field(h: dict[Any, Any], name: str) -> Any:
    return h.get(name.encode()) if name.encode() in h else h.get(name)


@contextmanager
def _unavailable_on_error(op: str) -> Iterator[None]:
    try:
        yield
    except redis.WatchError:
        raise
    except RedisError as exc:
        log.error("refresh_store.unavailable op=%s error=%s", op, exc.__class__.__name__)
        raise StoreUnavailableError() from exc


@dataclass(slots=True)
class RedisRefreshTokenStore(RefreshTokenStore):
    """
    Redis-backed refresh token store with atomic rotation.

    Layout
    ------
    ``rt:{token}``
        Hash ``{user_id, created_at, expires_at}`` (epoch seconds) with a key
        TTL equal to the token lifetime.
    ``rt:u:{user_id}``
        Set of the user's tokens, used for bulk revocation. Members whose hash
        already expired are pruned lazily.

    :param r: A Redis client (already connected).
    """

    r: redis.Redis

    # -------------------- helpers --------------------

    @staticmethod
    def _k(token: str) -> str:
        return f"rt:{token}"

    @staticmethod
    def _ku(user_id: str) -> str:
        return f"rt:u:{user_id}"

    @staticmethod
    def _to_ts(dt: datetime) -> int:
        # Naive datetimes are taken to be UTC
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=UTC)
        return int(dt.timestamp())

    @staticmethod
    def _record(token: str, h: dict[Any, Any]) -> RefreshTokenRecord:
        return RefreshTokenRecord(
            token=token,
            user_id=_s(_field(h, "user_id")),
            created_at=datetime.fromtimestamp(int(_s(_field(h, "created_at"), "0")), tz=UTC),
            expires_at=datetime.fromtimestamp(int(_s(_field(h, "expires_at"), "0")), tz=UTC),
        )

    def _prune_index(self, key_u: str) -> None:
        """SREM members whose token hash has expired or been deleted."""
        members = [_s(m) for m in self.r.smembers(key_u)]
        if not members:
            return
        with self.r.pipeline(transaction=False) as p:
            for token in members:
                p.exists(self._k(token))
            alive = cast(list[int], p.execute())
        stale = [token for token, n in zip(members, alive, strict=True) if not n]
        if stale:
            self.r.srem(key_u, *stale)

    def _extend_index(self, pipe: Any, key_u: str, ttl_seconds: int) -> None:
        # NX gives a fresh set its TTL, GT only ever lengthens it (Redis >= 7)
        pipe.expire(key_u, ttl_seconds, nx=True)
        pipe.expire(key_u, ttl_seconds, gt=True)

    # -------------------- API ------------------------

    def store(self, token: str, user_id: str, ttl_seconds: int) -> RefreshTokenRecord:
        """
        Insert the token record *before* the token is handed to the client.
        """
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        now = datetime.now(UTC).replace(microsecond=0)
        expires_at = now + timedelta(seconds=ttl_seconds)

        with _unavailable_on_error("store"):
            pipe = self.r.pipeline(transaction=True)
            pipe.hset(
                self._k(token),
                mapping={
                    "user_id": user_id,
                    "created_at": str(self._to_ts(now)),
                    "expires_at": str(self._to_ts(expires_at)),
                },
            )
            pipe.expire(self._k(token), ttl_seconds)
            pipe.sadd(self._ku(user_id), token)
            self._extend_index(pipe, self._ku(user_id), ttl_seconds)
            pipe.execute()
            self._prune_index(self._ku(user_id))

        return RefreshTokenRecord(
            token=token, user_id=user_id, created_at=now, expires_at=expires_at
        )

    def lookup(self, token: str) -> RefreshTokenRecord:
        with _unavailable_on_error("lookup"):
            h = self.r.hgetall(self._k(token))
        if not h:
            raise NotFoundError("RefreshToken", REDACTED)
        return self._record(token, h)

    def delete(self, token: str) -> bool:
        key = self._k(token)
        with _unavailable_on_error("delete"):
            uid = self.r.hget(key, "user_id")
            with self.r.pipeline(transaction=True) as p:
                p.delete(key)
                if uid:
                    p.srem(self._ku(_s(uid)), token)
                out = cast(list[int], p.execute())
        return bool(out[0])

    def delete_all_for_user(self, user_id: str) -> int:
        """
        Revoke every token of ``user_id``.

        The index set is WATCHed: a ``store`` or ``rotate`` that lands between
        reading the members and EXEC aborts the transaction, and the retry
        sees the new token too.
        """
        key_u = self._ku(user_id)
        while True:
            try:
                with _unavailable_on_error("delete_all_for_user"), self.r.pipeline() as p:
                    p.watch(key_u)
                    tokens = [_s(member) for member in p.smembers(key_u)]
                    if not tokens:
                        p.unwatch()
                        return 0
                    p.multi()
                    for token in tokens:
                        p.delete(self._k(token))
                    p.delete(key_u)
                    out = cast(list[int], p.execute())
                # Last reply belongs to the index set itself
                return sum(int(n) for n in out[:-1])
            except redis.WatchError:
                continue

    def rotate(
        self, old_token: str, new_token: str, ttl_seconds: int, now: datetime
    ) -> RotationResult:
        """
        Atomically consume ``old_token`` and create ``new_token``.

        Uses WATCH/MULTI/EXEC (optimistic locking) on the old key: if another
        client deletes or rotates it between our read and our EXEC, the
        transaction aborts with ``WatchError`` and we re-read, which then
        reports ``NOT_FOUND``. Expired records are deleted and reported as
        ``EXPIRED``.
        """
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        now_ts = self._to_ts(now)
        k_old = self._k(old_token)
        k_new = self._k(new_token)

        while True:
            try:
                with _unavailable_on_error("rotate"), self.r.pipeline() as p:
                    p.watch(k_old)

                    h = p.hgetall(k_old)
                    if not h:
                        p.unwatch()
                        return RotationResult.NOT_FOUND

                    uid = _s(_field(h, "user_id"))
                    exp = int(_s(_field(h, "expires_at"), "0"))
                    k_user = self._ku(uid)

                    p.multi()
                    p.delete(k_old)
                    p.srem(k_user, old_token)
                    if exp <= now_ts:
                        p.execute()
                        return RotationResult.EXPIRED

                    p.hset(
                        k_new,
                        mapping={
                            "user_id": uid,
                            "created_at": str(now_ts),
                            "expires_at": str(now_ts + ttl_seconds),
                        },
                    )
                    p.expire(k_new, ttl_seconds)
                    p.sadd(k_user, new_token)
                    self._extend_index(p, k_user, ttl_seconds)
                    p.execute()
                    self._prune_index(k_user)

                return RotationResult.OK

            except redis.WatchError:
                # Concurrent modification of the old key; re-read
                continue

    def list_for_user(self, user_id: str) -> list[RefreshTokenRecord]:
        key_u = self._ku(user_id)
        with _unavailable_on_error("list_for_user"):
            members = sorted(_s(m) for m in self.r.smembers(key_u))
            records: list[RefreshTokenRecord] = []
            stale: list[str] = []
            for token in members:
                h = self.r.hgetall(self._k(token))
                if h:
                    records.append(self._record(token, h))
                else:
                    stale.append(token)
            if stale:
                self.r.srem(key_u, *stale)
        return sorted(records, key=lambda rec: rec.created_at)
