"""Global Flask extension instances and initialization helpers."""

from __future__ import annotations

import logging

import redis  # type: ignore[import-untyped]
from flask import Flask
from flask_jwt_extended import JWTManager
from flask_sqlalchemy import SQLAlchemy
from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy import MetaData

log = logging.getLogger(__name__)

# Global naming convention for all constraints
convention = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)

# Global singletons (import-safe)
db: SQLAlchemy = SQLAlchemy(session_options={"autoflush": False}, metadata=metadata)
jwt = JWTManager()
redis_client: redis.Redis | None = None

REFRESH_STORE_KEY = "refresh_token_store"


def init_app(app: Flask) -> None:
    """Initialize SQLAlchemy, JWT and the refresh token store.

    Parameters
    ----------
    app: flask.Flask
        Application used to bind extension instances. This call imports the
        :mod:`shiftpay.models` package so the metadata knows every table.

    Notes
    -----
    With ``REDIS_URL`` set, refresh tokens live in Redis and the app refuses
    to start when Redis does not answer ``PING``. Without it an in-process
    store is used, which is only correct for a single worker.
    """
    db.init_app(app)

    from shiftpay import models as _models  # noqa: F401

    jwt.init_app(app)

    global redis_client
    redis_url = app.config.get("REDIS_URL")
    if not redis_url:
        from shiftpay.services._shared.ports import InMemoryRefreshTokenStore

        redis_client = None
        app.extensions.pop("redis_client", None)
        app.extensions[REFRESH_STORE_KEY] = InMemoryRefreshTokenStore()
        log.warning("refresh_store.in_memory REDIS_URL unset; sessions are process-local")
        return

    redis_client = redis.Redis.from_url(redis_url)
    try:
        redis_client.ping()
    except RedisError as exc:
        raise RuntimeError(f"Failed to connect to Redis at {redis_url!r}") from exc
    app.extensions["redis_client"] = redis_client

    from shiftpay.infra.redis.redis_refresh_token_store import RedisRefreshTokenStore

    app.extensions[REFRESH_STORE_KEY] = RedisRefreshTokenStore(redis_client)

