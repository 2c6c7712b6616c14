"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from datetime import timedelta
from typing import Final

from dotenv import load_dotenv

# Selects the config class below
ENV_VAR: Final[str] = "APP_ENV"

PLACEHOLDER_SECRETS: Final[frozenset[str]] = frozenset({"CHANGE_ME", "CHANGE_ME_JWT", ""})

# .env is optional
load_dotenv()


def env_bool(name: str, default: bool = False) -> bool:
    """Read a boolean flag; ``1``, ``true``, ``yes``, ``y`` and ``on`` count as set."""
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def env_int(name: str, default: int) -> int:
    """Parse a positive integer from an environment variable.

    :param name: Environment variable to inspect.
    :param default: Value used when the variable is unset or blank.
    :raises ValueError: If the value is not a positive integer.
    """
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    parsed = int(val.strip())
    if parsed <= 0:
        raise ValueError(f"{name} must be a positive integer, got {parsed}")
    return parsed


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    API_BASE_PREFIX: str
        Root path for registering API blueprints.
    SECRET_KEY: str
        Flask secret. Defaults to a development placeholder.
    JWT_SECRET_KEY: str
        HMAC key used by ``flask-jwt-extended`` to sign access tokens.
    ACCESS_TOKEN_TTL: int
        Access token lifetime in seconds (15 minutes by default).
    REFRESH_TOKEN_TTL: int
        Refresh token lifetime in seconds (30 days by default).
    COOKIE_DOMAIN: str
        ``Domain`` attribute of the session cookies.
    COOKIE_SECURE: bool
        Whether session cookies carry the ``Secure`` attribute.
    REDIS_URL: str | None
        Connection string of the refresh token store. When unset the app
        keeps refresh tokens in process memory (single worker only).
    SQLALCHEMY_DATABASE_URI: str
        Database connection string consumed by SQLAlchemy.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).
    CORS_ORIGINS: str
        Comma-separated list of allowed origins for CORS.

    Notes
    -----
    Values are sourced from environment variables at import time, so tests
    override them by subclassing rather than by patching ``os.environ``.
    """

    API_BASE_PREFIX = "/api"

    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "CHANGE_ME_JWT")

    # Session lifetimes
    ACCESS_TOKEN_TTL = env_int("ACCESS_TOKEN_TTL", 15 * 60)
    REFRESH_TOKEN_TTL = env_int("REFRESH_TOKEN_TTL", 30 * 24 * 60 * 60)

    # flask-jwt-extended: tokens are read from our own cookies, not its helpers
    JWT_ALGORITHM = "HS256"
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(seconds=ACCESS_TOKEN_TTL)
    JWT_TOKEN_LOCATION = ["headers"]

    # Password hashing (werkzeug method string)
    PASSWORD_HASH_METHOD = os.getenv("PASSWORD_HASH_METHOD", "scrypt")

    # Session cookies
    COOKIE_DOMAIN = os.getenv("COOKIE_DOMAIN", "localhost")
    COOKIE_SECURE = env_bool("COOKIE_SECURE", False)

    # Stores
    REDIS_URL = os.getenv("REDIS_URL") or None
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Logging & CORS
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173")

    DEBUG = False
    TESTING = False

    @classmethod
    def validate(cls) -> None:
        """Hook for environments that must refuse unsafe settings."""


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development."""

    DEBUG = env_bool("FLASK_DEBUG", True)
    CORS_MAX_AGE = 600  # 10 minutes


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Uses an in-memory SQLite database unless ``TEST_DATABASE_URL`` is set.
    - Never talks to Redis; tests inject their own stores.
    - Propagates exceptions so pytest can surface tracebacks directly.
    """

    TESTING = True
    DEBUG = False
    JWT_SECRET_KEY = "testing-jwt-secret"
    PASSWORD_HASH_METHOD = "pbkdf2:sha256:1000"
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    REDIS_URL = None
    PROPAGATE_EXCEPTIONS = True


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments."""

    DEBUG = False
    SQLALCHEMY_ECHO = False
    PROPAGATE_EXCEPTIONS = False
    COOKIE_SECURE = env_bool("COOKIE_SECURE", True)

    @classmethod
    def validate(cls) -> None:
        """Refuse to boot with placeholder secrets or without Redis.

        :raises RuntimeError: If a required setting is missing.
        """
        if cls.JWT_SECRET_KEY in PLACEHOLDER_SECRETS:
            raise RuntimeError("JWT_SECRET_KEY must be set in production")
        if cls.SECRET_KEY in PLACEHOLDER_SECRETS:
            raise RuntimeError("SECRET_KEY must be set in production")
        if not cls.REDIS_URL:
            raise RuntimeError("REDIS_URL must be set in production")


# APP_ENV value -> config class
CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the configuration class inferred from ``APP_ENV``.

    Returns
    -------
    type[BaseConfig]
        Class to pass to :meth:`flask.Config.from_object`.

    Notes
    -----
    Falls back to :class:`DevelopmentConfig` when ``APP_ENV`` is unset or
    unknown.
    """
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)
