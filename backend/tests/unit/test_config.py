"""Configuration selection and production safety checks."""

from __future__ import annotations

import pytest

from shiftpay.core import config as cfg
from shiftpay.factory import create_app


@pytest.mark.parametrize(
    ("env", "expected"),
    [
        ("production", cfg.ProductionConfig),
        ("Testing", cfg.TestingConfig),
        ("development", cfg.DevelopmentConfig),
        ("nonsense", cfg.DevelopmentConfig),
    ],
)
def test_get_config_follows_app_env(monkeypatch, env, expected):
    monkeypatch.setenv(cfg.ENV_VAR, env)
    assert cfg.get_config() is expected


@pytest.mark.parametrize(
    ("value", "expected"),
    [("1", True), ("yes", True), ("On", True), ("0", False), ("off", False)],
)
def test_env_bool(monkeypatch, value, expected):
    monkeypatch.setenv("SHIFTPAY_FLAG", value)
    assert cfg.env_bool("SHIFTPAY_FLAG") is expected


def test_env_int_rejects_non_positive(monkeypatch):
    monkeypatch.setenv("SHIFTPAY_TTL", "0")
    with pytest.raises(ValueError):
        cfg.env_int("SHIFTPAY_TTL", 10)
    monkeypatch.setenv("SHIFTPAY_TTL", " ")
    assert cfg.env_int("SHIFTPAY_TTL", 10) == 10


def _production(**overrides) -> type[cfg.ProductionConfig]:
    attrs = {
        "SECRET_KEY": "s3cret",
        "JWT_SECRET_KEY": "jwt-s3cret",
        "REDIS_URL": "redis://localhost:6379/0",
    }
    attrs.update(overrides)
    return type("ProdUnderTest", (cfg.ProductionConfig,), attrs)


@pytest.mark.parametrize(
    "overrides",
    [{"JWT_SECRET_KEY": "CHANGE_ME_JWT"}, {"SECRET_KEY": ""}, {"REDIS_URL": None}],
)
def test_production_refuses_unsafe_settings(overrides):
    with pytest.raises(RuntimeError):
        create_app(_production(**overrides), instance_relative_config=False)


def test_access_ttl_drives_jwt_lifetime():
    class ShortLived(cfg.TestingConfig):
        ACCESS_TOKEN_TTL = 60

    app = create_app(ShortLived, instance_relative_config=False)
    assert app.config["JWT_ACCESS_TOKEN_EXPIRES"].total_seconds() == 60
