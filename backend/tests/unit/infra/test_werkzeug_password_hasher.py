"""Unit tests for the werkzeug-backed password hasher."""

from __future__ import annotations

import pytest

from shiftpay.infra.security.werkzeug_password_hasher import WerkzeugPasswordHasher


@pytest.fixture
def hasher() -> WerkzeugPasswordHasher:
    return WerkzeugPasswordHasher(method="pbkdf2:sha256:1000")


def test_hash_is_salted(hasher):
    first, second = hasher.hash("secret1"), hasher.hash("secret1")

    assert first != second
    assert "secret1" not in first
    assert first.startswith("pbkdf2:sha256:1000$")


def test_verify_matches_only_the_original(hasher):
    hashed = hasher.hash("secret1")

    assert hasher.verify("secret1", hashed) is True
    assert hasher.verify("secret2", hashed) is False
    assert hasher.verify("", hashed) is False


def test_verify_against_empty_hash_is_false(hasher):
    assert hasher.verify("secret1", "") is False


@pytest.mark.parametrize("value", ["", None])
def test_hash_rejects_empty_input(hasher, value):
    with pytest.raises(ValueError):
        hasher.hash(value)


def test_default_method_is_scrypt():
    assert WerkzeugPasswordHasher().hash("secret1").startswith("scrypt:")
