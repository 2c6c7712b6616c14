"""Tests for the ``flask sessions`` and ``flask db-init`` commands."""

from __future__ import annotations

import pytest

from shiftpay.core import config as cfg
from shiftpay.factory import create_app
from tests.factories.user import UserFactory


@pytest.fixture()
def runner(app, session, refresh_store):
    return app.test_cli_runner()


@pytest.fixture()
def user(session):
    u = UserFactory(email="cli@example.com")
    session.commit()
    session.refresh(u)
    return u


def test_list_without_sessions(runner, user):
    result = runner.invoke(args=["sessions", "list", "cli@example.com"])

    assert result.exit_code == 0
    assert "No active sessions." in result.output


def test_list_shows_token_prefix_only(runner, user, refresh_store):
    token = "abcdefgh" + "z" * 35
    refresh_store.store(token, user.id, 3600)

    result = runner.invoke(args=["sessions", "list", "CLI@example.com"])

    assert result.exit_code == 0
    assert "abcdefgh..." in result.output
    assert token not in result.output


def test_revoke_signs_out_everywhere(runner, user, refresh_store):
    for i in range(2):
        refresh_store.store(f"token-{i}", user.id, 3600)

    result = runner.invoke(args=["sessions", "revoke", "cli@example.com"])

    assert result.exit_code == 0
    assert "Revoked 2 session(s)." in result.output
    assert refresh_store.list_for_user(user.id) == []


def test_unknown_email_is_a_usage_error(runner):
    result = runner.invoke(args=["sessions", "revoke", "ghost@example.com"])

    assert result.exit_code == 2
    assert "no user with email" in result.output


def test_db_init_refuses_outside_dev_and_test():
    class Staging(cfg.TestingConfig):
        TESTING = False
        DEBUG = False

    staging = create_app(Staging, instance_relative_config=False)
    with staging.app_context():
        result = staging.test_cli_runner().invoke(args=["db-init"])

    assert result.exit_code == 2
    assert "restricted" in result.output
