"""Pytest fixtures configuring an isolated transactional database layer.

Each test runs inside a SAVEPOINT-backed transaction against an in-memory
SQLite database so data changes never leak between cases. Refresh tokens
live in a fresh in-memory store per test.
"""

from __future__ import annotations

import os

import pytest
from sqlalchemy import event
from sqlalchemy.orm import scoped_session, sessionmaker

from shiftpay.core.config import TestingConfig
from shiftpay.core.extensions import REFRESH_STORE_KEY
from shiftpay.core.extensions import db as _db  # Flask-SQLAlchemy instance
from shiftpay.factory import create_app  # application factory under test
from shiftpay.infra.security.werkzeug_password_hasher import WerkzeugPasswordHasher
from shiftpay.services._shared.ports import InMemoryRefreshTokenStore

TEST_PASSWORD = "Passw0rd!"


class TestConfig(TestingConfig):
    """In-memory SQLite and non-Secure ``localhost`` cookies the test client sends back."""

    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    COOKIE_DOMAIN = "localhost"
    COOKIE_SECURE = False
    LOG_LEVEL = "WARNING"


@pytest.fixture(scope="session")
def app():
    # Environment URLs must not leak into the test app
    os.environ.pop("DATABASE_URL", None)
    os.environ.pop("REDIS_URL", None)
    app = create_app(TestConfig, instance_relative_config=False)
    app.logger.setLevel("WARNING")
    return app


@pytest.fixture(scope="session")
def db(app):
    """Tables are created once and dropped at the end of the run."""
    with app.app_context():
        _db.create_all()
        yield _db
        _db.session.remove()
        _db.drop_all()


@pytest.fixture(scope="session")
def connection(db):
    """Keep a dedicated DBAPI connection open for the whole session."""
    conn = db.engine.connect()
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="function")
def session(db, connection):
    """
    Scoped session inside an outer transaction plus a SAVEPOINT.

    Application code sees it as ``db.session``. Commits only release the
    SAVEPOINT, which is reopened at once, and the outer transaction is rolled
    back after the test.
    """
    top_trans = connection.begin()

    SessionFactory = sessionmaker(bind=connection, future=True, autoflush=False)
    scoped = scoped_session(SessionFactory)

    nested = connection.begin_nested()

    # Reopen the SAVEPOINT whenever the session ends one
    @event.listens_for(scoped(), "after_transaction_end")
    def _restart_savepoint(sess, trans):  # pragma: no cover
        if trans.nested and not trans._parent.nested:
            nonlocal nested
            nested = connection.begin_nested()

    original_session = db.session
    db.session.remove()
    db.session = scoped

    try:
        yield scoped
    finally:
        scoped.remove()
        db.session = original_session
        top_trans.rollback()


@pytest.fixture()
def refresh_store(app):
    """Install a fresh in-memory refresh store on the app for one test."""
    store = InMemoryRefreshTokenStore()
    previous = app.extensions.get(REFRESH_STORE_KEY)
    app.extensions[REFRESH_STORE_KEY] = store
    yield store
    app.extensions[REFRESH_STORE_KEY] = previous


@pytest.fixture()
def client(app, session, refresh_store):
    """Return a Flask test client sharing the transactional session."""
    return app.test_client()


@pytest.fixture()
def app_ctx(app):
    """Push an application context for code that needs ``current_app``."""
    with app.app_context():
        yield app


@pytest.fixture(scope="session")
def hasher():
    """Cheap password hasher matching :class:`TestConfig`."""
    return WerkzeugPasswordHasher(method=TestConfig.PASSWORD_HASH_METHOD)


@pytest.fixture(scope="session")
def faker():
    """Seeded Faker."""
    from faker import Faker

    fk = Faker()
    Faker.seed(1337)
    return fk


@pytest.fixture(autouse=True)
def _factories_session(request):
    """Point factories at the test session; tests without one skip this."""
    from tests.factories import SQLAlchemySession

    if "session" not in request.fixturenames:
        yield
        return
    SQLAlchemySession.set(request.getfixturevalue("session"))
    yield
    SQLAlchemySession.set(None)
