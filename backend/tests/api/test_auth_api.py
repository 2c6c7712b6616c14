"""HTTP tests for the cookie-based session endpoints."""

from __future__ import annotations

import pytest

from shiftpay.api.cookies import ACCESS_COOKIE, REFRESH_COOKIE
from shiftpay.core.extensions import REFRESH_STORE_KEY
from shiftpay.services._shared.errors import StoreUnavailableError
from tests.factories.user import UserFactory

BASE = "/api/v1/auth"
PASSWORD = "secret1"


@pytest.fixture()
def user(session):
    u = UserFactory(email="a@x.com", password=PASSWORD, display_name="Ana")
    # Requests close the scoped session; commit so the row outlives them
    session.commit()
    session.refresh(u)
    return u


def _login(client, email="a@x.com", password=PASSWORD):
    return client.post(f"{BASE}/login", json={"email": email, "password": password})


def _set_cookies(response) -> dict[str, str]:
    """Map cookie name -> raw ``Set-Cookie`` header."""
    return {h.split("=", 1)[0]: h for h in response.headers.getlist("Set-Cookie")}


def _cookie(client, name):
    cookie = client.get_cookie(name)
    return cookie.value if cookie is not None else None


def _assert_problem(response, status: int, code: str):
    assert response.status_code == status
    assert response.mimetype == "application/problem+json"
    body = response.get_json()
    assert body["status"] == status
    assert body["code"] == code
    assert body["request_id"]
    return body


# -------------------------------- Signup ---------------------------------- #
class TestSignup:
    def test_creates_account_without_signing_in(self, client):
        response = client.post(
            f"{BASE}/signup",
            json={"email": "New@X.com", "password": PASSWORD, "display_name": "Neo"},
        )

        assert response.status_code == 201
        data = response.get_json()["data"]
        assert data["email"] == "new@x.com"
        assert data["display_name"] == "Neo"
        assert set(data) == {"id", "email", "display_name", "created_at"}
        assert not response.headers.getlist("Set-Cookie")

    def test_duplicate_email(self, client, user):
        response = client.post(
            f"{BASE}/signup",
            json={"email": "A@x.com", "password": PASSWORD, "display_name": "Ana"},
        )
        _assert_problem(response, 409, "conflict")

    @pytest.mark.parametrize(
        ("payload", "field"),
        [
            ({"email": "not-an-email", "password": PASSWORD, "display_name": "Neo"}, "email"),
            ({"email": "n@x.com", "password": "12345", "display_name": "Neo"}, "password"),
            ({"email": "n@x.com", "password": "x" * 41, "display_name": "Neo"}, "password"),
            ({"email": "n@x.com", "password": PASSWORD, "display_name": "N"}, "display_name"),
            ({"email": "n@x.com", "password": PASSWORD}, "display_name"),
        ],
    )
    def test_validation_errors(self, client, payload, field):
        response = client.post(f"{BASE}/signup", json=payload)

        body = _assert_problem(response, 422, "validation_error")
        assert field in body["details"]["errors"]


# -------------------------------- Login ----------------------------------- #
class TestLogin:
    def test_sets_http_only_session_cookies(self, client, user):
        response = _login(client)

        assert response.status_code == 200
        assert response.get_json() == {
            "data": {
                "id": user.id,
                "email": "a@x.com",
                "display_name": "Ana",
                "created_at": response.get_json()["data"]["created_at"],
            }
        }

        cookies = _set_cookies(response)
        assert set(cookies) == {ACCESS_COOKIE, REFRESH_COOKIE}
        for header in cookies.values():
            assert "HttpOnly" in header
            assert "SameSite=Strict" in header
            assert "Path=/" in header
            assert "Domain=localhost" in header
            assert "Secure" not in header
        assert "Max-Age=900" in cookies[ACCESS_COOKIE]
        assert f"Max-Age={30 * 24 * 3600}" in cookies[REFRESH_COOKIE]

    def test_tokens_never_appear_in_body(self, client, user):
        response = _login(client)

        text = response.get_data(as_text=True)
        assert _cookie(client, ACCESS_COOKIE) not in text
        assert _cookie(client, REFRESH_COOKIE) not in text

    def test_secure_flag_follows_config(self, app, client, user):
        app.config["COOKIE_SECURE"] = True
        try:
            response = _login(client)
        finally:
            app.config["COOKIE_SECURE"] = False

        for header in _set_cookies(response).values():
            assert "Secure" in header

    @pytest.mark.parametrize(
        ("email", "password"),
        [("a@x.com", "wrong-password"), ("ghost@x.com", PASSWORD)],
    )
    def test_bad_credentials_are_indistinguishable(self, client, user, email, password):
        response = _login(client, email=email, password=password)

        body = _assert_problem(response, 401, "invalid_credentials")
        assert body["detail"] == "Invalid credentials"
        assert not response.headers.getlist("Set-Cookie")


# ----------------------------- Identity ----------------------------------- #
class TestMe:
    def test_returns_current_user(self, client, user):
        _login(client)

        response = client.get(f"{BASE}/me")

        assert response.status_code == 200
        assert response.get_json()["data"]["id"] == user.id

    def test_requires_access_cookie(self, client):
        _assert_problem(client.get(f"{BASE}/me"), 401, "unauthorized")

    def test_rejects_garbage_cookie(self, client):
        client.set_cookie(ACCESS_COOKIE, "not-a-jwt")
        _assert_problem(client.get(f"{BASE}/me"), 401, "unauthorized")

    def test_ignores_bearer_header(self, client, user):
        _login(client)
        access = _cookie(client, ACCESS_COOKIE)
        client.delete_cookie(ACCESS_COOKIE)

        response = client.get(f"{BASE}/me", headers={"Authorization": f"Bearer {access}"})

        _assert_problem(response, 401, "unauthorized")


# ------------------------------- Refresh ---------------------------------- #
class TestRefresh:
    def test_rotates_both_cookies(self, client, user):
        _login(client)
        old_access, old_refresh = _cookie(client, ACCESS_COOKIE), _cookie(client, REFRESH_COOKIE)

        response = client.post(f"{BASE}/refresh")

        assert response.status_code == 200
        assert response.get_json() == {"data": {"message": "Token refreshed successfully"}}
        assert _cookie(client, REFRESH_COOKIE) != old_refresh
        assert _cookie(client, ACCESS_COOKIE)
        assert old_access not in response.get_data(as_text=True)
        assert client.get(f"{BASE}/me").status_code == 200

    def test_reused_token_fails_and_clears_cookies(self, client, user):
        _login(client)
        stolen = _cookie(client, REFRESH_COOKIE)
        assert client.post(f"{BASE}/refresh").status_code == 200

        client.set_cookie(REFRESH_COOKIE, stolen)
        response = client.post(f"{BASE}/refresh")

        body = _assert_problem(response, 401, "token_refresh_failed")
        assert body["detail"] == "Session expired. Please sign in again."
        cookies = _set_cookies(response)
        assert set(cookies) == {ACCESS_COOKIE, REFRESH_COOKIE}
        assert all("Max-Age=0" in h for h in cookies.values())
        assert _cookie(client, ACCESS_COOKIE) is None

    def test_missing_cookie(self, client):
        _assert_problem(client.post(f"{BASE}/refresh"), 401, "token_refresh_failed")

    def test_deleted_user(self, client, user, session):
        user_id = user.id
        _login(client)
        session.delete(session.merge(user))
        session.commit()

        response = client.post(f"{BASE}/refresh")

        body = _assert_problem(response, 404, "not_found")
        assert body["detail"] == "User not found"
        assert user_id not in response.get_data(as_text=True)
        assert _cookie(client, REFRESH_COOKIE) is None

    def test_store_outage_is_503_not_401(self, app, client, user, monkeypatch):
        _login(client)

        def _down(*args, **kwargs):
            raise StoreUnavailableError()

        monkeypatch.setattr(app.extensions[REFRESH_STORE_KEY], "lookup", _down)

        response = client.post(f"{BASE}/refresh")

        _assert_problem(response, 503, "service_unavailable")
        assert _cookie(client, REFRESH_COOKIE) is not None


# -------------------------------- Logout ---------------------------------- #
class TestLogout:
    def test_revokes_and_clears(self, client, user, refresh_store):
        _login(client)
        token = _cookie(client, REFRESH_COOKIE)

        response = client.post(f"{BASE}/logout")

        assert response.status_code == 200
        assert response.get_json() == {"data": {"message": "Logged out"}}
        assert _cookie(client, ACCESS_COOKIE) is None
        assert _cookie(client, REFRESH_COOKIE) is None
        assert refresh_store.list_for_user(user.id) == []

        client.set_cookie(REFRESH_COOKIE, token)
        _assert_problem(client.post(f"{BASE}/refresh"), 401, "token_refresh_failed")

    def test_is_idempotent(self, client, user):
        _login(client)
        assert client.post(f"{BASE}/logout").status_code == 200
        assert client.post(f"{BASE}/logout").status_code == 200

    def test_logout_all(self, app, client, user, refresh_store):
        other_device = app.test_client()
        _login(other_device)
        _login(client)

        response = client.post(f"{BASE}/logout-all")

        assert response.status_code == 200
        assert response.get_json()["data"] == {"message": "Logged out everywhere", "revoked": 2}
        _assert_problem(other_device.post(f"{BASE}/refresh"), 401, "token_refresh_failed")

    def test_logout_all_requires_auth(self, client):
        _assert_problem(client.post(f"{BASE}/logout-all"), 401, "unauthorized")
