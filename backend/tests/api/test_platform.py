"""Health check, error envelope and request correlation."""

from __future__ import annotations

from unittest.mock import MagicMock

from redis.exceptions import ConnectionError as RedisConnectionError

from shiftpay.core.logger import REQUEST_ID_HEADER


def test_health_without_redis(client):
    response = client.get("/api/v1/health")

    assert response.status_code == 200
    payload = response.get_json()
    assert payload["status"] == "ok"
    assert payload["db"] == "ok"
    assert payload["refresh_store"] == "disabled"


def test_health_degraded_when_redis_down(app, client, monkeypatch):
    broken = MagicMock()
    broken.ping.side_effect = RedisConnectionError("down")
    monkeypatch.setitem(app.extensions, "redis_client", broken)

    response = client.get("/api/v1/health")

    assert response.status_code == 503
    assert response.get_json()["refresh_store"] == "fail"


def test_request_id_is_echoed(client):
    response = client.get("/api/v1/health", headers={REQUEST_ID_HEADER: "req-123"})
    assert response.headers[REQUEST_ID_HEADER] == "req-123"


def test_request_id_is_generated(client):
    assert client.get("/api/v1/health").headers[REQUEST_ID_HEADER]


def test_each_request_gets_its_own_id(app, client):
    # Tests keep one app context pushed, so ``g`` is shared across requests
    with app.app_context():
        first = client.get("/api/v1/health").headers[REQUEST_ID_HEADER]
        second = client.get("/api/v1/health").headers[REQUEST_ID_HEADER]
        echoed = client.get("/api/v1/health", headers={REQUEST_ID_HEADER: "req-456"})

    assert first != second
    assert echoed.headers[REQUEST_ID_HEADER] == "req-456"


def test_problem_body_carries_the_current_request_id(client):
    client.get("/api/v1/health")

    response = client.get("/api/v1/nope", headers={REQUEST_ID_HEADER: "req-789"})

    assert response.get_json()["request_id"] == "req-789"


def test_unknown_route_is_problem_json(client):
    response = client.get("/api/v1/nope")

    assert response.status_code == 404
    assert response.mimetype == "application/problem+json"
    body = response.get_json()
    assert body["code"] == "not_found"
    assert body["detail"] == "Route '/api/v1/nope' not found"


def test_wrong_method_is_problem_json(client):
    response = client.get("/api/v1/auth/login")

    assert response.status_code == 405
    assert response.get_json()["code"] == "method_not_allowed"


def test_malformed_request_id_is_replaced(client):
    response = client.get("/api/v1/health", headers={REQUEST_ID_HEADER: "x" * 200})

    echoed = response.headers[REQUEST_ID_HEADER]
    assert echoed != "x" * 200
    assert len(echoed) == 36
