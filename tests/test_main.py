"""Tests for the local license HTTP service."""

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import REVOKED_VERDICT, VALID_VERDICT
from main import app, get_agent


@pytest.fixture
def client(agent):
    app.dependency_overrides[get_agent] = lambda: agent
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def test_validate_returns_result(client, validate_route) -> None:
    validate_route.respond(200, json=VALID_VERDICT)

    response = client.post("/api/license/validate", json={"metadata": {"userId": "user123"}})

    assert response.status_code == 200
    body = response.json()
    assert body["isValid"] is True
    assert body["isOffline"] is None
    assert body["status"] == "active"
    assert body["allowedData"] == {"features": ["all"]}
    assert body["error"] is None
    assert json.loads(validate_route.calls.last.request.content)["metadata"] == {"userId": "user123"}


def test_validate_without_body(client, validate_route) -> None:
    validate_route.side_effect = httpx.ConnectError

    response = client.post("/api/license/validate")

    assert response.status_code == 200
    body = response.json()
    assert body["isValid"] is False
    assert body["isOffline"] is True
    assert body["reason"] == "network_error_no_cache"
    assert body["error"]["type"] == "NetworkError"
    assert body["lastCheckedAt"] is None


def test_force_validate_calls_server_again(client, validate_route) -> None:
    validate_route.respond(200, json=VALID_VERDICT)

    client.post("/api/license/validate")
    client.post("/api/license/force-validate")

    assert validate_route.call_count == 2


def test_check_valid_license(client, validate_route) -> None:
    validate_route.respond(200, json=VALID_VERDICT)

    response = client.post("/api/license/check")

    assert response.status_code == 200
    assert response.json() == {"valid": True}


def test_check_invalid_license_is_forbidden(client, validate_route) -> None:
    validate_route.respond(200, json=REVOKED_VERDICT)

    response = client.post("/api/license/check")

    assert response.status_code == 403
    assert response.json()["detail"]["reason"] == "revoked"


def test_check_unreachable_server_is_unavailable(client, validate_route) -> None:
    validate_route.side_effect = httpx.ConnectError

    response = client.post("/api/license/check")

    assert response.status_code == 503
    assert response.json()["detail"]["type"] == "NetworkError"


def test_clear_cache(client, validate_route) -> None:
    validate_route.respond(200, json=VALID_VERDICT)
    client.post("/api/license/validate")

    response = client.delete("/api/license/cache")
    client.post("/api/license/validate")

    assert response.json()["success"] is True
    assert validate_route.call_count == 2


def test_health(client) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["productName"] == "TestProduct"
    assert response.json()["status"] == "healthy"
