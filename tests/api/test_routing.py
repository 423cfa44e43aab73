from __future__ import annotations

from uuid import uuid4

from fastapi.testclient import TestClient

from tests.conftest import auth

# ---- 404: undefined routes ----


def test_undefined_route_returns_404(client: TestClient) -> None:
    resp = client.get("/nonexistent")
    assert resp.status_code == 404
    assert resp.json() == {"detail": "Not Found"}


def test_removed_auth_routes_are_gone(client: TestClient) -> None:
    assert client.post("/auth/token").status_code == 404


# ---- 405: wrong HTTP method on existing routes ----


def test_delete_enrollments_returns_405(client: TestClient) -> None:
    resp = client.delete("/v1/enrollments", headers=auth("someone"))
    assert resp.status_code == 405


def test_put_health_returns_405(client: TestClient) -> None:
    resp = client.put("/health", json={"status": "bad"})
    assert resp.status_code == 405


# ---- 422: malformed input ----


def test_non_uuid_path_parameter_is_422(client: TestClient) -> None:
    resp = client.get("/v1/progress/not-a-uuid", headers=auth(str(uuid4())))
    assert resp.status_code == 422
