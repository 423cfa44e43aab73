"""Every response carries an X-Request-ID and every log line carries it too."""

from __future__ import annotations

import logging
import uuid

import pytest
from fastapi.testclient import TestClient


def test_request_id_generated_when_not_provided(client: TestClient) -> None:
    resp = client.get("/health")
    uuid.UUID(resp.headers["x-request-id"])


def test_request_id_echoed_when_provided(client: TestClient) -> None:
    resp = client.get("/health", headers={"X-Request-ID": "my-custom-request-id-123"})
    assert resp.headers.get("x-request-id") == "my-custom-request-id-123"


def test_oversized_request_id_is_replaced(client: TestClient) -> None:
    resp = client.get("/health", headers={"X-Request-ID": "x" * 500})
    uuid.UUID(resp.headers["x-request-id"])


def test_request_id_present_on_error_responses(client: TestClient) -> None:
    resp = client.get("/v1/enrollments")  # no token -> 401
    assert resp.status_code == 401
    assert resp.headers.get("x-request-id") is not None


def test_request_summary_is_logged_with_request_id(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.INFO, logger="app.middleware.request_context"):
        client.get("/health", headers={"X-Request-ID": "trace-me"})

    (record,) = [r for r in caplog.records if r.name == "app.middleware.request_context"]
    assert record.request_id == "trace-me"
    assert record.status_code == 200
    assert "GET /health -> 200" in record.getMessage()
