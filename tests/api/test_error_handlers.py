from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api.errors import install_error_handlers, status_for
from app.core.errors import (
    ConflictError,
    DependencyFailure,
    EngineError,
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
)


class AlreadyGradedError(ConflictError):
    code = "already_graded"


@pytest.mark.parametrize(
    "exc,status",
    [
        (NotFoundError("x"), 404),
        (ConflictError("x"), 409),
        (InvalidInputError("x"), 400),
        (InvalidStateError("x"), 400),
        (UnauthorizedError("x"), 403),
        (DependencyFailure("x"), 503),
        (AlreadyGradedError("x"), 409),
        (EngineError("x"), 500),
    ],
)
def test_status_for(exc: EngineError, status: int) -> None:
    assert status_for(exc) == status


def test_handler_renders_detail_and_code() -> None:
    app = FastAPI()
    install_error_handlers(app)

    @app.get("/boom")
    async def boom() -> None:
        raise AlreadyGradedError("Assessment already graded")

    resp = TestClient(app).get("/boom")
    assert resp.status_code == 409
    assert resp.json() == {"detail": "Assessment already graded", "code": "already_graded"}
