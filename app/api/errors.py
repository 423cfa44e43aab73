"""Map domain errors to HTTP responses.

Services raise EngineError subclasses and know nothing about HTTP.  These
handlers turn them into ``{"detail": message, "code": code}`` with the
status below.  Anything else keeps FastAPI's default 500 handling.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from app.core.errors import (
    ConflictError,
    DependencyFailure,
    EngineError,
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR: dict[type[EngineError], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
    InvalidInputError: status.HTTP_400_BAD_REQUEST,
    InvalidStateError: status.HTTP_400_BAD_REQUEST,
    UnauthorizedError: status.HTTP_403_FORBIDDEN,
    DependencyFailure: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_for(exc: EngineError) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[cls]  # type: ignore[index]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def engine_error_handler(request: Request, exc: EngineError) -> JSONResponse:
    code = status_for(exc)
    log = logger.warning if code >= 500 else logger.info
    log(
        "%s %s -> %d %s: %s",
        request.method,
        request.url.path,
        code,
        exc.code,
        exc.message,
    )
    return JSONResponse(
        status_code=code, content={"detail": exc.message, "code": exc.code}
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(EngineError, engine_error_handler)
