"""Request context middleware: one id per request, on every log line.

The id comes from the client's X-Request-ID header when present (so a
caller can correlate across services) and is generated otherwise.  It is
stored in ``request_id_var``, which is per-task under asyncio; the filter
that setup_logging puts on the log handler copies it onto every record.
Post-commit hook failures logged deep inside a service therefore carry
the id of the request that caused them.
"""

from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.core.logging import request_id_var

logger = logging.getLogger(__name__)

_MAX_REQUEST_ID_LEN = 128


def _incoming_request_id(request: Request) -> str:
    supplied = request.headers.get("x-request-id", "").strip()
    if supplied and len(supplied) <= _MAX_REQUEST_ID_LEN and supplied.isprintable():
        return supplied
    return str(uuid.uuid4())


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = _incoming_request_id(request)
        token = request_id_var.set(req_id)
        start = time.monotonic()
        try:
            response = await call_next(request)
            duration_ms = round((time.monotonic() - start) * 1000, 1)
            logger.info(
                "%s %s -> %d (%.1fms)",
                request.method,
                request.url.path,
                response.status_code,
                duration_ms,
                extra={
                    "request_id": req_id,
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                },
            )
            response.headers["X-Request-ID"] = req_id
            return response
        finally:
            request_id_var.reset(token)
