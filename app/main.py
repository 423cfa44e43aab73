from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.api.analytics import router as analytics_router
from app.api.assessments import router as assessments_router
from app.api.badges import router as badges_router
from app.api.enrollments import router as enrollments_router
from app.api.errors import install_error_handlers
from app.api.health import router as health_router
from app.api.metrics_endpoint import router as metrics_router
from app.api.progress import router as progress_router
from app.core.config import SETTINGS
from app.core.logging import setup_logging
from app.db.engine import lifespan_db
from app.db.redis import lifespan_redis
from app.middleware.metrics import MetricsMiddleware
from app.middleware.request_context import RequestContextMiddleware
from app.services.otp_store import build_otp_store

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # Nested so teardown runs in reverse order.
    async with lifespan_db():
        async with lifespan_redis():
            _app.state.otp_store = build_otp_store()
            yield


app = FastAPI(
    title="lms-progress-service",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

# Last-added runs first: RequestContext (outermost) -> Metrics -> route.
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

install_error_handlers(app)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(enrollments_router)
app.include_router(progress_router)
app.include_router(assessments_router)
app.include_router(badges_router)
app.include_router(analytics_router)

logger.info(
    "lms-progress-service started  env=%s log_level=%s port=%d docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.is_dev else "off",
)
