"""Async SQLAlchemy engine and session factory.

With DATABASE_URL set (postgresql+asyncpg://...), the unit of work opens
one AsyncSession per transaction from ``async_session_factory``.  Without
it, both exports are None and the app runs on in-memory repositories.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.core.config import SETTINGS

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all table models."""


if SETTINGS.database_url:
    engine = create_async_engine(
        SETTINGS.database_url,
        echo=False,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
    )
    # expire_on_commit=False: rows converted to dataclasses after commit
    # must not trigger a lazy reload on a closed session.
    async_session_factory: async_sessionmaker[AsyncSession] | None = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
else:
    engine = None
    async_session_factory = None


@asynccontextmanager
async def lifespan_db():
    """Startup/shutdown hook for the database engine."""
    if engine is None:
        logger.info("No DATABASE_URL configured, using in-memory repositories")
        yield
        return

    logger.info("Database engine created: %s", engine.url.render_as_string(hide_password=True))
    yield
    await engine.dispose()
    logger.info("Database engine disposed")
