"""
Async engine and store construction.
Challenge: Connection pooling, per-backend quirks, proper cleanup.
Design: Pool limits come from Settings; callers get a ready RecordStore and
dispose of it through ``store_lifespan`` (no connection leaks).
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from recordstore.config import Settings, get_settings
from recordstore.db.schema import Registry
from recordstore.db.store import RecordStore

logger = logging.getLogger(__name__)


def create_engine(settings: Settings) -> AsyncEngine:
    """Async engine with the configured connection pool."""
    url = make_url(settings.database_url)
    kwargs: dict[str, Any] = {"echo": settings.debug}

    if url.get_backend_name() != "sqlite":
        # max_idle connections are kept; up to max_open in total
        kwargs.update(
            pool_size=settings.pool_max_idle,
            max_overflow=max(settings.pool_max_open - settings.pool_max_idle, 0),
            pool_recycle=settings.pool_max_lifetime_seconds,
            pool_timeout=settings.pool_timeout_seconds,
            pool_pre_ping=settings.pool_pre_ping,
        )

    engine = create_async_engine(url, **kwargs)

    if url.get_backend_name() == "sqlite":
        # Foreign keys are off by default in SQLite
        @event.listens_for(engine.sync_engine, "connect")
        def _set_sqlite_pragma(dbapi_connection: Any, _record: Any) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    logger.info("engine created for %s", url.render_as_string(hide_password=True))
    return engine


def create_store(settings: Settings | None = None, registry: Registry | None = None) -> RecordStore:
    """Store over a new engine. Defaults to cached settings and the bundled models."""
    settings = settings or get_settings()
    if registry is None:
        from recordstore.db.models import build_registry

        registry = build_registry()
    return RecordStore(create_engine(settings), registry, timeout=settings.operation_timeout_seconds)


@asynccontextmanager
async def store_lifespan(settings: Settings | None = None, registry: Registry | None = None) -> AsyncIterator[RecordStore]:
    """Yield a store and dispose of its pool on exit."""
    store = create_store(settings, registry)
    try:
        yield store
    finally:
        await store.close()
