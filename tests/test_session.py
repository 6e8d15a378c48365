"""
Settings and engine construction tests.
"""

import logging

import pytest

from recordstore.config import Settings
from recordstore.core.logging import configure_logging
from recordstore.db.session import create_engine, create_store, store_lifespan


def test_settings_read_prefixed_environment(monkeypatch):
    monkeypatch.setenv("RECORDSTORE_POOL_MAX_OPEN", "25")
    monkeypatch.setenv("RECORDSTORE_OPERATION_TIMEOUT_SECONDS", "2.5")
    settings = Settings(_env_file=None)
    assert settings.pool_max_open == 25
    assert settings.operation_timeout_seconds == 2.5
    assert settings.database_url.startswith("postgresql+asyncpg://")


@pytest.mark.asyncio
async def test_pool_limits_follow_settings():
    settings = Settings(pool_max_open=30, pool_max_idle=5, _env_file=None)
    engine = create_engine(settings)
    try:
        assert engine.sync_engine.pool.size() == 5
        assert engine.sync_engine.pool._max_overflow == 25
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_store_uses_configured_timeout(settings):
    settings.operation_timeout_seconds = 3.0
    store = create_store(settings)
    try:
        assert store.begin()._timeout == 3.0
        assert store.dialect == "sqlite"
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_store_lifespan_disposes_pool(settings):
    async with store_lifespan(settings) as store:
        await store.migrate()
        assert await store.query_one("SELECT 1 AS one") == {"one": 1}


@pytest.mark.asyncio
async def test_sqlite_enforces_foreign_keys(settings):
    async with store_lifespan(settings) as store:
        assert await store.query_one("PRAGMA foreign_keys") == {"foreign_keys": 1}


def test_configure_logging_quiets_sql_unless_debug():
    configure_logging(Settings(debug=False, _env_file=None))
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
    configure_logging(Settings(debug=True, _env_file=None))
    assert logging.getLogger("sqlalchemy.engine").level == logging.INFO
