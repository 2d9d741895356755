"""Integration-test fixtures.

Needs a migrated PostgreSQL database:

    alembic -x dburl=postgresql+asyncpg://... upgrade head
    LM_TEST_DATABASE_URL=postgresql+asyncpg://... pytest tests/integration

Every integration test is skipped when LM_TEST_DATABASE_URL is unset.
"""

import os

import pytest
import pytest_asyncio
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

_DB_URL = os.environ.get("LM_TEST_DATABASE_URL")


def pytest_collection_modifyitems(config, items):
    if _DB_URL:
        return
    skip = pytest.mark.skip(reason="LM_TEST_DATABASE_URL not set")
    for item in items:
        if "integration" in item.path.parts:
            item.add_marker(skip)


@pytest_asyncio.fixture
async def engine() -> AsyncEngine:
    assert _DB_URL
    eng = create_async_engine(_DB_URL, pool_size=10)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Sessions on a freshly emptied schema."""
    async with engine.begin() as conn:
        await conn.execute(
            text("TRUNCATE listing_contact_requests, listing_views, marketplace_listings")
        )
    return async_sessionmaker(engine, expire_on_commit=False)
