"""Shared test fixtures."""

import aiosqlite
import pytest
import pytest_asyncio

from unittest.mock import patch

from twi_map.db.sqlite_db import _SCHEMA_SQL
from twi_map.infra import config
from twi_map.models.extraction import ChapterExtraction
from twi_map.services.location_aggregator import ChapterInput
from twi_map.services.name_tables import load_name_tables

_STORES = (
    "twi_map.db.chapter_store",
    "twi_map.db.extraction_store",
    "twi_map.db.aggregate_store",
    "twi_map.db.coordinate_store",
)


@pytest.fixture(scope="session")
def tables():
    """The packaged vocabulary tables."""
    return load_name_tables(config.PACKAGED_TABLES_DIR)


@pytest_asyncio.fixture
async def memory_db():
    """Create an in-memory SQLite database with full schema."""
    conn = await aiosqlite.connect(":memory:")
    conn.row_factory = aiosqlite.Row
    await conn.executescript(_SCHEMA_SQL)
    await conn.commit()
    yield conn
    await conn.close()


@pytest_asyncio.fixture
async def mock_get_connection(memory_db):
    """Patch every store's get_connection to return the shared in-memory DB.

    The real connection is wrapped so close() is a no-op during tests
    (the fixture manages the lifecycle).
    """

    class _NonClosingConnection:
        def __init__(self, conn):
            self._conn = conn

        def __getattr__(self, name):
            return getattr(self._conn, name)

        async def close(self):
            pass  # no-op

    async def _factory():
        return _NonClosingConnection(memory_db)

    patches = [patch(f"{mod}.get_connection", _factory) for mod in _STORES]
    for p in patches:
        p.start()
    try:
        yield memory_db
    finally:
        for p in reversed(patches):
            p.stop()


def make_chapter(index, locations=(), relationships=(), containment=()):
    """Build a ChapterInput from plain dicts, the way extraction files look."""
    extraction = ChapterExtraction.model_validate(
        {
            "chapter_index": index,
            "locations": list(locations),
            "relationships": list(relationships),
            "containment": list(containment),
        }
    )
    return ChapterInput(index=index, extraction=extraction)
