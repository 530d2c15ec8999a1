"""Tests for the aggregation and coordinate passes against the store."""

import sqlite3
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio

from twi_map.db import aggregate_store, chapter_store, coordinate_store, extraction_store
from twi_map.models.aggregate import Confidence
from twi_map.models.extraction import Chapter, ChapterExtraction
from twi_map.services.pipeline_service import (
    CoordinateWriteError,
    get_status,
    run_aggregation,
    run_coordinate_assignment,
)

LISCOR = {"name": "Liscor", "type": "city"}
INN = {"name": "The Wandering Inn", "type": "building"}


@pytest_asyncio.fixture
async def seeded_db(mock_get_connection):
    """Four chapters: three extracted, one never extracted."""
    await chapter_store.replace_chapters(
        [Chapter(index=i, volume="vol-1" if i < 2 else "vol-2") for i in range(4)]
    )
    for i in range(3):
        payload = {"chapter_index": i, "locations": [LISCOR, INN]}
        if i == 0:
            payload["relationships"] = [
                {"from": "The Wandering Inn", "to": "Liscor", "type": "adjacency"}
            ]
            payload["containment"] = [{"child": "Liscor", "parent": "Izril"}]
        await extraction_store.save_extraction(ChapterExtraction.model_validate(payload))
    return mock_get_connection


@pytest.mark.asyncio
async def test_run_aggregation(seeded_db, tables):
    summary = await run_aggregation(tables)
    assert (summary.chapters, summary.extracted, summary.unreadable) == (4, 3, 0)
    assert (summary.locations, summary.relationships, summary.containment) == (2, 1, 1)

    stored = await aggregate_store.read_aggregate()
    assert [loc.id for loc in stored.locations] == ["liscor", "the wandering inn"]
    assert stored.aggregated_at == summary.data.aggregated_at


@pytest.mark.asyncio
async def test_unreadable_extraction_is_skipped(seeded_db, tables):
    await seeded_db.execute(
        "INSERT INTO extractions (chapter_idx, extraction_json) VALUES (?, ?)", (3, "not json")
    )
    await seeded_db.commit()

    summary = await run_aggregation(tables)
    assert summary.unreadable == 1
    assert summary.extracted == 3
    assert summary.locations == 2


@pytest.mark.asyncio
async def test_aggregation_without_toc(mock_get_connection, tables):
    summary = await run_aggregation(tables)
    assert summary.chapters == 0
    assert summary.locations == 0


@pytest.mark.asyncio
async def test_failed_aggregate_write_propagates(seeded_db, tables):
    with patch(
        "twi_map.services.pipeline_service.aggregate_store.write_aggregate",
        AsyncMock(side_effect=sqlite3.OperationalError("disk I/O error")),
    ):
        with pytest.raises(sqlite3.OperationalError):
            await run_aggregation(tables)


@pytest.mark.asyncio
async def test_coordinate_assignment_preserves_manual(seeded_db, tables):
    await run_aggregation(tables)
    await coordinate_store.set_manual_coordinate("liscor", 10.0, 20.0, Confidence.medium)

    summary = await run_coordinate_assignment(tables=tables)
    assert summary.manual == 1
    assert summary.written == summary.seeded + summary.propagated + summary.defaulted

    coords = {c.location_id: c for c in await coordinate_store.read_coordinates()}
    liscor = coords["liscor"]
    assert (liscor.x, liscor.y, liscor.confidence, liscor.manual) == (10.0, 20.0, Confidence.medium, True)
    assert coords["the wandering inn"].confidence == Confidence.estimated
    assert (coords["izril"].x, coords["izril"].y) == (200.0, -20.0)


@pytest.mark.asyncio
async def test_coordinate_assignment_is_repeatable(seeded_db, tables):
    summary = await run_aggregation(tables)
    await run_coordinate_assignment(summary.data, tables)
    first = await coordinate_store.read_coordinates()
    await run_coordinate_assignment(summary.data, tables)
    assert await coordinate_store.read_coordinates() == first


@pytest.mark.asyncio
async def test_coordinate_write_failure_is_reported(seeded_db, tables):
    summary = await run_aggregation(tables)
    calls = 0
    real_write = coordinate_store.write_coordinate

    async def flaky_write(coord):
        nonlocal calls
        calls += 1
        if calls == 3:
            raise sqlite3.OperationalError("database is locked")
        await real_write(coord)

    with patch("twi_map.services.pipeline_service.coordinate_store.write_coordinate", flaky_write):
        with pytest.raises(CoordinateWriteError) as exc_info:
            await run_coordinate_assignment(summary.data, tables)
    assert exc_info.value.written == 2
    assert exc_info.value.total > 2


@pytest.mark.asyncio
async def test_get_status(seeded_db, tables):
    await run_aggregation(tables)
    await coordinate_store.set_manual_coordinate("liscor", 1.0, 1.0)
    status = await get_status()
    assert (status.chapters, status.extracted, status.locations) == (4, 3, 2)
    assert status.coordinates == 1
    assert status.manual_coordinates == 1
    assert status.volumes == {"vol-1": (2, 2), "vol-2": (2, 1)}
