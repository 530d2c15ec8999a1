"""Run the aggregation and coordinate passes against the store.

Both passes read everything into memory first, compute, then persist. The
caller is responsible for not running two passes at once: a concurrent run
would race on the coordinate rows.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, field

from twi_map.db import aggregate_store, chapter_store, coordinate_store, extraction_store
from twi_map.db.extraction_store import ExtractionReadError
from twi_map.models.aggregate import AggregatedData
from twi_map.services.coordinate_estimator import CoordinateEstimator
from twi_map.services.location_aggregator import ChapterInput, EntityAggregator
from twi_map.services.name_tables import NameTables, load_name_tables

logger = logging.getLogger(__name__)


class CoordinateWriteError(Exception):
    """Persisting the coordinate set failed part-way; re-run the pass."""

    def __init__(self, written: int, total: int, cause: Exception) -> None:
        super().__init__(f"coordinate write failed after {written}/{total} entries: {cause}")
        self.written = written
        self.total = total


@dataclass
class AggregationSummary:
    chapters: int = 0
    extracted: int = 0
    unreadable: int = 0
    locations: int = 0
    relationships: int = 0
    containment: int = 0
    data: AggregatedData | None = field(default=None, repr=False)


@dataclass
class CoordinateSummary:
    manual: int = 0
    seeded: int = 0
    propagated: int = 0
    defaulted: int = 0
    written: int = 0


async def load_chapter_inputs() -> tuple[list[ChapterInput], int]:
    """Read every chapter's extraction. Returns ``(inputs, unreadable_count)``.

    Chapters without an extraction are included with ``extraction=None``;
    chapters whose extraction cannot be decoded are logged and skipped.
    """
    chapters = await chapter_store.list_chapters()
    if not chapters:
        logger.warning("No table of contents stored yet; nothing to aggregate")
        return [], 0

    inputs: list[ChapterInput] = []
    unreadable = 0
    for ch in chapters:
        try:
            extraction = await extraction_store.get_extraction(ch.index)
        except ExtractionReadError as exc:
            logger.warning("Skipping unreadable extraction: %s", exc)
            unreadable += 1
            continue
        inputs.append(ChapterInput(index=ch.index, extraction=extraction))
    return inputs, unreadable


async def run_aggregation(
    tables: NameTables | None = None,
    min_mentions: int | None = None,
    max_depth: int | None = None,
) -> AggregationSummary:
    tables = tables if tables is not None else load_name_tables()
    inputs, unreadable = await load_chapter_inputs()

    aggregator = EntityAggregator(tables, min_mentions=min_mentions, max_depth=max_depth)
    data = aggregator.aggregate(inputs)
    await aggregate_store.write_aggregate(data)

    summary = AggregationSummary(
        chapters=len(inputs) + unreadable,
        extracted=sum(1 for i in inputs if i.extraction is not None),
        unreadable=unreadable,
        locations=len(data.locations),
        relationships=len(data.relationships),
        containment=len(data.containment),
        data=data,
    )
    logger.info(
        "Aggregation saved: %d locations, %d relationships, %d containment "
        "(%d/%d chapters extracted, %d unreadable)",
        summary.locations, summary.relationships, summary.containment,
        summary.extracted, summary.chapters, summary.unreadable,
    )
    return summary


async def run_coordinate_assignment(
    data: AggregatedData | None = None,
    tables: NameTables | None = None,
    max_depth: int | None = None,
) -> CoordinateSummary:
    tables = tables if tables is not None else load_name_tables()
    if data is None:
        data = await aggregate_store.read_aggregate()
    existing = await coordinate_store.read_coordinates()

    estimator = CoordinateEstimator(tables, max_depth=max_depth)
    result = estimator.assign_coordinates(data, existing)

    summary = CoordinateSummary(
        manual=result.manual,
        seeded=result.seeded,
        propagated=result.propagated,
        defaulted=result.defaulted,
    )
    estimated = [c for c in result.coordinates if not c.manual]
    try:
        removed = await coordinate_store.delete_estimated_coordinates()
        logger.debug("Removed %d stale estimated coordinates", removed)
        for coord in estimated:
            await coordinate_store.write_coordinate(coord)
            summary.written += 1
    except sqlite3.Error as exc:
        raise CoordinateWriteError(summary.written, len(estimated), exc) from exc

    logger.info(
        "Coordinates saved: %d written, %d manual preserved",
        summary.written, summary.manual,
    )
    return summary


@dataclass
class PipelineStatus:
    chapters: int = 0
    extracted: int = 0
    locations: int = 0
    coordinates: int = 0
    manual_coordinates: int = 0
    volumes: dict[str, tuple[int, int]] = field(default_factory=dict)  # volume -> (chapters, extracted)


async def get_status() -> PipelineStatus:
    chapters_by_volume = await chapter_store.count_by_volume()
    extracted_by_volume = await extraction_store.count_extracted_by_volume()
    total_coords, manual_coords = await coordinate_store.count_coordinates()
    return PipelineStatus(
        chapters=await chapter_store.count_chapters(),
        extracted=await extraction_store.count_extractions(),
        locations=await aggregate_store.count_locations(),
        coordinates=total_coords,
        manual_coordinates=manual_coords,
        volumes={
            vol: (n, extracted_by_volume.get(vol, 0))
            for vol, n in sorted(chapters_by_volume.items())
        },
    )
