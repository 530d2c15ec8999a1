"""Read-only map data endpoints.

``through`` implements spoiler-free progressive reveal: only records first
seen at or before that chapter index are returned.
"""

from fastapi import APIRouter, Query

from twi_map.db import aggregate_store, chapter_store, coordinate_store

router = APIRouter(prefix="/api", tags=["map"])


@router.get("/chapters")
async def get_chapters(volume: str | None = Query(None)):
    return await chapter_store.list_chapters(volume)


@router.get("/locations")
async def get_locations(through: int | None = Query(None)):
    data = await aggregate_store.read_aggregate()
    if through is None:
        return data.locations
    return [loc for loc in data.locations if loc.first_chapter_index <= through]


@router.get("/relationships")
async def get_relationships(through: int | None = Query(None)):
    data = await aggregate_store.read_aggregate()
    if through is None:
        return data.relationships
    return [rel for rel in data.relationships if rel.first_chapter_index <= through]


@router.get("/containment")
async def get_containment():
    data = await aggregate_store.read_aggregate()
    return data.containment


@router.get("/coordinates")
async def get_coordinates():
    return await coordinate_store.read_coordinates()
