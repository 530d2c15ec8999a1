"""CRUD operations for the coordinates table.

Rows with ``manual = 1`` are curated by hand and are only changed through
``set_manual_coordinate`` / ``clear_manual_coordinate``.
"""

from __future__ import annotations

from twi_map.db.sqlite_db import get_connection
from twi_map.models.aggregate import Confidence, Coordinate


def _row_to_coordinate(row) -> Coordinate:
    return Coordinate(
        location_id=row["location_id"],
        x=row["x"],
        y=row["y"],
        confidence=row["confidence"],
        manual=bool(row["manual"]),
    )


async def read_coordinates() -> list[Coordinate]:
    conn = await get_connection()
    try:
        cursor = await conn.execute(
            "SELECT location_id, x, y, confidence, manual FROM coordinates ORDER BY location_id"
        )
        return [_row_to_coordinate(row) for row in await cursor.fetchall()]
    finally:
        await conn.close()


async def write_coordinate(coord: Coordinate) -> None:
    """Insert or replace one coordinate."""
    conn = await get_connection()
    try:
        await conn.execute(
            """
            INSERT INTO coordinates (location_id, x, y, confidence, manual)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(location_id) DO UPDATE SET
                x = excluded.x,
                y = excluded.y,
                confidence = excluded.confidence,
                manual = excluded.manual,
                updated_at = datetime('now')
            """,
            (coord.location_id, coord.x, coord.y, coord.confidence.value, 1 if coord.manual else 0),
        )
        await conn.commit()
    finally:
        await conn.close()


async def delete_estimated_coordinates() -> int:
    """Remove every non-manual coordinate. Returns the number deleted."""
    conn = await get_connection()
    try:
        cursor = await conn.execute("DELETE FROM coordinates WHERE manual = 0")
        await conn.commit()
        return cursor.rowcount
    finally:
        await conn.close()


async def set_manual_coordinate(
    location_id: str,
    x: float,
    y: float,
    confidence: Confidence = Confidence.high,
) -> Coordinate:
    coord = Coordinate(location_id=location_id, x=x, y=y, confidence=confidence, manual=True)
    await write_coordinate(coord)
    return coord


async def clear_manual_coordinate(location_id: str) -> bool:
    """Drop the manual flag by deleting the row; the next estimation run re-places it.

    Returns True if a manual row was deleted.
    """
    conn = await get_connection()
    try:
        cursor = await conn.execute(
            "DELETE FROM coordinates WHERE location_id = ? AND manual = 1",
            (location_id,),
        )
        await conn.commit()
        return cursor.rowcount > 0
    finally:
        await conn.close()


async def count_coordinates() -> tuple[int, int]:
    """Return ``(total, manual)`` coordinate counts."""
    conn = await get_connection()
    try:
        cursor = await conn.execute(
            "SELECT COUNT(*) AS total, COALESCE(SUM(manual), 0) AS manual FROM coordinates"
        )
        row = await cursor.fetchone()
        return (row["total"], row["manual"]) if row else (0, 0)
    finally:
        await conn.close()
