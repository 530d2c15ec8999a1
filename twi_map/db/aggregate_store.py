"""Persistence for the aggregated dataset (locations, relationships, containment).

The aggregate is always replaced as a whole inside one transaction; readers
never see a half-written dataset.
"""

from __future__ import annotations

import json
import logging

from twi_map.db.sqlite_db import get_connection
from twi_map.models.aggregate import (
    AggregatedData,
    AggregatedLocation,
    AggregatedRelationship,
    CanonicalContainment,
)

logger = logging.getLogger(__name__)


async def write_aggregate(data: AggregatedData) -> None:
    conn = await get_connection()
    try:
        try:
            for table in ("locations", "relationships", "containment"):
                await conn.execute(f"DELETE FROM {table}")

            await conn.executemany(
                """
                INSERT INTO locations
                    (id, name, type, aliases, description, visual_description,
                     first_chapter_idx, mention_count, chapter_indices)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        loc.id,
                        loc.name,
                        loc.type.value,
                        json.dumps(loc.aliases, ensure_ascii=False),
                        loc.description,
                        loc.visual_description,
                        loc.first_chapter_index,
                        loc.mention_count,
                        json.dumps(loc.chapter_indices),
                    )
                    for loc in data.locations
                ],
            )
            await conn.executemany(
                """
                INSERT INTO relationships (from_loc, to_loc, type, detail, first_chapter_idx)
                VALUES (?, ?, ?, ?, ?)
                """,
                [
                    (rel.from_, rel.to, rel.type.value, rel.detail, rel.first_chapter_index)
                    for rel in data.relationships
                ],
            )
            await conn.executemany(
                "INSERT INTO containment (child, parent) VALUES (?, ?)",
                [(c.child, c.parent) for c in data.containment],
            )
            await conn.execute(
                "INSERT OR REPLACE INTO meta (key, value) VALUES ('aggregated_at', ?)",
                (data.aggregated_at,),
            )
            await conn.commit()
        except Exception:
            await conn.rollback()
            raise
    finally:
        await conn.close()


async def read_aggregate() -> AggregatedData:
    """Load the aggregate; an empty AggregatedData if none has been written."""
    conn = await get_connection()
    try:
        cursor = await conn.execute(
            """
            SELECT id, name, type, aliases, description, visual_description,
                   first_chapter_idx, mention_count, chapter_indices
            FROM locations
            ORDER BY first_chapter_idx, rowid
            """
        )
        locations = [
            AggregatedLocation(
                id=row["id"],
                name=row["name"],
                type=row["type"],
                aliases=json.loads(row["aliases"] or "[]"),
                description=row["description"] or "",
                visual_description=row["visual_description"] or "",
                first_chapter_index=row["first_chapter_idx"],
                mention_count=row["mention_count"],
                chapter_indices=json.loads(row["chapter_indices"] or "[]"),
            )
            for row in await cursor.fetchall()
        ]

        cursor = await conn.execute(
            """
            SELECT from_loc, to_loc, type, detail, first_chapter_idx
            FROM relationships
            ORDER BY id
            """
        )
        relationships = [
            AggregatedRelationship(
                from_=row["from_loc"],
                to=row["to_loc"],
                type=row["type"],
                detail=row["detail"] or "",
                first_chapter_index=row["first_chapter_idx"],
            )
            for row in await cursor.fetchall()
        ]

        cursor = await conn.execute("SELECT child, parent FROM containment ORDER BY id")
        containment = [
            CanonicalContainment(child=row["child"], parent=row["parent"])
            for row in await cursor.fetchall()
        ]

        cursor = await conn.execute("SELECT value FROM meta WHERE key = 'aggregated_at'")
        row = await cursor.fetchone()

        return AggregatedData(
            locations=locations,
            relationships=relationships,
            containment=containment,
            aggregated_at=row["value"] if row else "",
        )
    finally:
        await conn.close()


async def count_locations() -> int:
    conn = await get_connection()
    try:
        cursor = await conn.execute("SELECT COUNT(*) FROM locations")
        row = await cursor.fetchone()
        return row[0] if row else 0
    finally:
        await conn.close()
