"""CRUD operations for the extractions table (one record per chapter)."""

from __future__ import annotations

import json

from pydantic import ValidationError

from twi_map.db.sqlite_db import get_connection
from twi_map.models.extraction import ChapterExtraction


class ExtractionReadError(Exception):
    """A stored extraction exists but cannot be decoded."""

    def __init__(self, chapter_index: int, reason: str) -> None:
        super().__init__(f"chapter {chapter_index}: {reason}")
        self.chapter_index = chapter_index


async def save_extraction(extraction: ChapterExtraction) -> None:
    """Insert or replace a chapter's extraction record."""
    conn = await get_connection()
    try:
        await conn.execute(
            """
            INSERT OR REPLACE INTO extractions
                (chapter_idx, extraction_json, llm_model, extracted_at)
            VALUES (?, ?, ?, COALESCE(NULLIF(?, ''), datetime('now')))
            """,
            (
                extraction.chapter_index,
                extraction.model_dump_json(by_alias=True),
                extraction.model,
                extraction.extracted_at,
            ),
        )
        await conn.commit()
    finally:
        await conn.close()


async def get_extraction(chapter_index: int) -> ChapterExtraction | None:
    """Return the chapter's extraction, or None if it was never extracted.

    Raises ExtractionReadError when the stored JSON no longer validates.
    """
    conn = await get_connection()
    try:
        cursor = await conn.execute(
            "SELECT extraction_json FROM extractions WHERE chapter_idx = ?",
            (chapter_index,),
        )
        row = await cursor.fetchone()
    finally:
        await conn.close()

    if row is None:
        return None
    try:
        data = json.loads(row["extraction_json"])
        data["chapter_index"] = chapter_index
        return ChapterExtraction.model_validate(data)
    except (json.JSONDecodeError, TypeError, ValidationError) as exc:
        raise ExtractionReadError(chapter_index, str(exc)) from exc


async def count_extractions() -> int:
    conn = await get_connection()
    try:
        cursor = await conn.execute("SELECT COUNT(*) FROM extractions")
        row = await cursor.fetchone()
        return row[0] if row else 0
    finally:
        await conn.close()


async def count_extracted_by_volume() -> dict[str, int]:
    conn = await get_connection()
    try:
        cursor = await conn.execute(
            """
            SELECT c.volume AS volume, COUNT(*) AS n
            FROM extractions e
            JOIN chapters c ON c.idx = e.chapter_idx
            GROUP BY c.volume
            ORDER BY c.volume
            """
        )
        rows = await cursor.fetchall()
        return {row["volume"]: row["n"] for row in rows}
    finally:
        await conn.close()
