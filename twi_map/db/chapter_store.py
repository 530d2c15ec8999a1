"""CRUD operations for the chapters table (table of contents)."""

from __future__ import annotations

from twi_map.db.sqlite_db import get_connection
from twi_map.models.extraction import Chapter


async def replace_chapters(chapters: list[Chapter]) -> int:
    """Replace the whole table of contents. Returns the number of chapters stored."""
    conn = await get_connection()
    try:
        await conn.execute("DELETE FROM chapters")
        await conn.executemany(
            """
            INSERT INTO chapters (idx, volume, web_title, url, slug)
            VALUES (?, ?, ?, ?, ?)
            """,
            [(ch.index, ch.volume, ch.web_title, ch.url, ch.slug) for ch in chapters],
        )
        await conn.commit()
        return len(chapters)
    finally:
        await conn.close()


async def list_chapters(volume: str | None = None) -> list[Chapter]:
    """All chapters ordered by index, optionally restricted to one volume."""
    conn = await get_connection()
    try:
        if volume is None:
            cursor = await conn.execute(
                "SELECT idx, volume, web_title, url, slug FROM chapters ORDER BY idx"
            )
        else:
            cursor = await conn.execute(
                "SELECT idx, volume, web_title, url, slug FROM chapters WHERE volume = ? ORDER BY idx",
                (volume,),
            )
        rows = await cursor.fetchall()
        return [
            Chapter(
                index=row["idx"],
                volume=row["volume"] or "",
                web_title=row["web_title"] or "",
                url=row["url"] or "",
                slug=row["slug"] or "",
            )
            for row in rows
        ]
    finally:
        await conn.close()


async def count_chapters() -> int:
    conn = await get_connection()
    try:
        cursor = await conn.execute("SELECT COUNT(*) FROM chapters")
        row = await cursor.fetchone()
        return row[0] if row else 0
    finally:
        await conn.close()


async def count_by_volume() -> dict[str, int]:
    conn = await get_connection()
    try:
        cursor = await conn.execute(
            "SELECT volume, COUNT(*) AS n FROM chapters GROUP BY volume ORDER BY volume"
        )
        rows = await cursor.fetchall()
        return {row["volume"]: row["n"] for row in rows}
    finally:
        await conn.close()
