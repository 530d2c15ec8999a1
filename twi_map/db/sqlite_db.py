import aiosqlite

from twi_map.infra import config

_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS chapters (
    idx             INTEGER PRIMARY KEY,
    volume          TEXT NOT NULL DEFAULT '',
    web_title       TEXT DEFAULT '',
    url             TEXT DEFAULT '',
    slug            TEXT DEFAULT ''
);

CREATE TABLE IF NOT EXISTS extractions (
    chapter_idx     INTEGER PRIMARY KEY,
    extraction_json TEXT NOT NULL,
    llm_model       TEXT,
    extracted_at    TEXT DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS locations (
    id                  TEXT PRIMARY KEY,
    name                TEXT NOT NULL,
    type                TEXT NOT NULL,
    aliases             TEXT DEFAULT '[]',
    description         TEXT DEFAULT '',
    visual_description  TEXT DEFAULT '',
    first_chapter_idx   INTEGER NOT NULL,
    mention_count       INTEGER NOT NULL,
    chapter_indices     TEXT DEFAULT '[]'
);

CREATE TABLE IF NOT EXISTS relationships (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    from_loc            TEXT NOT NULL,
    to_loc              TEXT NOT NULL,
    type                TEXT NOT NULL,
    detail              TEXT DEFAULT '',
    first_chapter_idx   INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS containment (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    child           TEXT NOT NULL,
    parent          TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS coordinates (
    location_id     TEXT PRIMARY KEY,
    x               REAL NOT NULL,
    y               REAL NOT NULL,
    confidence      TEXT NOT NULL DEFAULT 'estimated',
    manual          INTEGER NOT NULL DEFAULT 0,
    updated_at      TEXT DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS meta (
    key             TEXT PRIMARY KEY,
    value           TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_chapters_volume       ON chapters(volume);
CREATE INDEX IF NOT EXISTS idx_locations_first       ON locations(first_chapter_idx);
CREATE INDEX IF NOT EXISTS idx_relationships_first   ON relationships(first_chapter_idx);
"""


async def get_connection() -> aiosqlite.Connection:
    conn = await aiosqlite.connect(str(config.DB_PATH))
    await conn.execute("PRAGMA journal_mode=WAL")
    conn.row_factory = aiosqlite.Row
    return conn


async def init_db() -> None:
    config.ensure_data_dir()
    conn = await get_connection()
    try:
        await conn.executescript(_SCHEMA_SQL)
        await conn.commit()
    finally:
        await conn.close()
