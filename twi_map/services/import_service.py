"""Import a table of contents and per-chapter extraction files into the store.

Expected layout::

    <dir>/toc.json                 {"chapters": [{"index": 0, "volume": "vol-1", ...}, ...]}
    <dir>/extractions/<index>.json {"locations": [...], "relationships": [...], "containment": [...]}

An extraction file may omit ``chapter_index``; the file name is used instead.
A file that fails to parse is logged and counted, never fatal.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from twi_map.db import chapter_store, extraction_store
from twi_map.models.extraction import Chapter, ChapterExtraction

logger = logging.getLogger(__name__)

TOC_FILE = "toc.json"
EXTRACTIONS_DIR = "extractions"


@dataclass
class ImportSummary:
    chapters: int = 0
    extractions: int = 0
    failed: int = 0


def _read_toc(path: Path) -> list[Chapter]:
    raw = json.loads(path.read_text(encoding="utf-8"))
    entries = raw.get("chapters") if isinstance(raw, dict) else raw
    if not isinstance(entries, list):
        raise ValueError("table of contents must be a JSON array of chapters")
    return [Chapter.model_validate(entry) for entry in entries]


def _read_extraction(path: Path) -> ChapterExtraction:
    raw = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError("extraction file must hold a JSON object")
    if "chapter_index" not in raw:
        raw["chapter_index"] = int(path.stem)
    return ChapterExtraction.model_validate(raw)


def _index_sort_key(path: Path) -> tuple[int, str]:
    return (int(path.stem), "") if path.stem.isdigit() else (1 << 31, path.stem)


async def import_directory(path: str | Path) -> ImportSummary:
    root = Path(path)
    summary = ImportSummary()

    toc_path = root / TOC_FILE
    if toc_path.exists():
        try:
            chapters = _read_toc(toc_path)
        except (json.JSONDecodeError, ValidationError, ValueError) as exc:
            logger.warning("Cannot read %s: %s", toc_path, exc)
            summary.failed += 1
        else:
            summary.chapters = await chapter_store.replace_chapters(chapters)
            logger.info("Imported %d chapters from %s", summary.chapters, toc_path)
    else:
        logger.warning("No %s in %s; keeping the stored table of contents", TOC_FILE, root)

    ext_dir = root / EXTRACTIONS_DIR
    for file in sorted(ext_dir.glob("*.json"), key=_index_sort_key):
        try:
            extraction = _read_extraction(file)
        except (json.JSONDecodeError, ValidationError, ValueError) as exc:
            logger.warning("Skipping %s: %s", file.name, exc)
            summary.failed += 1
            continue
        await extraction_store.save_extraction(extraction)
        summary.extractions += 1

    logger.info(
        "Imported %d extractions (%d files failed)", summary.extractions, summary.failed
    )
    return summary
