"""Static vocabulary tables: canonical names, exclusions, anchors, seeds.

The tables encode domain knowledge about The Wandering Inn's geography and
live as JSON under ``twi_map/data`` (or ``TWI_MAP_TABLES_DIR``) so the
resolution and placement logic can be tested with any vocabulary.

Every key is re-normalized on load, so a hand-edited table with stray
capitals or brackets still matches the keys the aggregator produces.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from twi_map.infra import config
from twi_map.utils.location_names import normalize

logger = logging.getLogger(__name__)

CANONICAL_FILE = "canonical_names.json"
EXCLUDED_FILE = "excluded_locations.json"
ANCHORS_FILE = "anchors.json"
SEEDS_FILE = "seed_coordinates.json"
PLACEMENT_FILE = "type_placement.json"


class NameTableError(Exception):
    """A vocabulary table is missing or malformed."""


@dataclass(frozen=True)
class NameTables:
    canonical_names: dict[str, str] = field(default_factory=dict)
    excluded: frozenset[str] = frozenset()
    anchor_names: frozenset[str] = frozenset()
    anchor_keywords: tuple[str, ...] = ()
    seeds: dict[str, tuple[float, float]] = field(default_factory=dict)
    type_defaults: dict[str, tuple[float, float]] = field(default_factory=dict)
    type_spreads: dict[str, float] = field(default_factory=dict)
    default_spread: float = 20.0


def _read_json(tables_dir: Path, filename: str) -> object:
    path = tables_dir / filename
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise NameTableError(f"missing vocabulary table: {path}") from exc
    except json.JSONDecodeError as exc:
        raise NameTableError(f"invalid JSON in {path}: {exc}") from exc


def _point(raw: object, where: str) -> tuple[float, float]:
    if not isinstance(raw, (list, tuple)) or len(raw) != 2:
        raise NameTableError(f"{where}: expected [x, y], got {raw!r}")
    try:
        return float(raw[0]), float(raw[1])
    except (TypeError, ValueError) as exc:
        raise NameTableError(f"{where}: non-numeric coordinate {raw!r}") from exc


_JSON_KINDS = {dict: "object", list: "array"}


def _expect(raw: object, kind: type, filename: str) -> None:
    if not isinstance(raw, kind):
        raise NameTableError(f"{filename}: expected a JSON {_JSON_KINDS[kind]}")


def _load_canonical(tables_dir: Path) -> dict[str, str]:
    raw = _read_json(tables_dir, CANONICAL_FILE)
    _expect(raw, dict, CANONICAL_FILE)
    return {normalize(k): normalize(v) for k, v in raw.items()}


def _load_excluded(tables_dir: Path) -> frozenset[str]:
    raw = _read_json(tables_dir, EXCLUDED_FILE)
    _expect(raw, list, EXCLUDED_FILE)
    return frozenset(normalize(n) for n in raw)


def _load_anchors(tables_dir: Path) -> tuple[frozenset[str], tuple[str, ...]]:
    raw = _read_json(tables_dir, ANCHORS_FILE)
    _expect(raw, dict, ANCHORS_FILE)
    names = frozenset(normalize(n) for n in raw.get("names", []))
    # Keep keyword order (and drop duplicates) so matching is reproducible
    keywords = tuple(dict.fromkeys(normalize(k) for k in raw.get("keywords", []) if k.strip()))
    return names, keywords


def _load_seeds(tables_dir: Path) -> dict[str, tuple[float, float]]:
    raw = _read_json(tables_dir, SEEDS_FILE)
    _expect(raw, dict, SEEDS_FILE)
    groups = raw.get("groups", {})
    _expect(groups, dict, SEEDS_FILE)

    plane = raw.get("plane", {})
    lo = float(plane.get("min", float("-inf")))
    hi = float(plane.get("max", float("inf")))

    seeds: dict[str, tuple[float, float]] = {}
    for group, entries in groups.items():
        _expect(entries, dict, SEEDS_FILE)
        for name, pos in entries.items():
            key = normalize(name)
            if key in seeds:
                # Earlier (broader) groups win
                logger.debug("Seed %r in group %r already placed, skipping", key, group)
                continue
            x, y = _point(pos, f"{SEEDS_FILE}:{group}:{name}")
            if not (lo <= x <= hi and lo <= y <= hi):
                raise NameTableError(
                    f"{SEEDS_FILE}:{group}:{name}: ({x}, {y}) lies outside the map plane"
                )
            seeds[key] = (x, y)
    return seeds


def _load_placement(
    tables_dir: Path,
) -> tuple[dict[str, tuple[float, float]], dict[str, float], float]:
    raw = _read_json(tables_dir, PLACEMENT_FILE)
    _expect(raw, dict, PLACEMENT_FILE)
    defaults = {
        t: _point(pos, f"{PLACEMENT_FILE}:defaults:{t}")
        for t, pos in raw.get("defaults", {}).items()
    }
    spreads = {t: float(s) for t, s in raw.get("spreads", {}).items()}
    default_spread = float(raw.get("default_spread", 20))
    return defaults, spreads, default_spread


def load_name_tables(tables_dir: str | Path | None = None) -> NameTables:
    """Load every vocabulary table from ``tables_dir`` (default: config.TABLES_DIR)."""
    tables_dir = Path(tables_dir) if tables_dir is not None else config.TABLES_DIR
    anchor_names, anchor_keywords = _load_anchors(tables_dir)
    type_defaults, type_spreads, default_spread = _load_placement(tables_dir)
    tables = NameTables(
        canonical_names=_load_canonical(tables_dir),
        excluded=_load_excluded(tables_dir),
        anchor_names=anchor_names,
        anchor_keywords=anchor_keywords,
        seeds=_load_seeds(tables_dir),
        type_defaults=type_defaults,
        type_spreads=type_spreads,
        default_spread=default_spread,
    )
    logger.info(
        "Loaded vocabulary from %s: %d canonical, %d excluded, %d anchors, "
        "%d keywords, %d seeds",
        tables_dir,
        len(tables.canonical_names),
        len(tables.excluded),
        len(tables.anchor_names),
        len(tables.anchor_keywords),
        len(tables.seeds),
    )
    return tables
