"""Coordinate estimation: give every aggregated location a 2D position.

Positions live on a flat plane matching the base map image, [-512, 512] on
both axes (+x east, +y north). For each location, in priority order:

1. manual coordinate from the existing set: copied through untouched;
2. seed coordinate from the vocabulary tables;
3. containment propagation: near the first ancestor that already has a
   position, offset by a type-scaled jitter;
4. type default: near a fixed base position for the location type, jittered
   the same way.

Everything this module produces is ``confidence=estimated``. The jitter is a
pure function of (location key, axis), so re-running with the same data
yields bit-identical coordinates.
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from twi_map.infra import config
from twi_map.models.aggregate import AggregatedData, AggregatedLocation, Confidence, Coordinate
from twi_map.models.extraction import LocationType
from twi_map.services.name_tables import NameTables
from twi_map.services.traceability import build_parent_map
from twi_map.utils.location_names import normalize

logger = logging.getLogger(__name__)

_HASH_SPAN = float(2**64)


def jitter(key: str, axis: str, spread: float) -> float:
    """Deterministic offset in ``[-spread, spread)`` for one axis of a key."""
    digest = hashlib.sha256(f"{key}:{axis}".encode("utf-8")).digest()
    frac = int.from_bytes(digest[:8], "big") / _HASH_SPAN
    return (frac * 2.0 - 1.0) * spread


@dataclass
class EstimationResult:
    coordinates: list[Coordinate] = field(default_factory=list)
    manual: int = 0
    seeded: int = 0
    propagated: int = 0
    defaulted: int = 0


class CoordinateEstimator:
    def __init__(self, tables: NameTables, max_depth: int | None = None) -> None:
        self.tables = tables
        self.max_depth = config.MAX_CONTAINMENT_DEPTH if max_depth is None else max_depth

    def spread_for(self, loc_type: LocationType | str) -> float:
        value = loc_type.value if isinstance(loc_type, LocationType) else loc_type
        return self.tables.type_spreads.get(value, self.tables.default_spread)

    def assign_coordinates(
        self,
        data: AggregatedData,
        existing: Iterable[Coordinate] = (),
    ) -> EstimationResult:
        result = EstimationResult()
        coord_map: dict[str, Coordinate] = {}

        # Manual coordinates are owned by whoever set them
        for c in existing:
            if c.manual:
                coord_map[c.location_id] = c.model_copy()
                result.manual += 1

        for key, (x, y) in self.tables.seeds.items():
            if key in coord_map:
                continue
            coord_map[key] = Coordinate(
                location_id=key, x=x, y=y, confidence=Confidence.estimated
            )
            result.seeded += 1

        # Containment holds display names, which collapse repeated inner spaces
        ids = {normalize(loc.name): loc.id for loc in data.locations}

        def _key(name: str) -> str:
            key = normalize(name)
            return ids.get(key, key)

        parent_of = build_parent_map((_key(c.child), _key(c.parent)) for c in data.containment)

        unplaced: list[AggregatedLocation] = []
        for loc in data.locations:
            if loc.id in coord_map:
                continue
            anchor = self._find_placed_ancestor(loc.id, parent_of, coord_map)
            if anchor is None:
                unplaced.append(loc)
                continue
            coord_map[loc.id] = self._jittered(loc, anchor.x, anchor.y)
            result.propagated += 1

        for loc in unplaced:
            base = self.tables.type_defaults.get(loc.type.value, (0.0, 0.0))
            coord_map[loc.id] = self._jittered(loc, base[0], base[1])
            result.defaulted += 1

        result.coordinates = list(coord_map.values())
        logger.info(
            "Coordinates: %d manual kept, %d seeded, %d near a parent, %d type defaults",
            result.manual, result.seeded, result.propagated, result.defaulted,
        )
        return result

    def _find_placed_ancestor(
        self,
        key: str,
        parent_of: dict[str, str],
        coord_map: dict[str, Coordinate],
    ) -> Coordinate | None:
        parent = parent_of.get(key)
        hops = 0
        while parent is not None and hops < self.max_depth:
            placed = coord_map.get(parent)
            if placed is not None:
                return placed
            parent = parent_of.get(parent)
            hops += 1
        return None

    def _jittered(self, loc: AggregatedLocation, base_x: float, base_y: float) -> Coordinate:
        spread = self.spread_for(loc.type)
        return Coordinate(
            location_id=loc.id,
            x=base_x + jitter(loc.id, "x", spread),
            y=base_y + jitter(loc.id, "y", spread),
            confidence=Confidence.estimated,
        )
