"""Merge per-chapter extractions into one deduplicated location dataset.

Aggregation is rebuilt from scratch on every run: chapters are scanned in
ascending index order and every surface form is resolved to its canonical
key before merging, so "The Inn" in chapter 3 and "[the wandering inn]" in
chapter 40 end up as one record.

Merge rules:

- locations: one record per canonical key. ``mention_count`` is the number
  of distinct chapters mentioning the key. Descriptions are replaced only by
  a strictly longer one (ties keep the earliest), aliases are unioned up to
  normalization. Records below ``min_mentions`` or not traceable to an
  anchor are dropped.
- relationships: first observation of ``(from, to, type)`` wins outright.
- containment: first observation of ``(child, parent)`` wins outright.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from twi_map.infra import config
from twi_map.models.aggregate import (
    AggregatedData,
    AggregatedLocation,
    AggregatedRelationship,
    CanonicalContainment,
)
from twi_map.models.extraction import ChapterExtraction, ExtractedLocation, LocationType
from twi_map.services.canonical_resolver import CanonicalResolver
from twi_map.services.name_tables import NameTables
from twi_map.services.traceability import TraceabilityFilter, build_parent_map
from twi_map.utils.location_names import contains_normalized, normalize, to_display_name

logger = logging.getLogger(__name__)


@dataclass
class ChapterInput:
    """One chapter's extraction; ``extraction`` is None when it was never produced."""

    index: int
    extraction: ChapterExtraction | None = None


@dataclass
class _LocationEntry:
    key: str
    type: LocationType
    first_chapter: int
    aliases: list[str] = field(default_factory=list)
    description: str = ""
    visual_description: str = ""
    chapters: set[int] = field(default_factory=set)

    @property
    def mention_count(self) -> int:
        return len(self.chapters)


def _merge_aliases(aliases: list[str], new: Iterable[str], key: str) -> None:
    for alias in new:
        alias = alias.strip()
        if not alias or normalize(alias) == key:
            continue
        if not contains_normalized(aliases, alias):
            aliases.append(alias)


class EntityAggregator:
    def __init__(
        self,
        tables: NameTables,
        min_mentions: int | None = None,
        max_depth: int | None = None,
    ) -> None:
        self.tables = tables
        self.resolver = CanonicalResolver(tables)
        self.min_mentions = config.MIN_MENTIONS if min_mentions is None else min_mentions
        self.max_depth = config.MAX_CONTAINMENT_DEPTH if max_depth is None else max_depth

    def aggregate(self, chapters: Iterable[ChapterInput]) -> AggregatedData:
        loc_map: dict[str, _LocationEntry] = {}
        relationships: list[AggregatedRelationship] = []
        rel_seen: set[tuple[str, str, str]] = set()
        containment: list[CanonicalContainment] = []
        containment_keys: list[tuple[str, str]] = []
        cont_seen: set[tuple[str, str]] = set()
        excluded = 0

        for chapter in sorted(chapters, key=lambda c: c.index):
            ext = chapter.extraction
            if ext is None:
                continue
            ch = chapter.index

            for loc in ext.locations:
                if not self._merge_location(loc_map, loc, ch):
                    excluded += 1

            for rel in ext.relationships:
                from_key = self.resolver.resolve(rel.from_)
                to_key = self.resolver.resolve(rel.to)
                rel_key = (from_key, to_key, rel.type.value)
                if rel_key in rel_seen:
                    continue
                rel_seen.add(rel_key)
                relationships.append(
                    AggregatedRelationship(
                        from_=to_display_name(from_key),
                        to=to_display_name(to_key),
                        type=rel.type,
                        detail=rel.detail,
                        first_chapter_index=ch,
                    )
                )

            for edge in ext.containment:
                pair = (self.resolver.resolve(edge.child), self.resolver.resolve(edge.parent))
                if pair in cont_seen:
                    continue
                cont_seen.add(pair)
                containment_keys.append(pair)
                containment.append(
                    CanonicalContainment(
                        child=to_display_name(pair[0]),
                        parent=to_display_name(pair[1]),
                    )
                )

        tracer = TraceabilityFilter(
            self.tables, build_parent_map(containment_keys), max_depth=self.max_depth
        )
        locations = self._finalize_locations(loc_map, tracer)

        logger.info(
            "Aggregated %d/%d locations (%d real-world mentions dropped), "
            "%d relationships, %d containment edges",
            len(locations), len(loc_map), excluded, len(relationships), len(containment),
        )
        return AggregatedData(
            locations=locations,
            relationships=relationships,
            containment=containment,
            aggregated_at=datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        )

    def _merge_location(
        self, loc_map: dict[str, _LocationEntry], loc: ExtractedLocation, ch: int
    ) -> bool:
        """Fold one observation into ``loc_map``. Returns False if excluded."""
        key = self.resolver.resolve(loc.name)
        if not key:
            return True
        if self.resolver.is_excluded(normalize(loc.name)):
            logger.debug("Chapter %d: dropping real-world location %r", ch, loc.name)
            return False

        entry = loc_map.get(key)
        if entry is None:
            entry = _LocationEntry(
                key=key,
                type=loc.type,
                first_chapter=ch,
                description=loc.description,
                visual_description=loc.visual_description,
            )
            _merge_aliases(entry.aliases, loc.aliases, key)
            entry.chapters.add(ch)
            loc_map[key] = entry
            return True

        entry.chapters.add(ch)
        # Keep the longest text; ties keep the earliest
        if len(loc.description) > len(entry.description):
            entry.description = loc.description
        if len(loc.visual_description) > len(entry.visual_description):
            entry.visual_description = loc.visual_description
        _merge_aliases(entry.aliases, loc.aliases, key)
        return True

    def _finalize_locations(
        self, loc_map: dict[str, _LocationEntry], tracer: TraceabilityFilter
    ) -> list[AggregatedLocation]:
        locations: list[AggregatedLocation] = []
        for entry in loc_map.values():
            if entry.mention_count < self.min_mentions:
                logger.debug(
                    "%r: %d mention(s), below threshold %d",
                    entry.key, entry.mention_count, self.min_mentions,
                )
                continue
            if not tracer.is_traceable(entry.key):
                logger.debug("%r: not traceable to a known location", entry.key)
                continue
            locations.append(
                AggregatedLocation(
                    id=entry.key,
                    name=to_display_name(entry.key),
                    type=entry.type,
                    aliases=list(entry.aliases),
                    description=entry.description,
                    visual_description=entry.visual_description,
                    first_chapter_index=entry.first_chapter,
                    mention_count=entry.mention_count,
                    chapter_indices=sorted(entry.chapters),
                )
            )

        # Stable sort: equal first chapters keep discovery order
        locations.sort(key=lambda loc: loc.first_chapter_index)
        return locations
