"""Decide which locations can be tied to known geography.

A location is *traceable* when its own key is an anchor, or when walking its
containment parents (``parentOf[child] = parent``) reaches an anchor within
``max_depth`` hops. Locations that are not traceable would only ever get an
arbitrary position, so the aggregator drops them.

Anchors match two ways:

- exact: the key is in the anchor name set;
- keyword: the key contains one of the anchor keywords as a substring, so
  ``"liscor's walls"`` or ``"north of liscor"`` count without being listed.
  This accepts some false positives (any key containing ``"human"``); the
  looseness is kept so the set of mapped locations stays stable.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from twi_map.infra import config
from twi_map.services.name_tables import NameTables

logger = logging.getLogger(__name__)


def build_parent_map(edges: Iterable[tuple[str, str]]) -> dict[str, str]:
    """Build ``child -> parent`` from ``(child_key, parent_key)`` pairs.

    A child listed under several parents keeps the last one.
    """
    parent_of: dict[str, str] = {}
    for child, parent in edges:
        parent_of[child] = parent
    return parent_of


class TraceabilityFilter:
    def __init__(
        self,
        tables: NameTables,
        parent_of: dict[str, str],
        max_depth: int | None = None,
    ) -> None:
        self._anchor_names = tables.anchor_names
        self._anchor_keywords = tables.anchor_keywords
        self._parent_of = parent_of
        self.max_depth = config.MAX_CONTAINMENT_DEPTH if max_depth is None else max_depth

    def is_anchor(self, key: str) -> bool:
        if key in self._anchor_names:
            return True
        return any(kw in key for kw in self._anchor_keywords)

    def is_traceable(self, key: str) -> bool:
        if self.is_anchor(key):
            return True
        cur = key
        for _ in range(self.max_depth):
            parent = self._parent_of.get(cur)
            if parent is None:
                return False
            if self.is_anchor(parent):
                return True
            cur = parent
        logger.debug("%r: no anchor within %d containment hops", key, self.max_depth)
        return False
