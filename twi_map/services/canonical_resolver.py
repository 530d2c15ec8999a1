"""Resolve surface-form variants of a location name to one canonical key.

Two static tables drive resolution:

- the canonical-name map (``"the inn"`` and ``"inn"`` are both
  ``"the wandering inn"``), applied after normalization;
- the exclusion set of real-world places. Characters are transported from
  Earth, so "London" or "Michigan" come up in dialogue without being places
  on the Innworld map.
"""

from __future__ import annotations

import logging

from twi_map.services.name_tables import NameTables
from twi_map.utils.location_names import normalize

logger = logging.getLogger(__name__)


class CanonicalResolver:
    def __init__(self, tables: NameTables) -> None:
        self._canonical = tables.canonical_names
        self._excluded = tables.excluded

    def canonicalize(self, key: str) -> str:
        """Map a normalized key to its canonical key (identity when unknown)."""
        return self._canonical.get(key, key)

    def resolve(self, raw_name: str) -> str:
        """``canonicalize(normalize(raw_name))``."""
        return self.canonicalize(normalize(raw_name))

    def is_excluded(self, key: str) -> bool:
        """True for real-world places, checked before and after canonicalization."""
        return key in self._excluded or self.canonicalize(key) in self._excluded
