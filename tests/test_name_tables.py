"""Tests for loading the static vocabulary tables."""

import json
import shutil

import pytest

from twi_map.infra import config
from twi_map.services.name_tables import (
    ANCHORS_FILE,
    CANONICAL_FILE,
    SEEDS_FILE,
    NameTableError,
    load_name_tables,
)


@pytest.fixture
def tables_copy(tmp_path):
    """A writable copy of the packaged tables."""
    dest = tmp_path / "tables"
    shutil.copytree(config.PACKAGED_TABLES_DIR, dest)
    return dest


def test_packaged_tables_load(tables):
    assert tables.canonical_names["the inn"] == "the wandering inn"
    assert "london" in tables.excluded
    assert "liscor" in tables.anchor_names
    assert tables.seeds["liscor"] == (190.0, -40.0)
    assert tables.type_spreads["building"] == 5.0
    assert tables.default_spread == 20.0


def test_packaged_seeds_on_plane(tables):
    for x, y in tables.seeds.values():
        assert -512 <= x <= 512
        assert -512 <= y <= 512


def test_seed_groups_earlier_wins(tables_copy):
    (tables_copy / SEEDS_FILE).write_text(
        json.dumps(
            {
                "plane": {"min": -512, "max": 512},
                "groups": {
                    "continents": {"Izril": [200, -20]},
                    "izril": {"izril": [0, 0], "[Liscor]": [190, -40]},
                },
            }
        ),
        encoding="utf-8",
    )
    loaded = load_name_tables(tables_copy)
    assert loaded.seeds == {"izril": (200.0, -20.0), "liscor": (190.0, -40.0)}


def test_keys_are_renormalized(tables_copy):
    (tables_copy / CANONICAL_FILE).write_text(
        json.dumps({"  [The Inn] ": "The Wandering Inn"}), encoding="utf-8"
    )
    loaded = load_name_tables(tables_copy)
    assert loaded.canonical_names == {"the inn": "the wandering inn"}


def test_anchor_keywords_deduplicated_in_order(tables_copy):
    (tables_copy / ANCHORS_FILE).write_text(
        json.dumps({"names": ["Liscor"], "keywords": ["Liscor", "izril", "liscor", " "]}),
        encoding="utf-8",
    )
    loaded = load_name_tables(tables_copy)
    assert loaded.anchor_names == frozenset({"liscor"})
    assert loaded.anchor_keywords == ("liscor", "izril")


def test_missing_table_raises(tables_copy):
    (tables_copy / CANONICAL_FILE).unlink()
    with pytest.raises(NameTableError, match="missing vocabulary table"):
        load_name_tables(tables_copy)


def test_invalid_json_raises(tables_copy):
    (tables_copy / ANCHORS_FILE).write_text("{not json", encoding="utf-8")
    with pytest.raises(NameTableError, match="invalid JSON"):
        load_name_tables(tables_copy)


def test_wrong_shape_raises(tables_copy):
    (tables_copy / CANONICAL_FILE).write_text(json.dumps(["liscor"]), encoding="utf-8")
    with pytest.raises(NameTableError, match="expected a JSON object"):
        load_name_tables(tables_copy)


def test_seed_off_plane_raises(tables_copy):
    (tables_copy / SEEDS_FILE).write_text(
        json.dumps(
            {
                "plane": {"min": -512, "max": 512},
                "groups": {"izril": {"liscor": [900, 0]}},
            }
        ),
        encoding="utf-8",
    )
    with pytest.raises(NameTableError, match="outside the map plane"):
        load_name_tables(tables_copy)


def test_seed_non_numeric_raises(tables_copy):
    (tables_copy / SEEDS_FILE).write_text(
        json.dumps({"groups": {"izril": {"liscor": ["east", 0]}}}), encoding="utf-8"
    )
    with pytest.raises(NameTableError, match="non-numeric"):
        load_name_tables(tables_copy)


def test_default_dir_follows_config(tables_copy, monkeypatch):
    (tables_copy / CANONICAL_FILE).write_text(json.dumps({"x": "y"}), encoding="utf-8")
    monkeypatch.setattr(config, "TABLES_DIR", tables_copy)
    assert load_name_tables().canonical_names == {"x": "y"}
