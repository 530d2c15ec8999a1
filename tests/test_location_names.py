"""Tests for location name normalization and display names."""

import pytest

from twi_map.utils.location_names import contains_normalized, normalize, to_display_name


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Liscor", "liscor"),
        ("  Liscor  ", "liscor"),
        ("[Liscor]", "liscor"),
        ("  [Liscor]  ", "liscor"),
        ("LISCOR", "liscor"),
        ("The Wandering Inn", "the wandering inn"),
        ("[The Wandering Inn]", "the wandering inn"),
        ("", ""),
        ("   ", ""),
    ],
)
def test_normalize(raw, expected):
    assert normalize(raw) == expected


def test_normalize_is_idempotent():
    for raw in ["  [Liscor]  ", "The High Passes", "[Nerrhavia's Fallen]", "A'ctelios Salash"]:
        once = normalize(raw)
        assert normalize(once) == once


def test_normalize_keeps_inner_whitespace():
    assert normalize("The  Blood Fields") == "the  blood fields"


@pytest.mark.parametrize(
    "key, expected",
    [
        ("liscor", "Liscor"),
        ("the wandering inn", "The Wandering Inn"),
        ("the  wandering   inn", "The Wandering Inn"),
        ("a'ctelios salash", "A'ctelios Salash"),
        ("nerrhavia's fallen", "Nerrhavia's Fallen"),
        ("", ""),
    ],
)
def test_to_display_name(key, expected):
    assert to_display_name(key) == expected


def test_contains_normalized():
    names = ["The Inn", "[Wandering Inn]"]
    assert contains_normalized(names, "the inn")
    assert contains_normalized(names, "  WANDERING INN ")
    assert not contains_normalized(names, "Liscor")
    assert not contains_normalized([], "Liscor")
