"""Per-chapter extraction models: the aggregation input.

These records are produced by the extraction step (LLM + parser) and are
already validated by the time they reach the aggregator.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LocationType(str, Enum):
    continent = "continent"
    nation = "nation"
    city = "city"
    town = "town"
    village = "village"
    building = "building"
    landmark = "landmark"
    dungeon = "dungeon"
    body_of_water = "body_of_water"
    forest = "forest"
    road = "road"
    other = "other"


class RelationshipType(str, Enum):
    distance = "distance"
    travel_time = "travel_time"
    direction = "direction"
    containment = "containment"
    adjacency = "adjacency"
    route = "route"
    relative = "relative"


def coerce_location_type(value: object) -> LocationType:
    """Map a raw type string to LocationType; unknown values become ``other``."""
    if isinstance(value, LocationType):
        return value
    raw = str(value or "").strip().lower().replace("-", "_").replace(" ", "_")
    try:
        return LocationType(raw)
    except ValueError:
        return LocationType.other


def coerce_relationship_type(value: object) -> RelationshipType:
    """Map a raw relationship type to RelationshipType; unknown values become ``relative``."""
    if isinstance(value, RelationshipType):
        return value
    raw = str(value or "").strip().lower().replace("-", "_").replace(" ", "_")
    try:
        return RelationshipType(raw)
    except ValueError:
        return RelationshipType.relative


class Chapter(BaseModel):
    index: int
    volume: str = ""
    web_title: str = ""
    url: str = ""
    slug: str = ""


class ExtractedLocation(BaseModel):
    name: str
    type: LocationType = LocationType.other
    aliases: list[str] = []
    description: str = ""
    visual_description: str = ""

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, v: object) -> LocationType:
        return coerce_location_type(v)

    @field_validator("aliases", mode="before")
    @classmethod
    def _none_aliases(cls, v: object) -> object:
        return [] if v is None else v

    @field_validator("description", "visual_description", mode="before")
    @classmethod
    def _none_text(cls, v: object) -> object:
        return "" if v is None else v


class ExtractedRelationship(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(alias="from")
    to: str
    type: RelationshipType = RelationshipType.relative
    detail: str = ""

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, v: object) -> RelationshipType:
        return coerce_relationship_type(v)

    @field_validator("detail", mode="before")
    @classmethod
    def _none_detail(cls, v: object) -> object:
        return "" if v is None else v


class Containment(BaseModel):
    child: str
    parent: str


class ChapterExtraction(BaseModel):
    chapter_index: int
    locations: list[ExtractedLocation] = []
    relationships: list[ExtractedRelationship] = []
    containment: list[Containment] = []
    model: str = ""
    extracted_at: str = ""
