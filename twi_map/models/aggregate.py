"""Aggregated dataset and coordinate models: the aggregation output."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from twi_map.models.extraction import LocationType, RelationshipType


class Confidence(str, Enum):
    high = "high"
    medium = "medium"
    low = "low"
    estimated = "estimated"


class AggregatedLocation(BaseModel):
    id: str  # canonical key
    name: str
    type: LocationType
    aliases: list[str] = []
    description: str = ""
    visual_description: str = ""
    first_chapter_index: int
    mention_count: int
    chapter_indices: list[int] = []


class AggregatedRelationship(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(alias="from")
    to: str
    type: RelationshipType
    detail: str = ""
    first_chapter_index: int


class CanonicalContainment(BaseModel):
    child: str
    parent: str


class AggregatedData(BaseModel):
    locations: list[AggregatedLocation] = []
    relationships: list[AggregatedRelationship] = []
    containment: list[CanonicalContainment] = []
    aggregated_at: str = ""


class Coordinate(BaseModel):
    location_id: str
    x: float
    y: float
    confidence: Confidence = Confidence.estimated
    manual: bool = False
