"""Location Model - Address plus [longitude, latitude] coordinates."""

import math
from typing import List

from pydantic import BaseModel, Field, field_validator


def validate_coordinates(value) -> List[float]:
    """
    Check a [lng, lat] pair.

    Raises ValueError unless it is exactly two finite numbers within
    longitude [-180, 180] and latitude [-90, 90].
    """
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise ValueError("coordinates must be a [longitude, latitude] pair")
    if any(isinstance(v, bool) or not isinstance(v, (int, float)) for v in value):
        raise ValueError("coordinates must be numbers")

    lng, lat = float(value[0]), float(value[1])
    if not (math.isfinite(lng) and math.isfinite(lat)):
        raise ValueError("coordinates must be finite")
    if not -180 <= lng <= 180:
        raise ValueError("longitude must be between -180 and 180")
    if not -90 <= lat <= 90:
        raise ValueError("latitude must be between -90 and 90")
    return [lng, lat]


class Location(BaseModel):
    """A named point. Coordinates are stored GeoJSON-style, longitude first."""

    address: str = Field(default="", description="Human-readable address")
    coordinates: List[float] = Field(..., description="[longitude, latitude]")

    @field_validator("coordinates", mode="before")
    @classmethod
    def check_coordinates(cls, v):
        return validate_coordinates(v)

    @property
    def lng(self) -> float:
        return self.coordinates[0]

    @property
    def lat(self) -> float:
        return self.coordinates[1]


class Route(BaseModel):
    """Pickup and drop of a group trip."""

    pickup: Location
    drop: Location
