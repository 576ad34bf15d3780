"""Match Models - Search query and scored result."""

from datetime import datetime
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, Field, field_validator

from app.models.location import Location
from app.models.pool_request import PreferredGender
from app.utils.timezone_utils import ensure_utc

CandidateT = TypeVar("CandidateT")


class MatchQuery(BaseModel):
    """What the requester is looking for."""
    pickup: Location
    drop: Location
    date_time: datetime
    preferred_gender: Optional[PreferredGender] = None

    @field_validator("date_time")
    @classmethod
    def to_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    class Config:
        use_enum_values = True


class MatchResult(BaseModel, Generic[CandidateT]):
    """A candidate with its score breakdown."""
    candidate: CandidateT
    score: float = Field(..., ge=0, le=100)
    distance_pickup: float
    distance_drop: float
    time_diff_minutes: float
