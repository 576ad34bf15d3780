"""Pool Request Model - A standalone ride request waiting to be paired."""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Set

from pydantic import BaseModel, Field, field_validator

from app.exceptions import ConflictError
from app.models.location import Location
from app.utils.timezone_utils import ensure_utc, utc_now


class PoolRequestStatus(str, Enum):
    """Status of a pool request. Never returns to OPEN once it leaves."""
    OPEN = "Open"
    MATCHED = "Matched"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class PreferredGender(str, Enum):
    """Co-rider gender preference."""
    MALE = "Male"
    FEMALE = "Female"
    ANY = "Any"


class RideMode(str, Enum):
    INSTANT = "Instant"
    SCHEDULED = "Scheduled"


# Allowed target statuses from each current status.
ALLOWED_TRANSITIONS: Dict[str, Set[str]] = {
    PoolRequestStatus.OPEN.value: {
        PoolRequestStatus.MATCHED.value,
        PoolRequestStatus.CANCELLED.value,
        PoolRequestStatus.COMPLETED.value,
    },
    PoolRequestStatus.MATCHED.value: {
        PoolRequestStatus.COMPLETED.value,
        PoolRequestStatus.CANCELLED.value,
    },
    PoolRequestStatus.COMPLETED.value: set(),
    PoolRequestStatus.CANCELLED.value: set(),
}


def check_status_transition(current: str, target: str):
    """Raise ConflictError unless current -> target is an allowed transition."""
    current = PoolRequestStatus(current).value
    target = PoolRequestStatus(target).value
    allowed = ALLOWED_TRANSITIONS.get(current, set())
    if target not in allowed:
        allowed_str = ", ".join(sorted(allowed)) if allowed else "none"
        raise ConflictError(
            f"Transition from {current} to {target} is not allowed. "
            f"From {current} only allowed: {allowed_str}."
        )


class PoolRequest(BaseModel):
    """
    Pool request model for MongoDB.

    Fields:
    - request_id: Unique UUID
    - creator_id: Owning user
    - pickup / drop: Locations with [lng, lat] coordinates
    - date_time: Desired departure (UTC)
    - preferred_gender: Co-rider preference, Any by default
    - seats_needed: 1-4
    - mode: Instant or Scheduled
    - status: Open -> Matched/Cancelled/Completed
    - matched_user_ids: Users paired with this request
    - group_id: Group formed from this request, if any
    """
    request_id: str = Field(..., description="Unique request ID")
    creator_id: str = Field(..., description="Owner user ID")
    pickup: Location
    drop: Location
    date_time: datetime
    preferred_gender: PreferredGender = Field(default=PreferredGender.ANY)
    seats_needed: int = Field(default=1, ge=1, le=4)
    mode: RideMode = Field(default=RideMode.SCHEDULED)
    status: PoolRequestStatus = Field(default=PoolRequestStatus.OPEN)
    matched_user_ids: List[str] = Field(default_factory=list)
    group_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("date_time", "created_at", "updated_at")
    @classmethod
    def to_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    class Config:
        use_enum_values = True

