"""
API Schemas

Request and response bodies shared by the routers. JSON uses camelCase;
Python attributes stay snake_case.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.models.group import Group
from app.models.location import Location
from app.models.match import MatchResult
from app.models.pool_request import PoolRequest, PreferredGender


class ApiModel(BaseModel):
    """Base for API bodies: camelCase on the wire, snake_case in code."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MatchRequest(ApiModel):
    """Search query shared by pool and group matching."""
    pickup_location: Optional[Location] = None
    drop_location: Optional[Location] = None
    date_time: Optional[datetime] = None
    preferred_gender: Optional[PreferredGender] = None


class EmptyResponse(ApiModel):
    """Serializes to {}."""


# =============================================================================
# Pool Requests
# =============================================================================

class PoolRequestResponse(ApiModel):
    """Pool request response."""
    request_id: str
    creator_id: str
    pickup_location: Location
    drop_location: Location
    date_time: datetime
    preferred_gender: str
    seats_needed: int
    mode: str
    status: str
    matched_user_ids: List[str]
    group_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_request(cls, r: PoolRequest) -> "PoolRequestResponse":
        return cls(
            request_id=r.request_id,
            creator_id=r.creator_id,
            pickup_location=r.pickup,
            drop_location=r.drop,
            date_time=r.date_time,
            preferred_gender=r.preferred_gender,
            seats_needed=r.seats_needed,
            mode=r.mode,
            status=r.status,
            matched_user_ids=r.matched_user_ids,
            group_id=r.group_id,
            created_at=r.created_at,
            updated_at=r.updated_at,
        )


class MatchScoreFields(ApiModel):
    match_score: float
    pickup_distance_meters: float
    drop_distance_meters: float
    time_diff_minutes: float


class PoolMatchResponse(PoolRequestResponse, MatchScoreFields):
    """Pool request with its match score."""

    @classmethod
    def from_result(cls, result: MatchResult) -> "PoolMatchResponse":
        base = PoolRequestResponse.from_request(result.candidate)
        return cls(
            **base.model_dump(),
            match_score=round(result.score, 2),
            pickup_distance_meters=round(result.distance_pickup, 1),
            drop_distance_meters=round(result.distance_drop, 1),
            time_diff_minutes=round(result.time_diff_minutes, 1),
        )


# =============================================================================
# Groups
# =============================================================================

class RouteBody(ApiModel):
    pickup: Location
    drop: Location


class GroupMemberResponse(ApiModel):
    user_id: str
    role: str
    joined_at: datetime


class GroupResponse(ApiModel):
    """
    Group response.

    chat_room_id is only filled in for members; is_member and can_join are
    only filled in by the directory listing.
    """
    group_id: str
    group_name: str
    description: Optional[str] = None
    members: List[GroupMemberResponse]
    route: RouteBody
    date_time: datetime
    seat_count: int
    seats_available: int
    status: str
    chat_room_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    is_member: Optional[bool] = None
    can_join: Optional[bool] = None

    @classmethod
    def from_group(cls, g: Group, viewer_id: str, with_flags: bool = False) -> "GroupResponse":
        is_member = g.is_member(viewer_id)
        return cls(
            group_id=g.group_id,
            group_name=g.name,
            description=g.description,
            members=[
                GroupMemberResponse(user_id=m.user_id, role=m.role, joined_at=m.joined_at)
                for m in g.members
            ],
            route=RouteBody(pickup=g.route.pickup, drop=g.route.drop),
            date_time=g.date_time,
            seat_count=g.seat_count,
            seats_available=max(0, g.seat_count - len(g.members)),
            status=g.status,
            chat_room_id=g.chat_room_id if is_member else None,
            created_at=g.created_at,
            updated_at=g.updated_at,
            is_member=is_member if with_flags else None,
            can_join=g.can_join(viewer_id) if with_flags else None,
        )


class GroupMatchResponse(GroupResponse, MatchScoreFields):
    """Group with its match score."""

    @classmethod
    def from_result(cls, result: MatchResult, viewer_id: str) -> "GroupMatchResponse":
        base = GroupResponse.from_group(result.candidate, viewer_id)
        return cls(
            **base.model_dump(),
            match_score=round(result.score, 2),
            pickup_distance_meters=round(result.distance_pickup, 1),
            drop_distance_meters=round(result.distance_drop, 1),
            time_diff_minutes=round(result.time_diff_minutes, 1),
        )
