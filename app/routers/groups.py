"""
Groups Router

Travel group creation, directory, membership and matching.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, status

from app.dependencies import get_current_user, get_group_registry, get_match_engine
from app.models.location import Route
from app.models.user import CurrentUser
from app.routers.schemas import (
    ApiModel,
    EmptyResponse,
    GroupMatchResponse,
    GroupResponse,
    MatchRequest,
    RouteBody,
)
from app.services.group_registry import GroupRegistry
from app.services.match_engine import MatchEngine


router = APIRouter()


class CreateGroupRequest(ApiModel):
    """Request to create a group."""
    group_name: str
    route: RouteBody
    seat_count: int
    date_time: datetime
    description: Optional[str] = None


@router.post("", response_model=GroupResponse, status_code=status.HTTP_201_CREATED)
async def create_group(
    body: CreateGroupRequest,
    current_user: CurrentUser = Depends(get_current_user),
    registry: GroupRegistry = Depends(get_group_registry),
):
    """Create a group with the caller as admin."""
    group = await registry.create_group(
        creator_id=current_user.user_id,
        name=body.group_name,
        route=Route(pickup=body.route.pickup, drop=body.route.drop),
        seat_count=body.seat_count,
        date_time=body.date_time,
        description=body.description,
    )
    return GroupResponse.from_group(group, current_user.user_id)


@router.get("", response_model=List[GroupResponse])
async def list_groups(
    current_user: CurrentUser = Depends(get_current_user),
    registry: GroupRegistry = Depends(get_group_registry),
):
    """
    Group directory.

    Each entry says whether the caller is a member and can join.
    """
    groups = await registry.list_all()
    return [GroupResponse.from_group(g, current_user.user_id, with_flags=True) for g in groups]


@router.get("/mygroups", response_model=List[GroupResponse])
async def get_my_groups(
    current_user: CurrentUser = Depends(get_current_user),
    registry: GroupRegistry = Depends(get_group_registry),
):
    """Get the caller's groups, earliest departure first."""
    groups = await registry.list_for_user(current_user.user_id)
    return [GroupResponse.from_group(g, current_user.user_id) for g in groups]


@router.post("/match", response_model=List[GroupMatchResponse])
async def match_groups(
    body: MatchRequest,
    current_user: CurrentUser = Depends(get_current_user),
    engine: MatchEngine = Depends(get_match_engine),
):
    """Find open groups with free seats near the query, best first."""
    query = engine.build_query(
        body.pickup_location, body.drop_location, body.date_time, body.preferred_gender
    )
    results = await engine.match_groups(current_user.user_id, query)
    return [GroupMatchResponse.from_result(r, current_user.user_id) for r in results]


@router.get("/{group_id}", response_model=GroupResponse)
async def get_group(
    group_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    registry: GroupRegistry = Depends(get_group_registry),
):
    """
    Get group details.

    SECURITY: Only group members can view details.
    """
    group = await registry.get_by_id(group_id, current_user.user_id)
    return GroupResponse.from_group(group, current_user.user_id)


@router.post("/join/{group_id}", response_model=GroupResponse)
async def join_group(
    group_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    registry: GroupRegistry = Depends(get_group_registry),
):
    """Join an open group with a free seat."""
    group = await registry.join_group(current_user.user_id, group_id)
    return GroupResponse.from_group(group, current_user.user_id)


@router.post("/leave/{group_id}", response_model=EmptyResponse)
async def leave_group(
    group_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    registry: GroupRegistry = Depends(get_group_registry),
):
    """Leave a group. The last member leaving deletes it."""
    await registry.leave_group(current_user.user_id, group_id)
    return EmptyResponse()


@router.patch("/lock/{group_id}", response_model=GroupResponse)
async def lock_group(
    group_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    registry: GroupRegistry = Depends(get_group_registry),
):
    """Lock a group so nobody else can join. Admin only."""
    group = await registry.lock_group(current_user.user_id, group_id)
    return GroupResponse.from_group(group, current_user.user_id)
