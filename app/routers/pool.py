"""
Pool Router

Standalone ride requests: create, list, cancel, status and matching.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import Field

from app.dependencies import get_current_user, get_match_engine, get_pool_request_registry
from app.exceptions import AuthorizationError
from app.models.location import Location
from app.models.pool_request import PoolRequestStatus, PreferredGender, RideMode
from app.models.user import CurrentUser
from app.routers.schemas import (
    ApiModel,
    EmptyResponse,
    MatchRequest,
    PoolMatchResponse,
    PoolRequestResponse,
)
from app.services.match_engine import MatchEngine
from app.services.pool_request_registry import PoolRequestRegistry


router = APIRouter()


class CreatePoolRequest(ApiModel):
    """Request to create a pool request."""
    pickup_location: Location
    drop_location: Location
    date_time: datetime
    preferred_gender: Optional[PreferredGender] = None
    seats_needed: Optional[int] = Field(None, ge=1, le=4)
    mode: Optional[RideMode] = None


class UpdateStatusRequest(ApiModel):
    """Request to move a pool request to another status."""
    status: PoolRequestStatus
    group_id: Optional[str] = None
    matched_user_ids: Optional[List[str]] = None


@router.post("/create", response_model=PoolRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_pool_request(
    body: CreatePoolRequest,
    current_user: CurrentUser = Depends(get_current_user),
    registry: PoolRequestRegistry = Depends(get_pool_request_registry),
):
    """Create a new pool request."""
    request = await registry.create(
        creator_id=current_user.user_id,
        pickup=body.pickup_location,
        drop=body.drop_location,
        date_time=body.date_time,
        preferred_gender=body.preferred_gender,
        seats_needed=body.seats_needed,
        mode=body.mode,
    )
    return PoolRequestResponse.from_request(request)


@router.post("/match", response_model=List[PoolMatchResponse])
async def match_pool_requests(
    body: MatchRequest,
    current_user: CurrentUser = Depends(get_current_user),
    engine: MatchEngine = Depends(get_match_engine),
):
    """
    Find open pool requests from other users near the query.

    Results are ordered by match score, best first.
    """
    query = engine.build_query(
        body.pickup_location, body.drop_location, body.date_time, body.preferred_gender
    )
    results = await engine.match_pool_requests(current_user.user_id, query)
    return [PoolMatchResponse.from_result(r) for r in results]


@router.get("/requests", response_model=List[PoolRequestResponse])
async def list_pool_requests(
    current_user: CurrentUser = Depends(get_current_user),
    registry: PoolRequestRegistry = Depends(get_pool_request_registry),
):
    """List requests visible to the caller (everything for admins)."""
    requests = await registry.list_visible(current_user.user_id, current_user.role)
    return [PoolRequestResponse.from_request(r) for r in requests]


@router.get("/my-requests", response_model=List[PoolRequestResponse])
async def list_my_pool_requests(
    current_user: CurrentUser = Depends(get_current_user),
    registry: PoolRequestRegistry = Depends(get_pool_request_registry),
):
    """List the caller's own requests, newest first."""
    requests = await registry.list_for_user(current_user.user_id)
    return [PoolRequestResponse.from_request(r) for r in requests]


@router.get("/{request_id}", response_model=PoolRequestResponse)
async def get_pool_request(
    request_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    registry: PoolRequestRegistry = Depends(get_pool_request_registry),
):
    """Get a pool request by ID."""
    return PoolRequestResponse.from_request(await registry.get_by_id(request_id))


@router.delete("/{request_id}", response_model=EmptyResponse)
async def delete_pool_request(
    request_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    registry: PoolRequestRegistry = Depends(get_pool_request_registry),
):
    """Cancel a pool request. Creator or admin only."""
    await registry.delete(request_id, current_user.user_id, current_user.role)
    return EmptyResponse()


@router.patch("/{request_id}/status", response_model=PoolRequestResponse)
async def update_pool_request_status(
    request_id: str,
    body: UpdateStatusRequest,
    current_user: CurrentUser = Depends(get_current_user),
    registry: PoolRequestRegistry = Depends(get_pool_request_registry),
):
    """Move a pool request along its lifecycle. Creator or admin only."""
    request = await registry.get_by_id(request_id)
    if request.creator_id != current_user.user_id and not current_user.is_admin:
        raise AuthorizationError("Not authorized to update this pool request")

    updated = await registry.set_status(
        request_id, body.status, group_id=body.group_id, matched_user_ids=body.matched_user_ids
    )
    return PoolRequestResponse.from_request(updated)
