"""Pool Request Registry - Lifecycle of standalone ride requests."""

import logging
import uuid
from datetime import datetime
from typing import List, Optional, Sequence

from app.config import settings
from app.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from app.models.location import Location
from app.models.notification import NotificationKind
from app.models.pool_request import (
    PoolRequest,
    PoolRequestStatus,
    PreferredGender,
    RideMode,
    check_status_transition,
)
from app.models.user import UserRole
from app.repositories.pool_request_repository import PoolRequestRepository
from app.services.notification_service import NotificationService
from app.utils.timezone_utils import ensure_utc, utc_now

logger = logging.getLogger(__name__)


class PoolRequestRegistry:
    """
    Pool request service.

    Only this service writes pool requests. Status changes are conditional
    on the status that was read, so two writers cannot both move the same
    request.
    """

    def __init__(
        self,
        repository: Optional[PoolRequestRepository] = None,
        notifier: Optional[NotificationService] = None,
    ):
        self.repository = repository or PoolRequestRepository()
        self.notifier = notifier or NotificationService()

    async def create(
        self,
        creator_id: str,
        pickup: Location,
        drop: Location,
        date_time: datetime,
        preferred_gender: Optional[str] = None,
        seats_needed: Optional[int] = None,
        mode: Optional[str] = None,
    ) -> PoolRequest:
        """Create an Open request. Missing optionals fall back to Any / 1 seat / Scheduled."""
        now = utc_now()
        request = PoolRequest(
            request_id=str(uuid.uuid4()),
            creator_id=creator_id,
            pickup=pickup,
            drop=drop,
            date_time=ensure_utc(date_time),
            preferred_gender=preferred_gender or PreferredGender.ANY,
            seats_needed=seats_needed or 1,
            mode=mode or RideMode.SCHEDULED,
            status=PoolRequestStatus.OPEN,
            created_at=now,
            updated_at=now,
        )
        await self.repository.insert(request)
        logger.info(f"Pool request {request.request_id} created by {creator_id}")
        return request

    async def get_by_id(self, request_id: str) -> PoolRequest:
        request = await self.repository.get(request_id)
        if request is None:
            raise NotFoundError("Pool request not found")
        return request

    async def list_for_user(self, user_id: str) -> List[PoolRequest]:
        """The user's own requests, newest departure first."""
        return await self.repository.list_by_creator(user_id)

    async def list_visible(self, requester_id: str, requester_role: str) -> List[PoolRequest]:
        """Admins see everything; others see their own requests plus open ones."""
        owner_filter = None if requester_role == UserRole.ADMIN.value else requester_id
        return await self.repository.list_visible(owner_filter, settings.visible_requests_limit)

    async def delete(self, request_id: str, requester_id: str, requester_role: str) -> None:
        """
        Cancel a request. Allowed for the creator or an admin.

        The record stays readable with status Cancelled. Cancelling twice is
        a no-op.
        """
        request = await self.get_by_id(request_id)
        if request.creator_id != requester_id and requester_role != UserRole.ADMIN.value:
            raise AuthorizationError("Not authorized to delete this request")
        if request.status == PoolRequestStatus.CANCELLED:
            return

        check_status_transition(request.status, PoolRequestStatus.CANCELLED)
        updated = await self.repository.update_status_if(
            request_id, request.status, PoolRequestStatus.CANCELLED.value
        )
        if updated is None:
            latest = await self.get_by_id(request_id)
            if latest.status == PoolRequestStatus.CANCELLED:
                return
            raise ConflictError("Pool request was modified concurrently, please retry")
        logger.info(f"Pool request {request_id} cancelled by {requester_id}")

    async def set_status(
        self,
        request_id: str,
        status: str,
        group_id: Optional[str] = None,
        matched_user_ids: Optional[Sequence[str]] = None,
    ) -> PoolRequest:
        """
        Move a request along its lifecycle.

        Raises:
            ValidationError: unknown status
            NotFoundError: request absent
            ConflictError: transition not allowed from the current status
        """
        try:
            target = PoolRequestStatus(status).value
        except ValueError:
            raise ValidationError(f"Invalid status: {status}")
        request = await self.get_by_id(request_id)
        check_status_transition(request.status, target)

        updated = await self.repository.update_status_if(
            request_id, request.status, target,
            group_id=group_id, matched_user_ids=matched_user_ids,
        )
        if updated is None:
            raise ConflictError("Pool request was modified concurrently, please retry")

        logger.info(f"Pool request {request_id}: {request.status} -> {target}")
        if target == PoolRequestStatus.MATCHED.value:
            await self.notifier.notify(
                updated.creator_id,
                NotificationKind.MATCH_FOUND,
                {"request_id": request_id, "group_id": group_id},
            )
        return updated
