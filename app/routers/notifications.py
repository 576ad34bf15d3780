"""
Notifications Router

In-app notification center.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends

from app.dependencies import get_current_user, get_notification_service
from app.models.notification import Notification
from app.models.user import CurrentUser
from app.routers.schemas import ApiModel, EmptyResponse
from app.services.notification_service import NotificationService


router = APIRouter()


class NotificationResponse(ApiModel):
    """Notification response."""
    notification_id: str
    kind: str
    title: str
    body: str
    data: Optional[dict]
    read: bool
    created_at: str

    @classmethod
    def from_notification(cls, n: Notification) -> "NotificationResponse":
        return cls(
            notification_id=n.notification_id,
            kind=n.kind,
            title=n.title,
            body=n.body,
            data=n.data,
            read=n.read,
            created_at=n.created_at.isoformat(),
        )


class UnreadCountResponse(ApiModel):
    count: int


@router.get("", response_model=List[NotificationResponse])
async def get_notifications(
    limit: int = 50,
    unread_only: bool = False,
    current_user: CurrentUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    """Get user's notifications, newest first."""
    notifications = await service.get_notifications(
        user_id=current_user.user_id, limit=min(max(limit, 1), 100), unread_only=unread_only
    )
    return [NotificationResponse.from_notification(n) for n in notifications]


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    current_user: CurrentUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    """Get count of unread notifications."""
    return UnreadCountResponse(count=await service.get_unread_count(current_user.user_id))


@router.put("/read-all", response_model=EmptyResponse)
async def mark_all_read(
    current_user: CurrentUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    """Mark all notifications as read."""
    await service.mark_all_read(current_user.user_id)
    return EmptyResponse()


@router.put("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    """Mark one notification as read."""
    notification = await service.mark_read(current_user.user_id, notification_id)
    return NotificationResponse.from_notification(notification)


@router.delete("/{notification_id}", response_model=EmptyResponse)
async def delete_notification(
    notification_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    """Delete a notification."""
    await service.delete_notification(current_user.user_id, notification_id)
    return EmptyResponse()
