"""
Notification Model - Defines the notification schema for the in-app
notification center.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from app.utils.timezone_utils import utc_now


class NotificationKind(str, Enum):
    """Type of notification."""

    MATCH_FOUND = "match_found"
    GROUP_JOINED = "group_joined"
    GROUP_LEFT = "group_left"
    GROUP_LOCKED = "group_locked"
    SYSTEM = "system"


class Notification(BaseModel):
    """
    Notification model for MongoDB.

    Fields:
    - notification_id: Unique UUID
    - user_id: Target user
    - kind: Notification type for UI rendering
    - title: Notification title
    - body: Notification body
    - data: Additional data (e.g., group_id, request_id)
    - read: Whether user has read the notification
    - created_at: When notification was created
    """

    notification_id: str = Field(..., description="Unique notification ID")
    user_id: str = Field(..., description="Target user ID")
    kind: NotificationKind
    title: str = Field(..., description="Notification title")
    body: str = Field(..., description="Notification body")
    data: Optional[dict] = Field(None, description="Additional data")
    read: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utc_now)

    class Config:
        use_enum_values = True
