"""
Notification Service - In-app notification center plus Redis pub/sub fan-out.

Delivery is fire-and-forget: callers of notify() never see a failure.
"""

import json
import logging
import uuid
from typing import Any, Dict, Iterable, List, Optional

from app.config import settings
from app.database import get_db, get_redis
from app.exceptions import AuthorizationError, NotFoundError
from app.models.notification import Notification, NotificationKind
from app.repositories import mongo_errors

logger = logging.getLogger(__name__)


# (title, body) per kind. Bodies are formatted with the payload.
TEMPLATES: Dict[str, tuple] = {
    NotificationKind.MATCH_FOUND.value: (
        "Match found",
        "Your ride request has been matched.",
    ),
    NotificationKind.GROUP_JOINED.value: (
        "New group member",
        "Someone joined {group_name}.",
    ),
    NotificationKind.GROUP_LEFT.value: (
        "Member left",
        "Someone left {group_name}.",
    ),
    NotificationKind.GROUP_LOCKED.value: (
        "Group locked",
        "{group_name} is locked. No new members can join.",
    ),
    NotificationKind.SYSTEM.value: (
        "Notice",
        "{message}",
    ),
}


class _Defaults(dict):
    def __missing__(self, key):
        return "your group" if key == "group_name" else ""


class NotificationService:
    """
    Notifier for in-app notifications.

    Each notification is stored in MongoDB for the notification center and
    published on the user's Redis channel for live transports.
    """

    def channel_for(self, user_id: str) -> str:
        return f"{settings.notification_channel_prefix}:{user_id}"

    def _render(self, kind: str, payload: Dict[str, Any]) -> tuple:
        title, body = TEMPLATES.get(kind, TEMPLATES[NotificationKind.SYSTEM.value])
        return title, body.format_map(_Defaults(payload))

    async def notify(
        self,
        user_id: str,
        kind: NotificationKind,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Optional[Notification]:
        """
        Send a notification to a user.

        Returns the stored notification, or None if delivery failed. Failures
        are logged and never raised.
        """
        payload = payload or {}
        kind_value = kind.value if isinstance(kind, NotificationKind) else str(kind)
        try:
            title, body = self._render(kind_value, payload)
            notification = Notification(
                notification_id=str(uuid.uuid4()),
                user_id=user_id,
                kind=kind_value,
                title=title,
                body=body,
                data=payload,
            )
            await get_db().notifications.insert_one(notification.model_dump())
            await get_redis().publish(
                self.channel_for(user_id),
                json.dumps(notification.model_dump(mode="json")),
            )
            return notification
        except Exception as e:
            logger.warning(f"Notification {kind_value} to {user_id} failed: {e}")
            return None

    async def notify_many(
        self,
        user_ids: Iterable[str],
        kind: NotificationKind,
        payload: Optional[Dict[str, Any]] = None,
    ) -> int:
        """Notify several users. Returns how many deliveries succeeded."""
        sent = 0
        for user_id in user_ids:
            if await self.notify(user_id, kind, payload):
                sent += 1
        return sent

    # =========================================================================
    # Notification Center
    # =========================================================================

    async def get_notifications(
        self, user_id: str, limit: int = 50, unread_only: bool = False
    ) -> List[Notification]:
        """Get user's notifications, newest first."""
        query = {"user_id": user_id}
        if unread_only:
            query["read"] = False

        with mongo_errors("list notifications"):
            cursor = get_db().notifications.find(query).sort("created_at", -1).limit(limit)
            docs = await cursor.to_list(length=limit)
        return [Notification(**doc) for doc in docs]

    async def get_unread_count(self, user_id: str) -> int:
        """Get count of unread notifications."""
        with mongo_errors("count notifications"):
            return await get_db().notifications.count_documents(
                {"user_id": user_id, "read": False}
            )

    async def _get_owned(self, user_id: str, notification_id: str) -> dict:
        with mongo_errors("get notification"):
            doc = await get_db().notifications.find_one({"notification_id": notification_id})
        if not doc:
            raise NotFoundError("Notification not found")
        if doc["user_id"] != user_id:
            raise AuthorizationError("Not your notification")
        return doc

    async def mark_read(self, user_id: str, notification_id: str) -> Notification:
        """Mark a notification as read."""
        doc = await self._get_owned(user_id, notification_id)
        with mongo_errors("mark notification read"):
            await get_db().notifications.update_one(
                {"notification_id": notification_id, "user_id": user_id},
                {"$set": {"read": True}},
            )
        doc["read"] = True
        return Notification(**doc)

    async def mark_all_read(self, user_id: str) -> int:
        """Mark all notifications as read. Returns count marked."""
        with mongo_errors("mark notifications read"):
            result = await get_db().notifications.update_many(
                {"user_id": user_id, "read": False}, {"$set": {"read": True}}
            )
        return result.modified_count

    async def delete_notification(self, user_id: str, notification_id: str):
        """Delete one of the user's notifications."""
        await self._get_owned(user_id, notification_id)
        with mongo_errors("delete notification"):
            await get_db().notifications.delete_one(
                {"notification_id": notification_id, "user_id": user_id}
            )
