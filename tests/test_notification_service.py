"""
Tests for Notification Service

Fire-and-forget delivery and the notification center.
"""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.exceptions import AuthorizationError, NotFoundError
from app.models.notification import NotificationKind
from app.services.notification_service import NotificationService


@pytest.fixture
def service():
    return NotificationService()


class TestNotify:

    @pytest.mark.asyncio
    async def test_stores_and_publishes(self, service):
        db = AsyncMock()
        redis = AsyncMock()

        with patch("app.services.notification_service.get_db", return_value=db), \
             patch("app.services.notification_service.get_redis", return_value=redis):
            notification = await service.notify(
                "alice", NotificationKind.GROUP_JOINED, {"group_name": "Morning run"}
            )

        assert notification.kind == "group_joined"
        assert notification.body == "Someone joined Morning run."
        stored = db.notifications.insert_one.call_args.args[0]
        assert stored["user_id"] == "alice"
        channel, message = redis.publish.call_args.args
        assert channel == "cabpool:notifications:alice"
        assert json.loads(message)["notification_id"] == notification.notification_id

    @pytest.mark.asyncio
    async def test_missing_payload_keys_use_defaults(self, service):
        db = AsyncMock()

        with patch("app.services.notification_service.get_db", return_value=db), \
             patch("app.services.notification_service.get_redis", return_value=AsyncMock()):
            notification = await service.notify("alice", NotificationKind.GROUP_LOCKED)

        assert notification.body.startswith("your group is locked")

    @pytest.mark.asyncio
    async def test_failure_is_swallowed(self, service, caplog):
        with patch("app.services.notification_service.get_db", side_effect=RuntimeError("Database not initialized")):
            result = await service.notify("alice", NotificationKind.MATCH_FOUND, {})

        assert result is None
        assert "match_found" in caplog.text

    @pytest.mark.asyncio
    async def test_notify_many_counts_successes(self, service):
        outcomes = iter([object(), None, object()])
        service.notify = AsyncMock(side_effect=lambda *a, **k: next(outcomes))

        sent = await service.notify_many(["a", "b", "c"], NotificationKind.GROUP_LEFT)

        assert sent == 2


class TestNotificationCenter:

    @pytest.mark.asyncio
    async def test_mark_read_checks_owner(self, service):
        db = MagicMock()
        db.notifications.find_one = AsyncMock(return_value={
            "notification_id": "n1", "user_id": "bob", "kind": "system",
            "title": "t", "body": "b", "read": False,
        })

        with patch("app.services.notification_service.get_db", return_value=db):
            with pytest.raises(AuthorizationError):
                await service.mark_read("alice", "n1")

    @pytest.mark.asyncio
    async def test_mark_read_missing(self, service):
        db = MagicMock()
        db.notifications.find_one = AsyncMock(return_value=None)

        with patch("app.services.notification_service.get_db", return_value=db):
            with pytest.raises(NotFoundError):
                await service.mark_read("alice", "n1")

    @pytest.mark.asyncio
    async def test_unread_count(self, service):
        db = MagicMock()
        db.notifications.count_documents = AsyncMock(return_value=4)

        with patch("app.services.notification_service.get_db", return_value=db):
            assert await service.get_unread_count("alice") == 4

        db.notifications.count_documents.assert_awaited_once_with({"user_id": "alice", "read": False})
