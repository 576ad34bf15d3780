"""
Group Registry - Travel group lifecycle and membership rules.

Only this service writes groups. Every mutation is a single conditional
write; when it matches nothing the group is re-read once to report which
rule now fails. Nothing is retried here.
"""

import logging
import uuid
from datetime import datetime
from typing import Callable, List, Optional

from app.config import settings
from app.exceptions import ConflictError, NotFoundError, AuthorizationError, ValidationError
from app.models.group import Group, GroupMember, GroupRole, GroupStatus
from app.models.location import Route
from app.models.notification import NotificationKind
from app.repositories.group_repository import GroupRepository
from app.services.notification_service import NotificationService
from app.utils.timezone_utils import ensure_utc, utc_now

logger = logging.getLogger(__name__)

RETRY_MESSAGE = "Group was modified concurrently, please retry"


class GroupRegistry:
    """
    Group management service.

    Handles creation, join, leave and lock.
    """

    def __init__(
        self,
        repository: Optional[GroupRepository] = None,
        notifier: Optional[NotificationService] = None,
    ):
        self.repository = repository or GroupRepository()
        self.notifier = notifier or NotificationService()

    async def _load(self, group_id: str) -> Group:
        group = await self.repository.get(group_id)
        if group is None:
            raise NotFoundError("Group not found")
        return group

    async def _raise_lost_race(self, group_id: str, transition: Callable[[Group], object]):
        """
        Called after a conditional write matched nothing.

        Re-reads the group and replays the transition so the caller gets the
        rule that now fails (e.g. "full"). If every rule still passes, the
        group merely moved under us and the caller should retry.
        """
        latest = await self._load(group_id)
        transition(latest)
        logger.info(f"Write on group {group_id} lost a race at version {latest.version}")
        raise ConflictError(RETRY_MESSAGE)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def create_group(
        self,
        creator_id: str,
        name: str,
        route: Route,
        seat_count: int,
        date_time: datetime,
        description: Optional[str] = None,
    ) -> Group:
        """Create a group with the creator as its only member and admin."""
        if not name or not name.strip():
            raise ValidationError("Group name is required")
        if not settings.min_seat_count <= seat_count <= settings.max_seat_count:
            raise ValidationError(
                f"seatCount must be between {settings.min_seat_count} and {settings.max_seat_count}"
            )

        now = utc_now()
        group = Group(
            group_id=str(uuid.uuid4()),
            name=name.strip(),
            description=description,
            members=[GroupMember(user_id=creator_id, role=GroupRole.ADMIN, joined_at=now)],
            route=route,
            date_time=ensure_utc(date_time),
            seat_count=seat_count,
            status=GroupStatus.OPEN,
            chat_room_id=str(uuid.uuid4()),
            version=1,
            created_at=now,
            updated_at=now,
        )
        await self.repository.insert(group)
        logger.info(f"Group {group.group_id} created by {creator_id} ({seat_count} seats)")
        return group

    async def join_group(self, user_id: str, group_id: str) -> Group:
        """
        Add user_id to the group.

        Raises:
            NotFoundError: group absent
            ConflictError: not open, already a member, or full
        """
        current = await self._load(group_id)
        candidate = current.with_member_added(user_id)
        new_member = candidate.members[-1]

        saved = await self.repository.push_member_if_open(group_id, new_member)
        if saved is None:
            await self._raise_lost_race(group_id, lambda g: g.with_member_added(user_id))

        logger.info(
            f"User {user_id} joined group {group_id} ({len(saved.members)}/{saved.seat_count})"
        )
        await self.notifier.notify_many(
            [uid for uid in saved.member_ids if uid != user_id],
            NotificationKind.GROUP_JOINED,
            {"group_id": group_id, "group_name": saved.name, "user_id": user_id},
        )
        return saved

    async def leave_group(self, user_id: str, group_id: str) -> None:
        """
        Remove user_id from the group.

        The last member leaving deletes the group. An admin leaving hands the
        role to the first remaining member in the same write.
        """
        current = await self._load(group_id)
        updated = current.with_member_removed(user_id)

        if updated is None:
            deleted = await self.repository.delete_if_version(group_id, current.version)
            if not deleted:
                await self._raise_lost_race(group_id, lambda g: g.with_member_removed(user_id))
            logger.info(f"User {user_id} left group {group_id}; group deleted")
            return

        saved = await self.repository.replace_if_version(updated, current.version)
        if saved is None:
            await self._raise_lost_race(group_id, lambda g: g.with_member_removed(user_id))

        if current.admin_id == user_id:
            logger.info(f"Admin of group {group_id} passed to {saved.admin_id}")
        logger.info(f"User {user_id} left group {group_id}")
        await self.notifier.notify_many(
            saved.member_ids,
            NotificationKind.GROUP_LEFT,
            {"group_id": group_id, "group_name": saved.name, "user_id": user_id},
        )

    async def lock_group(self, requester_id: str, group_id: str) -> Group:
        """
        Close the group to new members. Admin only.

        Locking an already locked group returns it unchanged.
        """
        current = await self._load(group_id)
        updated = current.locked(requester_id)
        if updated is current:
            return current

        saved = await self.repository.replace_if_version(updated, current.version)
        if saved is None:
            latest = await self._load(group_id)
            if latest.locked(requester_id) is latest:
                return latest
            raise ConflictError(RETRY_MESSAGE)

        logger.info(f"Group {group_id} locked by {requester_id}")
        await self.notifier.notify_many(
            [uid for uid in saved.member_ids if uid != requester_id],
            NotificationKind.GROUP_LOCKED,
            {"group_id": group_id, "group_name": saved.name},
        )
        return saved

    # =========================================================================
    # Queries
    # =========================================================================

    async def list_for_user(self, user_id: str) -> List[Group]:
        """Groups the user belongs to, earliest departure first."""
        return await self.repository.list_by_member(user_id)

    async def list_all(self) -> List[Group]:
        """Every group, earliest departure first."""
        return await self.repository.list_all()

    async def get_by_id(self, group_id: str, requester_id: str) -> Group:
        """Get a group the requester belongs to."""
        group = await self._load(group_id)
        if not group.is_member(requester_id):
            raise AuthorizationError("You are not a member of this group")
        return group
