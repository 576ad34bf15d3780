"""
Tests for Group Registry

Lifecycle, membership rules, concurrent joins/leaves and notifications.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from app.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from app.models.group import GroupRole, GroupStatus
from app.models.location import Route
from app.models.notification import NotificationKind
from app.services.group_registry import GroupRegistry
from app.services.notification_service import NotificationService
from factories import BASE_TIME, CAMPUS, STATION, loc, make_group


async def seed(repo, group):
    await repo.insert(group)
    return group


class TestCreateGroup:

    @pytest.mark.asyncio
    async def test_creator_is_sole_admin(self, group_registry, group_repo):
        group = await group_registry.create_group(
            creator_id="alice",
            name="  Morning run  ",
            route=Route(pickup=loc(*CAMPUS), drop=loc(*STATION)),
            seat_count=3,
            date_time=BASE_TIME,
        )

        assert group.name == "Morning run"
        assert group.member_ids == ["alice"]
        assert group.admin_id == "alice"
        assert group.status == GroupStatus.OPEN
        assert group.version == 1
        assert group.chat_room_id
        assert group_repo.groups[group.group_id] == group

    @pytest.mark.asyncio
    async def test_chat_room_ids_are_unique(self, group_registry):
        route = Route(pickup=loc(*CAMPUS), drop=loc(*STATION))
        a = await group_registry.create_group("alice", "A", route, 2, BASE_TIME)
        b = await group_registry.create_group("alice", "B", route, 2, BASE_TIME)

        assert a.chat_room_id != b.chat_room_id

    @pytest.mark.asyncio
    @pytest.mark.parametrize("seats", [1, 5])
    async def test_seat_count_bounds(self, group_registry, seats):
        with pytest.raises(ValidationError):
            await group_registry.create_group(
                "alice", "A", Route(pickup=loc(*CAMPUS), drop=loc(*STATION)), seats, BASE_TIME
            )

    @pytest.mark.asyncio
    async def test_blank_name_rejected(self, group_registry):
        with pytest.raises(ValidationError):
            await group_registry.create_group(
                "alice", "   ", Route(pickup=loc(*CAMPUS), drop=loc(*STATION)), 2, BASE_TIME
            )


class TestJoinGroup:

    @pytest.mark.asyncio
    async def test_join_appends_member_and_notifies_others(self, group_registry, group_repo, notifier):
        group = await seed(group_repo, make_group(["alice", "bob"]))

        updated = await group_registry.join_group("carol", group.group_id)

        assert updated.member_ids == ["alice", "bob", "carol"]
        assert updated.version == group.version + 1
        assert sorted(notifier.recipients(NotificationKind.GROUP_JOINED)) == ["alice", "bob"]

    @pytest.mark.asyncio
    async def test_missing_group(self, group_registry):
        with pytest.raises(NotFoundError):
            await group_registry.join_group("carol", "nope")

    @pytest.mark.asyncio
    async def test_locked_group_rejects_join(self, group_registry, group_repo):
        """Scenario: joining a Locked group fails with "not open" and changes nothing."""
        group = await seed(group_repo, make_group(["alice"], status=GroupStatus.LOCKED))

        with pytest.raises(ConflictError, match="not open"):
            await group_registry.join_group("carol", group.group_id)

        assert group_repo.groups[group.group_id].member_ids == ["alice"]

    @pytest.mark.asyncio
    async def test_duplicate_join(self, group_registry, group_repo):
        group = await seed(group_repo, make_group(["alice", "bob"]))

        with pytest.raises(ConflictError, match="already a member"):
            await group_registry.join_group("bob", group.group_id)

    @pytest.mark.asyncio
    async def test_full_group(self, group_registry, group_repo):
        group = await seed(group_repo, make_group(["alice", "bob"], seat_count=2))

        with pytest.raises(ConflictError, match="full"):
            await group_registry.join_group("carol", group.group_id)

    @pytest.mark.asyncio
    async def test_two_joins_for_last_seat(self, group_registry, group_repo):
        """Scenario: two concurrent joins for one remaining seat; exactly one wins."""
        group = await seed(group_repo, make_group(["alice", "bob", "carol"], seat_count=4))

        results = await asyncio.gather(
            group_registry.join_group("dave", group.group_id),
            group_registry.join_group("erin", group.group_id),
            return_exceptions=True,
        )

        winners = [r for r in results if not isinstance(r, Exception)]
        losers = [r for r in results if isinstance(r, Exception)]
        assert len(winners) == 1
        assert len(losers) == 1
        assert isinstance(losers[0], ConflictError)
        assert "full" in losers[0].message
        assert len(group_repo.groups[group.group_id].members) == 4

    @pytest.mark.asyncio
    async def test_concurrent_joins_never_overfill(self, group_registry, group_repo):
        """Five users race for three free seats."""
        group = await seed(group_repo, make_group(["alice"], seat_count=4))

        results = await asyncio.gather(
            *(group_registry.join_group(f"user{i}", group.group_id) for i in range(5)),
            return_exceptions=True,
        )

        stored = group_repo.groups[group.group_id]
        assert len(stored.members) == 4
        assert sum(1 for r in results if not isinstance(r, Exception)) == 3
        assert all(isinstance(r, ConflictError) for r in results if isinstance(r, Exception))
        assert [m.role for m in stored.members].count(GroupRole.ADMIN) == 1


class TestLeaveGroup:

    @pytest.mark.asyncio
    async def test_admin_leaving_promotes_member(self, group_registry, group_repo, notifier):
        """Scenario: admin leaves a 2-member group; the other member is promoted."""
        group = await seed(group_repo, make_group(["alice", "bob"]))

        await group_registry.leave_group("alice", group.group_id)

        stored = group_repo.groups[group.group_id]
        assert stored.member_ids == ["bob"]
        assert stored.admin_id == "bob"
        assert notifier.recipients(NotificationKind.GROUP_LEFT) == ["bob"]

    @pytest.mark.asyncio
    async def test_last_member_leaving_deletes_group(self, group_registry, group_repo):
        """Scenario: the last member leaves; the group can no longer be fetched."""
        group = await seed(group_repo, make_group(["alice"]))

        await group_registry.leave_group("alice", group.group_id)

        with pytest.raises(NotFoundError):
            await group_registry.get_by_id(group.group_id, "alice")

    @pytest.mark.asyncio
    async def test_non_member_cannot_leave(self, group_registry, group_repo):
        group = await seed(group_repo, make_group(["alice"]))

        with pytest.raises(ConflictError, match="not a member"):
            await group_registry.leave_group("mallory", group.group_id)

    @pytest.mark.asyncio
    async def test_missing_group(self, group_registry):
        with pytest.raises(NotFoundError):
            await group_registry.leave_group("alice", "nope")

    @pytest.mark.asyncio
    async def test_concurrent_leaves_do_not_lose_updates(self, group_registry, group_repo):
        group = await seed(group_repo, make_group(["alice", "bob", "carol"]))

        results = await asyncio.gather(
            group_registry.leave_group("alice", group.group_id),
            group_registry.leave_group("bob", group.group_id),
            return_exceptions=True,
        )

        stored = group_repo.groups[group.group_id]
        failed = [r for r in results if isinstance(r, Exception)]
        assert len(failed) == 1
        assert isinstance(failed[0], ConflictError)
        assert "retry" in failed[0].message
        assert len(stored.members) == 2
        assert [m.role for m in stored.members].count(GroupRole.ADMIN) == 1

    @pytest.mark.asyncio
    async def test_join_after_leave_frees_seat(self, group_registry, group_repo):
        group = await seed(group_repo, make_group(["alice", "bob"], seat_count=2))

        await group_registry.leave_group("bob", group.group_id)
        updated = await group_registry.join_group("carol", group.group_id)

        assert updated.member_ids == ["alice", "carol"]


class TestLockGroup:

    @pytest.mark.asyncio
    async def test_admin_locks(self, group_registry, group_repo, notifier):
        group = await seed(group_repo, make_group(["alice", "bob"]))

        locked = await group_registry.lock_group("alice", group.group_id)

        assert locked.status == GroupStatus.LOCKED
        assert locked.member_ids == group.member_ids
        assert notifier.recipients(NotificationKind.GROUP_LOCKED) == ["bob"]

    @pytest.mark.asyncio
    async def test_member_cannot_lock(self, group_registry, group_repo):
        group = await seed(group_repo, make_group(["alice", "bob"]))

        with pytest.raises(AuthorizationError):
            await group_registry.lock_group("bob", group.group_id)

        assert group_repo.groups[group.group_id].status == GroupStatus.OPEN

    @pytest.mark.asyncio
    async def test_lock_is_idempotent(self, group_registry, group_repo, notifier):
        group = await seed(group_repo, make_group(["alice"], status=GroupStatus.LOCKED))

        locked = await group_registry.lock_group("alice", group.group_id)

        assert locked.version == group.version
        assert notifier.sent == []

    @pytest.mark.asyncio
    async def test_missing_group(self, group_registry):
        with pytest.raises(NotFoundError):
            await group_registry.lock_group("alice", "nope")

    @pytest.mark.asyncio
    async def test_concurrent_locks_both_return_locked(self, group_registry, group_repo):
        group = await seed(group_repo, make_group(["alice", "bob"]))

        first, second = await asyncio.gather(
            group_registry.lock_group("alice", group.group_id),
            group_registry.lock_group("alice", group.group_id),
        )

        assert first.status == GroupStatus.LOCKED
        assert second.status == GroupStatus.LOCKED


class TestQueries:

    @pytest.mark.asyncio
    async def test_get_by_id_requires_membership(self, group_registry, group_repo):
        group = await seed(group_repo, make_group(["alice"]))

        assert (await group_registry.get_by_id(group.group_id, "alice")).group_id == group.group_id
        with pytest.raises(AuthorizationError):
            await group_registry.get_by_id(group.group_id, "mallory")

    @pytest.mark.asyncio
    async def test_list_for_user(self, group_registry, group_repo):
        later = await seed(group_repo, make_group(["alice"], date_time=BASE_TIME.replace(hour=18)))
        earlier = await seed(group_repo, make_group(["bob", "alice"]))
        await seed(group_repo, make_group(["bob"]))

        groups = await group_registry.list_for_user("alice")

        assert [g.group_id for g in groups] == [earlier.group_id, later.group_id]


class TestNotifierFailure:

    @pytest.mark.asyncio
    async def test_join_succeeds_when_notification_store_is_down(self, group_repo):
        registry = GroupRegistry(repository=group_repo, notifier=NotificationService())
        group = await seed(group_repo, make_group(["alice"]))

        with patch("app.services.notification_service.get_db", side_effect=RuntimeError("down")):
            updated = await registry.join_group("bob", group.group_id)

        assert updated.member_ids == ["alice", "bob"]

    @pytest.mark.asyncio
    async def test_join_succeeds_when_publish_fails(self, group_repo):
        registry = GroupRegistry(repository=group_repo, notifier=NotificationService())
        group = await seed(group_repo, make_group(["alice"]))
        db = AsyncMock()
        redis = AsyncMock()
        redis.publish.side_effect = ConnectionError("redis gone")

        with patch("app.services.notification_service.get_db", return_value=db), \
             patch("app.services.notification_service.get_redis", return_value=redis):
            updated = await registry.join_group("bob", group.group_id)

        assert updated.member_ids == ["alice", "bob"]
        db.notifications.insert_one.assert_awaited_once()
