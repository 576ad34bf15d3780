"""
Tests for the MongoDB adapters

Checks the filters and updates sent to motor, and driver error mapping.
"""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pymongo import ReturnDocument
from pymongo.errors import ServerSelectionTimeoutError

from app.exceptions import InternalError
from app.models.group import GroupMember
from app.repositories.group_repository import GroupRepository
from app.repositories.pool_request_repository import PoolRequestRepository
from factories import BASE_TIME, CAMPUS, make_group, make_request


def mock_collection(docs=()):
    collection = MagicMock()
    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.limit.return_value = cursor
    cursor.to_list = AsyncMock(return_value=list(docs))
    collection.find.return_value = cursor
    collection.find_one = AsyncMock(return_value=None)
    collection.find_one_and_update = AsyncMock(return_value=None)
    collection.insert_one = AsyncMock()
    collection.delete_one = AsyncMock()
    return collection


def patch_db(module: str, collection):
    db = MagicMock()
    db.__getitem__.return_value = collection
    return patch(f"app.repositories.{module}.get_db", return_value=db)


class TestGroupRepository:

    @pytest.fixture
    def repo(self):
        return GroupRepository()

    @pytest.mark.asyncio
    async def test_replace_is_version_checked(self, repo):
        current = make_group(["alice", "bob"])
        updated = current.with_member_removed("alice")
        collection = mock_collection()
        collection.find_one_and_update.return_value = updated.model_dump()

        with patch_db("group_repository", collection):
            saved = await repo.replace_if_version(updated, current.version)

        assert saved == updated
        filter_, update = collection.find_one_and_update.call_args.args
        assert filter_ == {"group_id": current.group_id, "version": current.version}
        assert update["$set"]["version"] == current.version + 1
        assert update["$set"]["members"][0]["role"] == "admin"
        assert collection.find_one_and_update.call_args.kwargs["return_document"] == ReturnDocument.AFTER

    @pytest.mark.asyncio
    async def test_replace_stale_version_returns_none(self, repo):
        current = make_group(["alice"])
        collection = mock_collection()

        with patch_db("group_repository", collection):
            assert await repo.replace_if_version(current.locked("alice"), current.version) is None

    @pytest.mark.asyncio
    async def test_push_member_guards_status_capacity_and_membership(self, repo):
        member = GroupMember(user_id="carol", joined_at=BASE_TIME)
        collection = mock_collection()

        with patch_db("group_repository", collection):
            assert await repo.push_member_if_open("g1", member) is None

        filter_, update = collection.find_one_and_update.call_args.args
        assert filter_["group_id"] == "g1"
        assert filter_["status"] == "Open"
        assert filter_["members.user_id"] == {"$ne": "carol"}
        assert filter_["$expr"] == {"$lt": [{"$size": "$members"}, "$seat_count"]}
        assert update["$push"]["members"]["user_id"] == "carol"
        assert update["$inc"] == {"version": 1}

    @pytest.mark.asyncio
    async def test_delete_if_version(self, repo):
        collection = mock_collection()
        collection.delete_one.return_value = MagicMock(deleted_count=1)

        with patch_db("group_repository", collection):
            assert await repo.delete_if_version("g1", 3) is True

        collection.delete_one.assert_awaited_once_with({"group_id": "g1", "version": 3})

    @pytest.mark.asyncio
    async def test_find_candidates_query(self, repo):
        group = make_group(["alice"])
        collection = mock_collection([{**group.model_dump(), "_id": "x"}])

        with patch_db("group_repository", collection):
            groups = await repo.find_candidates(
                "me", BASE_TIME - timedelta(minutes=25), BASE_TIME + timedelta(minutes=25),
                near=list(CAMPUS), radius_m=6371,
            )

        assert [g.group_id for g in groups] == [group.group_id]
        query = collection.find.call_args.args[0]
        assert query["status"] == "Open"
        assert query["members.0"] == {"$exists": True}
        assert query["members.user_id"] == {"$ne": "me"}
        assert query["route.pickup.coordinates"] == {
            "$geoWithin": {"$centerSphere": [list(CAMPUS), 0.001]}
        }

    @pytest.mark.asyncio
    async def test_driver_error_becomes_internal_error(self, repo):
        collection = mock_collection()
        collection.find_one.side_effect = ServerSelectionTimeoutError("no primary")

        with patch_db("group_repository", collection):
            with pytest.raises(InternalError):
                await repo.get("g1")


class TestPoolRequestRepository:

    @pytest.fixture
    def repo(self):
        return PoolRequestRepository()

    @pytest.mark.asyncio
    async def test_update_status_conditional_on_current(self, repo):
        collection = mock_collection()

        with patch_db("pool_request_repository", collection):
            result = await repo.update_status_if("r1", "Open", "Matched", group_id="g1")

        assert result is None
        filter_, update = collection.find_one_and_update.call_args.args
        assert filter_ == {"request_id": "r1", "status": "Open"}
        assert update["$set"]["status"] == "Matched"
        assert update["$set"]["group_id"] == "g1"
        assert "matched_user_ids" not in update["$set"]

    @pytest.mark.asyncio
    async def test_find_candidates_gender_filter(self, repo):
        request = make_request(creator_id="bob")
        collection = mock_collection([request.model_dump()])

        with patch_db("pool_request_repository", collection):
            found = await repo.find_candidates(
                "alice", BASE_TIME, BASE_TIME, preferred_gender="Female"
            )

        assert [r.request_id for r in found] == [request.request_id]
        query = collection.find.call_args.args[0]
        assert query["creator_id"] == {"$ne": "alice"}
        assert query["$or"] == [
            {"preferred_gender": {"$in": ["Any", "Female"]}},
            {"preferred_gender": None},
        ]
        assert "pickup.coordinates" not in query

    @pytest.mark.asyncio
    async def test_visible_for_student(self, repo):
        collection = mock_collection()

        with patch_db("pool_request_repository", collection):
            await repo.list_visible("alice", 50)

        query = collection.find.call_args.args[0]
        assert query == {"$or": [{"creator_id": "alice"}, {"status": "Open"}]}
        collection.find.return_value.limit.assert_called_once_with(50)
