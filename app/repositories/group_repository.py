"""
Group Repository - MongoDB adapter for the groups collection.

Joins are a conditional push guarded by status, capacity and membership.
Removals and status changes are a compare-and-swap on
(group_id, version): a writer holding a stale snapshot matches nothing
and gets None/False back instead of overwriting a newer state.
"""

from datetime import datetime
from typing import List, Optional, Sequence

from pymongo import ASCENDING, ReturnDocument

from app.database import get_db
from app.models.group import Group, GroupMember, GroupStatus
from app.repositories import center_sphere, mongo_errors


class GroupRepository:
    """Reads and version-checked writes on groups."""

    collection_name = "groups"

    def _collection(self):
        return get_db()[self.collection_name]

    async def insert(self, group: Group) -> Group:
        with mongo_errors("insert group"):
            await self._collection().insert_one(group.model_dump())
        return group

    async def get(self, group_id: str) -> Optional[Group]:
        with mongo_errors("get group"):
            doc = await self._collection().find_one({"group_id": group_id})
        return Group(**doc) if doc else None

    async def list_all(self) -> List[Group]:
        with mongo_errors("list groups"):
            cursor = self._collection().find({}).sort("date_time", ASCENDING)
            docs = await cursor.to_list(length=None)
        return [Group(**d) for d in docs]

    async def list_by_member(self, user_id: str) -> List[Group]:
        with mongo_errors("list member groups"):
            cursor = self._collection().find({"members.user_id": user_id}).sort("date_time", ASCENDING)
            docs = await cursor.to_list(length=None)
        return [Group(**d) for d in docs]

    async def replace_if_version(self, group: Group, expected_version: int) -> Optional[Group]:
        """Persist the mutable fields of group if the stored version is expected_version."""
        data = group.model_dump()
        with mongo_errors("update group"):
            doc = await self._collection().find_one_and_update(
                {"group_id": group.group_id, "version": expected_version},
                {
                    "$set": {
                        "members": data["members"],
                        "status": data["status"],
                        "version": group.version,
                        "updated_at": group.updated_at,
                    }
                },
                return_document=ReturnDocument.AFTER,
            )
        return Group(**doc) if doc else None

    async def delete_if_version(self, group_id: str, expected_version: int) -> bool:
        with mongo_errors("delete group"):
            result = await self._collection().delete_one(
                {"group_id": group_id, "version": expected_version}
            )
        return result.deleted_count == 1

    async def find_candidates(
        self,
        exclude_user_id: str,
        window_start: datetime,
        window_end: datetime,
        near: Optional[Sequence[float]] = None,
        radius_m: Optional[float] = None,
    ) -> List[Group]:
        """Open, non-empty, not-full groups the user is not in, in creation order."""
        query = {
            "status": GroupStatus.OPEN.value,
            "date_time": {"$gte": window_start, "$lte": window_end},
            "members.0": {"$exists": True},
            "members.user_id": {"$ne": exclude_user_id},
            "$expr": {"$lt": [{"$size": "$members"}, "$seat_count"]},
        }
        if near is not None and radius_m is not None:
            query["route.pickup.coordinates"] = center_sphere(near, radius_m)

        with mongo_errors("find group candidates"):
            cursor = self._collection().find(query).sort([("created_at", ASCENDING), ("_id", ASCENDING)])
            docs = await cursor.to_list(length=None)
        return [Group(**d) for d in docs]

    async def push_member_if_open(self, group_id: str, member: GroupMember) -> Optional[Group]:
        """
        Append member in one conditional update.

        Matches only while the group is Open, has a free seat and does not
        already contain the user, so concurrent joins can never overfill it.
        """
        data = member.model_dump()
        with mongo_errors("join group"):
            doc = await self._collection().find_one_and_update(
                {
                    "group_id": group_id,
                    "status": GroupStatus.OPEN.value,
                    "members.user_id": {"$ne": member.user_id},
                    "$expr": {"$lt": [{"$size": "$members"}, "$seat_count"]},
                },
                {
                    "$push": {"members": data},
                    "$inc": {"version": 1},
                    "$set": {"updated_at": data["joined_at"]},
                },
                return_document=ReturnDocument.AFTER,
            )
        return Group(**doc) if doc else None
