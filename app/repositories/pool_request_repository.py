"""Pool Request Repository - MongoDB adapter for the pool_requests collection."""

from datetime import datetime
from typing import List, Optional, Sequence

from pymongo import ASCENDING, DESCENDING, ReturnDocument

from app.database import get_db
from app.models.pool_request import PoolRequest, PoolRequestStatus, PreferredGender
from app.repositories import center_sphere, mongo_errors
from app.utils.timezone_utils import utc_now


class PoolRequestRepository:
    """Reads and conditional writes on pool requests."""

    collection_name = "pool_requests"

    def _collection(self):
        return get_db()[self.collection_name]

    async def insert(self, request: PoolRequest) -> PoolRequest:
        with mongo_errors("insert pool request"):
            await self._collection().insert_one(request.model_dump())
        return request

    async def get(self, request_id: str) -> Optional[PoolRequest]:
        with mongo_errors("get pool request"):
            doc = await self._collection().find_one({"request_id": request_id})
        return PoolRequest(**doc) if doc else None

    async def list_by_creator(self, user_id: str) -> List[PoolRequest]:
        """Requests created by user_id, newest departure first."""
        with mongo_errors("list pool requests"):
            cursor = self._collection().find({"creator_id": user_id}).sort("date_time", DESCENDING)
            docs = await cursor.to_list(length=None)
        return [PoolRequest(**d) for d in docs]

    async def list_visible(self, user_id: Optional[str], limit: int) -> List[PoolRequest]:
        """
        Requests in departure order.

        With user_id set, only that user's requests and open ones are
        returned; None returns everything (admin view).
        """
        query = {}
        if user_id is not None:
            query = {"$or": [{"creator_id": user_id}, {"status": PoolRequestStatus.OPEN.value}]}
        with mongo_errors("list visible pool requests"):
            cursor = self._collection().find(query).sort("date_time", ASCENDING).limit(limit)
            docs = await cursor.to_list(length=limit)
        return [PoolRequest(**d) for d in docs]

    async def update_status_if(
        self,
        request_id: str,
        expected_status: str,
        new_status: str,
        group_id: Optional[str] = None,
        matched_user_ids: Optional[Sequence[str]] = None,
    ) -> Optional[PoolRequest]:
        """
        Move a request to new_status only if it is still in expected_status.

        Returns the updated request, or None when the precondition no longer
        holds (deleted or changed by someone else).
        """
        update = {"status": new_status, "updated_at": utc_now()}
        if group_id is not None:
            update["group_id"] = group_id
        if matched_user_ids is not None:
            update["matched_user_ids"] = list(matched_user_ids)

        with mongo_errors("update pool request status"):
            doc = await self._collection().find_one_and_update(
                {"request_id": request_id, "status": expected_status},
                {"$set": update},
                return_document=ReturnDocument.AFTER,
            )
        return PoolRequest(**doc) if doc else None

    async def find_candidates(
        self,
        exclude_user_id: str,
        window_start: datetime,
        window_end: datetime,
        preferred_gender: Optional[str] = None,
        near: Optional[Sequence[float]] = None,
        radius_m: Optional[float] = None,
    ) -> List[PoolRequest]:
        """
        Open requests from other users departing inside the window.

        Candidates whose own preference is neither Any (or unset) nor the
        requested gender are excluded. Results come back in creation order.
        """
        wanted = preferred_gender or PreferredGender.ANY.value
        query = {
            "status": PoolRequestStatus.OPEN.value,
            "creator_id": {"$ne": exclude_user_id},
            "date_time": {"$gte": window_start, "$lte": window_end},
            "$or": [
                {"preferred_gender": {"$in": sorted({PreferredGender.ANY.value, wanted})}},
                {"preferred_gender": None},
            ],
        }
        if near is not None and radius_m is not None:
            query["pickup.coordinates"] = center_sphere(near, radius_m)

        with mongo_errors("find pool request candidates"):
            cursor = self._collection().find(query).sort([("created_at", ASCENDING), ("_id", ASCENDING)])
            docs = await cursor.to_list(length=None)
        return [PoolRequest(**d) for d in docs]
