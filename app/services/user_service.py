"""User Service - Read access to user profiles owned by the identity system."""

import logging
from typing import Dict, Iterable, Optional

from app.database import get_db
from app.models.user import User
from app.repositories import mongo_errors

logger = logging.getLogger(__name__)


class UserService:
    """
    User profile lookups.

    Users are provisioned elsewhere; this service never writes them.
    """

    async def get_genders(self, user_ids: Iterable[str]) -> Dict[str, Optional[str]]:
        """
        Map each user ID to its gender.

        Unknown users and users without a gender map to None.
        """
        ids = list(dict.fromkeys(user_ids))
        if not ids:
            return {}

        with mongo_errors("get user genders"):
            cursor = get_db().users.find(
                {"user_id": {"$in": ids}}, {"_id": 0, "user_id": 1, "gender": 1}
            )
            docs = await cursor.to_list(length=None)

        genders: Dict[str, Optional[str]] = {uid: None for uid in ids}
        for user in (User(**doc) for doc in docs):
            genders[user.user_id] = user.gender
        if len(docs) < len(ids):
            logger.debug(f"{len(ids) - len(docs)} users without a profile, gender unknown")
        return genders
