"""Cab Pool Services Package"""

from app.services.auth_service import AuthService
from app.services.user_service import UserService
from app.services.notification_service import NotificationService
from app.services.match_engine import MatchEngine
from app.services.group_registry import GroupRegistry
from app.services.pool_request_registry import PoolRequestRegistry

__all__ = [
    "AuthService",
    "UserService",
    "NotificationService",
    "MatchEngine",
    "GroupRegistry",
    "PoolRequestRegistry",
]
