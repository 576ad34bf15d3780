"""Cab Pool Models Package"""

from app.models.location import Location, Route
from app.models.pool_request import (
    PoolRequest, PoolRequestStatus, PreferredGender, RideMode,
)
from app.models.group import Group, GroupMember, GroupRole, GroupStatus
from app.models.match import MatchQuery, MatchResult
from app.models.user import User, CurrentUser, Gender, UserRole
from app.models.notification import Notification, NotificationKind

__all__ = [
    "Location", "Route",
    "PoolRequest", "PoolRequestStatus", "PreferredGender", "RideMode",
    "Group", "GroupMember", "GroupRole", "GroupStatus",
    "MatchQuery", "MatchResult",
    "User", "CurrentUser", "Gender", "UserRole",
    "Notification", "NotificationKind",
]
