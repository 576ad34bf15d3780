"""
Group Model - Travel group aggregate.

A Group value is immutable. Membership changes go through the transition
methods, which check the business rules and return the next value with
version bumped by one. Persisting that value is a compare-and-swap on the
previous version (see GroupRepository).
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.exceptions import AuthorizationError, ConflictError
from app.models.location import Route
from app.utils.timezone_utils import ensure_utc, utc_now


class GroupStatus(str, Enum):
    """Status of a travel group. Only advances OPEN -> LOCKED -> COMPLETED."""
    OPEN = "Open"
    LOCKED = "Locked"
    COMPLETED = "Completed"  # set by the trip-completion hook outside this service


class GroupRole(str, Enum):
    MEMBER = "member"
    ADMIN = "admin"


class GroupMember(BaseModel):
    """Member of a travel group."""
    model_config = ConfigDict(frozen=True, use_enum_values=True)

    user_id: str = Field(..., description="User ID")
    role: GroupRole = Field(default=GroupRole.MEMBER)
    joined_at: datetime = Field(default_factory=utc_now)


class Group(BaseModel):
    """
    Travel group model for MongoDB.

    Invariants while the group exists:
    - 1 <= len(members) <= seat_count
    - exactly one admin
    - chat_room_id never changes
    """
    model_config = ConfigDict(frozen=True, use_enum_values=True)

    group_id: str = Field(..., description="Unique group ID")
    name: str
    description: Optional[str] = None
    members: List[GroupMember]
    route: Route
    date_time: datetime
    seat_count: int = Field(..., ge=2, le=4)
    status: GroupStatus = Field(default=GroupStatus.OPEN)
    chat_room_id: str = Field(..., description="Opaque chat room token")
    version: int = Field(default=1, ge=1)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("date_time", "created_at", "updated_at")
    @classmethod
    def to_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def member_ids(self) -> List[str]:
        return [m.user_id for m in self.members]

    @property
    def admin_id(self) -> Optional[str]:
        for m in self.members:
            if m.role == GroupRole.ADMIN:
                return m.user_id
        return None

    @property
    def is_full(self) -> bool:
        return len(self.members) >= self.seat_count

    def is_member(self, user_id: str) -> bool:
        return user_id in self.member_ids

    def can_join(self, user_id: str) -> bool:
        return (
            self.status == GroupStatus.OPEN
            and not self.is_member(user_id)
            and not self.is_full
        )

    # =========================================================================
    # Transitions
    # =========================================================================

    def _next(self, now: Optional[datetime] = None, **changes) -> "Group":
        changes["version"] = self.version + 1
        changes["updated_at"] = now or utc_now()
        return self.model_copy(update=changes)

    def with_member_added(self, user_id: str, now: Optional[datetime] = None) -> "Group":
        """Append user_id as a plain member."""
        if self.status != GroupStatus.OPEN:
            raise ConflictError("Group is not open")
        if self.is_member(user_id):
            raise ConflictError("User is already a member of this group")
        if self.is_full:
            raise ConflictError("Group is full")

        now = now or utc_now()
        member = GroupMember(user_id=user_id, role=GroupRole.MEMBER, joined_at=now)
        return self._next(now, members=[*self.members, member])

    def with_member_removed(self, user_id: str, now: Optional[datetime] = None) -> Optional["Group"]:
        """
        Remove user_id from the group.

        Returns None when nobody is left, meaning the group should be deleted.
        When the admin leaves, the first remaining member is promoted.
        """
        if not self.is_member(user_id):
            raise ConflictError("User is not a member of this group")

        remaining = [m for m in self.members if m.user_id != user_id]
        if not remaining:
            return None

        if not any(m.role == GroupRole.ADMIN for m in remaining):
            remaining[0] = remaining[0].model_copy(update={"role": GroupRole.ADMIN.value})
        return self._next(now, members=remaining)

    def locked(self, requester_id: str, now: Optional[datetime] = None) -> "Group":
        """Close the group to new members. Locking a locked group is a no-op."""
        if self.admin_id != requester_id:
            raise AuthorizationError("Only the group admin can lock the group")
        if self.status == GroupStatus.LOCKED:
            return self
        if self.status != GroupStatus.OPEN:
            raise ConflictError("Group is not open")
        return self._next(now, status=GroupStatus.LOCKED.value)
