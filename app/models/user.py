"""User Model - Read-only view of users provisioned by the identity system."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator


class Gender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"


class UserRole(str, Enum):
    """User roles for RBAC."""
    STUDENT = "student"
    ADMIN = "admin"


class User(BaseModel):
    """
    User model for MongoDB.

    The core only reads users: gender feeds group scoring, role feeds
    authorization.
    """
    user_id: str = Field(..., description="User ID")
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    gender: Optional[Gender] = None
    role: UserRole = Field(default=UserRole.STUDENT)

    @field_validator("gender", mode="before")
    @classmethod
    def unknown_gender_is_none(cls, v):
        # Profiles are written elsewhere; values outside Gender count as unset
        return v if isinstance(v, str) and v in {g.value for g in Gender} else None

    class Config:
        use_enum_values = True


class CurrentUser(BaseModel):
    """Identity resolved from a bearer token."""
    user_id: str
    role: UserRole = Field(default=UserRole.STUDENT)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    class Config:
        use_enum_values = True
