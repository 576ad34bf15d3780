"""
Authentication Dependencies

FastAPI dependencies for authentication and authorization.
"""

from typing import Optional

from fastapi import HTTPException, Header, status

from app.models.user import CurrentUser
from app.services.auth_service import AuthService
from app.services.group_registry import GroupRegistry
from app.services.match_engine import MatchEngine
from app.services.notification_service import NotificationService
from app.services.pool_request_registry import PoolRequestRegistry

auth_service = AuthService()
notification_service = NotificationService()
group_registry = GroupRegistry(notifier=notification_service)
pool_request_registry = PoolRequestRegistry(notifier=notification_service)
match_engine = MatchEngine()

async def get_current_user(
    authorization: Optional[str] = Header(None)
) -> CurrentUser:
    """
    Resolve the caller from the bearer token.

    SECURITY: This is the primary authentication gate.
    All protected endpoints should depend on this.

    Expects Authorization header: Bearer <token>
    """
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header required",
            headers={"WWW-Authenticate": "Bearer"}
        )

    if not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization format. Use: Bearer <token>",
            headers={"WWW-Authenticate": "Bearer"}
        )

    user = auth_service.verify_token(authorization[7:])
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"}
        )
    return user


# Service providers, overridable in tests through app.dependency_overrides

def get_group_registry() -> GroupRegistry:
    return group_registry


def get_pool_request_registry() -> PoolRequestRegistry:
    return pool_request_registry


def get_match_engine() -> MatchEngine:
    return match_engine


def get_notification_service() -> NotificationService:
    return notification_service
