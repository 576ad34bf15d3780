"""
Authentication Service

Bearer token verification. Tokens are issued by the identity system and
carry the user's id and role.
"""

import logging
from typing import Optional

from jose import JWTError, jwt

from app.config import settings
from app.models.user import CurrentUser, UserRole

logger = logging.getLogger(__name__)

DEV_SECRET = "dev-secret-key-change-in-production"


class AuthService:
    """
    Verifies signed JWTs.

    SECURITY: All authenticated requests go through verify_token.
    """

    def __init__(self, secret: Optional[str] = None, algorithm: Optional[str] = None):
        self.secret = secret or settings.jwt_secret
        self.algorithm = algorithm or settings.jwt_algorithm
        if self.secret == DEV_SECRET:
            logger.warning("SECURITY: Using default JWT secret! Set JWT_SECRET in production.")

    def verify_token(self, token: str) -> Optional[CurrentUser]:
        """
        Decode a bearer token.

        Args:
            token: Encoded JWT from the Authorization header

        Returns:
            CurrentUser built from the `id` (or `sub`) and `role` claims,
            or None if the token is invalid, expired or lacks a user id.
        """
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError as e:
            logger.debug(f"Token verification failed: {type(e).__name__}: {e}")
            return None

        user_id = payload.get("id") or payload.get("sub")
        if not user_id:
            logger.debug("Token verification failed: no user id claim")
            return None

        role = payload.get("role")
        if role not in {r.value for r in UserRole}:
            role = UserRole.STUDENT.value
        return CurrentUser(user_id=str(user_id), role=role)

    def create_token(self, user_id: str, role: str = UserRole.STUDENT.value, **claims) -> str:
        """Sign a token. Used by tooling and tests; production tokens come from the identity system."""
        payload = {"id": user_id, "role": role, **claims}
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)
