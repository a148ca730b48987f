# pyright: reportMissingTypeStubs=false
"""
Caller identity dependencies for FastAPI.

Tokens are issued by the identity service; this module only verifies them
and resolves the caller into a CallerContext that the services receive as
an explicit argument.
"""

import logging
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import jwt

from core.config import JWT_SECRET_KEY, JWT_ALGORITHM
from core.constants import ADMIN_LIKE_ROLES, VALID_ROLES

logger = logging.getLogger(__name__)


class CallerContext:
    """Resolved caller identity and role."""

    def __init__(
        self,
        user_id: int,
        role: str,
        clinic_id: Optional[int] = None
    ):
        self.user_id = user_id
        self.role = role  # "user", "employee", "admin" or "offline"
        self.clinic_id = clinic_id

    def has_role(self, *roles: str) -> bool:
        """Check if caller has any of the given roles."""
        return self.role in roles

    def is_admin_like(self) -> bool:
        """Admins and front desk may act on behalf of anyone."""
        return self.role in ADMIN_LIKE_ROLES

    def __repr__(self) -> str:
        return f"CallerContext(user_id={self.user_id}, role='{self.role}', clinic_id={self.clinic_id})"


# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


def decode_caller_token(token: str) -> Optional[CallerContext]:
    """
    Decode a bearer token into a CallerContext.

    Returns:
        CallerContext, or None if the token is invalid or expired
    """
    try:
        payload = jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except jwt.PyJWTError as e:
        logger.debug(f"Rejected caller token: {e}")
        return None

    user_id = payload.get("user_id")
    role = payload.get("role")
    if not isinstance(user_id, int) or role not in VALID_ROLES:
        logger.warning(f"Caller token missing user_id/role: {payload}")
        return None

    clinic_id = payload.get("clinic_id")
    return CallerContext(
        user_id=user_id,
        role=role,
        clinic_id=clinic_id if isinstance(clinic_id, int) else None,
    )


def get_current_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> CallerContext:
    """Get the authenticated caller from the bearer token."""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication credentials not provided"
        )

    caller = decode_caller_token(credentials.credentials)
    if caller is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials"
        )
    return caller
