"""
Test utilities for clinic scheduler tests.
"""

import jwt
from datetime import datetime, timedelta, timezone
from typing import Optional

from core.config import JWT_SECRET_KEY, JWT_ALGORITHM


def create_jwt_token(user_id: int, role: str, clinic_id: Optional[int] = None) -> str:
    """Create a bearer token the API accepts for the given caller."""
    now = datetime.now(timezone.utc)
    payload = {
        "user_id": user_id,
        "role": role,
        "clinic_id": clinic_id,
        "exp": now + timedelta(hours=1),
        "iat": now,
    }
    return jwt.encode(payload, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def auth_headers(user_id: int, role: str, clinic_id: Optional[int] = None) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_jwt_token(user_id, role, clinic_id)}"}
