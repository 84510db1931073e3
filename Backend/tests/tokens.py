"""
Access-token minting for tests. Production tokens come from the admin
login service; the API only verifies them.
"""
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from jose import jwt

from royaldrive.core.config import settings


def create_access_token(
    subject: str,
    role: str,
    permissions: Optional[List[str]] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    if not subject:
        raise ValueError("Subject cannot be empty")

    now = datetime.now(timezone.utc)
    expires = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    payload = {
        "sub": subject,
        "role": role,
        "permissions": permissions or [],
        "iat": int(now.timestamp()),
        "exp": int(expires.timestamp()),
        "type": "access",
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
