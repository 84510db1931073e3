"""
JWT verification.

Tokens are issued by the admin login service; this API only verifies them
and reads the role/permissions claims.
"""
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from royaldrive.core.config import settings


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Verify a token and return its claims, or None when it is invalid or expired.
    """
    if not token:
        return None
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None

    if not payload.get("sub"):
        return None
    if payload.get("type", "access") != "access":
        return None
    return payload
