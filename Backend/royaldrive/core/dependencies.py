from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from royaldrive.core.security import decode_access_token

# Reads are open to anonymous callers, so a missing token is not an error here
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)

INTERNAL_ROLES = {"superAdmin", "admin", "manager"}
VIEW_INTERNAL_PERMISSION = "vehicles:view:internal"


def can_view_internal(claims: Optional[Dict[str, Any]]) -> bool:
    """True when the caller may see the dealer-only internal block."""
    if not claims:
        return False
    if claims.get("role") in INTERNAL_ROLES:
        return True
    return VIEW_INTERNAL_PERMISSION in (claims.get("permissions") or [])


async def get_optional_claims(
    token: Optional[str] = Depends(oauth2_scheme)
) -> Optional[Dict[str, Any]]:
    """
    Dependency returning the token claims, or None for anonymous callers.

    A token that is present but invalid is rejected rather than treated
    as anonymous.
    """
    if token is None:
        return None
    claims = decode_access_token(token)
    if claims is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return claims


async def get_internal_access(
    claims: Optional[Dict[str, Any]] = Depends(get_optional_claims)
) -> bool:
    """Dependency resolving the caller's "may view internal data" flag."""
    return can_view_internal(claims)


async def require_internal_access(
    claims: Optional[Dict[str, Any]] = Depends(get_optional_claims)
) -> Dict[str, Any]:
    """
    Dependency for mutating routes.

    Usage in routes:
        claims: dict = Depends(require_internal_access)
    """
    if claims is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not can_view_internal(claims):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to perform this action"
        )
    return claims
