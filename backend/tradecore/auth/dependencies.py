"""
Caller identity dependencies

Authentication happens upstream; the identity layer forwards the
authenticated user id (and role, for admin reads) as headers and this
service trusts them. Only membership is checked here.
"""

from typing import Optional

from fastapi import Header, HTTPException, status

ADMIN_ROLE = "admin"


def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authenticated user"
        )
    return x_user_id.strip()


def require_admin(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
) -> str:
    user_id = get_current_user_id(x_user_id)
    if (x_user_role or "").strip().lower() != ADMIN_ROLE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return user_id
