# app/api/v1/deps.py
from fastapi import Depends, Header
from app.core.constants import ROLE_ADMIN
from app.core.errors import Forbidden
from app.core.security import resolve_identity
from app.models.user import User


def bearer_token(authorization: str | None) -> str | None:
    """Extract the token from an ``Authorization: Bearer xxx`` header value."""
    if authorization and authorization.lower().startswith("bearer "):
        return authorization.split(" ", 1)[1].strip() or None
    return None


async def get_current_user(
    authorization: str | None = Header(default=None),
) -> User:
    """
    FastAPI dependency to get the current authenticated user.

    The resolved user is handed to the route as an explicit parameter and
    then passed on to the policy and store calls that need it.

    Raises:
        Unauthenticated (401): No token, invalid/expired token, or unknown user

    Usage:
        @router.get("/protected")
        async def protected_route(user: User = Depends(get_current_user)):
            return {"user_id": str(user.id)}
    """
    return await resolve_identity(bearer_token(authorization))


async def require_admin(current: User = Depends(get_current_user)) -> User:
    """
    FastAPI dependency to ensure the current user is an administrator.

    Raises:
        Forbidden (403): If user is not an admin
        Unauthenticated (401): If user is not authenticated (from get_current_user)
    """
    if current.role != ROLE_ADMIN:
        raise Forbidden(f"Access denied. Required role: {ROLE_ADMIN}")
    return current
