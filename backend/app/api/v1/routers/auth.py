# app/api/v1/routers/auth.py
import logging

from fastapi import APIRouter, Depends, status
from tortoise.exceptions import IntegrityError
from tortoise.expressions import Q

from app.api.v1.deps import get_current_user, require_admin
from app.core.constants import ROLE_VIEWER
from app.core.errors import Conflict, Unauthenticated
from app.core.security import hash_password, issue_token, verify_password
from app.models.user import User
from app.schemas.auth import LoginIn, ProfileUpdateIn, RegisterIn
from app.services.issues import user_to_dict

logger = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/auth", tags=["auth"])

INVALID_CREDENTIALS = "Invalid credentials"


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(body: RegisterIn):
    """
    Register a new user account.

    Username and email must each be unique. ``role`` defaults to "viewer";
    "contributor" may be requested, "admin" is rejected by the schema.

    Returns:
        dict: ``{success, data: {user, token}, message}``

    Errors:
        400: Validation failure, or username/email already taken
    """
    if await User.filter(Q(username=body.username) | Q(email=body.email)).exists():
        raise Conflict("User with this email or username already exists")
    try:
        u = await User.create(
            username=body.username,
            email=body.email,
            password_hash=hash_password(body.password),
            role=body.role or ROLE_VIEWER,
        )
    except IntegrityError:
        # Lost a race against a concurrent registration
        raise Conflict("User with this email or username already exists")
    logger.info("[auth] registered user %s (%s)", u.username, u.role)
    return {
        "success": True,
        "data": {"user": user_to_dict(u), "token": issue_token(str(u.id))},
        "message": "User registered successfully",
    }


@router.post("/login")
async def login(body: LoginIn):
    """
    Authenticate by email and password.

    Unknown email and wrong password produce the same 401 response so the
    existence of an account is not revealed.
    """
    user = await User.get_or_none(email=body.email)
    if not user or not verify_password(body.password, user.password_hash):
        raise Unauthenticated(INVALID_CREDENTIALS)
    return {
        "success": True,
        "data": {"user": user_to_dict(user), "token": issue_token(str(user.id))},
        "message": "Login successful",
    }


@router.get("/me")
async def me(user: User = Depends(get_current_user)):
    """Return the identity resolved from the bearer token."""
    return {"success": True, "data": user_to_dict(user)}


@router.put("/profile")
async def update_profile(body: ProfileUpdateIn, user: User = Depends(get_current_user)):
    """
    Update the caller's own username and/or email. Role cannot be changed here.

    Errors:
        400: Validation failure, or the new username/email belongs to another user
    """
    if body.username and body.username != user.username:
        if await User.filter(username=body.username).exclude(id=user.id).exists():
            raise Conflict("Username already taken")
        user.username = body.username
    if body.email and body.email != user.email:
        if await User.filter(email=body.email).exclude(id=user.id).exists():
            raise Conflict("Email already registered")
        user.email = body.email
    try:
        await user.save()
    except IntegrityError:
        raise Conflict("Username or email already taken")
    return {"success": True, "data": user_to_dict(user), "message": "Profile updated successfully"}


@router.get("/users")
async def list_users(admin: User = Depends(require_admin)):
    """Full user listing, newest first (admin only)."""
    rows = await User.all().order_by("-created_at")
    return {"success": True, "data": [user_to_dict(u) for u in rows], "count": len(rows)}
