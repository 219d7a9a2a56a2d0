"""
Pydantic schemas for authentication and profile endpoints.
"""
import re
from typing import Literal, Optional

from pydantic import BaseModel, constr, field_validator

from app.core.constants import ROLE_ADMIN

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

USERNAME_MAX_LENGTH = 30

Username = constr(strip_whitespace=True, min_length=3, max_length=USERNAME_MAX_LENGTH)


def normalize_email(value: str) -> str:
    value = (value or "").strip().lower()
    if not EMAIL_RE.match(value):
        raise ValueError("Please provide a valid email address")
    return value


class RegisterIn(BaseModel):
    """
    Request model for registration.
    ``role`` may be "contributor" or "viewer"; admins are never self-registered.
    """
    username: Username
    email: str
    password: constr(min_length=8)
    role: Optional[Literal["admin", "contributor", "viewer"]] = None

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return normalize_email(v)

    @field_validator("role")
    @classmethod
    def _role(cls, v):
        if v == ROLE_ADMIN:
            raise ValueError("Admin accounts cannot be self-registered")
        return v


class LoginIn(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return (v or "").strip().lower()


class ProfileUpdateIn(BaseModel):
    """
    Request model for updating one's own profile.
    Only username and email can change; any other field (e.g. role) is ignored.
    """
    username: Optional[Username] = None
    email: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _email(cls, v):
        return normalize_email(v) if v is not None else v
