"""
Database model for users.
Represents a user account in the system, containing authentication credentials,
profile information, and role-based access control.
"""
import uuid
from tortoise import fields, models

from app.core.constants import ROLE_VIEWER


class User(models.Model):
    """
    User database model.

    Relationships:
    - Has many created Issues (related_name="created_issues")
    - Has many assigned Issues (related_name="assigned_issues")
    - Has many Comments (related_name="comments")

    Security:
    - Password is stored as a hash and never serialized outward
    - Username and email are each unique across all users
    - Role ("admin", "contributor", "viewer") is not changeable through the profile endpoint
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    username = fields.CharField(max_length=30, unique=True, index=True)
    email = fields.CharField(max_length=256, unique=True, index=True)  # Stored lowercased
    password_hash = fields.CharField(max_length=255)
    role = fields.CharField(max_length=16, default=ROLE_VIEWER)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        """Tortoise ORM metadata configuration."""
        table = "users"
