"""
Database models for issues and their tags.
"""
import uuid
from tortoise import fields, models

from app.core.constants import DEFAULT_PRIORITY, STATUS_OPEN


class Issue(models.Model):
    """
    Issue database model.

    The creator is set once at creation and never changes; the assignee is
    optional. Related users are not loaded implicitly: callers fetch them
    explicitly when they need them.

    Relationships:
    - Belongs to a creator User (many-to-one)
    - Optionally assigned to a User (many-to-one, nullable)
    - Has many Comments and IssueTags (one-to-many)
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    title = fields.CharField(max_length=200)
    description = fields.TextField()
    status = fields.CharField(max_length=16, default=STATUS_OPEN, index=True)
    priority = fields.CharField(max_length=16, default=DEFAULT_PRIORITY, index=True)
    creator = fields.ForeignKeyField(
        "models.User",
        related_name="created_issues",
        on_delete=fields.RESTRICT,
    )
    assignee = fields.ForeignKeyField(
        "models.User",
        related_name="assigned_issues",
        null=True,
        on_delete=fields.SET_NULL,
    )
    created_at = fields.DatetimeField(auto_now_add=True, index=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "issues"


class IssueTag(models.Model):
    """
    One lowercase tag attached to an issue.
    Kept as rows so list queries can match tags by set membership.
    """
    id = fields.IntField(pk=True)
    issue = fields.ForeignKeyField("models.Issue", related_name="tag_rows", on_delete=fields.CASCADE)
    name = fields.CharField(max_length=20, index=True)

    class Meta:
        table = "issue_tags"
        unique_together = (("issue", "name"),)
