"""
Pydantic schemas for issue endpoints.
These run before any store call; the ORM layer does no validation of its own.
"""
from typing import List, Literal, Optional

from pydantic import BaseModel, constr, field_validator

Status = Literal["open", "in_progress", "resolved", "closed"]
Priority = Literal["low", "medium", "high", "urgent"]
Title = constr(strip_whitespace=True, min_length=5, max_length=200)
Description = constr(strip_whitespace=True, min_length=10, max_length=2000)

TAG_MAX_LENGTH = 20


def normalize_tags(tags: Optional[List[str]]) -> List[str]:
    """
    Trim and lowercase tags, drop blanks and duplicates (first occurrence wins).

    Raises:
        ValueError: If a tag is longer than 20 characters
    """
    out: List[str] = []
    for raw in tags or []:
        tag = str(raw).strip().lower()
        if not tag:
            continue
        if len(tag) > TAG_MAX_LENGTH:
            raise ValueError(f"Tag cannot exceed {TAG_MAX_LENGTH} characters")
        if tag not in out:
            out.append(tag)
    return out


class IssueCreateIn(BaseModel):
    title: Title
    description: Description
    priority: Priority = "medium"
    assignedTo: Optional[str] = None
    tags: List[str] = []

    @field_validator("tags")
    @classmethod
    def _tags(cls, v):
        return normalize_tags(v)


class IssueUpdateIn(BaseModel):
    """
    Partial update. Only fields present in the request body are applied;
    ``assignedTo: null`` clears the assignee. Unknown fields such as
    ``createdBy`` are ignored.
    """
    title: Optional[Title] = None
    description: Optional[Description] = None
    status: Optional[Status] = None
    priority: Optional[Priority] = None
    assignedTo: Optional[str] = None
    tags: Optional[List[str]] = None

    @field_validator("tags")
    @classmethod
    def _tags(cls, v):
        return normalize_tags(v) if v is not None else v

    def changes(self) -> dict:
        """Fields explicitly sent by the client, minus nulls for non-nullable fields."""
        data = self.model_dump(include=self.model_fields_set)
        return {k: v for k, v in data.items() if v is not None or k == "assignedTo"}


class AssignIn(BaseModel):
    assignedTo: Optional[str] = None  # null unassigns
