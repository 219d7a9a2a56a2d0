"""
Pydantic schemas for comment endpoints.
"""
from pydantic import BaseModel, constr

Content = constr(strip_whitespace=True, min_length=1, max_length=1000)


class CommentCreateIn(BaseModel):
    content: Content
    issueId: str


class CommentUpdateIn(BaseModel):
    content: Content
