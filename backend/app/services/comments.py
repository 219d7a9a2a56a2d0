"""
Comment store. Every mutation first checks that the referenced issue exists.
"""
from typing import List

from app.core.errors import NotFound
from app.core.ids import parse_uuid
from app.models.comment import Comment
from app.models.issue import Issue
from app.models.user import User
from app.services.issues import iso, user_summary, users_by_id


async def _require_issue(issue_id) -> Issue:
    uid = parse_uuid(issue_id)
    issue = await Issue.get_or_none(id=uid) if uid else None
    if issue is None:
        raise NotFound("Issue not found")
    return issue


def _comment_to_dict(c: Comment) -> dict:
    return {
        "id": str(c.id),
        "content": c.content,
        "issueId": str(c.issue_id),
        "createdBy": str(c.author_id),
        "createdAt": iso(c.created_at),
        "updatedAt": iso(c.updated_at),
    }


async def comments_out(comments: List[Comment]) -> List[dict]:
    """Serialize comments with an explicitly fetched author summary."""
    authors = await users_by_id(c.author_id for c in comments)
    out = []
    for c in comments:
        d = _comment_to_dict(c)
        d["author"] = user_summary(authors.get(str(c.author_id)))
        out.append(d)
    return out


async def comment_out(comment: Comment) -> dict:
    return (await comments_out([comment]))[0]


async def get_comment(comment_id) -> Comment:
    uid = parse_uuid(comment_id)
    comment = await Comment.get_or_none(id=uid) if uid else None
    if comment is None:
        raise NotFound("Comment not found")
    return comment


async def list_by_issue(issue_id) -> List[Comment]:
    """Comments of an issue, oldest first."""
    issue = await _require_issue(issue_id)
    return list(await Comment.filter(issue_id=issue.id).order_by("created_at"))


async def create_comment(author: User, issue_id, content: str) -> Comment:
    issue = await _require_issue(issue_id)
    return await Comment.create(content=content, issue_id=issue.id, author_id=author.id)


async def update_comment(comment: Comment, content: str) -> Comment:
    await _require_issue(comment.issue_id)
    comment.content = content
    await comment.save()
    return comment


async def delete_comment(comment: Comment) -> None:
    await _require_issue(comment.issue_id)
    await comment.delete()
