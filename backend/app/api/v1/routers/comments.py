from fastapi import APIRouter, Depends, status

from app.api.v1.deps import get_current_user
from app.core import policy
from app.core.constants import EVENT_COMMENT_ADDED, EVENT_COMMENT_DELETED, EVENT_COMMENT_UPDATED
from app.core.pubsub import publish
from app.models.user import User
from app.schemas.comment import CommentCreateIn, CommentUpdateIn
from app.services import comments as store

router = APIRouter(prefix="/comments", tags=["comments"])


@router.get("/issue/{issue_id}")
async def list_comments(issue_id: str, user: User = Depends(get_current_user)):
    """Comments on an issue, oldest first. 404 if the issue does not exist."""
    rows = await store.list_by_issue(issue_id)
    return {"success": True, "data": await store.comments_out(rows), "count": len(rows)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_comment(body: CommentCreateIn, user: User = Depends(get_current_user)):
    """Any authenticated user may comment. Emits ``comment:added``."""
    policy.ensure_can(user, policy.COMMENT, policy.CREATE)
    comment = await store.create_comment(user, body.issueId, body.content)
    data = await store.comment_out(comment)
    await publish(EVENT_COMMENT_ADDED, {"comment": data, "issueId": data["issueId"]})
    return {"success": True, "data": data, "message": "Comment created successfully"}


@router.put("/{comment_id}")
async def update_comment(comment_id: str, body: CommentUpdateIn, user: User = Depends(get_current_user)):
    """Edit a comment's content (author or admin). Emits ``comment:updated``."""
    comment = await store.get_comment(comment_id)
    policy.ensure_can(user, policy.COMMENT, policy.UPDATE, comment)
    await store.update_comment(comment, body.content)
    data = await store.comment_out(comment)
    await publish(EVENT_COMMENT_UPDATED, data)
    return {"success": True, "data": data, "message": "Comment updated successfully"}


@router.delete("/{comment_id}")
async def delete_comment(comment_id: str, user: User = Depends(get_current_user)):
    """Delete a comment (author or admin). Emits ``comment:deleted``."""
    comment = await store.get_comment(comment_id)
    policy.ensure_can(user, policy.COMMENT, policy.DELETE, comment)
    comment_id, issue_id = str(comment.id), str(comment.issue_id)
    await store.delete_comment(comment)
    await publish(EVENT_COMMENT_DELETED, {"commentId": comment_id, "issueId": issue_id})
    return {"success": True, "data": {"id": comment_id}, "message": "Comment deleted successfully"}
