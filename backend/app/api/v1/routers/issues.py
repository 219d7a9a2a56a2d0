# app/api/v1/routers/issues.py
import logging
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query, status

from app.api.v1.deps import get_current_user
from app.core import policy
from app.core.constants import (
    EVENT_ISSUE_ASSIGNED,
    EVENT_ISSUE_CREATED,
    EVENT_ISSUE_DELETED,
    EVENT_ISSUE_STATUS_CHANGED,
    EVENT_ISSUE_UPDATED,
    EVENT_NOTIFICATION,
    user_room,
)
from app.core.pubsub import publish
from app.models.user import User
from app.schemas.issue import AssignIn, IssueCreateIn, IssueUpdateIn
from app.services import issues as store

logger = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/issues", tags=["issues"])


def _split_tags(tags: Optional[List[str]]) -> List[str]:
    """Accept both ``?tags=a&tags=b`` and ``?tags=a,b``."""
    out: List[str] = []
    for raw in tags or []:
        for part in raw.split(","):
            part = part.strip().lower()
            if part and part not in out:
                out.append(part)
    return out


async def _notify_assignee(issue_data: dict, actor: User) -> None:
    assignee_id = issue_data.get("assignedTo")
    if not assignee_id or assignee_id == str(actor.id):
        return
    await publish(
        EVENT_NOTIFICATION,
        {
            "type": "issue_assigned",
            "issueId": issue_data["id"],
            "title": issue_data["title"],
            "message": f'{actor.username} assigned you to "{issue_data["title"]}"',
        },
        room=user_room(assignee_id),
    )


@router.get("")
async def list_issues(
    user: User = Depends(get_current_user),
    page: int = Query(1, ge=1),
    limit: int = Query(store.DEFAULT_PAGE_SIZE, ge=1, le=store.MAX_PAGE_SIZE),
    status_: Optional[Literal["open", "in_progress", "resolved", "closed"]] = Query(None, alias="status"),
    priority: Optional[Literal["low", "medium", "high", "urgent"]] = Query(None),
    assignedTo: Optional[str] = Query(None),
    createdBy: Optional[str] = Query(None),
    tags: Optional[List[str]] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
    sort: str = Query(store.DEFAULT_SORT),
):
    """
    List issues with filtering, free-text search and pagination.

    Filters combine with AND. Results are newest first unless ``sort`` is
    given. A page past the last one returns an empty list.

    Returns:
        dict: ``{success, data: [issue...], pagination: {page, limit, total, totalPages}}``
    """
    flt = store.IssueFilter(
        status=status_,
        priority=priority,
        assigned_to=assignedTo,
        created_by=createdBy,
        tags=_split_tags(tags),
        search=search,
    )
    rows, total = await store.list_issues(flt, page=page, limit=limit, sort=sort)
    return {
        "success": True,
        "data": await store.issues_out(rows),
        "pagination": store.pagination(page, limit, total),
    }


@router.get("/{issue_id}")
async def get_issue(issue_id: str, user: User = Depends(get_current_user)):
    issue = await store.get_issue(issue_id)
    return {"success": True, "data": await store.issue_out(issue)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_issue(body: IssueCreateIn, user: User = Depends(get_current_user)):
    """
    Create an issue (contributor or admin). The caller becomes its creator.
    Emits ``issue:created``.
    """
    policy.ensure_can(user, policy.ISSUE, policy.CREATE)
    assignee = await store.resolve_assignee(body.assignedTo)
    issue = await store.create_issue(
        user,
        title=body.title,
        description=body.description,
        priority=body.priority,
        assignee=assignee,
        tags=body.tags,
    )
    data = await store.issue_out(issue)
    logger.info("[issues] %s created issue %s", user.username, issue.id)
    await publish(EVENT_ISSUE_CREATED, data)
    return {"success": True, "data": data, "message": "Issue created successfully"}


@router.put("/{issue_id}")
async def update_issue(issue_id: str, body: IssueUpdateIn, user: User = Depends(get_current_user)):
    """
    Partially update an issue (creator, assignee or admin).

    Changing ``assignedTo`` additionally requires the assign permission.
    Emits ``issue:updated``, plus ``issue:status_changed`` when the status changes.
    """
    issue = await store.get_issue(issue_id)
    policy.ensure_can(user, policy.ISSUE, policy.UPDATE, issue)
    changes = body.changes()
    if "assignedTo" in changes:
        current = str(issue.assignee_id) if issue.assignee_id else None
        if (changes["assignedTo"] or None) != current:
            policy.ensure_can(user, policy.ISSUE, policy.ASSIGN, issue)

    old_status = await store.update_issue(issue, changes)
    data = await store.issue_out(issue)

    await publish(EVENT_ISSUE_UPDATED, data)
    if issue.status != old_status:
        await publish(EVENT_ISSUE_STATUS_CHANGED, {"issue": data, "oldStatus": old_status, "newStatus": issue.status})
    return {"success": True, "data": data, "message": "Issue updated successfully"}


@router.delete("/{issue_id}")
async def delete_issue(issue_id: str, user: User = Depends(get_current_user)):
    """
    Delete an issue and its comments (creator or admin). Emits ``issue:deleted``.
    """
    issue = await store.get_issue(issue_id)
    policy.ensure_can(user, policy.ISSUE, policy.DELETE, issue)
    deleted_id = str(issue.id)
    await store.delete_issue(issue)
    logger.info("[issues] %s deleted issue %s", user.username, deleted_id)
    await publish(EVENT_ISSUE_DELETED, {"issueId": deleted_id})
    return {"success": True, "data": {"id": deleted_id}, "message": "Issue deleted successfully"}


@router.patch("/{issue_id}/assign")
async def assign_issue(issue_id: str, body: AssignIn, user: User = Depends(get_current_user)):
    """
    Assign or unassign an issue (contributor/admin who is creator or assignee,
    or any admin). Emits ``issue:assigned`` and notifies the new assignee.
    """
    issue = await store.get_issue(issue_id)
    policy.ensure_can(user, policy.ISSUE, policy.ASSIGN, issue)
    assignee = await store.resolve_assignee(body.assignedTo)
    await store.assign_issue(issue, assignee)
    data = await store.issue_out(issue)

    await publish(EVENT_ISSUE_ASSIGNED, data)
    await _notify_assignee(data, user)
    return {"success": True, "data": data, "message": "Issue assigned successfully"}
