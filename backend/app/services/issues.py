"""
Issue store: create, fetch, patch, assign, delete and query issues.

Related records (tags, creator/assignee users, comment counts) are never
loaded implicitly. Handlers call ``issues_out`` when they need the full
outward representation, which fetches each relation with one query.
"""
import math
import datetime as dt
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from tortoise.expressions import Q
from tortoise.functions import Count

from app.core.errors import NotFound, ValidationError
from app.core.ids import parse_uuid
from app.models.comment import Comment
from app.models.issue import Issue, IssueTag
from app.models.user import User

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
DEFAULT_SORT = "-created_at"
SORT_FIELDS = ("created_at", "-created_at", "updated_at", "-updated_at", "title", "-title")


def iso(value: Optional[dt.datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def user_summary(u: Optional[User]) -> Optional[dict]:
    if u is None:
        return None
    return {"id": str(u.id), "username": u.username, "email": u.email, "role": u.role}


def user_to_dict(u: User) -> dict:
    """
    Outward representation of a user. The password hash is never included.
    """
    return {
        "id": str(u.id),
        "username": u.username,
        "email": u.email,
        "role": u.role,
        "createdAt": iso(u.created_at),
        "updatedAt": iso(u.updated_at),
    }


async def users_by_id(ids: Iterable) -> Dict[str, User]:
    wanted = {str(i) for i in ids if i is not None}
    if not wanted:
        return {}
    rows = await User.filter(id__in=list(wanted))
    return {str(u.id): u for u in rows}


def pagination(page: int, limit: int, total: int) -> dict:
    return {"page": page, "limit": limit, "total": total, "totalPages": math.ceil(total / limit) if limit else 0}


@dataclass
class IssueFilter:
    """
    List filter. All set criteria are combined with AND.
    ``tags`` matches issues carrying any of the given tags; ``search``
    matches issues whose title or description contains any search term.
    """
    status: Optional[str] = None
    priority: Optional[str] = None
    assigned_to: Optional[str] = None
    created_by: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    search: Optional[str] = None


# ----------------------------------------------------------------------------
# Serialization
# ----------------------------------------------------------------------------
def _issue_to_dict(issue: Issue, tags: List[str]) -> dict:
    return {
        "id": str(issue.id),
        "title": issue.title,
        "description": issue.description,
        "status": issue.status,
        "priority": issue.priority,
        "createdBy": str(issue.creator_id),
        "assignedTo": str(issue.assignee_id) if issue.assignee_id else None,
        "tags": tags,
        "createdAt": iso(issue.created_at),
        "updatedAt": iso(issue.updated_at),
    }


async def issues_out(issues: List[Issue], with_people: bool = True) -> List[dict]:
    """
    Serialize issues with their tags, comment counts and (optionally) the
    creator/assignee summaries.
    """
    if not issues:
        return []
    ids = [i.id for i in issues]

    tags: Dict[str, List[str]] = {}
    for row in await IssueTag.filter(issue_id__in=ids).order_by("id"):
        tags.setdefault(str(row.issue_id), []).append(row.name)

    counts = await (
        Comment.filter(issue_id__in=ids)
        .annotate(count=Count("id"))
        .group_by("issue_id")
        .values("issue_id", "count")
    )
    comment_counts = {str(r["issue_id"]): r["count"] for r in counts}

    people: Dict[str, User] = {}
    if with_people:
        people = await users_by_id([i.creator_id for i in issues] + [i.assignee_id for i in issues])

    out = []
    for issue in issues:
        d = _issue_to_dict(issue, tags.get(str(issue.id), []))
        d["commentsCount"] = comment_counts.get(str(issue.id), 0)
        if with_people:
            d["creator"] = user_summary(people.get(str(issue.creator_id)))
            d["assignee"] = user_summary(people.get(str(issue.assignee_id))) if issue.assignee_id else None
        out.append(d)
    return out


async def issue_out(issue: Issue) -> dict:
    return (await issues_out([issue]))[0]


# ----------------------------------------------------------------------------
# Store operations
# ----------------------------------------------------------------------------
async def resolve_assignee(value) -> Optional[User]:
    """
    Look up the user an issue is being assigned to. None means unassigned.

    Raises:
        ValidationError: If the id is malformed or names no user
    """
    if value in (None, ""):
        return None
    uid = parse_uuid(value)
    user = await User.get_or_none(id=uid) if uid else None
    if user is None:
        raise ValidationError("Assignee not found")
    return user


async def _set_tags(issue: Issue, tags: List[str]) -> None:
    await IssueTag.filter(issue_id=issue.id).delete()
    for name in tags:
        await IssueTag.create(issue_id=issue.id, name=name)


async def create_issue(creator: User, title: str, description: str, priority: str,
                       assignee: Optional[User] = None, tags: Optional[List[str]] = None) -> Issue:
    issue = await Issue.create(
        title=title,
        description=description,
        priority=priority,
        creator_id=creator.id,
        assignee_id=assignee.id if assignee else None,
    )
    await _set_tags(issue, tags or [])
    return issue


async def get_issue(issue_id) -> Issue:
    """
    Raises:
        NotFound: If no issue has this id
    """
    uid = parse_uuid(issue_id)
    issue = await Issue.get_or_none(id=uid) if uid else None
    if issue is None:
        raise NotFound("Issue not found")
    return issue


async def update_issue(issue: Issue, changes: dict) -> str:
    """
    Apply a partial patch. Recognised keys: title, description, status,
    priority, assignedTo, tags. The creator can never be changed here.

    Returns:
        The status the issue had before the patch
    """
    old_status = issue.status
    for key in ("title", "description", "status", "priority"):
        if key in changes:
            setattr(issue, key, changes[key])
    if "assignedTo" in changes:
        assignee = await resolve_assignee(changes["assignedTo"])
        issue.assignee_id = assignee.id if assignee else None
    await issue.save()
    if "tags" in changes:
        await _set_tags(issue, changes["tags"])
    return old_status


async def assign_issue(issue: Issue, assignee: Optional[User]) -> Issue:
    issue.assignee_id = assignee.id if assignee else None
    await issue.save()
    return issue


async def delete_issue(issue: Issue) -> None:
    # Children first, then the issue itself
    await Comment.filter(issue_id=issue.id).delete()
    await IssueTag.filter(issue_id=issue.id).delete()
    await issue.delete()


def _parse_user_filter(value: Optional[str], name: str):
    if not value:
        return None
    uid = parse_uuid(value)
    if uid is None:
        raise ValidationError(f"{name}: invalid user id")
    return uid


async def list_issues(flt: IssueFilter, page: int = 1, limit: int = DEFAULT_PAGE_SIZE,
                      sort: str = DEFAULT_SORT) -> Tuple[List[Issue], int]:
    """
    Query issues matching ``flt``, newest first unless ``sort`` says otherwise.

    Args:
        flt: Filter criteria
        page: 1-indexed page number
        limit: Page size (1-100)
        sort: One of SORT_FIELDS

    Returns:
        (issues on the requested page, total matching issues). A page past
        the end yields an empty list.
    """
    if page < 1:
        raise ValidationError("page must be at least 1")
    if not 1 <= limit <= MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
    if sort not in SORT_FIELDS:
        raise ValidationError(f"sort must be one of: {', '.join(SORT_FIELDS)}")

    qs = Issue.all()
    if flt.status:
        qs = qs.filter(status=flt.status)
    if flt.priority:
        qs = qs.filter(priority=flt.priority)
    assignee_id = _parse_user_filter(flt.assigned_to, "assignedTo")
    if assignee_id:
        qs = qs.filter(assignee_id=assignee_id)
    creator_id = _parse_user_filter(flt.created_by, "createdBy")
    if creator_id:
        qs = qs.filter(creator_id=creator_id)
    if flt.tags:
        tagged = await IssueTag.filter(name__in=flt.tags).values_list("issue_id", flat=True)
        if not tagged:
            return [], 0
        qs = qs.filter(id__in=list(set(tagged)))
    terms = (flt.search or "").split()
    if terms:
        qs = qs.filter(Q(*[Q(title__icontains=t) | Q(description__icontains=t) for t in terms], join_type="OR"))

    total = await qs.count()
    rows = await qs.order_by(sort).offset((page - 1) * limit).limit(limit)
    return list(rows), total
