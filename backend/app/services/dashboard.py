"""
Dashboard aggregates: issue counts, recent items and a merged activity feed.
"""
import math

from app.core.constants import STATUS_CLOSED, STATUS_IN_PROGRESS, STATUS_OPEN, STATUS_RESOLVED
from app.models.comment import Comment
from app.models.issue import Issue
from app.models.user import User
from app.services.comments import comments_out
from app.services.issues import issues_out, user_summary, users_by_id

RECENT_COUNT = 10
DEFAULT_ACTIVITY_LIMIT = 20


async def stats_for(user: User) -> dict:
    """
    Global status counts, the caller's own created/assigned counts, the ten
    most recently updated issues and the ten newest comments.
    """
    recent_issues = await Issue.all().order_by("-updated_at").limit(RECENT_COUNT)
    recent_comments = await Comment.all().order_by("-created_at").limit(RECENT_COUNT)
    return {
        "totalIssues": await Issue.all().count(),
        "openIssues": await Issue.filter(status=STATUS_OPEN).count(),
        "inProgressIssues": await Issue.filter(status=STATUS_IN_PROGRESS).count(),
        "resolvedIssues": await Issue.filter(status=STATUS_RESOLVED).count(),
        "closedIssues": await Issue.filter(status=STATUS_CLOSED).count(),
        "myCreatedIssues": await Issue.filter(creator_id=user.id).count(),
        "myAssignedIssues": await Issue.filter(assignee_id=user.id).count(),
        "recentIssues": await issues_out(list(recent_issues)),
        "recentComments": await comments_out(list(recent_comments)),
    }


async def recent_activity(limit: int = DEFAULT_ACTIVITY_LIMIT) -> list[dict]:
    """
    Merge the newest issue creations and comments into one feed sorted by
    timestamp (newest first), truncated to ``limit``.
    """
    per_kind = math.ceil(limit / 2)
    issues = list(await Issue.all().order_by("-created_at").limit(per_kind))
    comments = list(await Comment.all().order_by("-created_at").limit(per_kind))

    titles = {str(i.id): i.title for i in issues}
    missing = {c.issue_id for c in comments if str(c.issue_id) not in titles}
    if missing:
        for i in await Issue.filter(id__in=list(missing)):
            titles[str(i.id)] = i.title
    people = await users_by_id([i.creator_id for i in issues] + [c.author_id for c in comments])

    def name_of(user_id) -> str:
        u = people.get(str(user_id))
        return u.username if u else "unknown"

    activity = []
    for issue, data in zip(issues, await issues_out(issues, with_people=False)):
        activity.append({
            "type": "issue_created",
            "message": f'{name_of(issue.creator_id)} created issue "{issue.title}"',
            "user": user_summary(people.get(str(issue.creator_id))),
            "issue": data,
            "timestamp": issue.created_at,
        })
    for comment, data in zip(comments, await comments_out(comments)):
        activity.append({
            "type": "comment_added",
            "message": f'{name_of(comment.author_id)} commented on "{titles.get(str(comment.issue_id), "")}"',
            "user": data["author"],
            "comment": data,
            "timestamp": comment.created_at,
        })

    activity.sort(key=lambda a: a["timestamp"], reverse=True)
    activity = activity[:limit]
    for a in activity:
        a["timestamp"] = a["timestamp"].isoformat()
    return activity
