"""Enumerated values shared by models, schemas, policy and the event layer."""

# User roles
ROLE_ADMIN = "admin"
ROLE_CONTRIBUTOR = "contributor"
ROLE_VIEWER = "viewer"
ROLES = (ROLE_ADMIN, ROLE_CONTRIBUTOR, ROLE_VIEWER)

# Issue status
STATUS_OPEN = "open"
STATUS_IN_PROGRESS = "in_progress"
STATUS_RESOLVED = "resolved"
STATUS_CLOSED = "closed"
ISSUE_STATUSES = (STATUS_OPEN, STATUS_IN_PROGRESS, STATUS_RESOLVED, STATUS_CLOSED)

# Issue priority, lowest first
ISSUE_PRIORITIES = ("low", "medium", "high", "urgent")
DEFAULT_PRIORITY = "medium"

# Real-time event names
EVENT_ISSUE_CREATED = "issue:created"
EVENT_ISSUE_UPDATED = "issue:updated"
EVENT_ISSUE_STATUS_CHANGED = "issue:status_changed"
EVENT_ISSUE_ASSIGNED = "issue:assigned"
EVENT_ISSUE_DELETED = "issue:deleted"
EVENT_COMMENT_ADDED = "comment:added"
EVENT_COMMENT_UPDATED = "comment:updated"
EVENT_COMMENT_DELETED = "comment:deleted"
EVENT_NOTIFICATION = "notification"

# Client control messages
EVENT_JOIN_ISSUE = "join:issue"
EVENT_LEAVE_ISSUE = "leave:issue"

# Rooms
ROOM_GENERAL = "general"


def user_room(user_id) -> str:
    return f"user:{user_id}"


def issue_room(issue_id) -> str:
    return f"issue:{issue_id}"
