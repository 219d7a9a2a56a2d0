"""
Authorization policy.

A pure decision function over (actor, resource, action). It performs no I/O;
callers load the resource first and pass it in. Resources are read through
their foreign-key id attributes (``creator_id``, ``assignee_id``,
``author_id``) so any object exposing those works.
"""
from app.core.constants import ROLE_ADMIN, ROLE_CONTRIBUTOR
from app.core.errors import Forbidden

ISSUE = "issue"
COMMENT = "comment"

CREATE = "create"
UPDATE = "update"
ASSIGN = "assign"
DELETE = "delete"

_MUTATING_ROLES = (ROLE_ADMIN, ROLE_CONTRIBUTOR)

_DENIED_MESSAGES = {
    (ISSUE, CREATE): "Access denied. Required role: contributor or admin",
    (ISSUE, UPDATE): "Not authorized to update this issue",
    (ISSUE, ASSIGN): "Not authorized to assign issues",
    (ISSUE, DELETE): "Not authorized to delete this issue",
    (COMMENT, UPDATE): "Not authorized to update this comment",
    (COMMENT, DELETE): "Not authorized to delete this comment",
}


def _same(a, b) -> bool:
    return a is not None and b is not None and str(a) == str(b)


def can_mutate(actor, kind: str, action: str, resource=None) -> bool:
    """
    Decide whether ``actor`` may perform ``action`` on a resource of ``kind``.

    Args:
        actor: The acting user (needs ``id`` and ``role``)
        kind: ISSUE or COMMENT
        action: CREATE, UPDATE, ASSIGN or DELETE
        resource: The existing issue/comment; None for CREATE

    Returns:
        True if allowed, False otherwise
    """
    role = getattr(actor, "role", None)
    if role == ROLE_ADMIN:
        return True

    actor_id = getattr(actor, "id", None)

    if kind == ISSUE:
        if action == CREATE:
            return role in _MUTATING_ROLES
        is_creator = _same(getattr(resource, "creator_id", None), actor_id)
        is_assignee = _same(getattr(resource, "assignee_id", None), actor_id)
        if action == UPDATE:
            return is_creator or is_assignee
        if action == ASSIGN:
            return (is_creator or is_assignee) and role in _MUTATING_ROLES
        if action == DELETE:
            return is_creator
        return False

    if kind == COMMENT:
        if action == CREATE:
            return actor is not None
        if action in (UPDATE, DELETE):
            return _same(getattr(resource, "author_id", None), actor_id)
        return False

    return False


def ensure_can(actor, kind: str, action: str, resource=None) -> None:
    """
    Raise Forbidden unless ``can_mutate`` allows the action.
    """
    if not can_mutate(actor, kind, action, resource):
        raise Forbidden(_DENIED_MESSAGES.get((kind, action), "Access denied"))
