"""Helpers for identifiers received from clients."""
import uuid


def parse_uuid(value) -> uuid.UUID | None:
    """Return ``value`` as a UUID, or None when it is not a valid UUID string."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError, AttributeError):
        return None
