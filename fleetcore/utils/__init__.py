"""
Shared utilities for FleetCore.
"""
import uuid
from datetime import datetime, timezone


def generate_id(prefix=None):
    """Generate short UUID for store documents.

    Args:
        prefix: Optional prefix for the ID (e.g., 'insp', 'cli', 'wo')

    Returns:
        String ID like 'cli-a1b2c3d4' or just 'a1b2c3d4' if no prefix
    """
    short_uuid = str(uuid.uuid4())[:8]
    if prefix:
        return f"{prefix}-{short_uuid}"
    return short_uuid


def utc_now():
    """ISO-8601 UTC timestamp used for created_at/updated_at fields."""
    return datetime.now(timezone.utc).isoformat()
