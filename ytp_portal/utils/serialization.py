"""
Response shaping helpers.
Timestamps leave the API as epoch milliseconds, JSON text columns as objects.
"""
import calendar
import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

logger = logging.getLogger(__name__)


def to_millis(value: Optional[datetime]) -> Optional[int]:
    """Naive UTC datetime -> epoch milliseconds"""
    if value is None:
        return None
    return calendar.timegm(value.utctimetuple()) * 1000 + value.microsecond // 1000


def parse_json(value: Optional[str], default: Any = None) -> Any:
    if not value:
        return default
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        logger.warning(f"⚠️ Could not parse JSON column value: {str(value)[:80]!r}")
        return default


def dump_json(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return json.dumps(value)


def serialize_user(user) -> dict:
    """Public view of a user row, never includes the password hash"""
    return {
        "id": user.id,
        "email": user.email,
        "role": user.role,
        "admin_level": user.admin_level or 0,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "phone": user.phone,
        "avatar": user.avatar,
        "status": user.status,
        "created_at": to_millis(user.created_at),
        "updated_at": to_millis(user.updated_at),
    }


def naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize a parsed request datetime to the naive UTC form stored in the database"""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
