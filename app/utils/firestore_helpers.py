"""
Firestore query helpers shared by the services.

NOTE: firebase_admin still accepts positional where() arguments; the
deprecation warning does not affect functionality, so we keep them for
reliability and route every filter through where_filter().
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional


def where_filter(query, field_path: str, op_string: str, value):
    """
    Apply a single filter to a collection or query.

    Usage:
        query = where_filter(collection, "is_verified", "==", True)
        query = where_filter(query, "rating", ">=", 4.0)
    """
    return query.where(field_path, op_string, value)


def count_documents(query) -> int:
    """Run a count() aggregation and return the integer result."""
    results = query.count(alias="total").get()
    return int(results[0][0].value) if results and results[0] else 0


def to_utc(value: Any) -> Optional[datetime]:
    """
    Coerce a Firestore timestamp value into a timezone-aware UTC datetime.

    Firestore hands back DatetimeWithNanoseconds (a datetime subclass); older
    documents written by hand may hold naive datetimes or ISO strings.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        return to_utc(dt)
    if hasattr(value, "to_datetime"):
        return to_utc(value.to_datetime())
    return None


def snapshot_to_dict(doc) -> Optional[Dict[str, Any]]:
    """Document snapshot -> plain dict with its id, or None if it does not exist."""
    if doc is None or not doc.exists:
        return None
    data = doc.to_dict() or {}
    data["id"] = doc.id
    return data


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
