"""Date helpers shared by the aggregators."""

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    """Serialize an aware datetime for the wire, passing None through."""
    if value is None:
        return None
    return value.isoformat()


def days_between(earlier: datetime, later: datetime) -> int:
    """Whole days elapsed from ``earlier`` to ``later`` (never negative)."""
    delta = later - earlier
    return max(0, int(delta.total_seconds() // 86400))
