"""UTC datetime utilities."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def seconds_between(earlier: datetime, later: datetime) -> int:
    """Whole seconds elapsed from ``earlier`` to ``later`` (floored, may be negative)."""
    return int((later - earlier).total_seconds() // 1)
