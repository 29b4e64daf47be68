# core/datetime_utils.py
"""
Centralized datetime handling.

All "now" reads go through now() so tests can freeze it with
unittest.mock.patch("core.datetime_utils.now").
"""
from datetime import datetime
from typing import Optional

from django.utils import timezone


def now() -> datetime:
    """
    Get current datetime (timezone-aware).

    This is the single source of truth for "now" in the donation core.
    """
    return timezone.now()


def ensure_aware(dt: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as being in the project's default timezone."""
    if dt is None:
        return None
    if timezone.is_naive(dt):
        return timezone.make_aware(dt)
    return dt


def format_for_api(dt: Optional[datetime]) -> Optional[str]:
    """
    Format datetime for API responses (ISO 8601).

    Returns None if input is None.
    """
    if dt is None:
        return None
    return dt.isoformat()


def format_for_display(dt: Optional[datetime], format_str: str = "%b %d, %Y %I:%M %p") -> Optional[str]:
    """
    Format datetime for human-readable display (notification texts).

    Default format: "Jan 01, 2026 02:30 PM"
    """
    if dt is None:
        return None
    return timezone.localtime(ensure_aware(dt)).strftime(format_str)
