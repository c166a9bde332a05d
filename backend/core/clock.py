# backend/core/clock.py

"""
Restaurant wall clock.

Every datetime the floor-plan engine compares is a naive value in the
restaurant's local time, so "today" and waitlist time ranges mean what the
host stand sees on the wall.
"""

from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from .config import settings


def restaurant_now(timezone: Optional[str] = None) -> datetime:
    """Current restaurant-local time without tzinfo."""
    zone = ZoneInfo(timezone or settings.restaurant_timezone)
    return datetime.now(zone).replace(tzinfo=None, microsecond=0)


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)
