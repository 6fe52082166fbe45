"""
Start-time selection and instant formatting for the provisioning services.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def next_weekday_at(weekday: str | int, hour: int, now: Optional[datetime] = None) -> datetime:
    """Next `weekday` strictly after today's date, at `hour`:00 UTC."""

    if isinstance(weekday, str):
        index = WEEKDAYS.index(weekday.lower())
    else:
        index = int(weekday)
        if not 0 <= index <= 6:
            raise ValueError(f"weekday index out of range: {weekday}")
    current = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    days_ahead = (index - current.weekday()) % 7 or 7
    target = current + timedelta(days=days_ahead)
    return target.replace(hour=hour, minute=0, second=0, microsecond=0)


def end_time(start: datetime, duration_minutes: int) -> datetime:
    return start + timedelta(minutes=duration_minutes)


def format_instant(value: datetime) -> str:
    """ISO-8601 UTC with millisecond precision, e.g. 2024-01-01T17:00:00.000Z."""

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    utc = value.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"
