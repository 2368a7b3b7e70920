from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

WEEKDAY_INDEX = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
}


@dataclass(frozen=True)
class ResetSchedule:
    """
    Daily and weekly reset boundaries in a fixed UTC offset.

    The daily boundary is the most recent local midnight; the weekly boundary
    is the most recent local midnight that falls on week_start.
    """

    utc_offset: timedelta = timedelta(hours=2)
    week_start: int = WEEKDAY_INDEX["sunday"]

    @classmethod
    def from_settings(cls, offset_hours: int, week_start_day: str) -> "ResetSchedule":
        return cls(utc_offset=timedelta(hours=offset_hours), week_start=WEEKDAY_INDEX[week_start_day.lower()])

    @property
    def tz(self) -> timezone:
        return timezone(self.utc_offset)

    def daily_boundary(self, now: datetime) -> datetime:
        local = normalize(now).astimezone(self.tz)
        return local.replace(hour=0, minute=0, second=0, microsecond=0)

    def weekly_boundary(self, now: datetime) -> datetime:
        midnight = self.daily_boundary(now)
        days_since_start = (midnight.weekday() - self.week_start) % 7
        return midnight - timedelta(days=days_since_start)


def normalize(moment: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment
