"""
NoteKeeper Calendar Trigger

A notification trigger expressed as calendar field matches
(year/month/day/hour/minute) instead of an elapsed-time delay.
Seconds are dropped: two reminders in the same minute fire together.
"""

from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Optional


@dataclass(frozen=True)
class CalendarTrigger:
    """Calendar-date match, in local wall-clock time"""
    year: int
    month: int
    day: int
    hour: int
    minute: int
    repeats: bool = False

    @classmethod
    def from_datetime(cls, value: datetime, tz: Optional[tzinfo] = None) -> 'CalendarTrigger':
        """
        Extract trigger fields from a point in time.

        Aware values are converted to ``tz`` (default: system local time)
        first; naive values are taken as already local.
        """
        if value.tzinfo is not None:
            value = value.astimezone(tz)
        return cls(
            year=value.year,
            month=value.month,
            day=value.day,
            hour=value.hour,
            minute=value.minute,
            repeats=False
        )

    def fire_time(self, tz: Optional[tzinfo] = None) -> datetime:
        """Aware datetime of the matching minute"""
        naive = datetime(self.year, self.month, self.day, self.hour, self.minute)
        if tz is not None:
            return naive.replace(tzinfo=tz)
        return naive.astimezone()

    def matches(self, now: datetime, tz: Optional[tzinfo] = None) -> bool:
        """True once ``now`` has reached the trigger minute"""
        if now.tzinfo is None:
            now = now.astimezone()
        return now >= self.fire_time(tz)

    def has_passed(self, now: datetime, tz: Optional[tzinfo] = None) -> bool:
        """True when the whole trigger minute lies before ``now``"""
        if now.tzinfo is None:
            now = now.astimezone()
        current_minute = now.replace(second=0, microsecond=0)
        return self.fire_time(tz) < current_minute

    def as_dict(self) -> dict:
        return {
            'year': self.year,
            'month': self.month,
            'day': self.day,
            'hour': self.hour,
            'minute': self.minute,
            'repeats': self.repeats
        }
