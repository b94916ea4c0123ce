"""
Next-occurrence resolution for recurring events.

Given an event type and its stored target date, works out the next calendar
date on which the event falls and how many days remain until it. Everything
here is a pure function of its arguments: the current instant is always
passed in by the caller.
"""

import calendar
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, Mapping, Optional, Tuple

ONE_DAY = timedelta(days=1)

# Event types that always recur on a fixed (month, day)
DEFAULT_RECURRING_DATES: Dict[str, Tuple[int, int]] = {
    'anniversaire': (9, 28),
    'noel': (12, 25),
    'saint-valentin': (2, 14),
    'anniversaire-rencontre': (11, 4),
}


@dataclass(frozen=True)
class Occurrence:
    """Next occurrence of an event and the whole days left until it."""
    next_date: datetime
    days_until: int

    def to_dict(self) -> Dict[str, object]:
        """Convert to dictionary."""
        return {
            'nextDate': self.next_date.isoformat(),
            'daysUntil': self.days_until
        }


@dataclass(frozen=True)
class CountdownParts:
    """Days, hours and minutes remaining, as shown by the countdown widget."""
    days: int
    hours: int
    minutes: int

    @property
    def is_complete(self) -> bool:
        return self.days <= 0 and self.hours <= 0 and self.minutes <= 0

    def to_dict(self) -> Dict[str, int]:
        """Convert to dictionary."""
        return {'days': self.days, 'hours': self.hours, 'minutes': self.minutes}


def _as_datetime(value, reference: Optional[datetime] = None) -> datetime:
    """
    Coerce a date or datetime into a datetime in the same frame as reference.

    Args:
        value: date or datetime to coerce
        reference: datetime whose timezone awareness should be matched

    Returns:
        datetime instance

    Raises:
        ValueError: if value is None
        TypeError: if value is not a date or datetime
    """
    if value is None:
        raise ValueError("A target date is required to resolve an occurrence")

    if isinstance(value, datetime):
        result = value
    elif isinstance(value, date):
        result = datetime.combine(value, time.min)
    else:
        raise TypeError(f"Expected date or datetime, got {type(value).__name__}")

    if reference is not None:
        if reference.tzinfo is not None and result.tzinfo is None:
            result = result.replace(tzinfo=reference.tzinfo)
        elif reference.tzinfo is None and result.tzinfo is not None:
            result = result.astimezone().replace(tzinfo=None)

    return result


def _midnight_on(year: int, month: int, day: int, tzinfo=None) -> datetime:
    """Local midnight on year/month/day, clamping Feb 29 in common years."""
    last_day = calendar.monthrange(year, month)[1]
    return datetime(year, month, min(day, last_day), tzinfo=tzinfo)


def recurring_month_day(event_type: str, target_date: datetime,
                        fixed_dates: Optional[Mapping[str, Tuple[int, int]]] = None) -> Tuple[int, int]:
    """
    Get the (month, day) an event recurs on.

    Well-known types use the fixed table; every other type recurs on the
    month and day of its own target date.
    """
    table = DEFAULT_RECURRING_DATES if fixed_dates is None else fixed_dates
    if event_type in table:
        month, day = table[event_type]
        return int(month), int(day)
    return target_date.month, target_date.day


def _elapsed(start: datetime, end: datetime) -> timedelta:
    """Elapsed time from start to end; aware values are subtracted in UTC."""
    if start.tzinfo is not None and end.tzinfo is not None:
        return end.astimezone(timezone.utc) - start.astimezone(timezone.utc)
    return end - start


def days_between(start: datetime, end: datetime) -> int:
    """Whole days from start to end, rounding any remainder up."""
    days, remainder = divmod(_elapsed(start, end), ONE_DAY)
    return days + 1 if remainder else days


def resolve_next_occurrence(event_type: str, stored_target_date, now: datetime,
                            fixed_dates: Optional[Mapping[str, Tuple[int, int]]] = None) -> Occurrence:
    """
    Resolve the next occurrence of an event.

    A target date still in the future is returned unchanged. A past one is
    moved to its recurring month/day in the current year, or in the next
    year when that date has already gone by as well.

    Args:
        event_type: Event type tag (e.g. 'noel', 'autre')
        stored_target_date: Date originally configured on the event
        now: Current instant
        fixed_dates: Optional override of the per-type (month, day) table

    Returns:
        Occurrence with the next date and the days remaining until it

    Raises:
        ValueError: if stored_target_date is None
        TypeError: if stored_target_date or now is not a date/datetime
    """
    now = _as_datetime(now)
    target = _as_datetime(stored_target_date, reference=now)

    if _elapsed(now, target) >= timedelta(0):
        return Occurrence(next_date=target, days_until=days_between(now, target))

    month, day = recurring_month_day(event_type, target, fixed_dates)
    next_date = _midnight_on(now.year, month, day, tzinfo=now.tzinfo)
    if _elapsed(now, next_date) < timedelta(0):
        next_date = _midnight_on(now.year + 1, month, day, tzinfo=now.tzinfo)

    return Occurrence(next_date=next_date, days_until=days_between(now, next_date))


def countdown_parts(target, now: datetime) -> CountdownParts:
    """
    Split the time left until target into days, hours and minutes.

    Each unit is truncated towards zero, so a target 36h30m away gives
    1 day, 12 hours, 30 minutes.
    """
    now = _as_datetime(now)
    target = _as_datetime(target, reference=now)

    total_seconds = _elapsed(now, target).total_seconds()
    total_minutes = int(total_seconds / 60)
    total_hours = int(total_seconds / 3600)
    days = int(total_seconds / 86400)

    return CountdownParts(
        days=days,
        hours=total_hours - days * 24,
        minutes=total_minutes - total_hours * 60
    )
