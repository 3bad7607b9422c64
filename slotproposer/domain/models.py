"""
Domain models for intervals, search windows, requests and proposed slots.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

import pendulum
from pendulum import DateTime

from .exceptions import InvalidIntervalError, InvalidRequestError

logger = logging.getLogger(__name__)

# Fixed cap on the number of slots returned by a single search.
MAX_SLOTS = 3

LABEL_FORMAT = "ddd MMM D, h:mm A"


def coerce_instant(value: Any, time_zone: str) -> Optional[DateTime]:
    """
    Convert an ISO-8601 string or datetime into a DateTime in ``time_zone``.

    Naive inputs are interpreted as wall-clock time in ``time_zone``.
    Returns None when the value or the zone cannot be converted.
    """
    try:
        if isinstance(value, str):
            instant = pendulum.parse(value, tz=time_zone)
        elif isinstance(value, datetime):
            instant = pendulum.instance(value, tz=time_zone)
        else:
            return None

        if not isinstance(instant, DateTime):
            return None

        return instant.in_timezone(time_zone)
    except (ValueError, KeyError, TypeError, OverflowError) as exc:
        logger.debug("Could not convert %r to %s: %s", value, time_zone, exc)
        return None


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable time range with start and end datetime.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise InvalidIntervalError(
                f"Start time {self.start} must be before end time {self.end}"
            )

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeRange") -> bool:
        """Check if this range overlaps with another. Touching ranges do not."""
        return self.start < other.end and self.end > other.start

    def contains(self, instant: DateTime) -> bool:
        """Check if an instant lies within [start, end)."""
        return self.start <= instant < self.end

    def intersect(self, other: "TimeRange") -> "TimeRange | None":
        """
        Calculate the intersection of two time ranges.
        Returns None if there is no overlap.
        """
        if not self.overlaps(other):
            return None

        start = max(self.start, other.start)
        end = min(self.end, other.end)

        return TimeRange(start=start, end=end)

    def to_dict(self) -> Dict[str, str]:
        return {
            "start": self.start.to_iso8601_string(),
            "end": self.end.to_iso8601_string(),
        }

    def __str__(self) -> str:
        return f"{self.start.format('YYYY-MM-DD HH:mm')} - {self.end.format('HH:mm')}"


class TimeOfDay(str, Enum):
    """Coarse local-time buckets a meeting start can fall into."""
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"

    @property
    def hours(self) -> Tuple[int, int]:
        """Local [start, end) hours of the period."""
        return _PERIOD_HOURS[self]

    @classmethod
    def for_instant(cls, instant: DateTime) -> Optional["TimeOfDay"]:
        """
        Return the period an instant falls into, or None when it lies
        outside all of them (before 09:00 or from 21:00 on).
        """
        hour = instant.hour + instant.minute / 60
        for period in cls:
            start_hour, end_hour = period.hours
            if start_hour <= hour < end_hour:
                return period
        return None


_PERIOD_HOURS = {
    TimeOfDay.MORNING: (9, 12),
    TimeOfDay.AFTERNOON: (12, 17),
    TimeOfDay.EVENING: (17, 21),
}


@dataclass(frozen=True)
class SearchWindow:
    """
    Bounded span of time to search, with the daily work hours that apply.
    """
    time_zone: str
    start: DateTime
    end: DateTime
    workday_start_hour: int = 9
    workday_end_hour: int = 17

    def __post_init__(self):
        for hour in (self.workday_start_hour, self.workday_end_hour):
            if not 0 <= hour <= 23:
                raise ValueError(f"Hour must be between 0 and 23, got {hour}")
        if self.workday_start_hour >= self.workday_end_hour:
            raise ValueError("workday_end_hour must be later than workday_start_hour")

    def get_working_hours_for_day(self, day: DateTime) -> TimeRange | None:
        """
        Get the working hours range for the calendar day of ``day``.
        Returns None when a DST gap swallows the whole work day.
        """
        start = day.set(hour=self.workday_start_hour, minute=0, second=0, microsecond=0)
        end = day.set(hour=self.workday_end_hour, minute=0, second=0, microsecond=0)

        if start >= end:
            return None

        return TimeRange(start=start, end=end)

    @classmethod
    def from_iso(
        cls,
        time_zone: str,
        start: Any,
        end: Any,
        workday_start_hour: int = 9,
        workday_end_hour: int = 17,
    ) -> Optional["SearchWindow"]:
        """
        Build a window from ISO strings or datetimes.

        Returns None when either bound cannot be parsed in ``time_zone``.
        """
        window_start = coerce_instant(start, time_zone)
        window_end = coerce_instant(end, time_zone)

        if window_start is None or window_end is None:
            logger.warning("Unparseable search window %r - %r (%s)", start, end, time_zone)
            return None

        return cls(
            time_zone=time_zone,
            start=window_start,
            end=window_end,
            workday_start_hour=workday_start_hour,
            workday_end_hour=workday_end_hour,
        )


@dataclass(frozen=True)
class SchedulingRequest:
    """
    Structured scheduling intent extracted from one piece of text.

    An empty ``preferred_date_ranges`` means the search is not restricted
    by date.
    """
    duration_minutes: int
    preferred_date_ranges: Tuple[TimeRange, ...] = ()
    time_of_day_preferences: FrozenSet[TimeOfDay] = field(default_factory=frozenset)
    participant_mentions: FrozenSet[str] = field(default_factory=frozenset)
    notes: str = ""

    def __post_init__(self):
        if isinstance(self.duration_minutes, bool) or not isinstance(self.duration_minutes, int):
            raise InvalidRequestError(
                f"duration_minutes must be an integer, got {self.duration_minutes!r}"
            )
        if self.duration_minutes <= 0:
            raise InvalidRequestError("duration_minutes must be greater than zero")

    def to_dict(self) -> Dict[str, Any]:
        """Echo of the request for downstream drafting."""
        return {
            "durationMinutes": self.duration_minutes,
            "preferredDateRanges": [r.to_dict() for r in self.preferred_date_ranges],
            "timeOfDayPreferences": sorted(p.value for p in self.time_of_day_preferences),
            "participantMentions": sorted(self.participant_mentions),
        }


@dataclass(frozen=True)
class ProposedSlot:
    """
    Represents an accepted meeting slot.
    """
    start: DateTime
    end: DateTime
    label: str

    @classmethod
    def from_range(cls, time_range: TimeRange) -> "ProposedSlot":
        return cls(
            start=time_range.start,
            end=time_range.end,
            label=time_range.start.format(LABEL_FORMAT, locale="en"),
        )

    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() / 60)

    def to_dict(self) -> Dict[str, str]:
        return {
            "start": self.start.to_iso8601_string(),
            "end": self.end.to_iso8601_string(),
            "label": self.label,
        }


def slots_to_dicts(slots: List[ProposedSlot]) -> List[Dict[str, str]]:
    return [slot.to_dict() for slot in slots]
