"""
Temporal-mention extraction: turn date phrases in free text into day-long
preference windows.

Each matcher is an independent function ``(text, reference) -> list`` that
scans the whole text on its own. A matcher that trips over a malformed
mention drops it and keeps going, so noisy input only ever yields fewer
candidates.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, List, Optional, Tuple

import pendulum
from pendulum import DateTime

from .models import TimeRange

logger = logging.getLogger(__name__)

Matcher = Callable[[str, DateTime], List[TimeRange]]

WEEKDAYS = {
    "monday": 1,
    "tuesday": 2,
    "wednesday": 3,
    "thursday": 4,
    "friday": 5,
    "saturday": 6,
    "sunday": 7,
}

MONTHS = {
    "january": 1, "jan": 1,
    "february": 2, "feb": 2,
    "march": 3, "mar": 3,
    "april": 4, "apr": 4,
    "may": 5,
    "june": 6, "jun": 6,
    "july": 7, "jul": 7,
    "august": 8, "aug": 8,
    "september": 9, "sep": 9, "sept": 9,
    "october": 10, "oct": 10,
    "november": 11, "nov": 11,
    "december": 12, "dec": 12,
}

_WEEKDAY_NAMES = "|".join(WEEKDAYS)
# Longest names first so "sept" wins over "sep".
_MONTH_NAMES = "|".join(sorted(MONTHS, key=len, reverse=True))

TOMORROW_PATTERN = re.compile(r"\btomorrow\b", re.IGNORECASE)
NEXT_WEEK_PATTERN = re.compile(r"\bnext\s+week\b", re.IGNORECASE)
NEXT_WEEKDAY_PATTERN = re.compile(rf"\bnext\s+({_WEEKDAY_NAMES})\b", re.IGNORECASE)
THIS_WEEKDAY_PATTERN = re.compile(rf"\b(?:this|on)\s+({_WEEKDAY_NAMES})\b", re.IGNORECASE)
MONTH_DATE_PATTERN = re.compile(
    rf"\b({_MONTH_NAMES})\.?\s+(\d{{1,2}})(?:st|nd|rd|th)?\b(?:,\s*(\d{{4}}|\d{{2}})\b)?",
    re.IGNORECASE,
)
# Digits or a slash right after the date mean a longer token, which is skipped
# whole; a following letter ("3/5pm") does not.
NUMERIC_DATE_PATTERN = re.compile(r"\b(\d{1,2})/(\d{1,2})(?:/(\d{4}|\d{2}))?(?![\d/])")


def day_range(day: DateTime) -> TimeRange:
    """Span one full calendar day in the day's own zone."""
    return TimeRange(start=day.start_of("day"), end=day.end_of("day"))


def normalize_year(raw: Optional[str], reference: DateTime) -> int:
    """Explicit year if present (two digits mean 20YY), else the reference year."""
    if not raw:
        return reference.year
    year = int(raw)
    if year < 100:
        return 2000 + year
    return year


def match_tomorrow(text: str, reference: DateTime) -> List[TimeRange]:
    if not TOMORROW_PATTERN.search(text):
        return []
    return [day_range(reference.add(days=1))]


def match_next_week(text: str, reference: DateTime) -> List[TimeRange]:
    """The Monday-to-Sunday week following the reference week."""
    if not NEXT_WEEK_PATTERN.search(text):
        return []
    monday = reference.start_of("week").add(weeks=1)
    return [TimeRange(start=monday, end=monday.add(days=6).end_of("day"))]


def _weekday_occurrence(weekday_name: str, reference: DateTime, is_next: bool) -> DateTime:
    target = WEEKDAYS[weekday_name.lower()]
    today = reference.start_of("day")

    offset = (target - today.isoweekday()) % 7
    # "next <weekday>" always lands beyond the current week, a same-day
    # mention included, with a single seven-day jump.
    if is_next:
        offset += 7

    candidate = today.add(days=offset)
    if candidate <= reference:
        candidate = candidate.add(weeks=1)
    return candidate


def match_next_weekday(text: str, reference: DateTime) -> List[TimeRange]:
    return [
        day_range(_weekday_occurrence(match.group(1), reference, is_next=True))
        for match in NEXT_WEEKDAY_PATTERN.finditer(text)
    ]


def match_this_weekday(text: str, reference: DateTime) -> List[TimeRange]:
    return [
        day_range(_weekday_occurrence(match.group(1), reference, is_next=False))
        for match in THIS_WEEKDAY_PATTERN.finditer(text)
    ]


def _future_date(year: int, month: int, day: int, reference: DateTime) -> Optional[TimeRange]:
    """
    Day range for a calendar date, rolled forward a year when it has
    already started before the reference instant.
    """
    try:
        candidate = pendulum.datetime(year, month, day, tz=reference.timezone)
        if candidate < reference:
            candidate = candidate.add(years=1)
    except (ValueError, OverflowError) as exc:
        logger.debug("Dropping invalid date %s-%s-%s: %s", year, month, day, exc)
        return None

    return day_range(candidate)


def match_month_dates(text: str, reference: DateTime) -> List[TimeRange]:
    ranges: List[TimeRange] = []
    for match in MONTH_DATE_PATTERN.finditer(text):
        month_name, day_str, year_str = match.groups()
        month = MONTHS[month_name.lower()]
        found = _future_date(normalize_year(year_str, reference), month, int(day_str), reference)
        if found is not None:
            ranges.append(found)
    return ranges


def match_numeric_dates(text: str, reference: DateTime) -> List[TimeRange]:
    ranges: List[TimeRange] = []
    for match in NUMERIC_DATE_PATTERN.finditer(text):
        month_str, day_str, year_str = match.groups()
        found = _future_date(
            normalize_year(year_str, reference), int(month_str), int(day_str), reference
        )
        if found is not None:
            ranges.append(found)
    return ranges


MATCHERS: Tuple[Matcher, ...] = (
    match_tomorrow,
    match_next_week,
    match_next_weekday,
    match_this_weekday,
    match_month_dates,
    match_numeric_dates,
)


def extract(text: str, reference: DateTime, time_zone: str) -> List[TimeRange]:
    """
    Extract day-long preference windows from ``text``.

    Args:
        text: Free-form text, e.g. an email body
        reference: The instant relative phrases are resolved against
        time_zone: IANA zone the returned days are expressed in

    Returns:
        Day ranges in matcher order. Overlapping ranges are kept; only
        identical ranges are collapsed.
    """
    reference = reference.in_timezone(time_zone)
    ranges: List[TimeRange] = []

    for matcher in MATCHERS:
        for found in matcher(text, reference):
            if found not in ranges:
                ranges.append(found)

    logger.debug("Extracted %d date preference(s) from text", len(ranges))
    return ranges
