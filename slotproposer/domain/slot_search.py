"""
Core business logic for proposing meeting slots.

Pure domain logic without any external dependencies (no API calls, no
database, no I/O).
"""

import logging
from typing import Any, Iterable, List, Mapping, Optional, Union

from pendulum import DateTime

from .exceptions import InvalidIntervalError
from .models import (
    MAX_SLOTS,
    ProposedSlot,
    SchedulingRequest,
    SearchWindow,
    TimeOfDay,
    TimeRange,
    coerce_instant,
)

logger = logging.getLogger(__name__)

BusyInterval = Union[TimeRange, Mapping[str, Any]]


def snap_to_quarter_hour(instant: DateTime) -> DateTime:
    """
    Round up to the next :00/:15/:30/:45 boundary.

    Aligned instants are returned unchanged; anything past a boundary,
    even by a second, moves to the next one.
    """
    floored = instant.set(second=0, microsecond=0)
    remainder = floored.minute % 15

    if remainder == 0 and floored == instant:
        return instant

    return floored.add(minutes=15 - remainder)


def normalize_busy(busy: Iterable[BusyInterval], time_zone: str) -> List[TimeRange]:
    """
    Convert busy entries to TimeRanges in ``time_zone``, sorted by start.

    Entries whose bounds cannot be converted or do not start before they
    end are dropped.
    """
    normalized: List[TimeRange] = []

    for entry in busy:
        if isinstance(entry, TimeRange):
            start, end = entry.start, entry.end
        else:
            try:
                start, end = entry["start"], entry["end"]
            except (KeyError, TypeError):
                logger.debug("Dropping busy entry without start/end: %r", entry)
                continue

        start = coerce_instant(start, time_zone)
        end = coerce_instant(end, time_zone)
        if start is None or end is None:
            continue

        try:
            normalized.append(TimeRange(start=start, end=end))
        except InvalidIntervalError as exc:
            logger.debug("Dropping busy entry: %s", exc)

    return sorted(normalized, key=lambda r: r.start)


class SlotSearchEngine:
    """
    Proposes up to ``MAX_SLOTS`` meeting slots from a busy timeline.

    Algorithm (greedy forward scan):
    1. Normalize and sort the busy intervals
    2. Start a cursor at the window start, snapped to a quarter hour
    3. Clamp the cursor into the current day's work hours, moving to the
       next morning when the meeting no longer fits today
    4. Reject candidates outside the preferred dates or times of day
    5. Skip past busy intervals that overlap the candidate
    6. Accept everything else until the cap or the window end is reached

    The cursor only ever moves forward, so results come out in
    chronological order and never overlap.
    """

    def __init__(self, max_slots: int = MAX_SLOTS):
        self.max_slots = max_slots

    def search(
        self,
        busy: Iterable[BusyInterval],
        request: SchedulingRequest,
        window: Optional[SearchWindow],
    ) -> List[ProposedSlot]:
        """
        Find slots for ``request`` inside ``window``.

        Args:
            busy: Busy intervals, in any order
            request: Duration and preferences to honour
            window: Span to search; None means the window could not be built

        Returns:
            Chronologically ordered slots, possibly empty
        """
        if window is None:
            return []

        time_zone = window.time_zone
        window_start = coerce_instant(window.start, time_zone)
        window_end = coerce_instant(window.end, time_zone)
        if window_start is None or window_end is None:
            logger.warning("Cannot search window %s - %s", window.start, window.end)
            return []

        busy_ranges = normalize_busy(busy, time_zone)
        preferred = [
            r for r in (
                self._in_zone(pref, time_zone) for pref in request.preferred_date_ranges
            ) if r is not None
        ]
        duration = request.duration_minutes

        results: List[ProposedSlot] = []
        cursor = snap_to_quarter_hour(window_start)

        while cursor.add(minutes=duration) <= window_end and len(results) < self.max_slots:
            work_hours = window.get_working_hours_for_day(cursor)

            if work_hours is None or cursor.add(minutes=duration) > work_hours.end:
                cursor = cursor.add(days=1).start_of("day")
                continue

            if cursor < work_hours.start:
                # Re-enter the loop so the window end is checked again.
                cursor = snap_to_quarter_hour(work_hours.start)
                continue

            candidate = TimeRange(start=cursor, end=cursor.add(minutes=duration))

            if preferred and not any(pref.overlaps(candidate) for pref in preferred):
                cursor = snap_to_quarter_hour(candidate.end)
                continue

            if not self._matches_time_of_day(candidate.start, request.time_of_day_preferences):
                cursor = snap_to_quarter_hour(candidate.end)
                continue

            blocking = [b for b in busy_ranges if b.overlaps(candidate)]
            if blocking:
                # Earliest end among the blockers of this candidate only; a
                # later busy start never pulls the cursor past a free start.
                # Every blocker ends after the cursor, so this always advances.
                cursor = snap_to_quarter_hour(min(b.end for b in blocking))
                continue

            results.append(ProposedSlot.from_range(candidate))
            cursor = snap_to_quarter_hour(candidate.end)

        logger.info("Found %d slot(s) between %s and %s", len(results), window_start, window_end)
        return results

    @staticmethod
    def _matches_time_of_day(start: DateTime, preferences) -> bool:
        """Starts outside every named period are never filtered."""
        if not preferences:
            return True
        period = TimeOfDay.for_instant(start)
        return period is None or period in preferences

    @staticmethod
    def _in_zone(time_range: TimeRange, time_zone: str) -> Optional[TimeRange]:
        start = coerce_instant(time_range.start, time_zone)
        end = coerce_instant(time_range.end, time_zone)
        if start is None or end is None:
            return None
        return TimeRange(start=start, end=end)
