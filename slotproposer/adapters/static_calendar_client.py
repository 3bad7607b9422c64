"""
In-memory calendar client for callers that already hold busy data.
"""

from typing import List, Sequence

from pendulum import DateTime

from ..domain.slot_search import BusyInterval


class StaticCalendarClient:
    """Returns the same busy entries for every request."""

    def __init__(self, busy: Sequence[BusyInterval] = ()):
        self.busy = list(busy)

    async def get_busy(
        self,
        start_time: DateTime,
        end_time: DateTime,
        time_zone: str,
    ) -> List[BusyInterval]:
        return list(self.busy)
