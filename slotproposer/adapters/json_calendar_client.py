"""
Calendar client that reads busy intervals from a JSON file.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List

from pendulum import DateTime

from ..domain.exceptions import CalendarDataError
from ..domain.slot_search import normalize_busy
from ..domain.models import TimeRange

logger = logging.getLogger(__name__)


class JsonCalendarClient:
    """
    Serves busy intervals exported from a calendar provider.

    Accepted documents:
    - a list of ``{"start": ..., "end": ...}`` entries
    - a free/busy payload ``{"calendars": {"<id>": {"busy": [...]}}}``,
      from which every calendar's entries are merged
    """

    def __init__(self, data_file: Path, calendar_id: str | None = None):
        """
        Args:
            data_file: Path to the JSON document
            calendar_id: Only use this calendar of a free/busy payload
        """
        self.data_file = Path(data_file)
        self.calendar_id = calendar_id
        self.busy_entries = self._load_busy_entries()

    def _load_busy_entries(self) -> List[Dict[str, Any]]:
        try:
            with open(self.data_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except OSError as exc:
            raise CalendarDataError(f"Could not read busy data {self.data_file}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise CalendarDataError(f"Invalid JSON in {self.data_file}: {exc}") from exc

        if isinstance(data, list):
            return data

        if isinstance(data, dict) and isinstance(data.get("calendars"), dict):
            entries: List[Dict[str, Any]] = []
            for calendar_id, calendar in data["calendars"].items():
                if self.calendar_id and calendar_id != self.calendar_id:
                    continue
                entries.extend((calendar or {}).get("busy", []))
            return entries

        raise CalendarDataError(
            f"{self.data_file} must contain a list of busy entries or a 'calendars' mapping."
        )

    async def get_busy(
        self,
        start_time: DateTime,
        end_time: DateTime,
        time_zone: str,
    ) -> List[TimeRange]:
        """
        Busy intervals overlapping the requested window, in ``time_zone``.

        Invalid entries are skipped.
        """
        busy = [
            busy_range for busy_range in normalize_busy(self.busy_entries, time_zone)
            if busy_range.start < end_time and busy_range.end > start_time
        ]
        logger.debug(
            "Loaded %d of %d busy entries from %s",
            len(busy), len(self.busy_entries), self.data_file,
        )
        return busy
