"""
Tests for the slot-search engine.
"""

import pendulum
import pytest

from slotproposer.domain.models import (
    SchedulingRequest,
    SearchWindow,
    TimeOfDay,
    TimeRange,
)
from slotproposer.domain.slot_search import SlotSearchEngine, normalize_busy, snap_to_quarter_hour

TZ = "America/New_York"


def _at(value: str):
    return pendulum.parse(value, tz=TZ)


def _window(start: str, end: str, **kwargs) -> SearchWindow:
    return SearchWindow(time_zone=TZ, start=_at(start), end=_at(end), **kwargs)


def _busy(start: str, end: str) -> TimeRange:
    return TimeRange(start=_at(start), end=_at(end))


def _starts(slots):
    return [slot.start.format("YYYY-MM-DD HH:mm") for slot in slots]


def _assert_slot_invariants(slots, busy, duration):
    assert len(slots) <= 3
    for slot in slots:
        assert slot.start.minute % 15 == 0
        assert slot.start.second == 0
        assert (slot.end - slot.start).total_seconds() == duration * 60
        slot_range = TimeRange(start=slot.start, end=slot.end)
        assert not any(slot_range.overlaps(b) for b in busy)
    for earlier, later in zip(slots, slots[1:]):
        assert earlier.end <= later.start


class TestSnapToQuarterHour:
    """Tests for snap_to_quarter_hour."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("2025-09-29 09:00", "2025-09-29 09:00"),
            ("2025-09-29 09:01", "2025-09-29 09:15"),
            ("2025-09-29 09:14:59", "2025-09-29 09:15"),
            ("2025-09-29 09:30", "2025-09-29 09:30"),
            ("2025-09-29 09:50", "2025-09-29 10:00"),
            ("2025-09-29 09:45:01", "2025-09-29 10:00"),
            ("2025-09-29 23:50", "2025-09-30 00:00"),
        ],
    )
    def test_rounds_up(self, value, expected):
        assert snap_to_quarter_hour(_at(value)) == _at(expected)

    def test_never_rounds_down(self):
        instant = _at("2025-09-29 10:00:00.000001")

        assert snap_to_quarter_hour(instant) == _at("2025-09-29 10:15")


class TestNormalizeBusy:
    """Tests for normalize_busy."""

    def test_sorts_and_converts(self):
        busy = [
            {"start": "2025-09-29T18:00:00Z", "end": "2025-09-29T19:00:00Z"},
            _busy("2025-09-29 09:00", "2025-09-29 10:00"),
        ]

        normalized = normalize_busy(busy, TZ)

        assert [r.start.hour for r in normalized] == [9, 14]
        assert all(r.start.timezone_name == TZ for r in normalized)

    def test_drops_invalid_entries(self):
        busy = [
            {"start": "garbage", "end": "2025-09-29T10:00:00-04:00"},
            {"start": "2025-09-29T11:00:00-04:00", "end": "2025-09-29T10:00:00-04:00"},
            {"start": "2025-09-29T11:00:00-04:00", "end": "2025-09-29T11:00:00-04:00"},
            {"end": "2025-09-29T10:00:00-04:00"},
            None,
            {"start": "2025-09-29T12:00:00-04:00", "end": "2025-09-29T13:00:00-04:00"},
        ]

        normalized = normalize_busy(busy, TZ)

        assert len(normalized) == 1
        assert normalized[0].start.hour == 12


class TestSlotSearchEngine:
    """Tests for SlotSearchEngine."""

    def setup_method(self):
        self.engine = SlotSearchEngine()

    def test_avoids_busy_block(self):
        """Busy 13:00-14:00, 45 minute meeting: slots found, none overlapping."""
        busy = [_busy("2025-09-29 13:00", "2025-09-29 14:00")]
        request = SchedulingRequest(duration_minutes=45)

        slots = self.engine.search(busy, request, _window("2025-09-29 09:00", "2025-09-29 17:00"))

        assert len(slots) > 0
        assert _starts(slots) == ["2025-09-29 09:00", "2025-09-29 09:45", "2025-09-29 10:30"]
        _assert_slot_invariants(slots, busy, 45)

    def test_morning_preference(self):
        """Window 06:00-21:00 with a morning preference only yields 9-12 starts."""
        request = SchedulingRequest(
            duration_minutes=30,
            time_of_day_preferences=frozenset({TimeOfDay.MORNING}),
        )

        slots = self.engine.search([], request, _window("2025-09-29 06:00", "2025-09-29 21:00"))

        assert len(slots) > 0
        assert all(9 <= slot.start.hour < 12 for slot in slots)

    def test_first_slot_after_leading_busy_block(self):
        """Busy 09:00-10:00 pushes the first slot to 10:00 or later."""
        busy = [_busy("2025-09-29 09:00", "2025-09-29 10:00")]
        request = SchedulingRequest(duration_minutes=30)

        slots = self.engine.search(busy, request, _window("2025-09-29 09:00", "2025-09-29 12:00"))

        assert slots[0].start >= _at("2025-09-29 10:00")
        assert _starts(slots) == ["2025-09-29 10:00", "2025-09-29 10:30", "2025-09-29 11:00"]
        _assert_slot_invariants(slots, busy, 30)

    def test_afternoon_preference_skips_morning(self):
        request = SchedulingRequest(
            duration_minutes=30,
            time_of_day_preferences=frozenset({TimeOfDay.AFTERNOON}),
        )

        slots = self.engine.search([], request, _window("2025-09-29 09:00", "2025-09-29 17:00"))

        assert _starts(slots) == ["2025-09-29 12:00", "2025-09-29 12:30", "2025-09-29 13:00"]

    def test_evening_preference_outside_work_hours_finds_nothing(self):
        request = SchedulingRequest(
            duration_minutes=30,
            time_of_day_preferences=frozenset({TimeOfDay.EVENING}),
        )

        slots = self.engine.search([], request, _window("2025-09-29 00:00", "2025-10-03 00:00"))

        assert slots == []

    def test_starts_outside_named_periods_are_not_filtered(self):
        request = SchedulingRequest(
            duration_minutes=30,
            time_of_day_preferences=frozenset({TimeOfDay.AFTERNOON}),
        )
        window = _window("2025-09-29 00:00", "2025-09-29 23:00", workday_start_hour=6, workday_end_hour=10)

        slots = self.engine.search([], request, window)

        assert _starts(slots) == ["2025-09-29 06:00", "2025-09-29 06:30", "2025-09-29 07:00"]

    def test_date_preference_moves_to_preferred_day(self):
        tuesday = _at("2025-09-30 00:00")
        request = SchedulingRequest(
            duration_minutes=30,
            preferred_date_ranges=(TimeRange(start=tuesday, end=tuesday.end_of("day")),),
        )

        slots = self.engine.search([], request, _window("2025-09-29 09:00", "2025-10-01 17:00"))

        assert _starts(slots) == ["2025-09-30 09:00", "2025-09-30 09:30", "2025-09-30 10:00"]

    def test_date_preference_outside_window_finds_nothing(self):
        day = _at("2025-10-20 00:00")
        request = SchedulingRequest(
            duration_minutes=30,
            preferred_date_ranges=(TimeRange(start=day, end=day.end_of("day")),),
        )

        slots = self.engine.search([], request, _window("2025-09-29 09:00", "2025-10-01 17:00"))

        assert slots == []

    def test_any_preferred_range_is_enough(self):
        monday = _at("2025-09-29 00:00")
        wednesday = _at("2025-10-01 00:00")
        request = SchedulingRequest(
            duration_minutes=60,
            preferred_date_ranges=(
                TimeRange(start=wednesday, end=wednesday.end_of("day")),
                TimeRange(start=monday, end=monday.end_of("day")),
            ),
        )
        busy = [_busy("2025-09-29 09:00", "2025-09-29 16:00")]

        slots = self.engine.search(busy, request, _window("2025-09-29 09:00", "2025-10-02 17:00"))

        assert _starts(slots) == ["2025-09-29 16:00", "2025-10-01 09:00", "2025-10-01 10:00"]

    def test_unaligned_window_start_is_snapped_up(self):
        request = SchedulingRequest(duration_minutes=30)

        slots = self.engine.search([], request, _window("2025-09-29 09:07", "2025-09-29 17:00"))

        assert slots[0].start == _at("2025-09-29 09:15")

    def test_unaligned_busy_end_is_snapped_up(self):
        busy = [_busy("2025-09-29 09:00", "2025-09-29 09:40")]
        request = SchedulingRequest(duration_minutes=30)

        slots = self.engine.search(busy, request, _window("2025-09-29 09:00", "2025-09-29 17:00"))

        assert slots[0].start == _at("2025-09-29 09:45")

    def test_partial_overlap_does_not_skip_feasible_start(self):
        busy = [_busy("2025-09-29 09:00", "2025-09-29 09:15")]
        request = SchedulingRequest(duration_minutes=60)

        slots = self.engine.search(busy, request, _window("2025-09-29 09:00", "2025-09-29 10:15"))

        assert _starts(slots) == ["2025-09-29 09:15"]

    def test_later_busy_interval_does_not_skip_free_start(self):
        """Only the blocker that overlaps the candidate decides where the cursor goes."""
        busy = [
            _busy("2025-09-29 08:00", "2025-09-29 09:30"),
            _busy("2025-09-29 11:00", "2025-09-29 11:30"),
        ]
        request = SchedulingRequest(duration_minutes=60)

        slots = self.engine.search(busy, request, _window("2025-09-29 09:00", "2025-09-29 17:00"))

        assert _starts(slots) == ["2025-09-29 09:30", "2025-09-29 11:30", "2025-09-29 12:30"]
        _assert_slot_invariants(slots, busy, 60)

    def test_work_start_after_window_end_finds_nothing(self):
        request = SchedulingRequest(duration_minutes=30)

        slots = self.engine.search([], request, _window("2025-09-29 06:00", "2025-09-29 09:10"))

        assert slots == []

    def test_overnight_rollover_to_next_work_day(self):
        request = SchedulingRequest(duration_minutes=90)

        slots = self.engine.search([], request, _window("2025-09-29 16:00", "2025-09-30 17:00"))

        assert _starts(slots) == ["2025-09-30 09:00", "2025-09-30 10:30", "2025-09-30 12:00"]

    def test_results_capped_at_three(self):
        request = SchedulingRequest(duration_minutes=15)

        slots = self.engine.search([], request, _window("2025-09-29 09:00", "2025-10-13 09:00"))

        assert len(slots) == 3

    def test_fully_busy_window_returns_empty(self):
        busy = [_busy("2025-09-29 08:00", "2025-09-29 18:00")]
        request = SchedulingRequest(duration_minutes=30)

        slots = self.engine.search(busy, request, _window("2025-09-29 09:00", "2025-09-29 17:00"))

        assert slots == []

    def test_window_shorter_than_duration_returns_empty(self):
        request = SchedulingRequest(duration_minutes=30)

        slots = self.engine.search([], request, _window("2025-09-29 09:00", "2025-09-29 09:20"))

        assert slots == []

    def test_missing_window_returns_empty(self):
        request = SchedulingRequest(duration_minutes=30)

        assert self.engine.search([], request, None) == []
        assert self.engine.search([], request, SearchWindow.from_iso(TZ, "soon", "later")) == []

    def test_raw_busy_entries_in_other_zone(self):
        busy = [{"start": "2025-09-29T13:00:00Z", "end": "2025-09-29T14:00:00Z"}]
        request = SchedulingRequest(duration_minutes=30)

        slots = self.engine.search(busy, request, _window("2025-09-29 09:00", "2025-09-29 12:00"))

        assert slots[0].start == _at("2025-09-29 10:00")

    def test_invalid_busy_entries_are_ignored(self):
        busy = [
            {"start": "garbage", "end": "2025-09-29T17:00:00-04:00"},
            {"start": "2025-09-29T17:00:00-04:00", "end": "2025-09-29T09:00:00-04:00"},
        ]
        request = SchedulingRequest(duration_minutes=30)

        slots = self.engine.search(busy, request, _window("2025-09-29 09:00", "2025-09-29 17:00"))

        assert _starts(slots) == ["2025-09-29 09:00", "2025-09-29 09:30", "2025-09-29 10:00"]

    def test_labels(self):
        request = SchedulingRequest(duration_minutes=30)

        slots = self.engine.search([], request, _window("2025-09-29 13:00", "2025-09-29 17:00"))

        assert [slot.label for slot in slots] == [
            "Mon Sep 29, 1:00 PM",
            "Mon Sep 29, 1:30 PM",
            "Mon Sep 29, 2:00 PM",
        ]

    def test_work_day_after_dst_change(self):
        request = SchedulingRequest(duration_minutes=60)

        slots = self.engine.search([], request, _window("2025-11-01 16:30", "2025-11-03 17:00"))

        assert _starts(slots)[0] == "2025-11-02 09:00"
        assert slots[0].start.offset_hours == -5
        assert slots[0].duration_minutes() == 60

    def test_work_day_inside_dst_gap_is_skipped(self):
        """Work hours 02:00-03:00 vanish on 2026-03-08 in New York."""
        request = SchedulingRequest(duration_minutes=30)
        window = _window("2026-03-07 00:00", "2026-03-10 00:00", workday_start_hour=2, workday_end_hour=3)

        slots = self.engine.search([], request, window)

        assert _starts(slots) == ["2026-03-07 02:00", "2026-03-07 02:30", "2026-03-09 02:00"]
        _assert_slot_invariants(slots, [], 30)

    @pytest.mark.parametrize(
        "busy_spans",
        [
            [],
            [("09:00", "09:20")],
            [("09:10", "10:05"), ("10:50", "11:35")],
            [("10:00", "12:00"), ("11:00", "13:00"), ("14:20", "14:25")],
            [("09:00", "16:40")],
        ],
    )
    @pytest.mark.parametrize("duration", [15, 30, 45, 60])
    def test_invariants_hold(self, busy_spans, duration):
        busy = [_busy(f"2025-09-29 {s}", f"2025-09-29 {e}") for s, e in busy_spans]
        request = SchedulingRequest(duration_minutes=duration)

        slots = self.engine.search(busy, request, _window("2025-09-29 08:53", "2025-09-30 17:00"))

        assert len(slots) == 3
        _assert_slot_invariants(slots, busy, duration)
