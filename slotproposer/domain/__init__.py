"""
Domain layer - Pure business logic without external dependencies.
"""

from .intent_composer import compose
from .models import ProposedSlot, SchedulingRequest, SearchWindow, TimeOfDay, TimeRange
from .slot_search import SlotSearchEngine, snap_to_quarter_hour

__all__ = [
    "ProposedSlot",
    "SchedulingRequest",
    "SearchWindow",
    "SlotSearchEngine",
    "TimeOfDay",
    "TimeRange",
    "compose",
    "snap_to_quarter_hour",
]
