"""
Adapters layer - Sources of busy intervals.
"""

from .json_calendar_client import JsonCalendarClient
from .static_calendar_client import StaticCalendarClient

__all__ = ["JsonCalendarClient", "StaticCalendarClient"]
