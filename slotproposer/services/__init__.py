"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .availability import (
    AvailabilityResult,
    AvailabilityService,
    CalendarClientProtocol,
    build_reply_draft,
    build_summary,
)

__all__ = [
    "AvailabilityResult",
    "AvailabilityService",
    "CalendarClientProtocol",
    "build_reply_draft",
    "build_summary",
]
