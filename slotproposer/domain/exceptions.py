"""
Domain-specific exception hierarchy for the slot proposer.
"""


class SlotProposerError(Exception):
    """Base class for all application-level errors."""


class InvalidIntervalError(SlotProposerError, ValueError):
    """Raised when an interval does not start strictly before it ends."""


class InvalidRequestError(SlotProposerError, ValueError):
    """Raised when a scheduling request violates its invariants."""


class CalendarDataError(SlotProposerError):
    """Raised when busy-interval data cannot be loaded or parsed."""
