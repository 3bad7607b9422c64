"""
Application service answering "when can we meet?" for an email.

The service coordinates fetching busy times via a calendar client adapter,
composing the scheduling request from the email text and delegating the
search to the domain-level ``SlotSearchEngine``. Keeping the calendar
behind a protocol lets tests plug in a stub.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence

import pendulum
from pendulum import DateTime
from pydantic import BaseModel, field_validator

from ..domain.intent_composer import compose
from ..domain.models import ProposedSlot, SchedulingRequest, SearchWindow, slots_to_dicts
from ..domain.slot_search import BusyInterval, SlotSearchEngine

logger = logging.getLogger(__name__)

ORIGINAL_EMAIL_LIMIT = 400


class CalendarClientProtocol(Protocol):
    """Protocol describing the calendar client behaviour needed by the service."""

    async def get_busy(
        self,
        start_time: DateTime,
        end_time: DateTime,
        time_zone: str,
    ) -> Sequence[BusyInterval]:
        """Return the calendar owner's busy intervals within the window."""


class AvailabilityRequest(BaseModel):
    """Caller request as received from the booking assistant."""
    email_body: str
    duration_minutes: int

    @field_validator("email_body")
    @classmethod
    def validate_email_body(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("email_body must not be empty")
        return value

    @field_validator("duration_minutes")
    @classmethod
    def validate_duration(cls, value: int) -> int:
        """Ensure meeting duration is positive."""
        if value <= 0:
            raise ValueError("duration_minutes must be greater than zero")
        return value


@dataclass(frozen=True)
class AvailabilityResult:
    summary: str
    proposed_slots: List[ProposedSlot]
    request: SchedulingRequest
    reply_draft: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.summary,
            "proposedSlots": slots_to_dicts(self.proposed_slots),
            "replyDraft": self.reply_draft,
            "request": self.request.to_dict(),
        }


def _describe_span(search_days: int) -> str:
    if search_days == 14:
        return "the next two weeks"
    if search_days == 7:
        return "the next week"
    return f"the next {search_days} days"


def build_summary(slot_count: int, search_days: int = 14) -> str:
    """One-line outcome message for the number of slots found."""
    span = _describe_span(search_days)
    if slot_count == 0:
        return f"I could not find any open slots over {span}."
    if slot_count == 1:
        return "I found one available time option."
    return f"I found {slot_count} available time options over {span}."


def truncate_original(text: str, limit: int = ORIGINAL_EMAIL_LIMIT) -> str:
    trimmed = text.strip()
    if len(trimmed) <= limit:
        return trimmed
    return f"{trimmed[:limit]}…"


def build_reply_draft(email_body: str, slots: Sequence[ProposedSlot]) -> str:
    """
    Template reply listing the proposed slots, quoting the original email.
    """
    bullet_list = "\n".join(f"• {slot.label}" for slot in slots)
    return (
        "Thanks for reaching out!\n\n"
        "Here are a few times that work well for me:\n"
        f"{bullet_list}\n\n"
        "Let me know if any of these work or if you need other options.\n\n"
        f"{truncate_original(email_body)}"
    )


class AvailabilityService:
    """
    Orchestrates busy-time retrieval, intent extraction and slot search.
    """

    def __init__(
        self,
        calendar_client: CalendarClientProtocol,
        engine: Optional[SlotSearchEngine] = None,
        *,
        search_days: int = 14,
        workday_start_hour: int = 9,
        workday_end_hour: int = 17,
    ) -> None:
        self._calendar_client = calendar_client
        self._engine = engine or SlotSearchEngine()
        self.search_days = search_days
        self.workday_start_hour = workday_start_hour
        self.workday_end_hour = workday_end_hour

    async def propose(
        self,
        *,
        email_body: str,
        duration_minutes: int,
        time_zone: str,
        now: Optional[DateTime] = None,
    ) -> AvailabilityResult:
        """
        Propose meeting slots for an email.

        Args:
            email_body: Raw email text
            duration_minutes: Requested meeting length
            time_zone: IANA zone of the calendar owner
            now: Reference instant; defaults to the current time

        Raises:
            pydantic.ValidationError: If the caller request is invalid
        """
        payload = AvailabilityRequest(email_body=email_body, duration_minutes=duration_minutes)

        now = (now or pendulum.now(time_zone)).in_timezone(time_zone)
        window = SearchWindow(
            time_zone=time_zone,
            start=now,
            end=now.add(days=self.search_days),
            workday_start_hour=self.workday_start_hour,
            workday_end_hour=self.workday_end_hour,
        )

        busy = await self._calendar_client.get_busy(
            start_time=window.start,
            end_time=window.end,
            time_zone=time_zone,
        )

        request = compose(
            payload.email_body,
            payload.duration_minutes,
            time_zone,
            reference=now,
        )
        slots = self._engine.search(busy, request, window)

        return AvailabilityResult(
            summary=build_summary(len(slots), self.search_days),
            proposed_slots=slots,
            request=request,
            reply_draft=build_reply_draft(request.notes, slots),
        )
