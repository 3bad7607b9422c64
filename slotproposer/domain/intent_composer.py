"""
Merge extracted temporal and preference cues into a SchedulingRequest.
"""

import logging
from typing import Optional

import pendulum
from pendulum import DateTime

from . import temporal_extractor
from .models import SchedulingRequest
from .preference_extractor import extract_participants, extract_time_of_day

logger = logging.getLogger(__name__)


def compose(
    text: str,
    fallback_duration_minutes: int,
    time_zone: str,
    reference: Optional[DateTime] = None,
) -> SchedulingRequest:
    """
    Build the structured request for one piece of text.

    Args:
        text: Original email body, carried through verbatim as notes
        fallback_duration_minutes: Meeting length, used as given
        time_zone: IANA zone relative dates are resolved in
        reference: Instant "tomorrow" and friends are relative to.
            Defaults to the current time, captured once per call.

    Raises:
        InvalidRequestError: If the duration is not a positive integer
    """
    if reference is None:
        reference = pendulum.now(time_zone)
    reference = reference.in_timezone(time_zone)

    request = SchedulingRequest(
        duration_minutes=fallback_duration_minutes,
        preferred_date_ranges=tuple(temporal_extractor.extract(text, reference, time_zone)),
        time_of_day_preferences=extract_time_of_day(text),
        participant_mentions=extract_participants(text),
        notes=text,
    )

    logger.info(
        "Composed request: %d min, %d date range(s), time of day %s",
        request.duration_minutes,
        len(request.preferred_date_ranges),
        sorted(p.value for p in request.time_of_day_preferences) or "any",
    )
    return request
