"""
Time-of-day and participant cues found in free text.
"""

import re
from typing import FrozenSet, Set

from .models import TimeOfDay

TIME_OF_DAY_PATTERNS = {
    period: re.compile(rf"\b{period.value}\b", re.IGNORECASE)
    for period in TimeOfDay
}

_NAME = r"[A-Z][a-z]+(?:\s+[A-Z][a-z]+)?"

# Only the leading "with" is case-insensitive; names must be capitalized.
PARTICIPANT_PATTERN = re.compile(
    rf"\b(?i:with)\s+((?i:everyone|the\s+team)\b|{_NAME}(?:\s+(?i:and)\s+{_NAME})*)"
)
_AND_SPLIT = re.compile(r"\s+and\s+", re.IGNORECASE)


def extract_time_of_day(text: str) -> FrozenSet[TimeOfDay]:
    """Return every period named as a whole word in ``text``."""
    return frozenset(
        period for period, pattern in TIME_OF_DAY_PATTERNS.items()
        if pattern.search(text)
    )


def extract_participants(text: str) -> FrozenSet[str]:
    """
    Collect names following "with", e.g. "with Alice and Bob Stone".

    Chains joined by "and" are split into single names. Group mentions
    ("with everyone", "with the team") are returned in lowercase.
    """
    mentions: Set[str] = set()

    for match in PARTICIPANT_PATTERN.finditer(text):
        mention = " ".join(match.group(1).split())
        lowered = mention.lower()
        if lowered in ("everyone", "the team"):
            mentions.add(lowered)
            continue
        mentions.update(name for name in _AND_SPLIT.split(mention) if name)

    return frozenset(mentions)
