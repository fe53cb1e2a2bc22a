"""Extraction of duration constraints from a free-text objective.

Parsing must run on the raw objective: topic normalization removes exactly
the phrases matched here.
"""

import logging
import re
from typing import Optional

from playlist_curator.models.constraints import (
    Between,
    DurationConstraint,
    LessThan,
    MoreThan,
    TotalDuration,
)

logger = logging.getLogger(__name__)

_UNIT = r"(minutes?|mins?|hours?|hrs?)\b"

LESS_THAN_PATTERN = re.compile(
    r"\b(?:less than|under|below|shorter than|maximum|max)\s+(\d+)\s*" + _UNIT,
    re.IGNORECASE,
)
MORE_THAN_PATTERN = re.compile(
    r"\b(?:more than|over|above|longer than|at least|minimum|min)\s+(\d+)\s*" + _UNIT,
    re.IGNORECASE,
)
BETWEEN_PATTERN = re.compile(
    r"\bbetween\s+(\d+)\s*(?:and|to|-)\s*(\d+)\s*" + _UNIT,
    re.IGNORECASE,
)
# Matches any "N unit" phrase, including ones unrelated to playlist length
# ("a 2 hour drive video"); kept as the last numeric rule for that reason.
TOTAL_DURATION_PATTERN = re.compile(
    r"(\d+)[\s-]*" + _UNIT + r"(?:\s+playlist|\s+lunch|\s+break|\s+of content)?",
    re.IGNORECASE,
)
QUICK_PATTERN = re.compile(r"\b(?:quick|short)\b", re.IGNORECASE)
LONG_PATTERN = re.compile(r"\blong\b", re.IGNORECASE)

QUICK_MAX_SECONDS = 600
LONG_MIN_SECONDS = 1200


def to_seconds(value: int, unit: str) -> int:
    """Convert a value in minutes or hours to seconds."""
    if unit.lower().startswith("h"):
        return value * 3600
    return value * 60


def parse_duration_constraint(objective: str) -> Optional[DurationConstraint]:
    """Parse the first duration constraint expressed in ``objective``.

    Rules are tried in order and the first match wins: explicit upper bound,
    explicit lower bound, range, total playlist length, then the bare words
    "quick"/"short" and "long".

    Returns:
        The parsed constraint, or None when the objective is unconstrained
    """
    if not objective:
        return None

    match = LESS_THAN_PATTERN.search(objective)
    if match:
        return LessThan(to_seconds(int(match.group(1)), match.group(2)))

    match = MORE_THAN_PATTERN.search(objective)
    if match:
        return MoreThan(to_seconds(int(match.group(1)), match.group(2)))

    match = BETWEEN_PATTERN.search(objective)
    if match:
        unit = match.group(3)
        low = to_seconds(int(match.group(1)), unit)
        high = to_seconds(int(match.group(2)), unit)
        return Between(min(low, high), max(low, high))

    match = TOTAL_DURATION_PATTERN.search(objective)
    if match:
        return TotalDuration(to_seconds(int(match.group(1)), match.group(2)))

    if QUICK_PATTERN.search(objective):
        return LessThan(QUICK_MAX_SECONDS)

    if LONG_PATTERN.search(objective):
        return MoreThan(LONG_MIN_SECONDS)

    return None
