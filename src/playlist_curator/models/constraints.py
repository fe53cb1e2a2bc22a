"""Duration constraint and objective models."""

from dataclasses import dataclass
from typing import Optional, Union


def _format_seconds(seconds: int) -> str:
    if seconds % 3600 == 0:
        hours = seconds // 3600
        return f"{hours} hour{'s' if hours != 1 else ''}"
    minutes = round(seconds / 60)
    return f"{minutes} minute{'s' if minutes != 1 else ''}"


@dataclass(frozen=True)
class LessThan:
    """Each item must be at most ``seconds`` long."""

    seconds: int

    def describe(self) -> str:
        return f"each video <= {_format_seconds(self.seconds)}"


@dataclass(frozen=True)
class MoreThan:
    """Each item must be at least ``seconds`` long."""

    seconds: int

    def describe(self) -> str:
        return f"each video >= {_format_seconds(self.seconds)}"


@dataclass(frozen=True)
class Between:
    """Each item must fall within ``[min_seconds, max_seconds]``."""

    min_seconds: int
    max_seconds: int

    def describe(self) -> str:
        return (
            f"each video between {_format_seconds(self.min_seconds)} "
            f"and {_format_seconds(self.max_seconds)}"
        )


@dataclass(frozen=True)
class TotalDuration:
    """The whole playlist must fit in ``target_seconds``."""

    target_seconds: int

    def describe(self) -> str:
        return f"total playlist <= {_format_seconds(self.target_seconds)}"


DurationConstraint = Union[LessThan, MoreThan, Between, TotalDuration]


@dataclass
class Objective:
    """A user's curation request.

    ``topic`` is the normalized search phrase; the duration constraint is
    always derived from ``raw`` since normalization strips time phrases.
    """

    raw: str
    topic: Optional[str] = None
    constraint: Optional[DurationConstraint] = None

    @property
    def search_topic(self) -> str:
        return self.topic or self.raw
