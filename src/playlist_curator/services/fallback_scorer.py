"""Deterministic keyword scorer used when the classifier cannot help."""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from playlist_curator.models.constraints import DurationConstraint, TotalDuration
from playlist_curator.models.media import (
    DEFAULT_PLAYLIST_LABEL,
    CurationResult,
    MediaItem,
    SelectedItem,
    dedupe_by_url,
)
from playlist_curator.services.constraint_applier import matches_duration
from playlist_curator.services.duration_parser import parse_duration_constraint

logger = logging.getLogger(__name__)

MAX_SELECTION = 10
UNSCORED_SELECTION = 5

TITLE_WEIGHT = 3
DESCRIPTION_WEIGHT = 2
CHANNEL_WEIGHT = 1
CONTENT_TYPE_BONUS = 5

# (objective triggers, title keywords, description keywords); first triggered rule applies
CONTENT_TYPE_RULES = [
    (("trivia", "quiz"), ("trivia", "quiz"), ("trivia", "quiz")),
    (("podcast", "interview"), ("podcast", "interview"), ("podcast", "interview")),
    (("tutorial", "learn"), ("tutorial", "learn", "how to"), ("tutorial",)),
    (("tech", "programming"), ("tech", "programming", "code"), ("programming",)),
]
BREVITY_TRIGGERS = ("short", "quick")


@dataclass(frozen=True)
class ScoredItem:
    """A corpus item with its heuristic relevance score."""

    item: MediaItem
    score: int


def extract_keywords(objective: str) -> List[str]:
    return [word for word in objective.lower().split(" ") if len(word) > 3]


def matches_keyword(keywords: List[str], item: MediaItem) -> bool:
    text = " ".join((item.title, item.description or "", item.channel_name or "")).lower()
    return any(keyword in text for keyword in keywords)


def fits_duration(constraint: Optional[DurationConstraint], duration_seconds: int) -> bool:
    """Per-item duration check; a total length bounds each single item."""
    if constraint is None or duration_seconds <= 0:
        return True
    if isinstance(constraint, TotalDuration):
        return duration_seconds <= constraint.target_seconds
    return matches_duration(constraint, duration_seconds)


def wants_brevity(objective: str) -> bool:
    objective = objective.lower()
    return any(trigger in objective for trigger in BREVITY_TRIGGERS)


def matches_content_type(objective: str, item: MediaItem) -> bool:
    """Check whether the item fits the content type the objective asks for."""
    objective = objective.lower()
    title = item.title.lower()
    description = (item.description or "").lower()

    for triggers, title_words, description_words in CONTENT_TYPE_RULES:
        if any(trigger in objective for trigger in triggers):
            return any(word in title for word in title_words) or any(
                word in description for word in description_words
            )

    if wants_brevity(objective):
        # Unknown durations (0) never count as short
        return 0 < item.duration_seconds < 600

    return False


def score_item(objective: str, item: MediaItem) -> int:
    """Score one item against the objective.

    Title hits weigh 3, description hits 2 and channel hits 1 per keyword,
    plus 5 for a content-type match and a brevity bonus for quick requests.
    """
    title = item.title.lower()
    description = (item.description or "").lower()
    channel = (item.channel_name or "").lower()

    score = 0
    for keyword in extract_keywords(objective):
        if keyword in title:
            score += TITLE_WEIGHT
        if keyword in description:
            score += DESCRIPTION_WEIGHT
        if keyword in channel:
            score += CHANNEL_WEIGHT

    if matches_content_type(objective, item):
        score += CONTENT_TYPE_BONUS

    if wants_brevity(objective) and item.duration_seconds > 0:
        if item.duration_seconds < 300:
            score += 3
        elif item.duration_seconds < 600:
            score += 1

    return score


def rank_items(
    objective: str,
    items: List[MediaItem],
    constraint: Optional[DurationConstraint] = None,
) -> List[ScoredItem]:
    """Rank the candidate items, best first, ties in corpus order.

    Candidates match a keyword or the requested content type and fit the
    per-item duration bound.
    """
    keywords = extract_keywords(objective)
    matching = [
        ScoredItem(item=item, score=score_item(objective, item))
        for item in items
        if (matches_keyword(keywords, item) or matches_content_type(objective, item))
        and fits_duration(constraint, item.duration_seconds)
    ]
    # sort is stable, so equal scores keep corpus order
    matching.sort(key=lambda entry: entry.score, reverse=True)
    return matching


def generate_label(objective: str) -> str:
    """Build a playlist label from the first three meaningful words."""
    cleaned = re.sub(r"[^\w\s]", "", objective.lower())
    words = [word for word in cleaned.split(" ") if len(word) > 3][:3]

    if not words:
        return DEFAULT_PLAYLIST_LABEL

    return " ".join(word[0].upper() + word[1:] for word in words)


def fallback_curate(objective: str, items: List[MediaItem]) -> CurationResult:
    """Curate a playlist from keyword heuristics alone.

    Never returns an empty selection unless ``items`` itself is empty: when
    no candidate remains, the first few corpus items are used instead.
    """
    label = generate_label(objective)
    items = dedupe_by_url(items)

    if not items:
        return CurationResult(label=label, reasoning="No videos to choose from", used_fallback=True)

    constraint = parse_duration_constraint(objective)
    ranked = rank_items(objective, items, constraint)
    logger.info(f"Keyword matching found {len(ranked)} potential videos")

    if ranked:
        selected = [
            SelectedItem(item=entry.item, reason=f"Keyword match (score {entry.score})")
            for entry in ranked[:MAX_SELECTION]
        ]
        reasoning = f"Selected {len(selected)} videos by keyword relevance"
    else:
        selected = [
            SelectedItem(item=item, reason="No keyword matches, showing recent videos")
            for item in items[:UNSCORED_SELECTION]
        ]
        reasoning = "No videos matched the request, showing the first videos in the queue"

    logger.info(f"Fallback selected {len(selected)} videos for playlist: {label}")
    return CurationResult(label=label, items=selected, reasoning=reasoning, used_fallback=True)
