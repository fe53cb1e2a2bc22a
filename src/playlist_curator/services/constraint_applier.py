"""Application of a duration constraint to a curated selection."""

import logging
from typing import List, Optional

from playlist_curator.models.constraints import (
    Between,
    DurationConstraint,
    LessThan,
    MoreThan,
    TotalDuration,
)
from playlist_curator.models.media import CurationResult, SelectedItem

logger = logging.getLogger(__name__)


def matches_duration(constraint: DurationConstraint, duration: int) -> bool:
    """Check one duration against a per-item constraint."""
    if isinstance(constraint, LessThan):
        return duration <= constraint.seconds
    if isinstance(constraint, MoreThan):
        return duration >= constraint.seconds
    if isinstance(constraint, Between):
        return constraint.min_seconds <= duration <= constraint.max_seconds
    raise TypeError(f"Not a per-item constraint: {constraint!r}")


def fill_to_target(selected: List[SelectedItem], target_seconds: int) -> List[SelectedItem]:
    """Greedily take items in order until the next one would overflow the target.

    Selection stops at the first item that does not fit; later, shorter items
    are not tried against the remaining budget.
    """
    chosen = []
    total = 0
    for entry in selected:
        duration = entry.item.duration_seconds
        if total + duration > target_seconds:
            break
        chosen.append(entry)
        total += duration

    logger.info(f"Selected {len(chosen)} videos totaling {round(total / 60)} minutes")
    return chosen


def apply_constraint(
    selected: List[SelectedItem],
    constraint: Optional[DurationConstraint],
) -> List[SelectedItem]:
    """Filter or trim a selection to satisfy ``constraint``.

    A constraint never empties a non-empty selection: if nothing survives,
    the original selection is returned unchanged.
    """
    if constraint is None or not selected:
        return list(selected)

    logger.info(f"Applying duration constraint: {constraint.describe()}")

    if isinstance(constraint, TotalDuration):
        filtered = fill_to_target(selected, constraint.target_seconds)
    else:
        filtered = [
            entry for entry in selected if matches_duration(constraint, entry.item.duration_seconds)
        ]
    logger.info(f"Duration filtering: {len(selected)} -> {len(filtered)} videos")

    if not filtered:
        logger.info("Duration constraint removed every video, keeping the unfiltered selection")
        return list(selected)
    return filtered


def apply_constraint_to_result(
    result: CurationResult,
    constraint: Optional[DurationConstraint],
) -> CurationResult:
    """Return a copy of ``result`` with ``constraint`` applied to its items."""
    return CurationResult(
        label=result.label,
        items=apply_constraint(result.items, constraint),
        reasoning=result.reasoning,
        used_fallback=result.used_fallback,
    )
