"""Merging of settled batches into one curation result."""

import logging
from typing import List

from playlist_curator.models.batch import BatchJob
from playlist_curator.models.media import CurationResult, SelectedItem

logger = logging.getLogger(__name__)


def aggregate_batches(jobs: List[BatchJob]) -> CurationResult:
    """Combine batch selections into a single url-unique result.

    The label comes from the first batch in submission order that selected
    anything, regardless of which batch finished first. Items keep
    submission order; a repeated url keeps its first occurrence.
    """
    ordered = sorted(jobs, key=lambda job: job.index)
    contributing = [job for job in ordered if job.has_selection]

    if not contributing:
        logger.info("No batch selected any videos")
        return CurationResult.empty(reasoning="No batch selected any videos")

    label = contributing[0].label or ""

    seen = set()
    unique: List[SelectedItem] = []
    for job in contributing:
        for selected in job.selected:
            if selected.item.url in seen:
                continue
            seen.add(selected.item.url)
            unique.append(selected)

    logger.info(
        f"Combined results: label '{label}', {len(unique)} videos from {len(contributing)} batches"
    )
    return CurationResult(
        label=label,
        items=unique,
        reasoning=f"Selected {len(unique)} videos from {len(contributing)} batches",
    )
