"""Batch, event and run-state models for curation runs."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from playlist_curator.models.media import MediaItem, SelectedItem


class BatchStatus(Enum):
    """Status enumeration for a dispatched batch."""
    PENDING = "pending"
    DONE = "done"
    FAILED = "failed"


class RunState(Enum):
    """States of a single curation run."""
    IDLE = "idle"
    TOPIC_NORMALIZING = "topic_normalizing"
    BATCH_DISPATCH = "batch_dispatch"
    AGGREGATING = "aggregating"
    CONSTRAINT_FILTERING = "constraint_filtering"
    FALLBACK_SCORING = "fallback_scoring"
    DONE = "done"


@dataclass
class BatchJob:
    """An order-preserving slice of the corpus sent to the classifier together."""

    index: int  # 0-based submission position
    items: List[MediaItem]
    status: BatchStatus = BatchStatus.PENDING
    selected: List[SelectedItem] = field(default_factory=list)
    label: Optional[str] = None
    reasoning: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def has_selection(self) -> bool:
        return self.status == BatchStatus.DONE and bool(self.selected)

    def mark_done(self, selected: List[SelectedItem], label: str, reasoning: str) -> None:
        self.status = BatchStatus.DONE
        self.selected = list(selected)
        self.label = label
        self.reasoning = reasoning

    def mark_failed(self, error_message: str) -> None:
        """Record a failure; a failed batch contributes nothing."""
        self.status = BatchStatus.FAILED
        self.selected = []
        self.error_message = error_message

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "size": len(self.items),
            "status": self.status.value,
            "selected": [selected.item.url for selected in self.selected],
            "label": self.label,
            "reasoning": self.reasoning,
            "error_message": self.error_message,
        }


@dataclass(frozen=True)
class BatchCompleted:
    """Incremental event emitted when one batch settles."""

    batch_index: int  # 1-based, as shown to users
    total_batches: int
    new_items: List[SelectedItem]
    label: Optional[str]
    status: BatchStatus
