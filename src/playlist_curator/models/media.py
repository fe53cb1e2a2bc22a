"""Media item, category and curation result models."""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

DEFAULT_CATEGORY = "recently_added"
RESERVED_CATEGORIES = ("done", "trash")
MAX_CATEGORY_NAME_LENGTH = 30
DEFAULT_PLAYLIST_LABEL = "Custom Playlist"

_INVALID_NAME_CHARS = re.compile(r'[<>:"/\\|?*]')


def is_valid_category_name(name: Any) -> bool:
    """Check a category name against the folder naming rules."""
    if not name or not isinstance(name, str):
        return False
    if len(name) > MAX_CATEGORY_NAME_LENGTH:
        return False
    return not _INVALID_NAME_CHARS.search(name)


def sanitize_category_name(name: str) -> str:
    """Coerce a model-suggested label into a valid category name."""
    sanitized = _INVALID_NAME_CHARS.sub("", name)
    sanitized = re.sub(r"\s+", " ", sanitized).strip()
    sanitized = sanitized[:MAX_CATEGORY_NAME_LENGTH].strip()
    return sanitized or DEFAULT_PLAYLIST_LABEL


def _parse_duration(value: Any) -> int:
    try:
        seconds = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(seconds, 0)


@dataclass(frozen=True)
class MediaItem:
    """A single video in the user's queue, keyed by url."""

    url: str
    title: str
    description: str = ""
    duration_seconds: int = 0  # 0 means unknown
    channel_name: Optional[str] = None
    thumbnail_ref: Optional[str] = None

    @property
    def duration_minutes(self) -> int:
        return round(self.duration_seconds / 60)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MediaItem":
        """Build an item from a queue document entry.

        Queue entries may carry their fields at top level or nested under
        ``metadata``; nested values win.
        """
        metadata = data.get("metadata") or {}

        def pick(*keys: str) -> Any:
            for key in keys:
                if metadata.get(key):
                    return metadata[key]
            for key in keys:
                if data.get(key):
                    return data[key]
            return None

        url = data.get("url") or metadata.get("url")
        if not url:
            raise ValueError("Media item requires a url")

        return cls(
            url=url,
            title=pick("title") or "Untitled",
            description=pick("description") or "",
            duration_seconds=_parse_duration(pick("duration", "durationSeconds")),
            channel_name=pick("channelName", "channel_name", "channel"),
            thumbnail_ref=pick("thumbnail", "thumbnailUrl", "thumbnail_ref"),
        )


@dataclass
class Category:
    """A user folder with a few exemplar items for prompt context."""

    name: str
    exemplars: List[MediaItem] = field(default_factory=list)


@dataclass
class Corpus:
    """Ordered category names and the items filed under each one."""

    ordering: List[str]
    items_by_category: Dict[str, List[MediaItem]]

    def categories(self) -> List[Category]:
        return [
            Category(name=name, exemplars=list(self.items_by_category.get(name, [])))
            for name in self.ordering
        ]

    def suggestable_categories(
        self,
        default_category: str = DEFAULT_CATEGORY,
        reserved: Sequence[str] = RESERVED_CATEGORIES,
    ) -> List[str]:
        reserved_names = {name.lower() for name in reserved}
        names = [name for name in self.ordering if name.lower() not in reserved_names]
        if default_category not in names:
            names.append(default_category)
        return names

    def all_items(self, category: Optional[str] = None) -> List[MediaItem]:
        """Flatten the corpus in category order, skipping repeated urls."""
        names = [category] if category else self.ordering
        items = [item for name in names for item in self.items_by_category.get(name, [])]
        return dedupe_by_url(items)


@dataclass(frozen=True)
class SelectedItem:
    """A curated item together with the reason it was picked."""

    item: MediaItem
    reason: str


@dataclass
class CurationResult:
    """Label plus an ordered, url-unique selection of items."""

    label: str
    items: List[SelectedItem] = field(default_factory=list)
    reasoning: str = ""
    used_fallback: bool = False

    def __post_init__(self):
        urls = [selected.item.url for selected in self.items]
        if len(urls) != len(set(urls)):
            raise ValueError("CurationResult items must have unique urls")

    @classmethod
    def empty(cls, label: str = "", reasoning: str = "No matching videos") -> "CurationResult":
        return cls(label=label, items=[], reasoning=reasoning)

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def total_duration_seconds(self) -> int:
        return sum(selected.item.duration_seconds for selected in self.items)

    def to_dict(self) -> dict:
        return {
            "label": self.label,
            "items": [
                {
                    "url": selected.item.url,
                    "title": selected.item.title,
                    "duration": selected.item.duration_seconds,
                    "reason": selected.reason,
                }
                for selected in self.items
            ],
            "reasoning": self.reasoning,
        }


@dataclass(frozen=True)
class Classification:
    """Outcome of single-item classification.

    ``category`` is always a member of the allowed set; ``matched_by`` is one
    of ``exact``, ``partial`` or ``default``.
    """

    category: str
    matched_by: str
    raw_label: str = ""


def dedupe_by_url(items: List[MediaItem]) -> List[MediaItem]:
    """Drop repeated urls, keeping each item's first occurrence."""
    seen = set()
    unique = []
    for item in items:
        if item.url in seen:
            continue
        seen.add(item.url)
        unique.append(item)
    return unique
