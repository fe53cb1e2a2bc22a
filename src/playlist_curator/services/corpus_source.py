"""Loading a corpus from a queue document."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

from playlist_curator.models.media import Corpus, MediaItem

logger = logging.getLogger(__name__)


def corpus_from_document(document: Dict[str, Any]) -> Corpus:
    """Build a corpus from a queue document.

    The document is either ``{"queue": {...}, "foldersOrdering": [...]}`` or a
    bare ``{category: [items]}`` mapping. Items without a url are skipped.
    """
    queue = document.get("queue") if isinstance(document.get("queue"), dict) else document
    ordering = document.get("foldersOrdering")
    if not isinstance(ordering, list):
        ordering = list(queue.keys())

    # Categories missing from the ordering are appended in document order
    names: List[str] = [name for name in ordering if isinstance(name, str)]
    names += [name for name in queue.keys() if name not in names]

    items_by_category: Dict[str, List[MediaItem]] = {}
    skipped = 0
    for name in names:
        entries = queue.get(name)
        items = []
        if isinstance(entries, list):
            for entry in entries:
                if not isinstance(entry, dict):
                    skipped += 1
                    continue
                try:
                    items.append(MediaItem.from_dict(entry))
                except ValueError:
                    skipped += 1
        items_by_category[name] = items

    if skipped:
        logger.warning(f"Skipped {skipped} queue entries without a usable url")

    total = sum(len(items) for items in items_by_category.values())
    logger.info(f"Loaded corpus with {len(names)} categories and {total} videos")
    return Corpus(ordering=names, items_by_category=items_by_category)


def load_queue_document(path: Union[str, Path]) -> Corpus:
    """Read a queue document from a JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        document = json.load(f)

    if not isinstance(document, dict):
        raise ValueError(f"Queue document must be a JSON object: {path}")

    return corpus_from_document(document)
