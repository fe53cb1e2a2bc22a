"""Single-item classification against an existing folder taxonomy."""

import logging
from typing import Optional, Sequence

from playlist_curator.models.media import (
    DEFAULT_CATEGORY,
    RESERVED_CATEGORIES,
    Classification,
    Corpus,
    MediaItem,
)
from playlist_curator.services.capability import (
    Availability,
    ClassifierCapability,
    InvokeOptions,
    PromptSpec,
)
from playlist_curator.services.prompt_compiler import build_classification_prompt
from playlist_curator.services.thumbnails import ThumbnailDescriber
from playlist_curator.utils.errors import ValidationError

logger = logging.getLogger(__name__)

_QUOTES = "\"'`“”‘’"


def clean_label(raw: str) -> str:
    """Trim, lowercase and drop quote characters from a raw label."""
    cleaned = raw.strip().lower()
    for quote in _QUOTES:
        cleaned = cleaned.replace(quote, "")
    return cleaned.strip()


def match_category(raw: str, allowed: Sequence[str]) -> Classification:
    """Map a raw label onto the allowed set.

    Raises:
        ValidationError: if the label matches no allowed category
    """
    label = clean_label(raw or "")
    if not label:
        raise ValidationError("Empty label")

    for name in allowed:
        if name.lower() == label:
            return Classification(category=name, matched_by="exact", raw_label=raw)

    for name in allowed:
        lowered = name.lower()
        if label in lowered or lowered in label:
            return Classification(category=name, matched_by="partial", raw_label=raw)

    raise ValidationError(f"Label {raw!r} is not an allowed category")


def resolve_label(
    raw: Optional[str],
    allowed: Sequence[str],
    default_category: str = DEFAULT_CATEGORY,
) -> Classification:
    """Like ``match_category`` but falls back to ``default_category``."""
    try:
        return match_category(raw or "", allowed)
    except ValidationError as e:
        logger.info(f"Using default category {default_category}: {e}")
        return Classification(category=default_category, matched_by="default", raw_label=raw or "")


class SingleItemClassifier:
    """Suggests the best folder for one video."""

    def __init__(
        self,
        port: ClassifierCapability,
        timeout_ms: int = 15000,
        options: Optional[InvokeOptions] = None,
        default_category: str = DEFAULT_CATEGORY,
        reserved: Sequence[str] = RESERVED_CATEGORIES,
        thumbnail_describer: Optional[ThumbnailDescriber] = None,
    ):
        self.port = port
        self.timeout_ms = timeout_ms
        self.options = options or InvokeOptions(temperature=0.3, top_k=3)
        self.default_category = default_category
        self.reserved = tuple(reserved)
        self.thumbnail_describer = thumbnail_describer

    def classify(self, item: MediaItem, corpus: Corpus) -> Classification:
        """Classify ``item`` into one of the corpus's suggestable categories.

        Never raises for classifier problems; every failure resolves to the
        default category. The call is not retried.
        """
        allowed = corpus.suggestable_categories(self.default_category, self.reserved)

        if not item.title:
            return resolve_label(None, allowed, self.default_category)

        if self.port.availability() != Availability.AVAILABLE:
            logger.info("Classifier unavailable, using default category")
            return resolve_label(None, allowed, self.default_category)

        thumbnail_description = None
        if item.thumbnail_ref and self.thumbnail_describer is not None:
            thumbnail_description = self.thumbnail_describer.describe(item.thumbnail_ref)

        prompt = build_classification_prompt(
            title=item.title,
            categories=corpus.categories(),
            allowed=allowed,
            channel_name=item.channel_name,
            duration_seconds=item.duration_seconds,
            thumbnail_description=thumbnail_description,
            default_category=self.default_category,
            reserved=self.reserved,
        )
        logger.debug(f"Classification prompt:\n{prompt}")

        try:
            raw = self.port.invoke(PromptSpec(prompt), self.timeout_ms, self.options)
        except Exception as e:
            logger.warning(f"Classification of '{item.title}' failed: {e}")
            return resolve_label(None, allowed, self.default_category)

        classification = resolve_label(raw, allowed, self.default_category)
        logger.info(
            f"Classified '{item.title}' as {classification.category} ({classification.matched_by})"
        )
        return classification
