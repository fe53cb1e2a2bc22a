"""Compression of a free-text objective into a short search topic."""

import logging
from typing import Optional

from playlist_curator.services.capability import (
    Availability,
    ClassifierCapability,
    InvokeOptions,
    PromptSpec,
)
from playlist_curator.services.prompt_compiler import build_normalization_prompt

logger = logging.getLogger(__name__)

_QUOTES = "\"'`“”‘’"


def clean_topic(raw: str) -> str:
    """Keep the first non-empty line of a reply and strip surrounding quotes."""
    for line in raw.splitlines():
        line = line.strip().strip(_QUOTES).strip()
        if line:
            return line
    return ""


def normalize_topic(
    port: ClassifierCapability,
    objective: str,
    timeout_ms: int = 15000,
    options: Optional[InvokeOptions] = None,
) -> str:
    """Turn ``objective`` into a 2-5 word topic, or return it unchanged.

    Any classifier failure or an empty reply yields the raw objective.
    """
    fallback = " ".join(objective.split()) or objective

    if port.availability() != Availability.AVAILABLE:
        logger.info("Classifier unavailable, using objective as topic")
        return fallback

    try:
        reply = port.invoke(PromptSpec(build_normalization_prompt(objective)), timeout_ms, options)
    except Exception as e:
        logger.warning(f"Topic normalization failed, using original objective: {e}")
        return fallback

    topic = clean_topic(reply)
    if not topic:
        logger.warning("Topic normalization returned nothing, using original objective")
        return fallback

    logger.info(f"Normalized objective '{objective}' to topic '{topic}'")
    return topic
