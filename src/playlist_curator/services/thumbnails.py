"""Thumbnail download and description for single-item classification."""

import logging
from typing import Optional

import httpx

from playlist_curator.services.capability import (
    ClassifierCapability,
    ImageRef,
    InvokeOptions,
    PromptSpec,
    ensure_prompt_supported,
)
from playlist_curator.services.prompt_compiler import NO_DESCRIPTION, build_thumbnail_prompt
from playlist_curator.utils.retry import NetworkError, TemporaryServiceError, retry_fetch

logger = logging.getLogger(__name__)


@retry_fetch(max_retries=2, base_delay=0.5)
def fetch_thumbnail(url: str, timeout: float = 10.0) -> ImageRef:
    """Download a thumbnail image.

    Raises:
        NetworkError: on transport failures (retried)
        TemporaryServiceError: on 5xx responses (retried)
        ValueError: on other bad responses or an empty body
    """
    try:
        response = httpx.get(url, timeout=timeout, follow_redirects=True)
    except httpx.TransportError as e:
        raise NetworkError(f"Network error fetching thumbnail: {e}")

    if response.status_code >= 500:
        raise TemporaryServiceError(f"Thumbnail host returned {response.status_code}")
    if response.status_code != 200:
        raise ValueError(f"Failed to fetch thumbnail: {response.status_code}")
    if not response.content:
        raise ValueError("Received empty thumbnail")

    mime_type = response.headers.get("content-type", "image/jpeg").split(";")[0].strip()
    return ImageRef(data=response.content, mime_type=mime_type or "image/jpeg")


class ThumbnailDescriber:
    """Asks an image-capable classifier to describe a video thumbnail."""

    def __init__(
        self,
        port: ClassifierCapability,
        timeout_ms: int = 15000,
        options: Optional[InvokeOptions] = None,
    ):
        self.port = port
        self.timeout_ms = timeout_ms
        self.options = options or InvokeOptions(temperature=0.3, top_k=3)

    def describe(self, thumbnail_url: str) -> str:
        """Return a 1-2 sentence description, or a placeholder on any failure."""
        try:
            image = fetch_thumbnail(thumbnail_url)
            prompt = PromptSpec(build_thumbnail_prompt(), image=image)
            ensure_prompt_supported(self.port, prompt)
            description = self.port.invoke(prompt, self.timeout_ms, self.options).strip()
        except Exception as e:
            logger.info(f"Could not describe thumbnail {thumbnail_url}: {e}")
            return NO_DESCRIPTION

        return description or NO_DESCRIPTION
