"""Classifier capability port and its Google GenAI adapter."""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol, runtime_checkable

import httpx
from google.genai import Client
from google.genai import errors as genai_errors
from google.genai import types

from playlist_curator.utils.errors import (
    CapabilityError,
    CapabilityTimeout,
    CapabilityUnavailable,
)

logger = logging.getLogger(__name__)


class Availability(Enum):
    """Readiness of the external generative classifier."""
    UNAVAILABLE = "unavailable"
    DOWNLOADABLE = "downloadable"
    DOWNLOADING = "downloading"
    AVAILABLE = "available"


@dataclass(frozen=True)
class ImageRef:
    """Raw image bytes attached to a prompt."""

    data: bytes
    mime_type: str = "image/jpeg"


@dataclass(frozen=True)
class PromptSpec:
    """Prompt text plus at most one image."""

    text: str
    image: Optional[ImageRef] = None

    @property
    def has_image(self) -> bool:
        return self.image is not None


@dataclass(frozen=True)
class InvokeOptions:
    """Sampling options forwarded to the model."""

    temperature: float = 0.4
    top_k: int = 1


@runtime_checkable
class ClassifierCapability(Protocol):
    """Port for the external generative classifier.

    Every ``invoke`` is an independent, stateless request; implementations
    must not carry conversation state from one call to the next.
    """

    supports_images: bool

    def availability(self) -> Availability:
        """Report whether the capability can currently be invoked."""
        ...

    def invoke(
        self,
        prompt: PromptSpec,
        timeout_ms: int,
        options: Optional[InvokeOptions] = None,
    ) -> str:
        """Run one prompt and return the raw reply text.

        Raises:
            CapabilityTimeout: the call exceeded ``timeout_ms``
            CapabilityError: any other failure
        """
        ...


def strip_markdown_code_blocks(text: str) -> str:
    """Strip markdown code blocks from AI response text.

    Args:
        text: Raw text that may contain markdown code blocks

    Returns:
        Cleaned text with markdown code blocks removed
    """
    text = text.strip()
    if text.startswith('```json'):
        text = text[7:]
    elif text.startswith('```'):
        text = text[3:]
    if text.endswith('```'):
        text = text[:-3]
    return text.strip()


class GeminiCapability:
    """Classifier capability backed by a Gemini model via Google GenAI."""

    supports_images = True

    def __init__(self, api_key: Optional[str], model_name: str = "gemini-2.0-flash-001"):
        """Initialize Google GenAI client.

        Args:
            api_key: Google GenAI API key; without one the capability is unavailable
            model_name: Gemini model to use
        """
        self.model_name = model_name
        self.client = Client(api_key=api_key) if api_key else None
        self._availability: Optional[Availability] = None

        logger.info(f"Initialized Gemini capability with model: {model_name}")

    def availability(self) -> Availability:
        if self._availability is None:
            self._availability = self._check_availability()
        return self._availability

    def recheck(self) -> Availability:
        """Drop the cached availability and probe again."""
        self._availability = None
        return self.availability()

    def _check_availability(self) -> Availability:
        if self.client is None:
            logger.info("No Gemini API key configured, classifier unavailable")
            return Availability.UNAVAILABLE

        try:
            self.client.models.get(model=self.model_name)
        except Exception as e:
            logger.warning(f"Gemini model {self.model_name} is not reachable: {e}")
            return Availability.UNAVAILABLE

        return Availability.AVAILABLE

    def invoke(
        self,
        prompt: PromptSpec,
        timeout_ms: int,
        options: Optional[InvokeOptions] = None,
    ) -> str:
        if self.client is None:
            raise CapabilityUnavailable("Gemini client is not configured")

        options = options or InvokeOptions()
        contents: list = [prompt.text]
        if prompt.image is not None:
            contents.append(
                types.Part.from_bytes(data=prompt.image.data, mime_type=prompt.image.mime_type)
            )

        try:
            response = self.client.models.generate_content(
                model=self.model_name,
                contents=contents,
                config=types.GenerateContentConfig(
                    temperature=options.temperature,
                    top_k=options.top_k,
                    http_options=types.HttpOptions(timeout=timeout_ms),
                )
            )
        except httpx.TimeoutException as e:
            raise CapabilityTimeout(f"Gemini call timed out after {timeout_ms}ms") from e
        except genai_errors.APIError as e:
            raise CapabilityError(f"Gemini API error {e.code}: {e.message}") from e
        except httpx.HTTPError as e:
            raise CapabilityError(f"Gemini transport error: {e}") from e

        if not response.text:
            raise CapabilityError("Gemini response is empty")

        return response.text.strip()


class UnavailableCapability:
    """A capability that is never available, used for offline runs."""

    supports_images = False

    def availability(self) -> Availability:
        return Availability.UNAVAILABLE

    def invoke(
        self,
        prompt: PromptSpec,
        timeout_ms: int,
        options: Optional[InvokeOptions] = None,
    ) -> str:
        raise CapabilityUnavailable("Classifier capability is unavailable")


def ensure_prompt_supported(port: ClassifierCapability, prompt: PromptSpec) -> None:
    """Reject image prompts for ports that only accept text."""
    if prompt.has_image and not getattr(port, "supports_images", False):
        raise CapabilityError("Classifier capability does not accept image input")


def wait_for_availability(
    port: ClassifierCapability,
    max_wait: float = 300.0,
    poll_interval: float = 5.0,
) -> bool:
    """Wait while the capability is still downloading.

    Returns:
        True once the port is available, False if it settles into any other
        state or ``max_wait`` seconds pass.
    """
    start_time = time.monotonic()

    while time.monotonic() - start_time < max_wait:
        recheck = getattr(port, "recheck", None)
        state = recheck() if recheck else port.availability()

        if state == Availability.AVAILABLE:
            return True
        if state != Availability.DOWNLOADING:
            return False

        logger.info(f"Classifier still downloading, checking again in {poll_interval:.0f}s")
        time.sleep(poll_interval)

    return False


def probe(port: ClassifierCapability, timeout_ms: int = 15000) -> bool:
    """Smoke-test the capability with a trivial question."""
    if port.availability() != Availability.AVAILABLE:
        return False

    try:
        reply = port.invoke(
            PromptSpec("What is 2+2? Respond with just the number."), timeout_ms
        )
    except (CapabilityTimeout, CapabilityError) as e:
        logger.warning(f"Classifier probe failed: {e}")
        return False

    return "4" in reply
