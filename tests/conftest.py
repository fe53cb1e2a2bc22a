"""Shared fixtures and test doubles."""

import json
import threading
from typing import Callable, List, Optional

import pytest

from playlist_curator.models.media import Corpus, MediaItem
from playlist_curator.services.capability import Availability, InvokeOptions, PromptSpec


class FakeCapability:
    """Test double for the classifier port.

    Replies come from ``handler(prompt_text)`` when given, otherwise from a
    scripted list; scripted exceptions are raised instead of returned.
    """

    def __init__(
        self,
        responses: Optional[list] = None,
        handler: Optional[Callable[[str], str]] = None,
        availability: Availability = Availability.AVAILABLE,
        supports_images: bool = False,
    ):
        self._responses = list(responses or [])
        self._handler = handler
        self._availability = availability
        self.supports_images = supports_images
        self.prompts: List[PromptSpec] = []
        self.timeouts: List[int] = []
        self.options: List[Optional[InvokeOptions]] = []
        self._lock = threading.Lock()

    def availability(self) -> Availability:
        return self._availability

    def invoke(self, prompt: PromptSpec, timeout_ms: int, options: Optional[InvokeOptions] = None) -> str:
        with self._lock:
            self.prompts.append(prompt)
            self.timeouts.append(timeout_ms)
            self.options.append(options)
            if self._handler is None:
                if not self._responses:
                    raise IndexError(f"FakeCapability exhausted after {len(self.prompts) - 1} calls")
                response = self._responses.pop(0)
            else:
                response = None

        if self._handler is not None:
            response = self._handler(prompt.text)
        if isinstance(response, Exception):
            raise response
        return response


def videos_in_prompt(prompt_text: str) -> List[dict]:
    """Pull the JSON video list back out of a curation prompt."""
    start = prompt_text.index("<<<\n") + len("<<<\n")
    end = prompt_text.index("\n>>>", start)
    return json.loads(prompt_text[start:end])


def is_curation_prompt(prompt_text: str) -> bool:
    return "PlaylistMatcher" in prompt_text


def curation_reply(indices: List[int], label: str = "Trivia", reasons: Optional[dict] = None) -> str:
    return json.dumps(
        {
            "folderName": label,
            "videoIndices": indices,
            "reasoning": f"Found {len(indices)} matching videos",
            "videoReasons": reasons or {str(index): "Matches the topic" for index in indices},
        }
    )


def keyword_handler(keyword: str, topic: str = "trivia", label: str = "Trivia") -> Callable[[str], str]:
    """Select every video whose title mentions ``keyword``."""

    def handler(prompt_text: str) -> str:
        if not is_curation_prompt(prompt_text):
            return topic
        videos = videos_in_prompt(prompt_text)
        indices = [video["index"] for video in videos if keyword in video["title"].lower()]
        return curation_reply(indices, label=label)

    return handler


def make_item(number: int, title: Optional[str] = None, duration: int = 300, **kwargs) -> MediaItem:
    return MediaItem(
        url=f"https://www.youtube.com/watch?v=video{number:03d}",
        title=title or f"Video {number}",
        duration_seconds=duration,
        **kwargs,
    )


@pytest.fixture
def trivia_items() -> List[MediaItem]:
    return [
        make_item(1, "Friday Night Trivia Quiz", 600, description="Ten questions"),
        make_item(2, "Cooking Pasta at Home", 700, description="Dinner recipes"),
        make_item(3, "History Trivia Challenge", 900, description="Quiz about history"),
        make_item(4, "Lo-fi Beats to Study", 3600, description="Music mix"),
        make_item(5, "Science Trivia Marathon", 1200, description="Hard questions"),
    ]


@pytest.fixture
def sample_corpus() -> Corpus:
    return Corpus(
        ordering=["Programming", "Music", "done", "trash"],
        items_by_category={
            "Programming": [
                make_item(10, "Python asyncio explained", 1500, description="Event loops"),
                make_item(11, "Rust ownership in 10 minutes", 600, description="Borrow checker"),
            ],
            "Music": [make_item(20, "Jazz piano live", 2400, description="Concert")],
            "done": [make_item(30, "Old watched video", 100)],
            "trash": [],
        },
    )
