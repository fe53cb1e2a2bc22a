"""Central engine wiring classification and curation together."""

import asyncio
import logging
import time
from typing import Dict, List, Optional

from playlist_curator.models.batch import BatchCompleted, RunState
from playlist_curator.models.constraints import Objective
from playlist_curator.models.media import (
    Classification,
    Corpus,
    CurationResult,
    MediaItem,
    dedupe_by_url,
)
from playlist_curator.services.aggregator import aggregate_batches
from playlist_curator.services.batch_orchestrator import BatchOrchestrator, publish_event
from playlist_curator.services.capability import (
    Availability,
    ClassifierCapability,
    GeminiCapability,
    InvokeOptions,
    wait_for_availability,
)
from playlist_curator.services.constraint_applier import apply_constraint_to_result
from playlist_curator.services.duration_parser import parse_duration_constraint
from playlist_curator.services.fallback_scorer import fallback_curate
from playlist_curator.services.item_classifier import SingleItemClassifier
from playlist_curator.services.thumbnails import ThumbnailDescriber
from playlist_curator.services.topic_normalizer import normalize_topic
from playlist_curator.utils.config import load_config, validate_config

logger = logging.getLogger(__name__)

EventQueue = "asyncio.Queue[Optional[BatchCompleted]]"


class CurationEngine:
    """Curates playlists from an objective and classifies single videos."""

    def __init__(self, config: Optional[Dict] = None, port: Optional[ClassifierCapability] = None):
        """Initialize the engine with configuration and a classifier capability.

        The capability is created from config only when none is injected.
        """
        self.config = config or load_config()
        self.last_state = RunState.IDLE

        config_errors = validate_config(self.config)
        if config_errors:
            error_msg = "Configuration errors: " + "; ".join(config_errors)
            logger.error(error_msg)
            raise ValueError(error_msg)

        if port is None:
            port = GeminiCapability(
                self.config.get("gemini_api_key"),
                self.config.get("gemini_model", "gemini-2.0-flash-001"),
            )
        self.port = port

        self.normalize_timeout_ms = self.config.get("normalize_timeout_ms", 15000)
        self.availability_wait_seconds = self.config.get("availability_wait_seconds", 60.0)
        self.availability_poll_seconds = self.config.get("availability_poll_seconds", 5.0)
        self.classify_timeout_ms = self.config.get("classify_timeout_ms", 15000)
        self.curation_options = InvokeOptions(
            temperature=self.config.get("curation_temperature", 0.4),
            top_k=self.config.get("curation_top_k", 1),
        )
        classify_options = InvokeOptions(
            temperature=self.config.get("classify_temperature", 0.3),
            top_k=self.config.get("classify_top_k", 3),
        )

        self.orchestrator = BatchOrchestrator(
            self.port,
            batch_size=self.config.get("batch_size", 10),
            timeout_ms=self.config.get("batch_timeout_ms", 60000),
            options=self.curation_options,
        )

        describer = None
        if getattr(self.port, "supports_images", False):
            describer = ThumbnailDescriber(self.port, self.classify_timeout_ms, classify_options)

        self.classifier = SingleItemClassifier(
            self.port,
            timeout_ms=self.classify_timeout_ms,
            options=classify_options,
            default_category=self.config.get("default_category", "recently_added"),
            reserved=self.config.get("reserved_categories", ("done", "trash")),
            thumbnail_describer=describer,
        )

        logger.info("Curation engine initialized")

    def _transition(self, state: RunState) -> None:
        logger.debug(f"Curation run: {self.last_state.value} -> {state.value}")
        self.last_state = state

    async def curate(
        self,
        objective: str,
        items: List[MediaItem],
        events: Optional[EventQueue] = None,
    ) -> CurationResult:
        """Curate a playlist for ``objective`` from ``items``.

        Never raises for classifier problems: an unavailable classifier or a
        run where no batch selected anything is answered by the keyword
        fallback. An empty corpus gives an empty result.
        """
        start_time = time.time()
        self._transition(RunState.IDLE)

        items = dedupe_by_url(items)
        request = Objective(raw=objective, constraint=parse_duration_constraint(objective))

        if not items:
            logger.info("No videos to curate")
            self._close_events(events)
            self._transition(RunState.DONE)
            return CurationResult.empty(reasoning="No videos to curate")

        if not await self._ensure_available():
            logger.info("Classifier unavailable, using keyword fallback")
            result = self._fallback(request, items)
            self._close_events(events)
            return result

        self._transition(RunState.TOPIC_NORMALIZING)
        loop = asyncio.get_running_loop()
        request.topic = await loop.run_in_executor(
            None,
            normalize_topic,
            self.port,
            request.raw,
            self.normalize_timeout_ms,
            self.curation_options,
        )
        logger.info(f"Using topic: '{request.search_topic}'")

        self._transition(RunState.BATCH_DISPATCH)
        jobs = await self.orchestrator.run(request.search_topic, items, events)

        self._transition(RunState.AGGREGATING)
        combined = aggregate_batches(jobs)

        if combined.is_empty:
            logger.info("Classifier selected nothing, using keyword fallback")
            return self._fallback(request, items)

        self._transition(RunState.CONSTRAINT_FILTERING)
        result = apply_constraint_to_result(combined, request.constraint)

        self._transition(RunState.DONE)
        logger.info(
            f"Curated '{result.label}' with {len(result.items)} videos "
            f"in {self._format_processing_time(time.time() - start_time)}"
        )
        return result

    async def _ensure_available(self) -> bool:
        """Check the classifier, waiting out a model download if one is running."""
        state = self.port.availability()
        if state != Availability.DOWNLOADING or self.availability_wait_seconds <= 0:
            return state == Availability.AVAILABLE

        logger.info(
            f"Classifier model is downloading, waiting up to {self.availability_wait_seconds:.0f}s"
        )
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            wait_for_availability,
            self.port,
            self.availability_wait_seconds,
            self.availability_poll_seconds,
        )

    def _fallback(self, request: Objective, items: List[MediaItem]) -> CurationResult:
        self._transition(RunState.FALLBACK_SCORING)
        result = fallback_curate(request.raw, items)
        self._transition(RunState.DONE)
        return result

    def _close_events(self, events: Optional[EventQueue]) -> None:
        # Runs that skip batch dispatch still close the event stream
        publish_event(events, None)

    def classify(self, item: MediaItem, corpus: Corpus) -> Classification:
        """Suggest the best existing category for a single video."""
        return self.classifier.classify(item, corpus)

    def _format_processing_time(self, seconds: float) -> str:
        """Format processing time in human-readable format."""
        if seconds < 60:
            return f"{seconds:.1f} seconds"
        elif seconds < 3600:
            return f"{seconds/60:.1f} minutes"
        else:
            return f"{seconds/3600:.1f} hours"
