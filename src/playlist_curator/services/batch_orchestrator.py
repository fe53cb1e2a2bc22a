"""Concurrent dispatch of corpus batches to the classifier."""

import asyncio
import json
import logging
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple, Union

from playlist_curator.models.batch import BatchCompleted, BatchJob, BatchStatus
from playlist_curator.models.media import MediaItem, SelectedItem, sanitize_category_name
from playlist_curator.services.capability import (
    ClassifierCapability,
    InvokeOptions,
    PromptSpec,
    strip_markdown_code_blocks,
)
from playlist_curator.services.prompt_compiler import build_curation_prompt
from playlist_curator.utils.errors import CapabilityTimeout, ResponseParseError

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10
DEFAULT_REASON = "Matches search criteria"
# Extra wall-clock allowance on top of the per-call timeout handed to the port
TIMEOUT_GRACE_SECONDS = 5.0

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


@dataclass(frozen=True)
class ParsedBatch:
    """A curation reply that passed validation."""

    label: str
    selected: List[SelectedItem]
    reasoning: str


BatchReply = Union[ParsedBatch, ResponseParseError]


def _as_index(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdecimal():
        return int(value.strip())
    return None


def parse_curation_response(raw: str, items: Sequence[MediaItem]) -> BatchReply:
    """Validate a curation reply and map its indices back onto ``items``.

    Returns a ``ResponseParseError`` value instead of raising, so callers
    branch on the outcome right where the reply arrives. Out-of-range or
    non-integer indices are dropped without error.
    """
    text = strip_markdown_code_blocks(raw or "")
    match = _JSON_OBJECT.search(text)
    if not match:
        return ResponseParseError("No JSON object found in response", raw)

    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        return ResponseParseError(f"Invalid JSON in response: {e}", raw)

    if not isinstance(data, dict):
        return ResponseParseError("Response is not a JSON object", raw)

    label = data.get("folderName")
    indices = data.get("videoIndices")
    if not isinstance(label, str) or not label.strip():
        return ResponseParseError("Response is missing folderName", raw)
    if not isinstance(indices, list):
        return ResponseParseError("Response videoIndices is not a list", raw)

    reasons = data.get("videoReasons")
    if not isinstance(reasons, dict):
        reasons = {}

    selected = []
    seen = set()
    for value in indices:
        index = _as_index(value)
        if index is None or not 0 <= index < len(items) or index in seen:
            continue
        seen.add(index)
        reason = reasons.get(str(index)) or reasons.get(index)
        if not isinstance(reason, str) or not reason.strip():
            reason = DEFAULT_REASON
        selected.append(SelectedItem(item=items[index], reason=reason.strip()))

    reasoning = data.get("reasoning")
    return ParsedBatch(
        label=sanitize_category_name(label),
        selected=selected,
        reasoning=reasoning if isinstance(reasoning, str) else "",
    )


def publish_event(
    events: Optional["asyncio.Queue[Optional[BatchCompleted]]"],
    event: Optional[BatchCompleted],
) -> None:
    """Put an event on the queue without ever blocking or raising.

    A full queue drops progress events. The closing ``None`` evicts the
    oldest queued event instead, so consumers always see the end of the stream.
    """
    if events is None:
        return
    try:
        events.put_nowait(event)
        return
    except asyncio.QueueFull:
        if event is not None:
            logger.debug(f"Event queue full, dropping progress for batch {event.batch_index}")
            return

    logger.debug("Event queue full, evicting the oldest event for the end-of-stream marker")
    events.get_nowait()
    events.put_nowait(None)


def partition(items: Sequence[MediaItem], batch_size: int = DEFAULT_BATCH_SIZE) -> List[BatchJob]:
    """Split ``items`` into contiguous, order-preserving batches."""
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")
    return [
        BatchJob(index=number, items=list(items[start:start + batch_size]))
        for number, start in enumerate(range(0, len(items), batch_size))
    ]


class BatchOrchestrator:
    """Fans a corpus out to the classifier in parallel batches and gathers the replies."""

    def __init__(
        self,
        port: ClassifierCapability,
        batch_size: int = DEFAULT_BATCH_SIZE,
        timeout_ms: int = 60000,
        options: Optional[InvokeOptions] = None,
    ):
        self.port = port
        self.batch_size = batch_size
        self.timeout_ms = timeout_ms
        self.options = options or InvokeOptions(temperature=0.4, top_k=1)

    def classify_batch(self, topic: str, job: BatchJob) -> BatchReply:
        """Run one batch through the classifier; blocking, meant for a worker thread."""
        prompt = build_curation_prompt(topic, job.items)
        logger.debug(f"Batch {job.index + 1} prompt:\n{prompt}")

        raw = self.port.invoke(PromptSpec(prompt), self.timeout_ms, self.options)
        logger.debug(f"Batch {job.index + 1} raw response: {raw}")

        return parse_curation_response(raw, job.items)

    async def _dispatch(
        self, executor: ThreadPoolExecutor, topic: str, job: BatchJob
    ) -> Tuple[BatchJob, Union[BatchReply, Exception]]:
        loop = asyncio.get_running_loop()
        try:
            reply = await asyncio.wait_for(
                loop.run_in_executor(executor, self.classify_batch, topic, job),
                timeout=self.timeout_ms / 1000 + TIMEOUT_GRACE_SECONDS,
            )
        except asyncio.TimeoutError:
            return job, CapabilityTimeout(f"Batch timed out after {self.timeout_ms}ms")
        except Exception as e:
            return job, e
        return job, reply

    async def run(
        self,
        topic: str,
        items: Sequence[MediaItem],
        events: Optional["asyncio.Queue[Optional[BatchCompleted]]"] = None,
    ) -> List[BatchJob]:
        """Classify every batch concurrently.

        Failed batches end up FAILED with no selection and never affect their
        siblings. When ``events`` is given, a ``BatchCompleted`` is put on it
        as each batch settles (arrival order), followed by ``None``.

        Returns:
            All batch jobs in submission order
        """
        jobs = partition(items, self.batch_size)
        if not jobs:
            publish_event(events, None)
            return jobs

        logger.info(
            f"Dispatching {len(items)} videos in {len(jobs)} batches of up to {self.batch_size}"
        )

        # In-flight calls of an abandoned run are left to finish on their own
        executor = ThreadPoolExecutor(max_workers=len(jobs), thread_name_prefix="curator-batch")
        try:
            pending = [self._dispatch(executor, topic, job) for job in jobs]
            for settled in asyncio.as_completed(pending):
                job, outcome = await settled
                self._record(job, outcome)
                publish_event(
                    events,
                    BatchCompleted(
                        batch_index=job.index + 1,
                        total_batches=len(jobs),
                        new_items=list(job.selected),
                        label=job.label,
                        status=job.status,
                    ),
                )
        finally:
            executor.shutdown(wait=False)

        publish_event(events, None)

        succeeded = sum(1 for job in jobs if job.status == BatchStatus.DONE)
        logger.info(f"{succeeded}/{len(jobs)} batches completed")
        return jobs

    def _record(self, job: BatchJob, outcome: Union[BatchReply, Exception]) -> None:
        batch_name = f"Batch {job.index + 1}"

        if isinstance(outcome, ParsedBatch):
            job.mark_done(outcome.selected, outcome.label, outcome.reasoning)
            logger.info(f"{batch_name} selected {len(outcome.selected)} videos")
            return

        if isinstance(outcome, ResponseParseError):
            logger.warning(f"{batch_name} returned an unusable response: {outcome}")
            logger.debug(f"{batch_name} raw response: {outcome.raw_response}")
        else:
            logger.warning(f"{batch_name} failed: {outcome}")
        job.mark_failed(str(outcome))
