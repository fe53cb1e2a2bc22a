import asyncio
import json
import threading
import time

import pytest

from playlist_curator.models.batch import BatchCompleted, BatchStatus
from playlist_curator.services import batch_orchestrator
from playlist_curator.services.batch_orchestrator import (
    DEFAULT_REASON,
    BatchOrchestrator,
    ParsedBatch,
    parse_curation_response,
    partition,
    publish_event,
)
from playlist_curator.utils.errors import CapabilityError, ResponseParseError

from conftest import FakeCapability, curation_reply, make_item, videos_in_prompt


def _drain(queue):
    events = []
    while not queue.empty():
        events.append(queue.get_nowait())
    return events


class TestParseCurationResponse:
    def setup_method(self):
        self.items = [make_item(n) for n in range(3)]

    def test_valid_reply(self):
        raw = curation_reply([2, 0], label="Trivia Night", reasons={"2": "Quiz show"})

        parsed = parse_curation_response(raw, self.items)

        assert isinstance(parsed, ParsedBatch)
        assert parsed.label == "Trivia Night"
        assert [entry.item for entry in parsed.selected] == [self.items[2], self.items[0]]
        assert parsed.selected[0].reason == "Quiz show"
        assert parsed.selected[1].reason == DEFAULT_REASON

    def test_code_fences_and_chatter(self):
        raw = "```json\nHere you go: " + curation_reply([1]) + "\n```"
        parsed = parse_curation_response(raw, self.items)
        assert [entry.item for entry in parsed.selected] == [self.items[1]]

    def test_bad_indices_are_dropped(self):
        raw = json.dumps(
            {"folderName": "X", "videoIndices": [5, -1, "1", True, 1.5, 1, "abc"]}
        )
        parsed = parse_curation_response(raw, self.items)
        assert [entry.item for entry in parsed.selected] == [self.items[1]]

    def test_superscript_digit_is_dropped(self):
        raw = json.dumps({"folderName": "X", "videoIndices": ["\u00b2", 2]})
        parsed = parse_curation_response(raw, self.items)
        assert [entry.item for entry in parsed.selected] == [self.items[2]]

    def test_label_is_sanitized(self):
        raw = json.dumps({"folderName": 'Best: "Quiz" / Trivia?', "videoIndices": []})
        assert parse_curation_response(raw, self.items).label == "Best Quiz Trivia"

    @pytest.mark.parametrize(
        "raw",
        [
            "no json here",
            "{not valid json}",
            json.dumps({"videoIndices": [0]}),
            json.dumps({"folderName": "  ", "videoIndices": [0]}),
            json.dumps({"folderName": "X", "videoIndices": "0"}),
            "",
        ],
    )
    def test_malformed_replies(self, raw):
        parsed = parse_curation_response(raw, self.items)
        assert isinstance(parsed, ResponseParseError)
        assert parsed.raw_response == raw


class TestPartition:
    def test_twenty_five_items(self):
        items = [make_item(n) for n in range(25)]

        jobs = partition(items, 10)

        assert [len(job.items) for job in jobs] == [10, 10, 5]
        assert [job.index for job in jobs] == [0, 1, 2]
        assert [item for job in jobs for item in job.items] == items

    def test_empty(self):
        assert partition([], 10) == []

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            partition([make_item(1)], 0)


class TestBatchOrchestrator:
    @pytest.mark.asyncio
    async def test_batches_run_concurrently(self):
        barrier = threading.Barrier(3, timeout=5)

        def handler(prompt_text):
            # Only passes if all three batches are in flight together
            barrier.wait()
            return curation_reply([0])

        port = FakeCapability(handler=handler)
        orchestrator = BatchOrchestrator(port, batch_size=10)
        items = [make_item(n) for n in range(25)]

        jobs = await orchestrator.run("anything", items)

        assert [job.status for job in jobs] == [BatchStatus.DONE] * 3
        assert [job.selected[0].item for job in jobs] == [items[0], items[10], items[20]]

    @pytest.mark.asyncio
    async def test_failed_batch_does_not_affect_siblings(self):
        def handler(prompt_text):
            titles = [video["title"] for video in videos_in_prompt(prompt_text)]
            if "Boom" in titles:
                raise CapabilityError("model exploded")
            if "Garbage" in titles:
                return "I refuse to answer in JSON"
            return curation_reply([0, 1])

        items = [make_item(1), make_item(2), make_item(3, "Boom"), make_item(4)]
        items += [make_item(5, "Garbage"), make_item(6), make_item(7), make_item(8)]
        orchestrator = BatchOrchestrator(FakeCapability(handler=handler), batch_size=2)

        jobs = await orchestrator.run("topic", items)

        assert [job.status for job in jobs] == [
            BatchStatus.DONE,
            BatchStatus.FAILED,
            BatchStatus.FAILED,
            BatchStatus.DONE,
        ]
        assert jobs[1].selected == [] and "model exploded" in jobs[1].error_message
        assert jobs[2].selected == []
        assert [entry.item for entry in jobs[3].selected] == items[6:8]

    @pytest.mark.asyncio
    async def test_events_in_arrival_order_then_sentinel(self):
        def handler(prompt_text):
            if videos_in_prompt(prompt_text)[0]["title"] == "Slow":
                time.sleep(0.3)
            return curation_reply([0], label="Label")

        items = [make_item(1, "Slow"), make_item(2), make_item(3)]
        orchestrator = BatchOrchestrator(FakeCapability(handler=handler), batch_size=1)
        queue = asyncio.Queue()

        await orchestrator.run("topic", items, queue)
        events = _drain(queue)

        assert events[-1] is None
        completed = events[:-1]
        assert len(completed) == 3
        assert completed[-1].batch_index == 1
        assert {event.batch_index for event in completed} == {1, 2, 3}
        assert all(event.total_batches == 3 for event in completed)
        assert completed[-1].new_items[0].item == items[0]
        assert completed[-1].status == BatchStatus.DONE

    @pytest.mark.asyncio
    async def test_failed_batch_emits_failed_event(self):
        port = FakeCapability(responses=[CapabilityError("down")])
        orchestrator = BatchOrchestrator(port, batch_size=10)
        queue = asyncio.Queue()

        await orchestrator.run("topic", [make_item(1)], queue)
        event, sentinel = _drain(queue)

        assert event.status == BatchStatus.FAILED
        assert event.new_items == []
        assert sentinel is None

    @pytest.mark.asyncio
    async def test_slow_batch_times_out(self, monkeypatch):
        monkeypatch.setattr(batch_orchestrator, "TIMEOUT_GRACE_SECONDS", 0.0)

        def handler(prompt_text):
            if videos_in_prompt(prompt_text)[0]["title"] == "Slow":
                time.sleep(1.0)
            return curation_reply([0])

        items = [make_item(1, "Slow"), make_item(2)]
        orchestrator = BatchOrchestrator(FakeCapability(handler=handler), batch_size=1, timeout_ms=100)

        jobs = await orchestrator.run("topic", items)

        assert jobs[0].status == BatchStatus.FAILED
        assert "timed out" in jobs[0].error_message
        assert jobs[1].status == BatchStatus.DONE

    @pytest.mark.asyncio
    async def test_empty_corpus_closes_stream(self):
        port = FakeCapability()
        queue = asyncio.Queue()

        jobs = await BatchOrchestrator(port).run("topic", [], queue)

        assert jobs == []
        assert _drain(queue) == [None]
        assert port.prompts == []

    @pytest.mark.asyncio
    async def test_options_and_timeout_are_forwarded(self):
        port = FakeCapability(responses=[curation_reply([])])
        orchestrator = BatchOrchestrator(port, timeout_ms=4321)

        await orchestrator.run("topic", [make_item(1)])

        assert port.timeouts == [4321]
        assert port.options[0].temperature == 0.4
        assert port.options[0].top_k == 1


def _event(index):
    return BatchCompleted(
        batch_index=index, total_batches=3, new_items=[], label=None, status=BatchStatus.DONE
    )


class TestPublishEvent:
    def test_full_queue_drops_progress(self):
        queue = asyncio.Queue(maxsize=1)
        publish_event(queue, _event(1))
        publish_event(queue, _event(2))
        assert [event.batch_index for event in _drain(queue)] == [1]

    def test_end_marker_evicts_oldest_event(self):
        queue = asyncio.Queue(maxsize=2)
        publish_event(queue, _event(1))
        publish_event(queue, _event(2))
        publish_event(queue, None)

        events = _drain(queue)
        assert events[0].batch_index == 2
        assert events[1] is None

    def test_no_queue(self):
        publish_event(None, _event(1))

    @pytest.mark.asyncio
    async def test_bounded_queue_does_not_abort_run(self):
        port = FakeCapability(handler=lambda prompt_text: curation_reply([0]))
        orchestrator = BatchOrchestrator(port, batch_size=10)
        queue = asyncio.Queue(maxsize=1)

        jobs = await orchestrator.run("topic", [make_item(n) for n in range(25)], queue)

        assert [job.status for job in jobs] == [BatchStatus.DONE] * 3
        assert _drain(queue) == [None]
