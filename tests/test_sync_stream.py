# -*- coding: utf-8 -*-
"""
Synchronization stream tests

Drives SynchronizationStream with in-memory collaborators:
- Outcome accounting (data + error == pulled, exactly one close)
- Write-back on / off
- Failure routing per stage
- Fatal source errors and cancellation
- Bounded concurrency and ordered emission
- Async iteration and listener isolation
"""

import asyncio
import random
from typing import Any, Dict, List, Optional, Set

import pytest

from core.constants.exceptions import (
    ConfigurationException,
    IndexingException,
    PersistenceException,
    SourceException,
    SyncCancelledException,
    ValidationException,
)
from core.sync import (
    IndexSubmitter,
    OutcomeKind,
    PersistenceWriter,
    Record,
    RecordSource,
    SyncState,
    SynchronizationStream,
    Transformer,
)


# ============================================================
# Test collaborators
# ============================================================


class MockRecordSource(RecordSource):
    """Yields the given records, optionally failing after `fail_after` records"""

    def __init__(
        self,
        records: List[Dict[str, Any]],
        fail_after: Optional[int] = None,
        delay: float = 0.0,
    ):
        self.records = records
        self.fail_after = fail_after
        self.delay = delay
        self.pulled = 0
        self.closed = False

    def open(self):
        return self._iterate()

    async def _iterate(self):
        try:
            for record in self.records:
                if self.fail_after is not None and self.pulled >= self.fail_after:
                    raise RuntimeError("cursor killed")
                if self.delay:
                    await asyncio.sleep(self.delay)
                self.pulled += 1
                yield record
        finally:
            self.closed = True


class MockTitleTransformer(Transformer):
    """Requires a non-empty title, returns a plain dict document"""

    def transform(self, record: Record) -> Dict[str, Any]:
        title = record.get("title")
        if not title:
            raise ValidationException(
                "required value is missing", field="title"
            )
        return {"book_id": record["_id"], "title": title}


class MockIndexSubmitter(IndexSubmitter):
    """Keeps indexed documents in memory"""

    def __init__(
        self,
        fail_ids: Optional[Set[str]] = None,
        delays: Optional[Dict[str, float]] = None,
        block: Optional[asyncio.Event] = None,
    ):
        self.fail_ids = fail_ids or set()
        self.delays = delays or {}
        self.block = block
        self.index: Dict[str, Dict[str, Any]] = {}
        self.in_flight = 0
        self.max_in_flight = 0
        self.started = 0
        self.refreshed = 0

    async def submit(self, document: Any, record_id: Optional[str] = None) -> None:
        self.started += 1
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.block is not None:
                await self.block.wait()
            delay = self.delays.get(record_id, 0.0)
            await asyncio.sleep(delay)
            if record_id in self.fail_ids:
                raise IndexingException("mapping rejected", retryable=False, status_code=400)
            self.index[document["book_id"]] = document
        finally:
            self.in_flight -= 1

    async def refresh(self) -> None:
        self.refreshed += 1


class MockPersistenceWriter(PersistenceWriter):
    """Counts write-path invocations"""

    def __init__(self, fail_ids: Optional[Set[str]] = None):
        self.fail_ids = fail_ids or set()
        self.saved: List[str] = []

    async def persist(self, record: Record, document: Any) -> None:
        if record["_id"] in self.fail_ids:
            raise RuntimeError("write conflict")
        self.saved.append(record["_id"])


class EventRecorder:
    """Collects data / error / close events of one stream"""

    def __init__(self, stream: SynchronizationStream):
        self.data: List[Any] = []
        self.errors: List[Exception] = []
        self.closes: List[Any] = []
        stream.on("data", self.data.append)
        stream.on("error", self.errors.append)
        stream.on("close", self.closes.append)


def make_records(titles: List[Optional[str]]) -> List[Dict[str, Any]]:
    records = []
    for i, title in enumerate(titles):
        record: Dict[str, Any] = {"_id": f"book-{i}"}
        if title is not None:
            record["title"] = title
        records.append(record)
    return records


def make_stream(
    records: List[Dict[str, Any]],
    submitter: Optional[MockIndexSubmitter] = None,
    writer: Optional[MockPersistenceWriter] = None,
    source: Optional[MockRecordSource] = None,
    **config: Any,
) -> SynchronizationStream:
    return SynchronizationStream(
        source or MockRecordSource(records),
        MockTitleTransformer(),
        submitter or MockIndexSubmitter(),
        writer if writer is not None else MockPersistenceWriter(),
        config,
    )


# ============================================================
# Test classes
# ============================================================


class TestOutcomeAccounting:
    """Every pulled record yields exactly one outcome"""

    @pytest.mark.asyncio
    async def test_one_invalid_record_among_valid_ones(self, book_titles):
        """53 valid books and one without title: 53 data, 1 error, 53 saves"""
        assert len(book_titles) == 53
        writer = MockPersistenceWriter()
        submitter = MockIndexSubmitter()
        stream = make_stream(
            make_records(book_titles + [None]), submitter=submitter, writer=writer
        )
        events = EventRecorder(stream)

        summary = await stream.wait_closed()

        assert len(events.data) == 53
        assert len(events.errors) == 1
        assert len(events.closes) == 1
        assert len(writer.saved) == 53
        assert isinstance(events.errors[0], ValidationException)
        assert events.errors[0].record_id == "book-53"
        assert summary.pulled == 54
        assert summary.succeeded + summary.failed == summary.pulled
        assert summary.persisted == 53
        assert summary.completed
        assert summary.duration_seconds is not None and summary.duration_seconds >= 0
        assert stream.state is SyncState.CLOSED

        american = [d for d in submitter.index.values() if "American" in d["title"]]
        assert len(american) == 2

    @pytest.mark.asyncio
    async def test_no_save_skips_write_path(self, book_titles):
        """save_on_synchronize=False: every record indexed, nothing saved"""
        writer = MockPersistenceWriter()
        stream = make_stream(
            make_records(book_titles), writer=writer, save_on_synchronize=False
        )
        events = EventRecorder(stream)

        summary = await stream.wait_closed()

        assert len(events.data) == 53
        assert all(doc["book_id"] for doc in events.data)
        assert writer.saved == []
        assert summary.persisted == 0

    @pytest.mark.asyncio
    async def test_save_enabled_saves_once_per_success(self, book_titles):
        writer = MockPersistenceWriter()
        stream = make_stream(make_records(book_titles[:10]), writer=writer)
        events = EventRecorder(stream)

        await stream.wait_closed()

        assert len(writer.saved) == len(events.data) == 10

    @pytest.mark.asyncio
    async def test_empty_source_closes_immediately(self):
        stream = make_stream([])
        events = EventRecorder(stream)

        summary = await stream.wait_closed()

        assert events.data == []
        assert events.errors == []
        assert len(events.closes) == 1
        assert events.closes[0] is summary
        assert summary.pulled == 0

    @pytest.mark.asyncio
    async def test_all_invalid_records(self):
        stream = make_stream(make_records([None, "", None]))
        events = EventRecorder(stream)

        summary = await stream.wait_closed()

        assert events.data == []
        assert len(events.errors) == 3
        assert summary.succeeded == 0
        assert summary.failed == 3
        assert len(events.closes) == 1

    @pytest.mark.asyncio
    async def test_repeated_runs_give_same_split(self, book_titles):
        records = make_records(book_titles + [None])
        splits = []
        for _ in range(2):
            stream = make_stream(records, save_on_synchronize=False)
            summary = await stream.wait_closed()
            splits.append((summary.succeeded, summary.failed))

        assert splits[0] == splits[1] == (53, 1)


class TestFailureRouting:
    """Each stage failure becomes a Failure outcome and the run continues"""

    @pytest.mark.asyncio
    async def test_index_failure_is_not_persisted(self):
        writer = MockPersistenceWriter()
        submitter = MockIndexSubmitter(fail_ids={"book-1"})
        stream = make_stream(
            make_records(["Emma", "Dune", "Ulysses"]), submitter=submitter, writer=writer
        )
        events = EventRecorder(stream)

        summary = await stream.wait_closed()

        assert writer.saved == ["book-0", "book-2"]
        assert len(events.errors) == 1
        assert isinstance(events.errors[0], IndexingException)
        assert events.errors[0].record_id == "book-1"
        assert summary.succeeded == 2

    @pytest.mark.asyncio
    async def test_persistence_failure_is_a_failure_outcome(self):
        """The record is indexed, the save fails: reported as error, not data"""
        writer = MockPersistenceWriter(fail_ids={"book-0"})
        submitter = MockIndexSubmitter()
        stream = make_stream(
            make_records(["Emma", "Dune"]), submitter=submitter, writer=writer
        )
        events = EventRecorder(stream)

        summary = await stream.wait_closed()

        assert "book-0" in submitter.index
        assert len(events.errors) == 1
        error = events.errors[0]
        assert isinstance(error, PersistenceException)
        assert error.indexed is True
        assert error.record_id == "book-0"
        assert isinstance(error.original_exception, RuntimeError)
        assert summary.succeeded == 1
        assert summary.persisted == 1

    @pytest.mark.asyncio
    async def test_unexpected_transformer_error_is_wrapped(self):
        class ExplodingTransformer(Transformer):
            def transform(self, record):
                raise KeyError("title")

        stream = SynchronizationStream(
            MockRecordSource(make_records(["Emma"])),
            ExplodingTransformer(),
            MockIndexSubmitter(),
            config={"save_on_synchronize": False},
        )
        events = EventRecorder(stream)

        await stream.wait_closed()

        assert len(events.errors) == 1
        assert isinstance(events.errors[0], ValidationException)
        assert events.errors[0].record_id == "book-0"


class TestFatalErrors:
    """Source failures stop the run but still close it exactly once"""

    @pytest.mark.asyncio
    async def test_source_failure_closes_once(self):
        source = MockRecordSource(make_records(["Emma", "Dune", "Ulysses", "Lolita"]), fail_after=2)
        stream = make_stream([], source=source)
        events = EventRecorder(stream)

        summary = await stream.wait_closed()

        assert len(events.closes) == 1
        assert len(events.data) == 2
        assert isinstance(summary.fatal_error, SourceException)
        assert isinstance(summary.fatal_error.original_exception, RuntimeError)
        assert not summary.completed
        assert summary.pulled == summary.succeeded + summary.failed == 2
        assert source.closed

    @pytest.mark.asyncio
    async def test_pull_timeout_is_fatal(self):
        source = MockRecordSource(make_records(["Emma"]), delay=1.0)
        stream = make_stream([], source=source, pull_timeout=0.05)
        events = EventRecorder(stream)

        summary = await stream.wait_closed()

        assert isinstance(summary.fatal_error, SourceException)
        assert summary.pulled == 0
        assert len(events.closes) == 1


class TestCancellation:
    """cancel() stops pulling; close is still emitted once"""

    @pytest.mark.asyncio
    async def test_cancel_with_drain_finishes_in_flight_records(self):
        records = make_records([f"Book {i}" for i in range(100)])
        stream = make_stream(records, concurrency=2, save_on_synchronize=False)
        events = EventRecorder(stream)
        stream.on("data", lambda _doc: stream.cancel())

        summary = await stream.wait_closed()

        assert summary.cancelled
        assert summary.pulled < 100
        assert summary.succeeded + summary.failed == summary.pulled
        assert not any(isinstance(e, SyncCancelledException) for e in events.errors)
        assert len(events.closes) == 1

    @pytest.mark.asyncio
    async def test_cancel_without_drain_aborts_in_flight_records(self):
        block = asyncio.Event()
        submitter = MockIndexSubmitter(block=block)
        stream = make_stream(
            make_records(["Emma", "Dune", "Ulysses", "Lolita", "Beloved"]),
            submitter=submitter,
            concurrency=3,
            save_on_synchronize=False,
        )
        events = EventRecorder(stream)
        stream.start()

        while submitter.started < 3:
            await asyncio.sleep(0)
        stream.cancel(drain=False)
        summary = await stream.wait_closed()

        assert summary.pulled == 3
        assert summary.failed == 3
        assert all(isinstance(e, SyncCancelledException) for e in events.errors)
        assert submitter.index == {}
        assert len(events.closes) == 1

    @pytest.mark.asyncio
    async def test_cancel_after_close_is_ignored(self):
        stream = make_stream(make_records(["Emma"]))
        summary = await stream.wait_closed()

        stream.cancel()

        assert not summary.cancelled
        assert stream.state is SyncState.CLOSED


class TestConcurrency:
    """Bounded fan-out and emission order"""

    @pytest.mark.asyncio
    async def test_in_flight_never_exceeds_concurrency(self):
        rng = random.Random(7)
        records = make_records([f"Book {i}" for i in range(30)])
        delays = {r["_id"]: rng.uniform(0, 0.01) for r in records}
        submitter = MockIndexSubmitter(delays=delays)
        stream = make_stream(records, submitter=submitter, concurrency=4)

        summary = await stream.wait_closed()

        assert summary.succeeded == 30
        assert 1 < submitter.max_in_flight <= 4
        assert summary.peak_in_flight <= 4

    @pytest.mark.asyncio
    async def test_outcomes_follow_cursor_order(self):
        """Later records finish first, but data is emitted in pull order"""
        records = make_records([f"Book {i}" for i in range(8)])
        delays = {r["_id"]: 0.005 * (8 - i) for i, r in enumerate(records)}
        stream = make_stream(
            records, submitter=MockIndexSubmitter(delays=delays), concurrency=4
        )
        events = EventRecorder(stream)

        await stream.wait_closed()

        assert [d["book_id"] for d in events.data] == [r["_id"] for r in records]

    @pytest.mark.asyncio
    async def test_unordered_mode_emits_every_record(self):
        records = make_records([f"Book {i}" for i in range(8)])
        delays = {r["_id"]: 0.005 * (8 - i) for i, r in enumerate(records)}
        stream = make_stream(
            records,
            submitter=MockIndexSubmitter(delays=delays),
            concurrency=4,
            preserve_order=False,
        )
        events = EventRecorder(stream)

        await stream.wait_closed()

        emitted = [d["book_id"] for d in events.data]
        assert sorted(emitted) == sorted(r["_id"] for r in records)
        assert emitted != [r["_id"] for r in records]


class TestStreamInterface:
    """Listener registration, iteration and configuration checks"""

    @pytest.mark.asyncio
    async def test_async_iteration_yields_tagged_outcomes(self):
        stream = make_stream(make_records(["Emma", None, "Dune"]))

        outcomes = [outcome async for outcome in stream]

        assert [o.kind for o in outcomes] == [
            OutcomeKind.SUCCESS,
            OutcomeKind.FAILURE,
            OutcomeKind.SUCCESS,
        ]
        assert outcomes[1].record_id == "book-1"
        assert isinstance(outcomes[1].error, ValidationException)
        assert stream.state is SyncState.CLOSED

    @pytest.mark.asyncio
    async def test_async_iteration_raises_fatal_error_after_drain(self):
        source = MockRecordSource(make_records(["Emma", "Dune", "Ulysses"]), fail_after=1)
        stream = make_stream([], source=source)
        received = []

        with pytest.raises(SourceException):
            async for outcome in stream:
                received.append(outcome)

        assert len(received) == 1

    @pytest.mark.asyncio
    async def test_leaving_iteration_early_cancels_and_closes_once(self):
        titles = [f"Book {i}" for i in range(20)]
        source = MockRecordSource(make_records(titles))
        stream = make_stream([], source=source, concurrency=2)
        closes = []
        stream.on("close", closes.append)

        outcomes = stream.__aiter__()
        received = [await anext(outcomes) for _ in range(3)]
        await outcomes.aclose()
        summary = await asyncio.wait_for(stream.wait_closed(), timeout=5)

        assert len(received) == 3
        assert all(outcome.ok for outcome in received)
        assert len(closes) == 1
        assert stream.state is SyncState.CLOSED
        assert summary.cancelled
        assert not summary.completed
        assert 3 <= summary.pulled < len(titles)
        assert summary.succeeded + summary.failed == summary.pulled
        assert source.closed

    @pytest.mark.asyncio
    async def test_listener_exception_does_not_affect_others(self):
        stream = make_stream(make_records(["Emma", "Dune"]))
        events = EventRecorder(stream)

        def failing_listener(_doc):
            raise RuntimeError("listener failure")

        stream.on("data", failing_listener)
        summary = await stream.wait_closed()

        assert len(events.data) == 2
        assert summary.succeeded == 2

    @pytest.mark.asyncio
    async def test_async_listeners_are_awaited(self):
        stream = make_stream(make_records(["Emma"]))
        seen = []

        async def on_close(summary):
            await asyncio.sleep(0)
            seen.append(summary.pulled)

        stream.on("close", on_close)
        await stream.wait_closed()

        assert seen == [1]

    @pytest.mark.asyncio
    async def test_listeners_rejected_after_start(self):
        stream = make_stream(make_records(["Emma"]))
        stream.start()

        with pytest.raises(RuntimeError):
            stream.on("data", print)

        await stream.wait_closed()

    def test_unknown_event_rejected(self):
        stream = make_stream([])

        with pytest.raises(ValueError):
            stream.on("finish", print)

    def test_save_requires_writer(self):
        with pytest.raises(ConfigurationException):
            SynchronizationStream(
                MockRecordSource([]), MockTitleTransformer(), MockIndexSubmitter()
            )

    @pytest.mark.asyncio
    async def test_refresh_on_close(self):
        submitter = MockIndexSubmitter()
        stream = make_stream(
            make_records(["Emma"]), submitter=submitter, refresh_on_close=True
        )

        await stream.wait_closed()

        assert submitter.refreshed == 1
