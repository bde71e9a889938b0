"""
Synchronization stream

Drives records from a RecordSource through Transformer -> IndexSubmitter ->
[PersistenceWriter] and reports one outcome per record:

    stream = service.synchronize({}, {"save_on_synchronize": False})
    stream.on("data", on_document).on("error", on_error).on("close", on_close)
    summary = await stream.wait_closed()

or, as an async iterator of SyncOutcome:

    async for outcome in service.synchronize():
        ...

At most `concurrency` records are in flight; the next record is pulled only
when a slot is free. `close` is emitted exactly once, after every pulled record
produced its outcome, including when the run is cancelled or the source fails.
"""

import asyncio
import inspect
from collections import deque
from typing import Any, AsyncIterator, Callable, Deque, Dict, List, Mapping, Optional, Set, Tuple, Union

from common_utils.datetime_utils import get_now_with_timezone
from core.constants.errors import ErrorCode
from core.constants.exceptions import (
    ConfigurationException,
    IndexingException,
    PersistenceException,
    SourceException,
    SyncCancelledException,
    SyncException,
    ValidationException,
)
from core.observation.logger import get_logger
from core.sync.config import SyncConfig
from core.sync.interfaces import (
    IndexSubmitter,
    PersistenceWriter,
    Record,
    RecordSource,
    Transformer,
)
from core.sync.outcome import SyncOutcome, SyncState, SyncSummary

logger = get_logger(__name__)

EVENT_DATA = "data"
EVENT_ERROR = "error"
EVENT_CLOSE = "close"
EVENTS = (EVENT_DATA, EVENT_ERROR, EVENT_CLOSE)

# End-of-stream marker on the iterator channel
_CLOSE = object()

Pending = Tuple[asyncio.Task, Optional[str]]


class SynchronizationStream:
    """
    Bulk resynchronization run over one record source

    Listeners:
    - data(document): a record was indexed (and saved back when enabled)
    - error(cause): a record failed, `cause` is a SyncException carrying `record_id`
    - close(summary): the run finished, `summary` is a SyncSummary
    """

    def __init__(
        self,
        source: RecordSource,
        transformer: Transformer,
        submitter: IndexSubmitter,
        writer: Optional[PersistenceWriter] = None,
        config: Union[SyncConfig, Mapping[str, Any], None] = None,
        name: str = "sync",
    ):
        self.config = SyncConfig.coerce(config)
        if self.config.save_on_synchronize and writer is None:
            raise ConfigurationException(
                "a persistence writer is required", config_key="save_on_synchronize"
            )
        self.name = name
        self._source = source
        self._transformer = transformer
        self._submitter = submitter
        self._writer = writer if self.config.save_on_synchronize else None

        self._listeners: Dict[str, List[Callable[[Any], Any]]] = {e: [] for e in EVENTS}
        self._state = SyncState.IDLE
        self._summary = SyncSummary()
        self._task: Optional[asyncio.Task] = None
        self._closed_future: Optional[asyncio.Future] = None
        self._channel: Optional[asyncio.Queue] = None
        self._channel_detached = False
        self._cancel_requested = False
        self._abort_in_flight = False
        self._in_flight: Set[asyncio.Task] = set()

    # ==================== Public API ====================

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def summary(self) -> SyncSummary:
        return self._summary

    def on(self, event: str, callback: Callable[[Any], Any]) -> 'SynchronizationStream':
        """
        Attach a listener (plain function or coroutine function)

        Listeners must be attached before the stream starts; events are not replayed.
        """
        if event not in self._listeners:
            raise ValueError(f"Unknown event '{event}', expected one of {EVENTS}")
        if self._task is not None:
            raise RuntimeError("Listeners must be attached before the stream starts")
        self._listeners[event].append(callback)
        return self

    def start(self) -> 'SynchronizationStream':
        """Schedule the run on the current event loop (idempotent)"""
        if self._task is None:
            loop = asyncio.get_running_loop()
            self._closed_future = loop.create_future()
            self._task = loop.create_task(self._run(), name=f"sync-stream-{self.name}")
            self._task.add_done_callback(self._on_run_done)
        return self

    async def wait_closed(self) -> SyncSummary:
        """Start the run if needed and wait for the close event"""
        self.start()
        return await asyncio.shield(self._closed_future)

    def cancel(self, drain: bool = True) -> None:
        """
        Stop pulling new records

        Args:
            drain: Let in-flight records finish (True) or abort them (False);
                aborted records are reported with SyncCancelledException
        """
        if self._state is SyncState.CLOSED:
            return
        self._cancel_requested = True
        self._summary.cancelled = True
        if not drain:
            self._abort_in_flight = True
            for task in list(self._in_flight):
                task.cancel()
        logger.info("🔄 Cancel requested [%s], drain=%s", self.name, drain)

    def __aiter__(self) -> AsyncIterator[SyncOutcome]:
        if self._task is not None or self._channel is not None:
            raise RuntimeError("Iteration must begin before the stream starts, and only once")
        # Bounded channel: a slow consumer pauses the pipeline
        self._channel = asyncio.Queue(maxsize=self.config.concurrency)
        return self._iterate()

    # ==================== Iterator channel ====================

    async def _iterate(self) -> AsyncIterator[SyncOutcome]:
        channel = self._channel
        self.start()
        try:
            while True:
                item = await channel.get()
                if item is _CLOSE:
                    break
                yield item
        finally:
            if self._state is not SyncState.CLOSED:
                # Consumer left early: stop the run and unblock pending puts
                self._channel_detached = True
                self.cancel()
                while not channel.empty():
                    channel.get_nowait()
        if self._summary.fatal_error is not None:
            raise self._summary.fatal_error

    # ==================== Run loop ====================

    async def _run(self) -> None:
        pending: Deque[Pending] = deque()
        self._summary.started_at = get_now_with_timezone()
        self._state = SyncState.PULLING
        logger.info(
            "🔄 Synchronization started [%s]: concurrency=%d, save_on_synchronize=%s",
            self.name,
            self.config.concurrency,
            self.config.save_on_synchronize,
        )
        interrupted = False
        try:
            try:
                await self._pull(pending)
            except SourceException as e:
                self._summary.fatal_error = e
                logger.error("❌ Synchronization source failed [%s]: %s", self.name, e)
            except asyncio.CancelledError:
                interrupted = True
                self._summary.cancelled = True
                self._abort_in_flight = True
            except Exception as e:  # noqa: BLE001
                self._summary.fatal_error = SyncException(
                    code=ErrorCode.UNKNOWN_ERROR.value,
                    message=f"Synchronization failed: {e}",
                    original_exception=e,
                )
                logger.exception("❌ Synchronization failed [%s]", self.name)

            self._state = SyncState.DRAINING
            if self._abort_in_flight:
                for task, _ in pending:
                    task.cancel()
            while pending:
                await self._emit_next(pending)

            if self.config.refresh_on_close and not interrupted:
                try:
                    await self._submitter.refresh()
                except Exception as e:  # noqa: BLE001
                    logger.warning("Index refresh failed [%s]: %s", self.name, e)
        finally:
            await self._close()

        if interrupted:
            raise asyncio.CancelledError()

    async def _pull(self, pending: Deque[Pending]) -> None:
        records = self._source.open()
        try:
            while not self._cancel_requested:
                if len(pending) >= self.config.concurrency:
                    await self._emit_next(pending)
                    continue
                try:
                    record = await asyncio.wait_for(
                        anext(records), timeout=self.config.pull_timeout
                    )
                except StopAsyncIteration:
                    break
                except asyncio.TimeoutError as e:
                    raise SourceException(
                        f"no record received within {self.config.pull_timeout}s",
                        original_exception=e,
                    ) from e
                except SourceException:
                    raise
                except Exception as e:
                    raise SourceException(str(e), original_exception=e) from e

                self._summary.pulled += 1
                pending.append(self._spawn(record))
        finally:
            aclose = getattr(records, "aclose", None)
            if aclose is not None:
                try:
                    await aclose()
                except Exception as e:  # noqa: BLE001
                    logger.warning("Failed to close record source [%s]: %s", self.name, e)

    def _spawn(self, record: Record) -> Pending:
        record_id = self._source.record_id(record)
        task = asyncio.create_task(self._process(record, record_id))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        self._summary.peak_in_flight = max(
            self._summary.peak_in_flight, len(self._in_flight)
        )
        return task, record_id

    async def _emit_next(self, pending: Deque[Pending]) -> None:
        """Wait for in-flight work and emit the outcome(s) that can be emitted"""
        if self.config.preserve_order:
            task, record_id = pending[0]
            await asyncio.wait([task])
            pending.popleft()
            await self._emit(self._outcome_of(task, record_id))
            return

        done, _ = await asyncio.wait(
            [task for task, _ in pending], return_when=asyncio.FIRST_COMPLETED
        )
        for item in [item for item in pending if item[0] in done]:
            pending.remove(item)
            await self._emit(self._outcome_of(*item))

    @staticmethod
    def _outcome_of(task: asyncio.Task, record_id: Optional[str]) -> SyncOutcome:
        if task.cancelled():
            return SyncOutcome.failure(record_id, SyncCancelledException(record_id))
        return task.result()

    # ==================== Per-record pipeline ====================

    @staticmethod
    def _failure(record_id: Optional[str], error: SyncException) -> SyncOutcome:
        if error.record_id is None:
            error.record_id = record_id
        return SyncOutcome.failure(record_id, error)

    async def _process(self, record: Record, record_id: Optional[str]) -> SyncOutcome:
        try:
            try:
                document = self._transformer.transform(record)
            except SyncException as e:
                return self._failure(record_id, e)
            except Exception as e:  # noqa: BLE001
                return self._failure(
                    record_id,
                    ValidationException(str(e), record_id=record_id, original_exception=e),
                )

            try:
                await self._submitter.submit(document, record_id)
            except SyncException as e:
                return self._failure(record_id, e)
            except Exception as e:  # noqa: BLE001
                return self._failure(
                    record_id,
                    IndexingException(str(e), record_id=record_id, original_exception=e),
                )

            if self._writer is not None:
                try:
                    await self._writer.persist(record, document)
                except SyncException as e:
                    return self._failure(record_id, e)
                except Exception as e:  # noqa: BLE001
                    return self._failure(
                        record_id,
                        PersistenceException(
                            str(e), record_id=record_id, original_exception=e
                        ),
                    )
                self._summary.persisted += 1

            return SyncOutcome.success(record_id, document)
        except asyncio.CancelledError:
            return self._failure(record_id, SyncCancelledException(record_id))

    # ==================== Emission ====================

    async def _emit(self, outcome: SyncOutcome) -> None:
        if self._state is SyncState.CLOSED:
            return
        if outcome.ok:
            self._summary.succeeded += 1
            logger.debug("✅ Record synchronized [%s]: %s", self.name, outcome.record_id)
            await self._dispatch(EVENT_DATA, outcome.document)
        else:
            self._summary.failed += 1
            logger.warning(
                "❌ Record failed [%s]: %s: %s",
                self.name,
                outcome.record_id,
                outcome.error,
            )
            await self._dispatch(EVENT_ERROR, outcome.error)

        if self._channel is not None and not self._channel_detached:
            await self._channel.put(outcome)

    async def _dispatch(self, event: str, payload: Any) -> None:
        for callback in self._listeners[event]:
            try:
                result = callback(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:  # noqa: BLE001
                logger.error(
                    "Listener for [%s] raised in stream [%s]: %s",
                    event,
                    self.name,
                    e,
                    exc_info=True,
                )

    async def _close(self) -> None:
        if self._state is SyncState.CLOSED:
            return
        self._state = SyncState.CLOSED
        summary = self._summary
        summary.finished_at = get_now_with_timezone()
        logger.info(
            "Synchronization closed [%s]: pulled=%d, succeeded=%d, failed=%d, persisted=%d, cancelled=%s, fatal=%s",
            self.name,
            summary.pulled,
            summary.succeeded,
            summary.failed,
            summary.persisted,
            summary.cancelled,
            summary.fatal_error,
        )
        await self._dispatch(EVENT_CLOSE, summary)
        if self._channel is not None and not self._channel_detached:
            await self._channel.put(_CLOSE)
        if self._closed_future is not None and not self._closed_future.done():
            self._closed_future.set_result(summary)

    def _on_run_done(self, task: asyncio.Task) -> None:
        # wait_closed() resolves even when the run task died
        if self._closed_future is None or self._closed_future.done():
            return
        if task.cancelled():
            self._closed_future.cancel()
        elif task.exception() is not None:
            self._closed_future.set_exception(task.exception())
        else:
            self._closed_future.set_result(self._summary)
