"""ConvergenceEngine — folds the status stream and decides when to stop."""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections.abc import AsyncIterable, AsyncIterator, Iterable

import structlog

from kwatch.core.types import (
    EngineState,
    ResourceIdentifier,
    Status,
    StopReason,
    WatchEvent,
    WatchEventType,
    WatchResult,
)
from kwatch.printers.base import Printer
from kwatch.status.aggregator import aggregate_status
from kwatch.status.store import StatusSnapshotStore
from kwatch.watch.cancel import CancellationSignal, DeadlineGovernor
from kwatch.watch.exceptions import SinkError, StreamFailureError
from kwatch.watch.policy import ReachedStatusPolicy, TerminationPolicy
from kwatch.watch.source import EventSource, PollOptions

logger = structlog.get_logger(__name__)


async def _pull(iterator: AsyncIterator[WatchEvent]) -> WatchEvent | None:
    """Next event, or None once the iterator is exhausted."""
    try:
        return await anext(iterator)
    except StopAsyncIteration:
        return None


class ConvergenceEngine:
    """Consumes a status event stream until the watch set converges.

    Every event is folded into the snapshot store, the termination policy
    is evaluated against the new snapshot, and the event is forwarded to the
    printer.  The first of policy satisfaction, deadline expiry or an
    external :meth:`cancel` fires the shared cancellation signal; the engine
    then keeps draining (store updates and printing, no policy) until the
    source closes the stream.

    Usage::

        engine = ConvergenceEngine(identifiers, create_policy("current"),
                                   timeout_secs=60, printer=printer)
        result = await engine.watch(source, PollOptions(poll_interval_secs=2))
        print(result.aggregate_status)
    """

    def __init__(
        self,
        identifiers: Iterable[ResourceIdentifier],
        policy: TerminationPolicy,
        timeout_secs: float = 0.0,
        printer: Printer | None = None,
        drain_timeout_secs: float = 5.0,
        signal: CancellationSignal | None = None,
    ) -> None:
        self._store = StatusSnapshotStore(identifiers)
        self._policy = policy
        self._printer = printer
        self._drain_timeout_secs = drain_timeout_secs
        self._signal = signal or CancellationSignal()
        self._governor = DeadlineGovernor(self._signal, timeout_secs)

        self._state = EngineState.RUNNING
        self._state_history: list[EngineState] = [EngineState.RUNNING]
        self._started = False
        self._started_at = 0.0
        self._events_processed = 0
        self._satisfied_after: int | None = None
        self._sink_errors: list[str] = []
        self._drain_deadline: float | None = None

    # ── Properties ────────────────────────────────────────────────

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def state_history(self) -> list[EngineState]:
        """Every state the engine has entered, in order."""
        return list(self._state_history)

    @property
    def store(self) -> StatusSnapshotStore:
        return self._store

    @property
    def policy(self) -> TerminationPolicy:
        return self._policy

    @property
    def signal(self) -> CancellationSignal:
        return self._signal

    @property
    def governor(self) -> DeadlineGovernor:
        return self._governor

    @property
    def events_processed(self) -> int:
        return self._events_processed

    @property
    def satisfied_after(self) -> int | None:
        """Number of events processed when the policy was satisfied."""
        return self._satisfied_after

    @property
    def sink_errors(self) -> list[str]:
        return list(self._sink_errors)

    def aggregate(self) -> Status:
        """Aggregate status of the current snapshot.

        Aggregated against the policy's desired status when it has one.
        """
        target = self._policy.desired if isinstance(self._policy, ReachedStatusPolicy) else None
        return aggregate_status(self._store.snapshot().values(), target)

    # ── Cancellation ─────────────────────────────────────────────

    def cancel(self, reason: StopReason = StopReason.INTERRUPTED) -> bool:
        """Request the watch to stop.  Returns False if already cancelled."""
        return self._signal.cancel(reason)

    def _begin_terminating(self) -> None:
        if self._state is not EngineState.RUNNING:
            return
        self._set_state(EngineState.TERMINATING)
        self._drain_deadline = time.monotonic() + self._drain_timeout_secs
        logger.info(
            "watch_terminating",
            reason=self._signal.reason.value if self._signal.reason else None,
            events_processed=self._events_processed,
        )

    def _set_state(self, state: EngineState) -> None:
        self._state = state
        self._state_history.append(state)

    # ── Fold ─────────────────────────────────────────────────────

    def process(self, event: WatchEvent) -> bool:
        """Fold one event into the snapshot and evaluate the policy.

        Returns True when this event satisfied the policy and fired the
        cancellation signal.
        """
        if event.event_type == WatchEventType.STREAM_CLOSED:
            return False

        self._events_processed += 1
        self._fold(event)

        if self._state is not EngineState.RUNNING:
            return False
        if self._signal.cancelled:
            self._begin_terminating()
            return False
        return self._evaluate(event)

    def _fold(self, event: WatchEvent) -> None:
        identifier = event.identifier
        if identifier is None:
            logger.warning("event_without_resource", event_type=event.event_type)
            return
        if not self._store.watches(identifier):
            logger.debug("event_for_unwatched_resource", resource=str(identifier))
            return

        if event.event_type == WatchEventType.ERROR:
            previous = self._store.record_error(identifier, event.error)
            logger.warning(
                "resource_status_error",
                resource=str(identifier),
                error=event.error,
            )
            current = Status.UNKNOWN
        else:
            if event.status is None:
                logger.warning("update_without_status", resource=str(identifier))
                return
            previous = self._store.update(identifier, event.status, event.message)
            current = event.status

        if previous != current:
            logger.debug(
                "resource_status_changed",
                resource=str(identifier),
                previous=previous.value,
                current=current.value,
            )

    def _evaluate(self, event: WatchEvent | None) -> bool:
        if not self._policy.evaluate(self._store.snapshot(), event):
            return False
        self._satisfied_after = self._events_processed
        fired = self._signal.cancel(StopReason.POLICY_SATISFIED)
        self._begin_terminating()
        return fired

    # ── Output ───────────────────────────────────────────────────

    def _forward(self, event: WatchEvent) -> None:
        if self._printer is None:
            return
        try:
            self._printer.print_event(event, self._store.snapshot())
        except Exception as exc:
            self._record_sink_error(SinkError(f"failed to print event: {exc}"))

    def _print_result(self, result: WatchResult) -> None:
        if self._printer is None:
            return
        try:
            self._printer.print_result(result)
        except Exception as exc:
            err = self._record_sink_error(SinkError(f"failed to print result: {exc}"))
            result.sink_errors.append(err)

    def _record_sink_error(self, error: SinkError) -> str:
        logger.exception("printer_error", printer=type(self._printer).__name__)
        self._sink_errors.append(str(error))
        return str(error)

    # ── Run loop ─────────────────────────────────────────────────

    async def watch(self, source: EventSource, options: PollOptions | None = None) -> WatchResult:
        """Open a stream from *source* bound to this engine's signal and run it."""
        stream = source.poll(self._store.watch_set, options or PollOptions(), self._signal)
        return await self.run(stream)

    async def run(self, stream: AsyncIterable[WatchEvent]) -> WatchResult:
        """Consume *stream* until it closes and return the final result.

        Raises:
            StreamFailureError: If the stream raises instead of closing.
            RuntimeError: If the engine has already been run.
        """
        if self._started:
            raise RuntimeError("ConvergenceEngine.run() may only be called once")
        self._started = True
        self._started_at = time.time()

        logger.info(
            "watch_started",
            resources=len(self._store.watch_set),
            policy=self._policy.name,
            timeout_secs=self._governor.timeout_secs,
        )

        self._governor.start()
        # An empty watch set is vacuously converged under the finite policies.
        if not self._signal.cancelled:
            self._evaluate(None)

        iterator = aiter(stream)
        cancel_wait = asyncio.create_task(self._signal.wait())
        pending: asyncio.Task[WatchEvent | None] | None = None
        exhausted = False
        failed = False
        try:
            while True:
                if pending is None:
                    pending = asyncio.create_task(_pull(iterator))

                if self._state is EngineState.RUNNING:
                    await asyncio.wait(
                        {pending, cancel_wait},
                        return_when=asyncio.FIRST_COMPLETED,
                    )
                    if not pending.done():
                        self._begin_terminating()
                        continue
                else:
                    assert self._drain_deadline is not None
                    # One budget for the whole drain, counted from cancellation.
                    remaining = max(self._drain_deadline - time.monotonic(), 0.0)
                    done, _ = await asyncio.wait({pending}, timeout=remaining)
                    if not done:
                        logger.warning(
                            "watch_drain_timeout",
                            drain_timeout_secs=self._drain_timeout_secs,
                        )
                        break

                task, pending = pending, None
                try:
                    event = task.result()
                except Exception as exc:
                    exhausted = True
                    failed = True
                    logger.error("watch_stream_failed", error=str(exc))
                    raise StreamFailureError(f"status event stream failed: {exc}") from exc

                if event is None or event.event_type == WatchEventType.STREAM_CLOSED:
                    exhausted = event is None
                    if event is not None:
                        self._forward(event)
                    break

                self.process(event)
                self._forward(event)
        finally:
            if not failed:
                # Releases the source if nothing else stopped the watch.
                self._signal.cancel(StopReason.STREAM_EXHAUSTED)
            for leftover in (pending, cancel_wait):
                if leftover is not None and not leftover.done():
                    leftover.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await leftover
            if not exhausted:
                await self._close_stream(iterator)
            await self._governor.stop()
            self._begin_terminating()
            self._set_state(EngineState.STOPPED)

        result = self._build_result()
        self._print_result(result)
        logger.info("watch_stopped", **result.summary())
        return result

    async def _close_stream(self, iterator: AsyncIterator[WatchEvent]) -> None:
        aclose = getattr(iterator, "aclose", None)
        if aclose is None:
            return
        try:
            await aclose()
        except Exception:
            logger.exception("stream_close_error")

    def _build_result(self) -> WatchResult:
        snapshot = self._store.snapshot()
        assert self._signal.reason is not None
        return WatchResult(
            aggregate_status=self.aggregate(),
            stop_reason=self._signal.reason,
            converged=self._policy.evaluate(snapshot, None),
            events_processed=self._events_processed,
            records=self._store.sorted_records(),
            sink_errors=list(self._sink_errors),
            started_at=self._started_at,
            finished_at=time.time(),
        )
