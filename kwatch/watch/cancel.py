"""Single-fire cancellation signal and the deadline governor."""

from __future__ import annotations

import asyncio
import time

import structlog

from kwatch.core.types import StopReason

logger = structlog.get_logger(__name__)


class CancellationSignal:
    """Cancellation token shared by the engine, the event source and the governor.

    The first call to :meth:`cancel` wins and records its reason; every
    later call is a no-op returning False.  All callers run on the same
    event loop, so the check-and-set in :meth:`cancel` cannot interleave.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: StopReason | None = None
        self._cancelled_at: float | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> StopReason | None:
        return self._reason

    @property
    def cancelled_at(self) -> float | None:
        return self._cancelled_at

    def cancel(self, reason: StopReason) -> bool:
        """Fire the signal.  Returns True only for the winning trigger."""
        if self._event.is_set():
            return False
        self._reason = reason
        self._cancelled_at = time.time()
        self._event.set()
        logger.info("watch_cancelled", reason=reason.value)
        return True

    async def wait(self) -> StopReason:
        """Block until the signal fires and return the winning reason."""
        await self._event.wait()
        assert self._reason is not None
        return self._reason


class DeadlineGovernor:
    """Forces cancellation once *timeout_secs* have elapsed.

    A timeout of zero (or less) disables the governor.  The timer runs in
    its own task so it fires even when the event source is stalled.
    """

    def __init__(self, signal: CancellationSignal, timeout_secs: float = 0.0) -> None:
        self._signal = signal
        self._timeout_secs = timeout_secs
        self._task: asyncio.Task[None] | None = None
        self._fired = False

    @property
    def enabled(self) -> bool:
        return self._timeout_secs > 0

    @property
    def timeout_secs(self) -> float:
        return self._timeout_secs

    @property
    def fired(self) -> bool:
        """Whether the deadline elapsed and won the cancellation."""
        return self._fired

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the timer.  No-op when disabled or already started."""
        if not self.enabled or self._task is not None:
            return
        self._task = asyncio.create_task(self._run())
        logger.debug("deadline_started", timeout_secs=self._timeout_secs)

    async def stop(self) -> None:
        """Cancel the timer if it is still pending."""
        if self._task is None:
            return
        if not self._task.done():
            self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self) -> None:
        await asyncio.sleep(self._timeout_secs)
        self._fired = self._signal.cancel(StopReason.DEADLINE_EXCEEDED)
        if self._fired:
            logger.info("deadline_exceeded", timeout_secs=self._timeout_secs)
