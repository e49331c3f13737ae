"""Tests for CancellationSignal and DeadlineGovernor."""

from __future__ import annotations

import asyncio
import time

from kwatch.core.types import StopReason
from kwatch.watch.cancel import CancellationSignal, DeadlineGovernor


class TestCancellationSignal:
    def test_initially_not_cancelled(self) -> None:
        sig = CancellationSignal()
        assert sig.cancelled is False
        assert sig.reason is None

    def test_first_trigger_wins(self) -> None:
        sig = CancellationSignal()
        assert sig.cancel(StopReason.POLICY_SATISFIED) is True
        assert sig.cancel(StopReason.DEADLINE_EXCEEDED) is False
        assert sig.cancel(StopReason.INTERRUPTED) is False
        assert sig.reason == StopReason.POLICY_SATISFIED
        assert sig.cancelled_at is not None

    async def test_wait_returns_reason(self) -> None:
        sig = CancellationSignal()
        asyncio.get_running_loop().call_later(0.01, sig.cancel, StopReason.INTERRUPTED)
        reason = await asyncio.wait_for(sig.wait(), timeout=1.0)
        assert reason == StopReason.INTERRUPTED

    async def test_concurrent_triggers_fire_once(self) -> None:
        sig = CancellationSignal()
        results: list[bool] = []

        async def trigger(reason: StopReason) -> None:
            await asyncio.sleep(0.01)
            results.append(sig.cancel(reason))

        await asyncio.gather(
            trigger(StopReason.POLICY_SATISFIED),
            trigger(StopReason.DEADLINE_EXCEEDED),
            trigger(StopReason.INTERRUPTED),
        )
        assert results.count(True) == 1
        assert sig.cancelled


class TestDeadlineGovernor:
    def test_zero_timeout_disabled(self) -> None:
        gov = DeadlineGovernor(CancellationSignal(), timeout_secs=0)
        assert gov.enabled is False
        gov.start()  # no running loop needed when disabled
        assert gov.running is False

    async def test_fires_after_timeout(self) -> None:
        sig = CancellationSignal()
        gov = DeadlineGovernor(sig, timeout_secs=0.05)
        started = time.monotonic()
        gov.start()
        reason = await asyncio.wait_for(sig.wait(), timeout=1.0)
        elapsed = time.monotonic() - started
        assert reason == StopReason.DEADLINE_EXCEEDED
        assert 0.04 <= elapsed < 0.5
        await asyncio.sleep(0)
        assert gov.fired is True
        await gov.stop()

    async def test_stop_before_expiry(self) -> None:
        sig = CancellationSignal()
        gov = DeadlineGovernor(sig, timeout_secs=0.05)
        gov.start()
        assert gov.running is True
        await gov.stop()
        await asyncio.sleep(0.08)
        assert sig.cancelled is False
        assert gov.fired is False

    async def test_loses_to_earlier_trigger(self) -> None:
        sig = CancellationSignal()
        gov = DeadlineGovernor(sig, timeout_secs=0.02)
        gov.start()
        sig.cancel(StopReason.POLICY_SATISFIED)
        await asyncio.sleep(0.05)
        assert gov.fired is False
        assert sig.reason == StopReason.POLICY_SATISFIED
        await gov.stop()

    async def test_start_is_idempotent(self) -> None:
        gov = DeadlineGovernor(CancellationSignal(), timeout_secs=1.0)
        gov.start()
        task = gov._task
        gov.start()
        assert gov._task is task
        await gov.stop()
