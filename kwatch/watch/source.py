"""Event sources — producers of the status event stream.

The engine only consumes an async iterator of :class:`WatchEvent`.  A source
builds that iterator for a watch set and must stop producing and close the
stream once the shared :class:`CancellationSignal` fires.
"""

from __future__ import annotations

import abc
import asyncio
import time
from collections.abc import AsyncIterator, Iterable
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import BaseModel, ValidationError, field_validator

from kwatch.core.types import ResourceIdentifier, Status, WatchEvent
from kwatch.watch.cancel import CancellationSignal
from kwatch.watch.exceptions import InventoryError

logger = structlog.get_logger(__name__)


class PollOptions(BaseModel):
    """Parameters handed to a source when a watch begins."""

    poll_interval_secs: float = 2.0
    use_cache: bool = True


class EventSource(abc.ABC):
    """Produces the ordered status event stream for one watch."""

    @abc.abstractmethod
    def poll(
        self,
        identifiers: Iterable[ResourceIdentifier],
        options: PollOptions,
        cancel: CancellationSignal,
    ) -> AsyncIterator[WatchEvent]:
        """Return the event stream for *identifiers*."""


class PollingEventSource(EventSource):
    """Polls each resource at a fixed interval and emits status changes.

    Subclasses implement ``read_status()``; ``connect()`` and ``close()``
    are optional hooks.  An exception from ``read_status()`` becomes an
    ERROR event for that resource only — the other resources keep being
    polled.  An update is emitted only when a resource's status or message
    changes, so the first cycle reports every resource once.

    Usage::

        source = MySource()
        stream = source.poll(identifiers, PollOptions(), signal)
        async for event in stream:
            ...
    """

    def __init__(self) -> None:
        self._error_count = 0
        self._cycles = 0

    @property
    def error_count(self) -> int:
        return self._error_count

    @property
    def cycles(self) -> int:
        return self._cycles

    async def connect(self) -> None:
        """Prepare the underlying client."""

    async def close(self) -> None:
        """Release the underlying client."""

    @abc.abstractmethod
    async def read_status(
        self,
        identifier: ResourceIdentifier,
        use_cache: bool = True,
    ) -> tuple[Status, str]:
        """Return the current (status, message) of one resource."""

    async def poll(
        self,
        identifiers: Iterable[ResourceIdentifier],
        options: PollOptions,
        cancel: CancellationSignal,
    ) -> AsyncIterator[WatchEvent]:
        watched = sorted(identifiers)
        last_seen: dict[ResourceIdentifier, tuple[str, str]] = {}

        await self.connect()
        logger.info(
            "status_poll_started",
            resources=len(watched),
            poll_interval_secs=options.poll_interval_secs,
            use_cache=options.use_cache,
        )
        try:
            while not cancel.cancelled:
                for identifier in watched:
                    if cancel.cancelled:
                        break
                    try:
                        status, message = await self.read_status(identifier, options.use_cache)
                    except Exception as exc:
                        self._error_count += 1
                        logger.warning(
                            "status_read_error",
                            resource=str(identifier),
                            error=str(exc),
                            error_count=self._error_count,
                        )
                        key = ("ERROR", str(exc))
                        if last_seen.get(identifier) != key:
                            last_seen[identifier] = key
                            yield WatchEvent.error_for(identifier, str(exc))
                        continue

                    key = (status.value, message)
                    if last_seen.get(identifier) != key:
                        last_seen[identifier] = key
                        yield WatchEvent.update(identifier, status, message)

                self._cycles += 1
                try:
                    await asyncio.wait_for(cancel.wait(), timeout=options.poll_interval_secs)
                except asyncio.TimeoutError:
                    pass
            yield WatchEvent.closed()
        finally:
            await self.close()
            logger.info("status_poll_stopped", cycles=self._cycles)


# ── Replay ──────────────────────────────────────────────────────


class ReplayStep(BaseModel):
    """One recorded observation: *resource* had *status* from *at* seconds on."""

    at: float = 0.0
    resource: ResourceIdentifier
    status: Status = Status.UNKNOWN
    message: str = ""
    error: str = ""

    @field_validator("resource", mode="before")
    @classmethod
    def _parse_resource(cls, value: Any) -> Any:
        if isinstance(value, str):
            return ResourceIdentifier.parse(value)
        return value


class ReplayEventSource(PollingEventSource):
    """Simulated cluster that replays a recorded status timeline.

    Each poll returns the latest step whose ``at`` offset has elapsed since
    the stream was opened.  A resource with no elapsed step reads as
    ``NotFound``; a step with ``error`` set makes the read fail.
    """

    def __init__(self, steps: Iterable[ReplayStep]) -> None:
        super().__init__()
        self._steps = sorted(steps, key=lambda s: s.at)
        self._started: float | None = None

    @property
    def steps(self) -> list[ReplayStep]:
        return list(self._steps)

    @classmethod
    def from_records(cls, raw: list[dict[str, Any]]) -> ReplayEventSource:
        """Build a source from parsed YAML/JSON step mappings.

        Raises:
            InventoryError: If a step is malformed.
        """
        try:
            steps = [ReplayStep(**item) for item in raw]
        except (TypeError, ValueError, ValidationError) as exc:
            raise InventoryError(f"invalid replay step: {exc}") from exc
        return cls(steps)

    @classmethod
    def from_file(cls, path: str | Path) -> ReplayEventSource:
        """Load a timeline from a YAML file holding a list (or ``replay:`` key)."""
        try:
            with open(path) as f:
                raw = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as exc:
            raise InventoryError(f"cannot read replay file {path}: {exc}") from exc
        if isinstance(raw, dict):
            raw = raw.get("replay", [])
        if not isinstance(raw, list):
            raise InventoryError(f"replay file {path} must contain a list of steps")
        return cls.from_records(raw)

    async def connect(self) -> None:
        self._started = time.monotonic()

    def _elapsed(self) -> float:
        if self._started is None:
            return 0.0
        return time.monotonic() - self._started

    async def read_status(
        self,
        identifier: ResourceIdentifier,
        use_cache: bool = True,
    ) -> tuple[Status, str]:
        elapsed = self._elapsed()
        current: ReplayStep | None = None
        for step in self._steps:
            if step.at > elapsed:
                break
            if step.resource == identifier:
                current = step
        if current is None:
            return Status.NOT_FOUND, "resource not found"
        if current.error:
            raise RuntimeError(current.error)
        return current.status, current.message
