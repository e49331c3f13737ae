"""Core module — config, types, logging."""

from kwatch.core.config import (
    Settings,
    WatchConfig,
    get_settings,
    load_settings,
    parse_duration,
    reset_settings,
)
from kwatch.core.logging import bind_watch_context, setup_logging
from kwatch.core.types import (
    EngineState,
    ResourceIdentifier,
    ResourceStatusRecord,
    Status,
    StopReason,
    WatchEvent,
    WatchEventType,
    WatchResult,
    WatchSet,
)

__all__ = [
    "EngineState",
    "ResourceIdentifier",
    "ResourceStatusRecord",
    "Settings",
    "Status",
    "StopReason",
    "WatchConfig",
    "WatchEvent",
    "WatchEventType",
    "WatchResult",
    "WatchSet",
    "bind_watch_context",
    "get_settings",
    "load_settings",
    "parse_duration",
    "reset_settings",
    "setup_logging",
]
