"""``kwatch-status`` — watch the resources of an inventory until they converge.

Usage::

    # Wait until every resource has a known status (default)
    kwatch-status manifest.yaml

    # Wait for everything to become Current, give up after two minutes
    kwatch-status manifest.yaml --poll-until current --timeout 2m

    # Read the manifest from stdin, print JSON lines
    cat manifest.yaml | kwatch-status --output json
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from collections.abc import Callable
from typing import Any, TextIO

import structlog
import yaml
from pydantic import ValidationError

from kwatch.core.config import LOG_FORMATS, WatchConfig, load_settings, parse_duration
from kwatch.core.logging import bind_watch_context, setup_logging
from kwatch.inventory import Inventory
from kwatch.printers.factory import create_printer
from kwatch.watch.engine import ConvergenceEngine
from kwatch.watch.exceptions import ConfigurationError, InventoryError, StreamFailureError
from kwatch.watch.policy import create_policy
from kwatch.watch.source import EventSource, PollOptions, ReplayEventSource

logger = structlog.get_logger(__name__)

EXIT_OK = 0
EXIT_WATCH_FAILED = 1
EXIT_USAGE = 2

SourceFactory = Callable[[Inventory], EventSource]


def default_source_factory(inventory: Inventory) -> EventSource:
    """Replay the manifest's recorded timeline.

    Raises:
        ConfigurationError: If the manifest carries no ``replay`` section.
    """
    if not inventory.replay:
        raise ConfigurationError(
            "no status source available: the manifest has no replay timeline",
        )
    return ReplayEventSource.from_records(inventory.replay)


def resolve_watch_config(args: argparse.Namespace) -> WatchConfig:
    """Merge command-line overrides on top of the configured watch settings.

    Raises:
        ConfigurationError: If a value is invalid.
    """
    try:
        settings = load_settings(args.config)
    except (ValidationError, yaml.YAMLError, OSError) as exc:
        raise ConfigurationError(f"invalid settings file: {exc}") from exc

    overrides: dict[str, Any] = {}
    try:
        if args.poll_period is not None:
            overrides["poll_period_secs"] = parse_duration(args.poll_period)
        if args.timeout is not None:
            overrides["timeout_secs"] = parse_duration(args.timeout)
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc
    if args.poll_until is not None:
        overrides["poll_until"] = args.poll_until
    if args.output is not None:
        overrides["output"] = args.output

    try:
        return WatchConfig(**{**settings.watch.model_dump(), **overrides})
    except ValidationError as exc:
        raise ConfigurationError(str(exc)) from exc


def read_inventory(manifest: str | None, stdin: TextIO) -> Inventory:
    if manifest is None or manifest == "-":
        return Inventory.from_stream(stdin)
    return Inventory.load(manifest)


async def run(
    args: argparse.Namespace,
    source_factory: SourceFactory = default_source_factory,
    out: TextIO | None = None,
    stdin: TextIO | None = None,
) -> int:
    """Run one status watch and return the process exit code."""
    out = out or sys.stdout
    try:
        config = resolve_watch_config(args)
        setup_logging(level=args.log_level, fmt=args.log_format)

        # Everything that can be misconfigured is checked before the watch begins.
        policy = create_policy(config.poll_until)
        printer = create_printer(config.output, out)
        inventory = read_inventory(args.manifest, stdin or sys.stdin)
    except (ConfigurationError, InventoryError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_USAGE

    bind_watch_context(
        manifest=args.manifest if args.manifest not in (None, "-") else "stdin",
        policy=policy.name,
        resources=len(inventory),
    )

    if len(inventory) == 0:
        out.write("no resources found in the inventory\n")
        return EXIT_OK

    try:
        source = source_factory(inventory)
    except (ConfigurationError, InventoryError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_USAGE

    engine = ConvergenceEngine(
        inventory.watch_set,
        policy,
        timeout_secs=config.timeout_secs,
        printer=printer,
        drain_timeout_secs=config.drain_timeout_secs,
    )

    def _signal_handler() -> None:
        logger.info("shutdown_signal_received")
        engine.cancel()

    loop = asyncio.get_running_loop()
    installed: list[signal.Signals] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            # Windows / non-main thread: rely on KeyboardInterrupt instead
            pass

    try:
        result = await engine.watch(
            source,
            PollOptions(
                poll_interval_secs=config.poll_period_secs,
                use_cache=config.use_cache,
            ),
        )
    except StreamFailureError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_WATCH_FAILED
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)

    if result.sink_errors:
        print(f"error: {len(result.sink_errors)} output error(s)", file=sys.stderr)
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kwatch-status",
        description="Watch the status of the resources in an inventory.",
    )
    parser.add_argument(
        "manifest",
        nargs="?",
        default=None,
        help="Inventory manifest (YAML). Reads stdin when omitted or '-'.",
    )
    parser.add_argument(
        "--poll-period",
        default=None,
        help="Polling period for resource statuses (default: 2s)",
    )
    parser.add_argument(
        "--poll-until",
        default=None,
        help="When to stop polling: known, current, deleted or forever (default: known)",
    )
    parser.add_argument(
        "--output",
        default=None,
        help="Output format: events, table or json (default: events)",
    )
    parser.add_argument(
        "--timeout",
        default=None,
        help="How long to wait before exiting, 0 to wait indefinitely (default: 0)",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to settings YAML (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level override: DEBUG, INFO, WARNING, ERROR",
    )
    parser.add_argument(
        "--log-format",
        default=None,
        choices=LOG_FORMATS,
        help="Log renderer override: console or json (default: from settings)",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    try:
        code = asyncio.run(run(args))
    except KeyboardInterrupt:
        code = EXIT_OK
    sys.exit(code)


if __name__ == "__main__":
    main()
