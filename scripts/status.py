#!/usr/bin/env python3
"""Status watch entrypoint — runs the ``kwatch-status`` command.

Usage::

    python scripts/status.py manifests/sample.yaml --poll-until current --timeout 30s
"""

from __future__ import annotations

from kwatch.cli import main

if __name__ == "__main__":
    main()
