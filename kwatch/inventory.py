"""Inventory manifest — the fixed set of resources a status watch covers.

A manifest is a YAML document::

    name: my-app
    inventory:
      - apps/Deployment/default/web
      - kind: Service
        namespace: default
        name: web
    replay:            # optional recorded timeline, see ReplayEventSource
      - {at: 0.5, resource: apps/Deployment/default/web, status: Current}
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, TextIO

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from kwatch.core.types import ResourceIdentifier, WatchSet
from kwatch.watch.exceptions import InventoryError


class Inventory(BaseModel):
    """Parsed inventory manifest."""

    name: str = ""
    resources: list[ResourceIdentifier] = Field(default_factory=list, alias="inventory")
    replay: list[dict[str, Any]] = Field(default_factory=list)

    model_config = {"populate_by_name": True}

    @field_validator("resources", mode="before")
    @classmethod
    def _parse_resources(cls, value: Any) -> Any:
        if value is None:
            return []
        if not isinstance(value, list):
            raise ValueError("inventory must be a list of resources")
        return [ResourceIdentifier.parse(v) if isinstance(v, str) else v for v in value]

    @property
    def watch_set(self) -> WatchSet:
        return frozenset(self.resources)

    def __len__(self) -> int:
        return len(self.watch_set)

    @classmethod
    def from_data(cls, raw: Any, source: str = "<manifest>") -> Inventory:
        """Validate an already-parsed YAML document.

        Raises:
            InventoryError: If the document is not a valid manifest.
        """
        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise InventoryError(f"{source}: manifest must be a mapping")
        try:
            return cls(**raw)
        except (ValidationError, ValueError, TypeError) as exc:
            raise InventoryError(f"{source}: invalid inventory: {exc}") from exc

    @classmethod
    def from_stream(cls, stream: TextIO, source: str = "stdin") -> Inventory:
        try:
            raw = yaml.safe_load(stream)
        except yaml.YAMLError as exc:
            raise InventoryError(f"{source}: invalid YAML: {exc}") from exc
        return cls.from_data(raw, source)

    @classmethod
    def load(cls, path: str | Path) -> Inventory:
        """Read a manifest file.

        Raises:
            InventoryError: If the file cannot be read or parsed.
        """
        try:
            with open(path) as f:
                return cls.from_stream(f, source=str(path))
        except OSError as exc:
            raise InventoryError(f"cannot read manifest {path}: {exc}") from exc
