"""File-based JSON state store for registries.

A simple, file-system-backed store for development and single-node use.
Each registry is persisted as one JSON document under ``~/.dappy/state/``:

- ``verification.json`` -- user verification registry
- ``social_connections.json`` -- social connection pointers
- ``filesystem_changes.json`` -- filesystem change pointers
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

REGISTRY_FILES = {
    "verification": "verification.json",
    "social_connections": "social_connections.json",
    "filesystem_changes": "filesystem_changes.json",
}


class StateStore:
    """Load and save registry snapshots as JSON documents."""

    def __init__(self, base_dir: Optional[str | Path] = None) -> None:
        if base_dir is None:
            self._base = Path.home() / ".dappy" / "state"
        else:
            self._base = Path(base_dir)
        self._base.mkdir(parents=True, exist_ok=True)

    @property
    def base_dir(self) -> Path:
        return self._base

    def _path(self, registry: str) -> Path:
        try:
            return self._base / REGISTRY_FILES[registry]
        except KeyError:
            raise ValueError(f"Unknown registry: {registry}") from None

    def exists(self, registry: str) -> bool:
        return self._path(registry).exists()

    def load(self, registry: str) -> Optional[dict]:
        """Return the stored snapshot for ``registry``, or None if never saved."""
        path = self._path(registry)
        if not path.exists():
            return None
        with open(path) as f:
            data = json.load(f)
        logger.debug("loaded %s state from %s", registry, path)
        return data

    def save(self, registry: str, snapshot: dict) -> Path:
        path = self._path(registry)
        tmp = path.with_suffix(".json.tmp")
        with open(tmp, "w") as f:
            json.dump(snapshot, f, indent=2, sort_keys=True)
        tmp.replace(path)
        logger.debug("saved %s state to %s", registry, path)
        return path
