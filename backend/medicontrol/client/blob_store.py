"""Key/value JSON blob storage for the sync client."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class BlobStoreError(RuntimeError):
    """Raised when a key is unusable."""


class BlobStore:
    """Very small, file-system backed key/value store.

    Each key is written to ``<root>/<key>.json`` via a temporary file and an
    atomic rename so a crash never leaves a half-written blob behind.
    """

    def __init__(self, root: Path) -> None:
        self._root = Path(root)
        self._root.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _path_for(self, key: str) -> Path:
        normalised = key.strip().strip("/")
        if not normalised or "/" in normalised or normalised.startswith("."):
            raise BlobStoreError(f"Invalid blob key: {key!r}")
        return self._root / f"{normalised}.json"

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def get(self, key: str, default: Any = None) -> Any:
        path = self._path_for(key)
        if not path.exists():
            return default
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("Discarding unreadable blob %s", key, exc_info=True)
            return default

    def put(self, key: str, value: Any) -> None:
        path = self._path_for(key)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(value, default=str), encoding="utf-8")
        os.replace(tmp, path)

    def delete(self, key: str) -> None:
        self._path_for(key).unlink(missing_ok=True)

    def keys(self) -> list[str]:
        return sorted(path.stem for path in self._root.glob("*.json"))


class MemoryBlobStore(BlobStore):
    """In-process store with the same JSON round-trip as the file store."""

    def __init__(self) -> None:
        self._blobs: dict[str, str] = {}

    def get(self, key: str, default: Any = None) -> Any:
        raw = self._blobs.get(key)
        return default if raw is None else json.loads(raw)

    def put(self, key: str, value: Any) -> None:
        self._blobs[key] = json.dumps(value, default=str)

    def delete(self, key: str) -> None:
        self._blobs.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._blobs)
