"""
Key/value mirror for registry metadata.

Keeps a copy of the current collection name and the collection list
outside the bookmark store, so a pointer record deleted while nothing was
running can be recreated with the right name. The store's own folder
listing is always authoritative; the mirror is never used to decide
which collections exist.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

MIRROR_FILENAME = "barswitch-mirror.json"

CURRENT_KEY = "current"
COLLECTIONS_KEY = "collections"


class FileMirror:
    """JSON file mirror. Writes are best-effort."""

    def __init__(self, path: Path):
        self._path = path
        self._data: dict[str, Any] = self._read()

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Ignoring unreadable mirror %s: %s", self._path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str) -> Optional[Any]:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        if self._data.get(key) == value:
            return
        self._data[key] = value
        tmp = self._path.with_suffix(".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=2, ensure_ascii=False)
            os.replace(tmp, self._path)
        except OSError as e:
            logger.warning("Failed to write mirror %s: %s", self._path, e)

    def close(self) -> None:
        pass


class NullMirror:
    """No-op mirror used when mirroring is disabled."""

    def get(self, key: str) -> Optional[Any]:
        return None

    def set(self, key: str, value: Any) -> None:
        pass

    def close(self) -> None:
        pass
