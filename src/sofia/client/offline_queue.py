"""Durable JSON-file queues for work made while the API is unreachable."""

import json
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Union
from uuid import uuid4

from loguru import logger


class OfflineQueue:
    """
    FIFO of pending entries persisted as a JSON list.

    Every entry gets an ``id`` and a ``timestamp``. Removal is by id against
    what is currently on disk, so entries appended while a replay pass is
    running survive the rewrite.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _load(self) -> List[Dict[str, Any]]:
        if not self.path.exists():
            return []
        try:
            entries = json.loads(self.path.read_text(encoding="utf-8") or "[]")
        except ValueError as e:
            corrupt = self.path.with_suffix(self.path.suffix + ".corrupt")
            logger.error(f"Offline queue {self.path} unreadable ({e}); moved to {corrupt}")
            os.replace(self.path, corrupt)
            return []
        return entries if isinstance(entries, list) else []

    def _save(self, entries: List[Dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=self.path.name, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(entries, f)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def enqueue(self, **fields: Any) -> Dict[str, Any]:
        """Append an entry and return it."""
        entry = {
            "id": uuid4().hex,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **fields,
        }
        entries = self._load()
        entries.append(entry)
        self._save(entries)
        return entry

    def entries(self) -> List[Dict[str, Any]]:
        """Snapshot of the queue in FIFO order."""
        return self._load()

    def remove(self, ids: Iterable[str]) -> int:
        """Drop entries by id. Returns the number left."""
        ids = set(ids)
        if not ids:
            return len(self)
        remaining = [e for e in self._load() if e.get("id") not in ids]
        if remaining:
            self._save(remaining)
        elif self.path.exists():
            self.path.unlink()
        return len(remaining)

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()

    def __len__(self) -> int:
        return len(self._load())
