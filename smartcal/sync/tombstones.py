"""
Tombstone ledger for synced events deleted locally.

A tombstone is the remote id of an event that was removed from the local
store after it had been pushed. The reconciler deletes tombstoned events
remotely and never imports them back.
"""

import json
import logging
import threading
from pathlib import Path
from typing import Iterator, Optional, Set

logger = logging.getLogger(__name__)


class TombstoneLedger:
    """Set of remote ids, persisted as a JSON list when a path is given."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else None
        self._ids: Set[str] = set()
        self._lock = threading.Lock()
        self._load()

    def _load(self) -> None:
        if self.path is None or not self.path.exists():
            return
        with open(self.path, 'r') as f:
            data = json.load(f)
        self._ids = {str(remote_id) for remote_id in data}
        logger.info(f"Loaded {len(self._ids)} tombstones from {self.path}")

    def save(self) -> None:
        """Write the ledger to disk (no-op for in-memory ledgers)."""
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self._lock:
            ids = sorted(self._ids)
        with open(self.path, 'w') as f:
            json.dump(ids, f, indent=2)

    def add(self, remote_id: str) -> None:
        with self._lock:
            self._ids.add(remote_id)
        self.save()

    def discard(self, remote_id: str) -> None:
        with self._lock:
            self._ids.discard(remote_id)
        self.save()

    def __contains__(self, remote_id: object) -> bool:
        with self._lock:
            return remote_id in self._ids

    def __iter__(self) -> Iterator[str]:
        with self._lock:
            return iter(sorted(self._ids))

    def __len__(self) -> int:
        with self._lock:
            return len(self._ids)
