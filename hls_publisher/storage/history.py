"""
In-memory upload history.

Entries are appended under a key (a remote file name or a directory
prefix) and kept for the lifetime of the process.
"""

import asyncio
from typing import Optional

from ..models import UploadOutcome


class UploadHistory:
    """Ledger of upload outcomes, safe under concurrent tasks."""

    def __init__(self):
        self._entries: dict[str, list[UploadOutcome]] = {}
        self._lock = asyncio.Lock()

    async def record(self, key: str, outcome: UploadOutcome) -> None:
        """Append an outcome under ``key``."""
        async with self._lock:
            self._entries.setdefault(key, []).append(outcome)

    async def migrate(self, from_key: str, to_key: str) -> int:
        """
        Move every entry from ``from_key`` to the end of ``to_key``.

        Args:
            from_key: Source key (removed afterwards)
            to_key: Target key

        Returns:
            Number of entries moved
        """
        if from_key == to_key:
            return 0
        async with self._lock:
            moved = self._entries.pop(from_key, [])
            if moved:
                self._entries.setdefault(to_key, []).extend(moved)
            return len(moved)

    def get(self, key: str) -> list[UploadOutcome]:
        """Snapshot of the entries under ``key``."""
        return list(self._entries.get(key, []))

    def keys(self) -> list[str]:
        return list(self._entries)

    def latest(self, key: str) -> Optional[UploadOutcome]:
        """Most recent entry under ``key``, if any."""
        entries = self._entries.get(key)
        return entries[-1] if entries else None

    def __len__(self) -> int:
        return sum(len(entries) for entries in self._entries.values())
