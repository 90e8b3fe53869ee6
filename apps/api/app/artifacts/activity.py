"""Activity log: the step-by-step narration shown beside the dashboard.

Entries get a monotonically increasing integer id, so "newest first" is a
plain numeric sort no matter how many entries share a timestamp. Clearing
the log at the start of a reload keeps the counter running; a client
streaming with ``after=<last id>`` therefore never mistakes a new entry
for one it has already seen.

Each entry is also written to the structured application log as an
``activity`` event. Nothing in the workflow reads the log back.
"""

import asyncio
import itertools
from datetime import datetime, timezone

import structlog

from app.artifacts.types import LogEntry


class ActivityLog:
    def __init__(self, owner: str = "") -> None:
        self._entries: list[LogEntry] = []
        self._sequence = itertools.count(1)
        self._changed = asyncio.Event()
        self._logger = structlog.get_logger("app.artifacts.activity").bind(user=owner)

    def __len__(self) -> int:
        return len(self._entries)

    def append(self, text: str) -> LogEntry:
        entry = LogEntry(
            id=next(self._sequence),
            text=text,
            timestamp=datetime.now(timezone.utc),
        )
        self._entries.append(entry)
        self._logger.info("activity", text=text, entry_id=entry.id)

        # Wake every waiter, then arm a fresh event for the next append.
        self._changed.set()
        self._changed = asyncio.Event()
        return entry

    def entries(self) -> list[LogEntry]:
        """All entries, newest first."""
        return sorted(self._entries, key=lambda e: e.id, reverse=True)

    def since(self, after: int) -> list[LogEntry]:
        """Entries with an id greater than *after*, oldest first."""
        return [e for e in self._entries if e.id > after]

    def clear(self) -> None:
        self._entries = []

    async def wait_for_entries(self, after: int, timeout: float) -> list[LogEntry]:
        """Return entries newer than *after*, waiting up to *timeout* seconds for one."""
        pending = self.since(after)
        if pending:
            return pending
        changed = self._changed
        try:
            await asyncio.wait_for(changed.wait(), timeout)
        except asyncio.TimeoutError:
            return []
        return self.since(after)
