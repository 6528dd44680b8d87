"""Bounded window of recently seen webhook event ids."""

from __future__ import annotations


class EventDeduplicator:
    """Remembers event ids up to a hard cap.

    When the cap is reached the whole window is cleared. Ids seen before the
    clear are then treated as new again; providers only redeliver within a short
    window, so this trades old coverage for bounded memory.
    """

    def __init__(self, max_entries: int = 5000) -> None:
        self._max_entries = max_entries
        self._seen: set[str] = set()

    def is_duplicate(self, event_id: str | None) -> bool:
        """Return True if ``event_id`` was already seen, else record it.

        Events without an id are never duplicates.
        """

        if not event_id:
            return False
        if event_id in self._seen:
            return True
        if len(self._seen) >= self._max_entries:
            self._seen.clear()
        self._seen.add(event_id)
        return False

    def __len__(self) -> int:
        return len(self._seen)
