"""In-memory per-session event bus for live status viewers.

Each session has its own monotonically increasing sequence counter and a set of
subscriber queues. Publishing never blocks: a subscriber whose queue is full
misses the update. When a session ends, subscribers receive the terminal update
followed by an end-of-stream marker and the session's registry is evicted.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from bridge.models import Session

LOGGER = logging.getLogger(__name__)

SNAPSHOT_SEQ = 0


@dataclass(frozen=True)
class SessionUpdate:
    seq: int
    session: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {"seq": self.seq, "session": self.session}


# Queue items are SessionUpdate, or None to signal end of stream.
SubscriberQueue = asyncio.Queue


class SessionEventBus:
    def __init__(self, queue_size: int = 256) -> None:
        self._queue_size = queue_size
        self._subscribers: dict[str, set[SubscriberQueue]] = {}
        self._counters: dict[str, int] = {}

    def subscribe(self, session_id: str) -> SubscriberQueue:
        """Register a queue receiving updates for ``session_id``.

        The caller must call ``unsubscribe`` when its connection goes away.
        """

        queue: SubscriberQueue = asyncio.Queue(maxsize=self._queue_size)
        self._subscribers.setdefault(session_id, set()).add(queue)
        return queue

    def unsubscribe(self, session_id: str, queue: SubscriberQueue) -> None:
        subs = self._subscribers.get(session_id)
        if subs:
            subs.discard(queue)
            if not subs:
                del self._subscribers[session_id]

    def publish(self, session_id: str, session: Session) -> SessionUpdate:
        seq = self._counters.get(session_id, 0) + 1
        self._counters[session_id] = seq
        update = SessionUpdate(seq=seq, session=session.to_dict())

        for queue in self._subscribers.get(session_id, set()).copy():
            try:
                queue.put_nowait(update)
            except asyncio.QueueFull:
                LOGGER.warning("Dropping update for slow subscriber session=%s seq=%s", session_id, seq)

        if session.is_terminal:
            self.close(session_id)
        return update

    def close(self, session_id: str) -> None:
        """Signal end of stream to all subscribers and forget the session."""

        for queue in self._subscribers.pop(session_id, set()):
            if queue.full():
                # Make room so the end marker is never lost.
                queue.get_nowait()
            queue.put_nowait(None)
        self._counters.pop(session_id, None)

    def current_seq(self, session_id: str) -> int:
        return self._counters.get(session_id, 0)

    def subscriber_count(self, session_id: str) -> int:
        return len(self._subscribers.get(session_id, set()))

    def total_subscribers(self) -> int:
        return sum(len(subs) for subs in self._subscribers.values())


def snapshot_update(session: dict[str, Any]) -> SessionUpdate:
    """Synthetic update describing current state for a late subscriber."""

    return SessionUpdate(seq=SNAPSHOT_SEQ, session=session)
