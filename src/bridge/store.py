"""Process-wide store of in-flight bridge sessions.

Note: This is a single-process store. Sessions are lost on restart and are not
shared between workers.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from bridge.models import Session


class SessionStore:
    """Session map with one mutual-exclusion scope per session id.

    The raw map is never handed out: callers read detached snapshots through
    ``get`` and mutate only inside ``locked``.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._sessions: dict[str, Session] = {}
        self._session_locks: dict[str, asyncio.Lock] = {}

    async def create(self, *, provider: str, from_phone: str, to_phone: str) -> Session:
        session_id = str(uuid.uuid4())
        session = Session(
            session_id=session_id,
            provider=provider,
            from_phone=from_phone,
            to_phone=to_phone,
        )
        async with self._lock:
            self._sessions[session_id] = session
            self._session_locks[session_id] = asyncio.Lock()
        return session

    async def get(self, session_id: str) -> dict[str, Any] | None:
        lock = await self._lock_for(session_id)
        if lock is None:
            return None
        async with lock:
            session = self._sessions.get(session_id)
            return session.to_dict() if session is not None else None

    @asynccontextmanager
    async def locked(self, session_id: str) -> AsyncIterator[Session | None]:
        """Hold the session's lock for an atomic read-modify-write.

        Yields None when the session is unknown.
        """

        lock = await self._lock_for(session_id)
        if lock is None:
            yield None
            return
        async with lock:
            yield self._sessions.get(session_id)

    async def delete(self, session_id: str) -> bool:
        async with self._lock:
            self._session_locks.pop(session_id, None)
            return self._sessions.pop(session_id, None) is not None

    async def count(self) -> int:
        async with self._lock:
            return len(self._sessions)

    async def _lock_for(self, session_id: str) -> asyncio.Lock | None:
        async with self._lock:
            return self._session_locks.get(session_id)
