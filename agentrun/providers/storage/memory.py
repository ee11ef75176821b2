"""
In-memory session store.
"""

import time
from typing import Callable

from agentrun.domain import Session
from agentrun.providers.storage.base import SessionStore


class InMemorySessionStore(SessionStore):
    """
    Process-local store with optional TTL.

    Sessions are stored as serialized snapshots so callers never share
    mutable state with the store. Expiry is checked on read.
    """

    def __init__(self, ttl: float | None = None, clock: Callable[[], float] = time.time):
        self.ttl = ttl
        self._clock = clock
        self._sessions: dict[str, tuple[str, float]] = {}

    def _expired(self, stored_at: float) -> bool:
        return self.ttl is not None and self._clock() - stored_at >= self.ttl

    async def get(self, session_id: str) -> Session | None:
        entry = self._sessions.get(session_id)
        if entry is None:
            return None
        data, stored_at = entry
        if self._expired(stored_at):
            del self._sessions[session_id]
            return None
        return Session.model_validate_json(data)

    async def save(self, session: Session) -> None:
        self._sessions[session.id] = (session.model_dump_json(), self._clock())

    async def delete(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    async def list_ids(self) -> list[str]:
        for session_id, (_, stored_at) in list(self._sessions.items()):
            if self._expired(stored_at):
                del self._sessions[session_id]
        return list(self._sessions)


__all__ = ["InMemorySessionStore"]
