"""
Per-session mutual exclusion.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

from agentrun.domain import SessionLocked
from agentrun.utils.logging import get_logger

logger = get_logger(__name__)


class SessionLockManager:
    """
    One asyncio.Lock per active session id.

    ``hold`` never waits: a second run on a busy session fails immediately
    with SessionLocked instead of queueing behind the first.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    def is_locked(self, session_id: str) -> bool:
        lock = self._locks.get(session_id)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, session_id: str) -> AsyncIterator[None]:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = self._locks[session_id] = asyncio.Lock()
        if lock.locked():
            logger.info("session_locked", session_id=session_id)
            raise SessionLocked(session_id)
        # An unlocked lock with no waiters is acquired without suspending
        await lock.acquire()
        try:
            yield
        finally:
            lock.release()
            if self._locks.get(session_id) is lock and not lock.locked():
                del self._locks[session_id]

    def __len__(self) -> int:
        return len(self._locks)


__all__ = ["SessionLockManager"]
