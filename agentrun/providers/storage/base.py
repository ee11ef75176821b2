"""
Session store interface.
"""

from abc import ABC, abstractmethod

from agentrun.domain import Session


class SessionStore(ABC):
    """
    Key-value persistence for sessions, keyed by session id.

    The runner accesses a given session only while holding its per-session
    lock, so implementations need not serialize writes to one key.
    """

    @abstractmethod
    async def get(self, session_id: str) -> Session | None:
        """Get Session, or None when unknown or expired"""

    @abstractmethod
    async def save(self, session: Session) -> None:
        """Save Session (refreshes its TTL)"""

    @abstractmethod
    async def delete(self, session_id: str) -> bool:
        """Delete Session; returns whether it existed"""

    @abstractmethod
    async def list_ids(self) -> list[str]:
        """List live session ids"""

    async def close(self) -> None:
        """Close storage connection."""


__all__ = ["SessionStore"]
