"""
Redis session store.
"""

import redis.asyncio as redis

from agentrun.domain import Session
from agentrun.providers.storage.base import SessionStore
from agentrun.utils.logging import get_logger

logger = get_logger(__name__)


class RedisSessionStore(SessionStore):
    """Redis-backed store; each session is one JSON string with a TTL."""

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        ttl: int | None = 3600,
        prefix: str = "agentrun:session:",
        client: "redis.Redis | None" = None,
        **kwargs,
    ):
        self.redis_url = redis_url
        self.ttl = ttl
        self.prefix = prefix
        self.client = client
        self.kwargs = kwargs

    def _key(self, session_id: str) -> str:
        return f"{self.prefix}{session_id}"

    async def _get_client(self) -> "redis.Redis":
        """Lazy initialization of Redis client."""
        if self.client is None:
            self.client = redis.from_url(self.redis_url, **self.kwargs)
        return self.client

    async def get(self, session_id: str) -> Session | None:
        client = await self._get_client()
        data = await client.get(self._key(session_id))
        if data is None:
            return None
        try:
            return Session.model_validate_json(data)
        except ValueError as e:
            logger.error("session_deserialize_failed", session_id=session_id, error=str(e))
            raise

    async def save(self, session: Session) -> None:
        client = await self._get_client()
        await client.set(self._key(session.id), session.model_dump_json(), ex=self.ttl)

    async def delete(self, session_id: str) -> bool:
        client = await self._get_client()
        return bool(await client.delete(self._key(session_id)))

    async def list_ids(self) -> list[str]:
        client = await self._get_client()
        ids = []
        async for key in client.scan_iter(match=f"{self.prefix}*"):
            if isinstance(key, bytes):
                key = key.decode()
            ids.append(key[len(self.prefix):])
        return ids

    async def close(self) -> None:
        """Close Redis connection."""
        if self.client is not None:
            await self.client.aclose()


__all__ = ["RedisSessionStore"]
