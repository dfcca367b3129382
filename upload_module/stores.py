"""Upload session stores: process-local dict or Redis"""

import asyncio
import time
from abc import ABC, abstractmethod

import redis.asyncio as redis

from .session import UploadSession


class SessionStore(ABC):
    """Key-value store for upload sessions with explicit lazy expiry.

    Mutation happens under ``lock(job_id)``; locks are process-local.
    """

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}

    def lock(self, job_id: str) -> asyncio.Lock:
        lock = self._locks.get(job_id)
        if lock is None:
            lock = self._locks[job_id] = asyncio.Lock()
        return lock

    def _forget_lock(self, job_id: str) -> None:
        self._locks.pop(job_id, None)

    @abstractmethod
    async def get(self, job_id: str) -> UploadSession | None:
        """Session for ``job_id``, or None."""

    @abstractmethod
    async def save(self, session: UploadSession) -> None:
        """Insert or replace a session."""

    @abstractmethod
    async def delete(self, job_id: str) -> None:
        """Remove a session if present."""

    @abstractmethod
    async def pop_expired(self, ttl_seconds: float, now: float | None = None) -> list[UploadSession]:
        """Remove and return sessions older than ``ttl_seconds``."""

    async def close(self) -> None:
        """Release backend resources."""


class InMemorySessionStore(SessionStore):
    """Default single-process store."""

    def __init__(self):
        super().__init__()
        self._sessions: dict[str, UploadSession] = {}

    async def get(self, job_id: str) -> UploadSession | None:
        session = self._sessions.get(job_id)
        return session.model_copy(deep=True) if session else None

    async def save(self, session: UploadSession) -> None:
        self._sessions[session.job_id] = session.model_copy(deep=True)

    async def delete(self, job_id: str) -> None:
        self._sessions.pop(job_id, None)
        self._forget_lock(job_id)

    async def pop_expired(self, ttl_seconds: float, now: float | None = None) -> list[UploadSession]:
        now = now or time.time()
        expired = [s for s in self._sessions.values() if s.is_expired(ttl_seconds, now)]
        for session in expired:
            await self.delete(session.job_id)
        return expired

    def __len__(self) -> int:
        return len(self._sessions)


class RedisSessionStore(SessionStore):
    """Sessions as JSON strings plus a created-at sorted set for expiry lookups."""

    def __init__(self, client: redis.Redis, key_prefix: str = "offmute", ttl_seconds: int = 7200):
        super().__init__()
        self.client = client
        self.key_prefix = key_prefix
        self.ttl_seconds = ttl_seconds

    @classmethod
    def from_url(cls, url: str, key_prefix: str = "offmute", ttl_seconds: int = 7200) -> "RedisSessionStore":
        client = redis.from_url(url, encoding="utf-8", decode_responses=True)
        return cls(client, key_prefix=key_prefix, ttl_seconds=ttl_seconds)

    def _key(self, job_id: str) -> str:
        return f"{self.key_prefix}:upload:{job_id}"

    @property
    def _index_key(self) -> str:
        return f"{self.key_prefix}:upload:created"

    async def get(self, job_id: str) -> UploadSession | None:
        raw = await self.client.get(self._key(job_id))
        if raw is None:
            return None
        return UploadSession.model_validate_json(raw)

    async def save(self, session: UploadSession) -> None:
        # Redis TTL backs up the lazy sweep; keys outlive it slightly so the sweep sees them
        await self.client.set(self._key(session.job_id), session.model_dump_json(), ex=self.ttl_seconds * 2)
        await self.client.zadd(self._index_key, {session.job_id: session.created_at})

    async def delete(self, job_id: str) -> None:
        await self.client.delete(self._key(job_id))
        await self.client.zrem(self._index_key, job_id)
        self._forget_lock(job_id)

    async def pop_expired(self, ttl_seconds: float, now: float | None = None) -> list[UploadSession]:
        cutoff = (now or time.time()) - ttl_seconds
        job_ids = await self.client.zrangebyscore(self._index_key, "-inf", f"({cutoff}")
        expired = []
        for job_id in job_ids:
            session = await self.get(job_id)
            if session is not None:
                expired.append(session)
            await self.delete(job_id)
        return expired

    async def close(self) -> None:
        await self.client.aclose()
