"""Server-side session storage.

A session is an opaque random token mapped to a local user id with a TTL.
The cookie only ever carries the (signed) token.
"""

import logging
import secrets
import time
import uuid
from abc import ABC, abstractmethod
from typing import Callable

import redis.asyncio as aioredis

from app.config import Settings

logger = logging.getLogger(__name__)


def new_session_token() -> str:
    return secrets.token_urlsafe(32)


class SessionStore(ABC):
    """Maps session tokens to user ids until they expire or are deleted."""

    def __init__(self, max_age: int):
        self.max_age = max_age

    @abstractmethod
    async def create(self, user_id: uuid.UUID) -> str:
        ...

    @abstractmethod
    async def get(self, token: str) -> uuid.UUID | None:
        ...

    @abstractmethod
    async def delete(self, token: str) -> None:
        """Remove a session. Unknown tokens are ignored."""
        ...

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        pass


class MemorySessionStore(SessionStore):
    """Process-local store for tests and single-worker development."""

    def __init__(self, max_age: int, clock: Callable[[], float] = time.monotonic):
        super().__init__(max_age)
        self._clock = clock
        self._sessions: dict[str, tuple[uuid.UUID, float]] = {}

    async def create(self, user_id: uuid.UUID) -> str:
        token = new_session_token()
        self._sessions[token] = (user_id, self._clock() + self.max_age)
        return token

    async def get(self, token: str) -> uuid.UUID | None:
        entry = self._sessions.get(token)
        if entry is None:
            return None
        user_id, expires_at = entry
        if self._clock() >= expires_at:
            self._sessions.pop(token, None)
            return None
        return user_id

    async def delete(self, token: str) -> None:
        self._sessions.pop(token, None)

    def __len__(self) -> int:
        return len(self._sessions)


class RedisSessionStore(SessionStore):
    key_prefix = "session:"

    def __init__(self, client: aioredis.Redis, max_age: int):
        super().__init__(max_age)
        self.client = client

    def _key(self, token: str) -> str:
        return f"{self.key_prefix}{token}"

    async def create(self, user_id: uuid.UUID) -> str:
        token = new_session_token()
        await self.client.set(self._key(token), str(user_id), ex=self.max_age)
        return token

    async def get(self, token: str) -> uuid.UUID | None:
        value = await self.client.get(self._key(token))
        if value is None:
            return None
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        try:
            return uuid.UUID(value)
        except ValueError:
            logger.warning("Discarding malformed session record")
            await self.delete(token)
            return None

    async def delete(self, token: str) -> None:
        await self.client.delete(self._key(token))

    async def ping(self) -> bool:
        return bool(await self.client.ping())

    async def close(self) -> None:
        await self.client.aclose()


def build_session_store(settings: Settings) -> SessionStore:
    if settings.session_backend == "memory":
        logger.info("Using in-memory session store")
        return MemorySessionStore(settings.session_max_age)
    if settings.session_backend == "redis":
        client = aioredis.from_url(settings.redis_url, socket_timeout=5)
        return RedisSessionStore(client, settings.session_max_age)
    raise ValueError(f"Unknown session backend: {settings.session_backend}")
