"""
Access to the two session notes owned by the second-factor step.

The host session store is shared with other requests (duplicate tabs, back
button). Nothing here locks; the flow detects stale values by comparison.
"""
import os
from abc import ABC, abstractmethod
from typing import MutableMapping, Optional

import redis.asyncio as aioredis

DUO_STATE_NOTE = "DUO_STATE"
DUO_USERNAME_NOTE = "DUO_USERNAME"


class SessionNotes(ABC):
    @abstractmethod
    async def _get(self, name: str) -> Optional[str]:
        pass

    @abstractmethod
    async def _set(self, values: dict) -> None:
        pass

    async def get_duo_state(self) -> Optional[str]:
        return await self._get(DUO_STATE_NOTE)

    async def set_duo_state(self, value: str) -> None:
        await self._set({DUO_STATE_NOTE: value})

    async def get_duo_username(self) -> Optional[str]:
        return await self._get(DUO_USERNAME_NOTE)

    async def set_duo_username(self, value: str) -> None:
        await self._set({DUO_USERNAME_NOTE: value})

    async def bind(self, state: str, username: str) -> None:
        """Store a new challenge, replacing any previous one."""
        await self._set({DUO_STATE_NOTE: state, DUO_USERNAME_NOTE: username})


class MappingSessionNotes(SessionNotes):
    """Notes kept in the host's auth-note mapping."""

    def __init__(self, notes: MutableMapping[str, str] = None):
        self.notes = notes if notes is not None else {}

    async def _get(self, name):
        return self.notes.get(name)

    async def _set(self, values):
        self.notes.update(values)


class RedisSessionNotes(SessionNotes):
    """Notes kept in a redis hash per authentication session."""

    def __init__(self, redis_client: aioredis.Redis, session_id: str, ttl: int = None):
        self.redis = redis_client
        self.key = f"duoflow:auth-session:{session_id}"
        self.ttl = ttl if ttl is not None else int(os.getenv("DUO_SESSION_TTL_SECONDS", "1800"))

    async def _get(self, name):
        value = await self.redis.hget(self.key, name)
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def _set(self, values):
        # commands are buffered until execute
        pipe = self.redis.pipeline()
        pipe.hset(self.key, mapping=values)
        pipe.expire(self.key, self.ttl)
        await pipe.execute()
