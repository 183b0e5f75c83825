"""
Session-info lookups used to enrich outbound events with the instance name.
"""
import json
import logging
import time
from typing import Dict, Optional, Protocol, Tuple

from pydantic import BaseModel, ConfigDict, Field
from redis.asyncio import Redis

logger = logging.getLogger(__name__)


class SessionInfo(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: str = Field("", alias="Name")


class SessionCache(Protocol):
    async def get(self, token: str) -> Optional[SessionInfo]: ...

    async def set(self, token: str, info: SessionInfo) -> None: ...


class MemorySessionCache:
    """In-process cache; entries expire ``ttl_seconds`` after they are set."""

    def __init__(self, ttl_seconds: int = 3600, clock=time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[float, SessionInfo]] = {}

    async def get(self, token: str) -> Optional[SessionInfo]:
        entry = self._entries.get(token)
        if entry is None:
            return None
        expires_at, info = entry
        if self._clock() >= expires_at:
            self._entries.pop(token, None)
            return None
        return info

    async def set(self, token: str, info: SessionInfo) -> None:
        self._entries[token] = (self._clock() + self.ttl_seconds, info)


class RedisSessionCache:
    def __init__(
        self, redis: Redis, prefix: str = "session:", ttl_seconds: int = 3600
    ):
        self.redis = redis
        self.prefix = prefix
        self.ttl_seconds = ttl_seconds

    def _key(self, token: str) -> str:
        return f"{self.prefix}{token}"

    async def get(self, token: str) -> Optional[SessionInfo]:
        try:
            raw = await self.redis.get(self._key(token))
            if raw is None:
                return None
            return SessionInfo.model_validate_json(raw)
        except Exception as e:
            logger.exception("Session cache lookup failed (redis): %s", e)
            return None

    async def set(self, token: str, info: SessionInfo) -> None:
        await self.redis.set(
            self._key(token),
            json.dumps(info.model_dump(by_alias=True)),
            ex=self.ttl_seconds,
        )
