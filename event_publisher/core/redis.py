# event_publisher/core/redis.py
from typing import Optional
from redis.asyncio import Redis, ConnectionPool

_redis_client: Optional[Redis] = None


def init_redis(url: str) -> Redis:
    """Create the shared client used by the session cache (once per process)."""
    global _redis_client
    if _redis_client is None:
        pool = ConnectionPool.from_url(url, decode_responses=False)
        _redis_client = Redis(connection_pool=pool)
    return _redis_client


async def close_redis() -> None:
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
