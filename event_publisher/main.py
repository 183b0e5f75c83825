import logging
from fastapi import FastAPI
from contextlib import asynccontextmanager
from event_publisher.core.config import settings
from event_publisher.core.logger import configure_logging
from event_publisher.core.redis import init_redis, close_redis
from event_publisher.core.publisher import connect_publisher
from event_publisher.core.session_cache import MemorySessionCache, RedisSessionCache
from event_publisher.api.v1 import events as events_router
from event_publisher.api.v1 import sessions as sessions_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.LOG_LEVEL, settings.SERVICE_NAME, settings.LOG_DIR)

    if settings.REDIS_URL:
        session_cache = RedisSessionCache(
            init_redis(settings.REDIS_URL), ttl_seconds=settings.SESSION_CACHE_TTL
        )
    else:
        session_cache = MemorySessionCache(ttl_seconds=settings.SESSION_CACHE_TTL)

    app.state.session_cache = session_cache
    app.state.publisher = await connect_publisher(settings, session_cache)

    try:
        yield
    finally:
        try:
            await app.state.publisher.close()
        except Exception as e:
            logger.warning("Could not close RabbitMQ connection: %s", e)
        try:
            await close_redis()
        except Exception as e:
            logger.warning("Could not close Redis client: %s", e)


app = FastAPI(title="Event Publisher", lifespan=lifespan)


app.include_router(events_router.router)
app.include_router(sessions_router.router)
