from fastapi import Request
from event_publisher.core.publisher import BasePublisher
from event_publisher.core.session_cache import SessionCache


async def get_publisher(request: Request) -> BasePublisher:
    return request.app.state.publisher


async def get_session_cache(request: Request) -> SessionCache:
    return request.app.state.session_cache
