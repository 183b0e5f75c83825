# event_publisher/api/v1/sessions.py
from fastapi import APIRouter, Depends, HTTPException, status
from event_publisher.core.deps import get_session_cache
from event_publisher.core.session_cache import SessionCache, SessionInfo

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.put("/{token}", response_model=SessionInfo)
async def put_session(
    token: str,
    info: SessionInfo,
    session_cache: SessionCache = Depends(get_session_cache),
):
    await session_cache.set(token, info)
    return info


@router.get("/{token}", response_model=SessionInfo)
async def get_session(
    token: str,
    session_cache: SessionCache = Depends(get_session_cache),
):
    info = await session_cache.get(token)
    if info is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Session not found"
        )
    return info
