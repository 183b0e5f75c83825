# event_publisher/api/v1/events.py
import json
from typing import Any, Optional
from fastapi import APIRouter, Body, Depends, status
from event_publisher.core.deps import get_publisher
from event_publisher.core.publisher import BasePublisher
from event_publisher.schemas.event import PublishAccepted, PublisherStatus

router = APIRouter(prefix="/events", tags=["events"])


@router.get("/status", response_model=PublisherStatus)
async def publisher_status(publisher: BasePublisher = Depends(get_publisher)):
    return publisher.status()


@router.post(
    "/{event_type}",
    response_model=PublishAccepted,
    status_code=status.HTTP_202_ACCEPTED,
)
async def publish_event(
    event_type: str,
    payload: Any = Body(...),
    token: str = "",
    user_id: str = "",
    queue: Optional[str] = None,
    publisher: BasePublisher = Depends(get_publisher),
):
    await publisher.publish_enriched(
        json.dumps(payload).encode("utf-8"),
        event_type,
        token=token,
        user_id=user_id,
        queue=queue,
    )
    return PublishAccepted(
        event=event_type, accepted=publisher.should_publish(event_type)
    )
