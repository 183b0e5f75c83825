import json
import math
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


# NaN/Infinity literals and overflowing numbers are not JSON
def _reject_constant(name: str):
    raise ValueError(f"invalid JSON constant {name}")


def _finite_float(value: str) -> float:
    number = float(value)
    if math.isinf(number):
        raise ValueError(f"number out of range: {value}")
    return number


class EventMetadata(BaseModel):
    token: str
    userID: str
    instanceName: str = ""
    serverUrl: str = ""


class EnrichedEvent(BaseModel):
    """
    An outbound JSON object with caller metadata merged into its top level.
    Metadata keys win over same-named keys of the original object.
    """

    payload: Dict[str, Any] = Field(default_factory=dict)
    metadata: EventMetadata

    @classmethod
    def from_json(cls, data: bytes, metadata: EventMetadata) -> Optional["EnrichedEvent"]:
        try:
            payload = json.loads(
                data, parse_constant=_reject_constant, parse_float=_finite_float
            )
        except (ValueError, RecursionError):
            return None
        if not isinstance(payload, dict):
            return None
        return cls(payload=payload, metadata=metadata)

    def to_json(self) -> bytes:
        meta = self.metadata.model_dump()
        body = {k: v for k, v in self.payload.items() if k not in meta}
        body.update(meta)
        return json.dumps(body, separators=(",", ":"), allow_nan=False).encode("utf-8")


class PublishAccepted(BaseModel):
    event: str
    accepted: bool


class PublisherStatus(BaseModel):
    enabled: bool
    queue: str
    exchange: Optional[str] = None
    exchangeType: Optional[str] = None
    routingKey: Optional[str] = None
    allowAll: bool
    events: Optional[List[str]] = None
