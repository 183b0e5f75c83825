"""
Outbound event publishing to RabbitMQ.

``connect_publisher`` is called once at startup and returns either a
``RabbitPublisher`` holding the connection/channel or a ``DisabledPublisher``
on which every call is a no-op. Setup problems never raise to the host.
"""
import logging
from typing import FrozenSet, Optional, Tuple

from aio_pika import Message, connect_robust
from pydantic import BaseModel, ConfigDict

from event_publisher.core.config import Settings
from event_publisher.core.session_cache import SessionCache
from event_publisher.schemas.event import EnrichedEvent, EventMetadata, PublisherStatus

logger = logging.getLogger(__name__)

DEFAULT_QUEUE = "whatsapp_events"
DEFAULT_EXCHANGE_TYPE = "topic"
ALL_EVENTS = "All"
CONTENT_TYPE = "application/json"


class PublishError(Exception):
    pass


def parse_event_filter(events: str | None) -> Tuple[bool, Optional[FrozenSet[str]]]:
    """
    Parse a comma-separated allow-list into ``(allow_all, allowed_events)``.
    Empty input or ``All`` in any case allows everything.
    """
    events = (events or "").strip()
    if not events or events.lower() == ALL_EVENTS.lower():
        return True, None
    return False, frozenset(e.strip() for e in events.split(",") if e.strip())


class PublisherConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    queue: str = DEFAULT_QUEUE
    exchange: Optional[str] = None
    exchange_type: str = DEFAULT_EXCHANGE_TYPE
    routing_key: Optional[str] = None
    allow_all: bool = True
    allowed_events: Optional[FrozenSet[str]] = None
    server_url: str = ""

    @classmethod
    def from_settings(cls, settings: Settings) -> "PublisherConfig":
        allow_all, allowed_events = parse_event_filter(settings.RABBITMQ_EVENTS)
        return cls(
            queue=settings.RABBITMQ_QUEUE or DEFAULT_QUEUE,
            exchange=settings.RABBITMQ_EXCHANGE or None,
            exchange_type=settings.RABBITMQ_EXCHANGE_TYPE or DEFAULT_EXCHANGE_TYPE,
            routing_key=settings.RABBITMQ_ROUTING_KEY or None,
            allow_all=allow_all,
            allowed_events=allowed_events,
            server_url=settings.SERVER_URL or "",
        )

    def allows(self, event_type: str) -> bool:
        if self.allow_all or self.allowed_events is None:
            return True
        # "All" listed next to explicit names still acts as a wildcard
        return event_type in self.allowed_events or ALL_EVENTS in self.allowed_events


class BasePublisher:
    enabled = False

    def __init__(
        self, config: PublisherConfig, session_cache: Optional[SessionCache] = None
    ):
        self.config = config
        self.session_cache = session_cache

    def should_publish(self, event_type: str) -> bool:
        return self.enabled and self.config.allows(event_type)

    async def publish(
        self, payload: bytes, event_type: str, queue: Optional[str] = None
    ) -> None:
        """
        Publish ``payload`` unless the event filter rejects ``event_type``.
        Raises PublishError when the broker call fails.
        """
        if not self.should_publish(event_type):
            logger.debug("RabbitMQ filter skipped event %s", event_type)
            return
        await self._send(payload, event_type, queue)

    async def _send(self, payload: bytes, event_type: str, queue: Optional[str]):
        raise NotImplementedError

    async def enrich(self, payload: bytes, token: str, user_id: str) -> bytes:
        instance_name = ""
        if self.session_cache is not None:
            info = await self.session_cache.get(token)
            if info is not None:
                instance_name = info.name
        metadata = EventMetadata(
            token=token,
            userID=user_id,
            instanceName=instance_name,
            serverUrl=self.config.server_url,
        )
        event = EnrichedEvent.from_json(payload, metadata)
        if event is None:
            return payload
        try:
            return event.to_json()
        except (ValueError, RecursionError):
            return payload

    async def publish_enriched(
        self,
        payload: bytes,
        event_type: str,
        token: str,
        user_id: str,
        queue: Optional[str] = None,
    ) -> None:
        if not self.enabled:
            logger.debug("RabbitMQ publishing is disabled, not sending message")
            return
        data = await self.enrich(payload, token, user_id)
        try:
            await self.publish(data, event_type, queue)
        except PublishError as e:
            logger.error("Failed to publish to RabbitMQ: %s", e)

    def status(self) -> PublisherStatus:
        events = self.config.allowed_events
        return PublisherStatus(
            enabled=self.enabled,
            queue=self.config.queue,
            exchange=self.config.exchange,
            exchangeType=self.config.exchange_type if self.config.exchange else None,
            routingKey=self.config.routing_key,
            allowAll=self.config.allow_all,
            events=sorted(events) if events is not None else None,
        )

    async def close(self) -> None:
        return None


class DisabledPublisher(BasePublisher):
    enabled = False


class RabbitPublisher(BasePublisher):
    enabled = True

    def __init__(
        self,
        config: PublisherConfig,
        connection,
        channel,
        exchange=None,
        session_cache: Optional[SessionCache] = None,
    ):
        super().__init__(config, session_cache)
        self.connection = connection
        self.channel = channel
        self.exchange = exchange

    async def _send(self, payload: bytes, event_type: str, queue: Optional[str]):
        message = Message(body=payload, content_type=CONTENT_TYPE)

        if self.exchange is not None:
            routing_key = self.config.routing_key or event_type
            try:
                await self.exchange.publish(message, routing_key=routing_key)
            except Exception as e:
                logger.error(
                    "Could not publish to RabbitMQ exchange %s (routing key %s): %s",
                    self.config.exchange,
                    routing_key,
                    e,
                )
                raise PublishError(
                    f"publish to exchange {self.config.exchange!r} failed: {e}"
                ) from e
            logger.debug(
                "Published message to RabbitMQ exchange %s (routing key %s)",
                self.config.exchange,
                routing_key,
            )
            return

        queue_name = queue or self.config.queue
        try:
            await self.channel.declare_queue(queue_name, durable=True, auto_delete=False)
        except Exception as e:
            logger.error("Could not declare RabbitMQ queue %s: %s", queue_name, e)
            raise PublishError(f"declare queue {queue_name!r} failed: {e}") from e
        try:
            await self.channel.default_exchange.publish(message, routing_key=queue_name)
        except Exception as e:
            logger.error("Could not publish to RabbitMQ queue %s: %s", queue_name, e)
            raise PublishError(f"publish to queue {queue_name!r} failed: {e}") from e
        logger.debug("Published message to RabbitMQ queue %s", queue_name)

    async def close(self) -> None:
        await self.connection.close()


async def _close_after_failure(connection) -> None:
    try:
        await connection.close()
    except Exception as e:
        logger.warning("Could not close RabbitMQ connection: %s", e)


async def connect_publisher(
    settings: Settings,
    session_cache: Optional[SessionCache] = None,
    connect=connect_robust,
) -> BasePublisher:
    config = PublisherConfig.from_settings(settings)

    if not settings.RABBITMQ_URL:
        logger.info("RABBITMQ_URL is not set. RabbitMQ publishing disabled.")
        return DisabledPublisher(config, session_cache)

    try:
        connection = await connect(settings.RABBITMQ_URL)
    except Exception as e:
        logger.error("Could not connect to RabbitMQ: %s", e)
        return DisabledPublisher(config, session_cache)

    try:
        channel = await connection.channel()
    except Exception as e:
        logger.error("Could not open RabbitMQ channel: %s", e)
        await _close_after_failure(connection)
        return DisabledPublisher(config, session_cache)

    exchange = None
    if config.exchange:
        try:
            exchange = await channel.declare_exchange(
                config.exchange,
                type=config.exchange_type,
                durable=True,
                auto_delete=False,
            )
        except Exception as e:
            logger.error(
                "Could not declare RabbitMQ exchange %s: %s", config.exchange, e
            )
            await _close_after_failure(connection)
            return DisabledPublisher(config, session_cache)
        logger.info(
            "RabbitMQ exchange %s declared (type %s)",
            config.exchange,
            config.exchange_type,
        )

    logger.info("RabbitMQ connection established. queue=%s", config.queue)
    return RabbitPublisher(config, connection, channel, exchange, session_cache)
