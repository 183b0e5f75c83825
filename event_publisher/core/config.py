# event_publisher/core/config.py
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    RABBITMQ_URL: str | None = None
    RABBITMQ_QUEUE: str = Field("whatsapp_events")
    RABBITMQ_EXCHANGE: str | None = None
    RABBITMQ_EXCHANGE_TYPE: str | None = None
    # empty means "use the event type"
    RABBITMQ_ROUTING_KEY: str | None = None
    RABBITMQ_EVENTS: str = Field("")

    SERVER_URL: str = Field("")

    REDIS_URL: str | None = None
    SESSION_CACHE_TTL: int = 3600

    SERVICE_NAME: str = Field("event_publisher")
    LOG_DIR: str = Field("/app/logs")
    LOG_LEVEL: str = Field("info")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
