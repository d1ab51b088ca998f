from functools import lru_cache
from typing import Annotated, Literal

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    project_name: str = "Email Notification Service"
    environment: Literal["local", "dev", "staging", "prod", "test"] = Field("local", alias="ENVIRONMENT")
    api_v1_prefix: str = "/api/v1"

    # Database
    database_url: str = Field(..., alias="DATABASE_URL")
    database_pool_pre_ping: bool = Field(True, alias="DATABASE_POOL_PRE_PING")

    # AWS / SQS
    aws_region: str = Field("us-east-1", alias="AWS_REGION")
    aws_access_key_id: str | None = Field(default=None, alias="AWS_ACCESS_KEY_ID")
    aws_secret_access_key: str | None = Field(default=None, alias="AWS_SECRET_ACCESS_KEY")
    aws_session_token: str | None = Field(default=None, alias="AWS_SESSION_TOKEN")
    sqs_endpoint_url: str | None = Field(default=None, alias="AWS_SQS_ENDPOINT_URL")

    # Products-created consumer
    enable_products_consumer: bool = Field(True, alias="ENABLE_PRODUCTS_CONSUMER")
    products_created_queue_url: str | None = Field(default=None, alias="PRODUCTS_CREATED_QUEUE_URL")
    consumer_group: str = Field("product-created-events", alias="CONSUMER_GROUP")
    consumer_max_messages: int = Field(10, alias="CONSUMER_MAX_MESSAGES")
    consumer_wait_time: int = Field(20, alias="CONSUMER_WAIT_TIME")
    consumer_concurrency: int = Field(5, alias="CONSUMER_CONCURRENCY")
    consumer_shutdown_timeout: float = Field(30.0, alias="CONSUMER_SHUTDOWN_TIMEOUT")
    trusted_event_types: Annotated[list[str], NoDecode] = Field(default=["ProductCreatedEvent"], alias="TRUSTED_EVENT_TYPES")

    # Retry / dead letter
    retry_backoff_seconds: int = Field(5, alias="RETRY_BACKOFF_SECONDS")
    max_retry_attempts: int = Field(3, alias="MAX_RETRY_ATTEMPTS")
    dead_letter_queue_url: str | None = Field(default=None, alias="DEAD_LETTER_QUEUE_URL")
    dead_letter_suffix: str = Field("-dlt", alias="DEAD_LETTER_SUFFIX")

    # Notification target
    notification_service_url: AnyHttpUrl = Field("http://localhost:8082/response/200", alias="NOTIFICATION_SERVICE_URL")
    notification_service_timeout: float = Field(5.0, alias="NOTIFICATION_SERVICE_TIMEOUT")

    # Observability
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_format: Literal["json", "text"] = Field("json", alias="LOG_FORMAT")

    @field_validator(
        "aws_access_key_id",
        "aws_secret_access_key",
        "aws_session_token",
        "sqs_endpoint_url",
        "products_created_queue_url",
        "dead_letter_queue_url",
        mode="before",
    )
    @classmethod
    def blank_to_none(cls, value: str | None):
        if isinstance(value, str) and value.strip() == "":
            return None
        return value

    @field_validator("trusted_event_types", mode="before")
    @classmethod
    def split_event_types(cls, value):
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]


settings = get_settings()
