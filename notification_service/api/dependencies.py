from __future__ import annotations
from functools import lru_cache
import httpx

from notification_service.core.config import settings
from notification_service.db.session import AsyncSessionFactory
from notification_service.handlers.product_created import ProductCreatedEventHandler
from notification_service.services.notification_dispatcher import NotificationDispatcher
from notification_service.services.retry_policy import RetryPolicy


@lru_cache(maxsize=1)
def get_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient()


@lru_cache(maxsize=1)
def get_retry_policy() -> RetryPolicy:
    return RetryPolicy(
        backoff_seconds=settings.retry_backoff_seconds,
        max_attempts=settings.max_retry_attempts,
    )


@lru_cache(maxsize=1)
def get_event_handler() -> ProductCreatedEventHandler:
    return ProductCreatedEventHandler(
        session_factory=AsyncSessionFactory,
        dispatcher=NotificationDispatcher(get_http_client()),
        policy=get_retry_policy(),
        trusted_event_types=settings.trusted_event_types,
    )
