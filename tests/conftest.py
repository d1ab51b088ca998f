from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

# Ensure environment variables are set before application settings are imported.
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./tests/test.db")
os.environ.setdefault("DATABASE_POOL_PRE_PING", "false")
os.environ.setdefault("ENABLE_PRODUCTS_CONSUMER", "false")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "test-access-key")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "test-secret-key")
os.environ.setdefault("LOG_FORMAT", "text")

from notification_service.db.session import AsyncSessionFactory, engine
from notification_service.handlers.product_created import ProductCreatedEventHandler
from notification_service.models.base import Base
from notification_service.schemas.events import DeliveryAttempt
from notification_service.services.notification_dispatcher import NotificationDispatcher
from notification_service.services.retry_policy import RetryPolicy


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield AsyncSessionFactory


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def dispatcher() -> MagicMock:
    mock_dispatcher = MagicMock(spec=NotificationDispatcher)
    mock_dispatcher.dispatch = AsyncMock(return_value='{"key":"value"}')
    return mock_dispatcher


@pytest.fixture
def retry_policy() -> RetryPolicy:
    return RetryPolicy(backoff_seconds=5, max_attempts=3)


@pytest.fixture
def handler(session_factory, dispatcher, retry_policy) -> ProductCreatedEventHandler:
    return ProductCreatedEventHandler(
        session_factory=session_factory,
        dispatcher=dispatcher,
        policy=retry_policy,
        trusted_event_types=["ProductCreatedEvent"],
    )


@pytest.fixture
def product_payload() -> dict[str, object]:
    return {"productId": "p1", "title": "Test product", "price": "10", "quantity": 1}


@pytest.fixture
def make_attempt(product_payload):
    def _make(message_id: str | None = "m1", attempt_number: int = 1, **overrides) -> DeliveryAttempt:
        return DeliveryAttempt(
            message_id=message_id,
            payload=overrides.pop("payload", product_payload),
            attempt_number=attempt_number,
            message_key=overrides.pop("message_key", "p1"),
            **overrides,
        )

    return _make


@pytest_asyncio.fixture
async def async_client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    from notification_service.main import create_app

    app = create_app()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
