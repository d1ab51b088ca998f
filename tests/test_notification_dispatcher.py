"""Tests for the notification service client."""

from __future__ import annotations

import json
from decimal import Decimal

import httpx
import pytest

from notification_service.core.exceptions import NotificationRejectedError, NotificationServiceUnavailableError
from notification_service.schemas.events import ProductCreatedEvent
from notification_service.services.notification_dispatcher import NotificationDispatcher

NOTIFY_URL = "http://notifications.test/response/200"


@pytest.fixture
def event() -> ProductCreatedEvent:
    return ProductCreatedEvent(product_id="p1", title="Test product", price=Decimal("10"), quantity=1)


def _dispatcher(handler) -> NotificationDispatcher:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return NotificationDispatcher(client, base_url=NOTIFY_URL, timeout=1.0)


async def test_dispatch_posts_event_and_returns_body(event):
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"key": "value"})

    body = await _dispatcher(handler).dispatch(event)

    assert json.loads(body) == {"key": "value"}
    assert len(requests) == 1
    assert requests[0].method == "POST"
    assert str(requests[0].url) == NOTIFY_URL
    assert json.loads(requests[0].content) == {
        "productId": "p1",
        "title": "Test product",
        "price": "10",
        "quantity": 1,
    }


@pytest.mark.parametrize("status_code", [400, 500, 503])
async def test_error_status_is_rejection(event, status_code):
    dispatcher = _dispatcher(lambda request: httpx.Response(status_code, text="nope"))

    with pytest.raises(NotificationRejectedError) as exc_info:
        await dispatcher.dispatch(event)

    assert exc_info.value.status_code == status_code
    assert exc_info.value.body == "nope"


async def test_connection_error_is_unavailable(event):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(NotificationServiceUnavailableError):
        await _dispatcher(handler).dispatch(event)


async def test_timeout_is_unavailable(event):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(NotificationServiceUnavailableError, match="Timed out"):
        await _dispatcher(handler).dispatch(event)
