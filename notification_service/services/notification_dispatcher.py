from __future__ import annotations

import httpx

from notification_service.core.config import settings
from notification_service.core.exceptions import NotificationRejectedError, NotificationServiceUnavailableError
from notification_service.core.logger import get_logger
from notification_service.schemas.events import ProductCreatedEvent

logger = get_logger(component="NotificationDispatcher")


class NotificationDispatcher:
    """Sends the product-created notification to the remote notification service."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.http_client = http_client
        self.url = base_url or str(settings.notification_service_url)
        self.timeout = timeout if timeout is not None else settings.notification_service_timeout

    async def dispatch(self, event: ProductCreatedEvent) -> str:
        """
        Deliver a notification for ``event``.

        Returns:
            str: The response body from the notification service.

        Raises:
            NotificationServiceUnavailableError: connection failure or timeout.
            NotificationRejectedError: the service answered with a 4xx/5xx status.
        """
        try:
            response = await self.http_client.post(
                self.url,
                json=event.model_dump(mode="json", by_alias=True),
                timeout=self.timeout,
            )
        except httpx.TimeoutException as exc:
            logger.error("Notification service timed out", url=self.url, product_id=event.product_id)
            raise NotificationServiceUnavailableError(f"Timed out calling {self.url}") from exc
        except httpx.TransportError as exc:
            logger.error("Notification service unreachable", url=self.url, error=str(exc))
            raise NotificationServiceUnavailableError(f"Could not reach {self.url}: {exc}") from exc

        if response.status_code >= 400:
            logger.error(
                "Notification service rejected request",
                url=self.url,
                status_code=response.status_code,
                product_id=event.product_id,
            )
            raise NotificationRejectedError(response.status_code, response.text)

        logger.info("Received response from notification service", status_code=response.status_code, body=response.text)
        return response.text
