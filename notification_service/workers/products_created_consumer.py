"""SQS consumer for products-created events that triggers product notifications."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import aioboto3

from notification_service.core.config import settings
from notification_service.core.logger import get_logger
from notification_service.events.dead_letter import DeadLetterPublisher
from notification_service.handlers.product_created import ProductCreatedEventHandler
from notification_service.schemas.events import DeliveryAttempt
from notification_service.services.error_classifier import FailureKind
from notification_service.services.retry_policy import DeliveryAction, DeliveryDecision, dead_letter_channel

logger = get_logger(component="ProductsCreatedConsumer")


class MalformedMessageError(ValueError):
    """The message body is not a JSON object."""


class ProductsCreatedConsumer:
    """
    Long-polling SQS consumer that feeds products-created messages to the event handler.

    Deleting a message is the acknowledgement. A retry leaves the message on the
    queue and sets its visibility timeout to the policy's backoff, so SQS
    redelivers it with ``ApproximateReceiveCount`` incremented; that count is
    the attempt number. Dead-lettered messages are copied to the dead-letter
    queue and then deleted.

    Messages in a batch are handled concurrently, at most ``concurrency`` at a time.
    """

    def __init__(
        self,
        *,
        queue_url: str,
        handler: ProductCreatedEventHandler,
        dead_letter_publisher: DeadLetterPublisher,
        region_name: str | None = None,
        wait_time_seconds: int = 20,
        max_messages: int = 10,
        concurrency: int = 5,
    ) -> None:
        self._queue_url = queue_url
        self._handler = handler
        self._dead_letter_publisher = dead_letter_publisher
        self._wait_time_seconds = wait_time_seconds
        self._max_messages = max_messages
        self._region_name = region_name
        self._semaphore = asyncio.Semaphore(concurrency)
        self._session = aioboto3.Session(
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            aws_session_token=settings.aws_session_token,
            region_name=region_name,
        )
        self._running = False
        self._started = False
        self._stop_requested = False
        self._shutdown_event = asyncio.Event()

    @property
    def queue_url(self) -> str:
        return self._queue_url

    async def run_forever(self) -> None:
        """Start the consumer and process messages until shutdown is requested."""
        if self._stop_requested:
            return
        self._running = True
        self._started = True
        self._shutdown_event.clear()
        logger.info(
            "Starting products-created consumer",
            queue_url=self._queue_url,
            consumer_group=settings.consumer_group,
            dead_letter_queue=self._dead_letter_publisher.queue_url,
        )

        try:
            while self._running:
                try:
                    await self._process_batch()
                except asyncio.CancelledError:
                    logger.info("Consumer task cancelled, shutting down gracefully")
                    break
                except Exception as exc:
                    logger.exception("Unexpected error in consumer loop", error=str(exc))
                    await asyncio.sleep(5)
        finally:
            self._running = False
            logger.info("Products-created consumer stopped")
            self._shutdown_event.set()

    async def shutdown(self) -> None:
        """Signal the consumer to stop and wait for the in-flight batch to be settled."""
        logger.info("Shutdown requested for products-created consumer")
        self._stop_requested = True
        self._running = False
        if not self._started:
            return
        await self._shutdown_event.wait()

    async def _process_batch(self) -> None:
        async with self._session.client(
            "sqs", region_name=self._region_name, endpoint_url=settings.sqs_endpoint_url
        ) as sqs_client:
            response = await sqs_client.receive_message(
                QueueUrl=self._queue_url,
                MaxNumberOfMessages=self._max_messages,
                WaitTimeSeconds=self._wait_time_seconds,
                MessageAttributeNames=["All"],
                AttributeNames=["ApproximateReceiveCount"],
            )
            messages = response.get("Messages", [])
            if not messages:
                return

            results = await asyncio.gather(
                *(self._process_message(sqs_client, message) for message in messages),
                return_exceptions=True,
            )
            for message, result in zip(messages, results):
                if isinstance(result, Exception):
                    # Not deleted: SQS redelivers it once the visibility timeout lapses.
                    logger.error(
                        "Failed to settle message, leaving it on the queue",
                        sqs_message_id=message.get("MessageId"),
                        error=str(result),
                        exc_info=result,
                    )

    async def _process_message(self, sqs_client: Any, message: dict[str, Any]) -> DeliveryDecision:
        async with self._semaphore:
            try:
                attempt = self.to_delivery_attempt(message)
            except MalformedMessageError as exc:
                attempt_number = self._receive_count(message)
                decision = DeliveryDecision(
                    action=DeliveryAction.DEAD_LETTER,
                    reason=str(exc),
                    failure_kind=FailureKind.NOT_RETRYABLE,
                    exception_type=type(exc).__name__,
                    attempts=attempt_number,
                )
                logger.error("Malformed message body", sqs_message_id=message.get("MessageId"), error=str(exc))
                await self._dead_letter(sqs_client, message, decision, message_id=None, message_key=None)
                return decision

            decision = await self._handler.handle(attempt)
            await self.apply_decision(sqs_client, message, attempt, decision)
            return decision

    async def apply_decision(
        self,
        sqs_client: Any,
        message: dict[str, Any],
        attempt: DeliveryAttempt,
        decision: DeliveryDecision,
    ) -> None:
        receipt_handle = message["ReceiptHandle"]
        if decision.action is DeliveryAction.ACK:
            await sqs_client.delete_message(QueueUrl=self._queue_url, ReceiptHandle=receipt_handle)
            logger.info("Message acknowledged and deleted", message_id=attempt.message_id)
        elif decision.action is DeliveryAction.RETRY:
            await sqs_client.change_message_visibility(
                QueueUrl=self._queue_url,
                ReceiptHandle=receipt_handle,
                VisibilityTimeout=decision.backoff_seconds,
            )
            logger.info(
                "Message left on queue for redelivery",
                message_id=attempt.message_id,
                attempt=attempt.attempt_number,
                backoff_seconds=decision.backoff_seconds,
            )
        else:
            await self._dead_letter(
                sqs_client,
                message,
                decision,
                message_id=attempt.message_id,
                message_key=attempt.message_key,
            )

    async def _dead_letter(
        self,
        sqs_client: Any,
        message: dict[str, Any],
        decision: DeliveryDecision,
        *,
        message_id: str | None,
        message_key: str | None,
    ) -> None:
        # Publish before deleting: a failed publish leaves the message on the queue.
        await self._dead_letter_publisher.publish(
            body=message.get("Body", ""),
            original_channel=self._queue_url,
            error=decision.reason or "unknown failure",
            attempts=decision.attempts,
            message_id=message_id,
            message_key=message_key,
            exception_type=decision.exception_type,
            original_attributes=message.get("MessageAttributes"),
        )
        await sqs_client.delete_message(QueueUrl=self._queue_url, ReceiptHandle=message["ReceiptHandle"])

    @classmethod
    def to_delivery_attempt(cls, message: dict[str, Any]) -> DeliveryAttempt:
        """
        Build a delivery attempt from a raw SQS message.

        ``messageId``, ``key`` and ``event_type`` are read from the SQS message
        attributes, falling back to SNS message attributes when the body is an
        SNS notification envelope.
        """
        body = message.get("Body", "")
        try:
            payload = json.loads(body)
        except json.JSONDecodeError as exc:
            raise MalformedMessageError(f"Invalid JSON in message body: {exc}") from exc
        if not isinstance(payload, dict):
            raise MalformedMessageError("Message body must be a JSON object")

        attributes = cls._string_attributes(message.get("MessageAttributes") or {})

        # SNS envelope
        if payload.get("Type") == "Notification" and "Message" in payload:
            attributes = {**cls._sns_attributes(payload.get("MessageAttributes") or {}), **attributes}
            inner = payload["Message"]
            if isinstance(inner, str):
                try:
                    inner = json.loads(inner)
                except json.JSONDecodeError as exc:
                    raise MalformedMessageError(f"Invalid JSON in SNS message: {exc}") from exc
            if not isinstance(inner, dict):
                raise MalformedMessageError("SNS message must be a JSON object")
            payload = inner

        return DeliveryAttempt(
            message_id=attributes.get("messageId"),
            payload=payload,
            attempt_number=cls._receive_count(message),
            message_key=attributes.get("key"),
            event_type=attributes.get("event_type"),
        )

    @staticmethod
    def _receive_count(message: dict[str, Any]) -> int:
        raw = (message.get("Attributes") or {}).get("ApproximateReceiveCount", "1")
        try:
            return max(int(raw), 1)
        except (TypeError, ValueError):
            return 1

    @staticmethod
    def _string_attributes(attributes: dict[str, Any]) -> dict[str, str]:
        return {
            name: value["StringValue"]
            for name, value in attributes.items()
            if isinstance(value, dict) and value.get("StringValue") is not None
        }

    @staticmethod
    def _sns_attributes(attributes: dict[str, Any]) -> dict[str, str]:
        return {
            name: value["Value"]
            for name, value in attributes.items()
            if isinstance(value, dict) and value.get("Value") is not None
        }


def build_consumer_from_env(handler: ProductCreatedEventHandler) -> ProductsCreatedConsumer | None:
    """
    Factory that reads configuration from environment variables.

    Returns None if the consumer is disabled or not configured.
    """
    if not settings.enable_products_consumer:
        logger.info("Products-created consumer is disabled via ENABLE_PRODUCTS_CONSUMER")
        return None

    if not settings.products_created_queue_url:
        logger.warning("Products-created consumer enabled but PRODUCTS_CREATED_QUEUE_URL not configured")
        return None

    dead_letter_queue_url = settings.dead_letter_queue_url or dead_letter_channel(
        settings.products_created_queue_url, settings.dead_letter_suffix
    )

    return ProductsCreatedConsumer(
        queue_url=settings.products_created_queue_url,
        handler=handler,
        dead_letter_publisher=DeadLetterPublisher(queue_url=dead_letter_queue_url, region_name=settings.aws_region),
        region_name=settings.aws_region,
        max_messages=settings.consumer_max_messages,
        wait_time_seconds=settings.consumer_wait_time,
        concurrency=settings.consumer_concurrency,
    )
