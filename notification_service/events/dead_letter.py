from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import aioboto3

from notification_service.core.config import settings
from notification_service.core.logger import get_logger

logger = get_logger(component="DeadLetterPublisher")

# SQS rejects messages carrying more than 10 message attributes.
MAX_MESSAGE_ATTRIBUTES = 10


def _string_attribute(value: str) -> dict[str, str]:
    return {"DataType": "String", "StringValue": value}


class DeadLetterPublisher:
    """Publishes permanently failed messages, unchanged, to the dead-letter queue."""

    def __init__(self, *, queue_url: str, region_name: str | None = None) -> None:
        self.queue_url = queue_url
        self._region_name = region_name or settings.aws_region
        self._session = aioboto3.Session(
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            aws_session_token=settings.aws_session_token,
            region_name=self._region_name,
        )

    async def publish(
        self,
        *,
        body: str,
        original_channel: str,
        error: str,
        attempts: int,
        message_id: str | None = None,
        message_key: str | None = None,
        exception_type: str | None = None,
        original_attributes: dict[str, Any] | None = None,
    ) -> None:
        """
        Send ``body`` to the dead-letter queue with the failure recorded in message attributes.

        Args:
            body: Original message body as received.
            original_channel: Queue the message was consumed from.
            error: Human-readable failure description.
            attempts: Number of deliveries made before giving up.
            message_id: Producer-assigned messageId header, when present.
            message_key: Routing key of the original message, when present.
            exception_type: Class name of the failure that ended processing.
            original_attributes: SQS message attributes of the original message; string
                and number attributes are carried over while slots remain.
        """
        attributes = {
            "dlt-original-topic": _string_attribute(original_channel),
            "dlt-exception-message": _string_attribute(error[:1024] or "unknown"),
            "dlt-attempts": {"DataType": "Number", "StringValue": str(attempts)},
            "dlt-consumer-group": _string_attribute(settings.consumer_group),
            "dlt-failed-at": _string_attribute(datetime.now(tz=timezone.utc).isoformat()),
        }
        if exception_type:
            attributes["dlt-exception-fqcn"] = _string_attribute(exception_type)
        if message_id:
            attributes["messageId"] = _string_attribute(message_id)
        if message_key:
            attributes["key"] = _string_attribute(message_key)

        dropped = []
        for name, value in (original_attributes or {}).items():
            if name in attributes or not isinstance(value, dict) or value.get("StringValue") is None:
                continue
            if len(attributes) >= MAX_MESSAGE_ATTRIBUTES:
                dropped.append(name)
                continue
            attributes[name] = {"DataType": value.get("DataType", "String"), "StringValue": value["StringValue"]}
        if dropped:
            logger.warning("Original message attributes not carried to dead letter", dropped=dropped)

        async with self._session.client(
            "sqs", region_name=self._region_name, endpoint_url=settings.sqs_endpoint_url
        ) as sqs_client:
            await sqs_client.send_message(
                QueueUrl=self.queue_url,
                MessageBody=body,
                MessageAttributes=attributes,
            )
        logger.warning(
            "Message published to dead letter queue",
            dead_letter_queue=self.queue_url,
            original_channel=original_channel,
            message_id=message_id,
            attempts=attempts,
            error=error,
        )
