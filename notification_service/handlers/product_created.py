"""Idempotent handler for products-created events."""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum

import structlog
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from notification_service.core.exceptions import (
    DeliveryError,
    MissingMessageIdError,
    NotRetryableError,
    RetryableError,
    UntrustedEventTypeError,
)
from notification_service.core.logger import get_logger
from notification_service.models.processed_event import ProcessedEvent
from notification_service.repositories.processed_event import ProcessedEventRepository
from notification_service.schemas.events import DeliveryAttempt, ProductCreatedEvent
from notification_service.services.error_classifier import FailureKind, classify, describe
from notification_service.services.notification_dispatcher import NotificationDispatcher
from notification_service.services.retry_policy import DeliveryAction, DeliveryDecision, RetryPolicy


class HandlerOutcome(str, Enum):
    PROCESSED = "processed"
    DUPLICATE = "duplicate"


class ProductCreatedEventHandler:
    """
    Sends one notification per products-created message, at most once per message id.

    Each delivery runs the duplicate check, the notification call and the
    processed-event insert inside a single database transaction. Concurrent
    deliveries of the same message are resolved by the unique index on
    ``processed_events.message_id``: only one insert commits, and the loser
    fails with a non-retryable error. Both may already have called the
    notification service by then; that window is not closed here.
    """

    def __init__(
        self,
        *,
        session_factory: async_sessionmaker[AsyncSession],
        dispatcher: NotificationDispatcher,
        policy: RetryPolicy,
        trusted_event_types: Iterable[str] | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._dispatcher = dispatcher
        self._policy = policy
        self._trusted_event_types = frozenset(trusted_event_types) if trusted_event_types is not None else None
        self._logger = logger or get_logger(component="ProductCreatedEventHandler")

    async def handle(self, attempt: DeliveryAttempt) -> DeliveryDecision:
        """Process ``attempt`` and translate the result into an ack, retry or dead-letter decision."""
        log = self._logger.bind(message_id=attempt.message_id, attempt=attempt.attempt_number)
        try:
            await self.process(attempt)
        except DeliveryError as exc:
            kind = classify(exc)
            attempt.classified_failure = kind
            decision = self._policy.decide(attempt.attempt_number, kind, exc)
            if decision.action is DeliveryAction.RETRY:
                log.warning(
                    "Retryable failure, message will be redelivered",
                    backoff_seconds=decision.backoff_seconds,
                    max_attempts=self._policy.max_attempts,
                    reason=decision.reason,
                )
            else:
                log.error("Message routed to dead letter", failure_kind=kind.value, reason=decision.reason)
            return decision
        return self._policy.acknowledge(attempt.attempt_number)

    async def process(self, attempt: DeliveryAttempt) -> HandlerOutcome:
        """
        Run the check, dispatch and record steps for one delivery.

        Raises:
            RetryableError: a transient failure; the message should be redelivered.
            NotRetryableError: a permanent failure, including losing the insert race
                to a concurrent delivery of the same message.
        """
        event = self._validate(attempt)
        message_id = attempt.message_id
        log = self._logger.bind(message_id=message_id, message_key=attempt.message_key, attempt=attempt.attempt_number)
        log.info("Received a new event", title=event.title, product_id=event.product_id)

        try:
            async with self._session_factory() as session:
                async with session.begin():
                    repository = ProcessedEventRepository(session)

                    existing = await repository.find_by_message_id(message_id)
                    if existing is not None:
                        log.info("Found a duplicate message id, skipping", product_id=existing.product_id)
                        return HandlerOutcome.DUPLICATE

                    await self._dispatcher.dispatch(event)
                    await repository.save(ProcessedEvent(message_id=message_id, product_id=event.product_id))
        except Exception as exc:
            kind = classify(exc)
            log.warning("Failed to process event, transaction rolled back", error=describe(exc), failure_kind=kind.value)
            if kind is FailureKind.RETRYABLE:
                raise RetryableError(exc) from exc
            raise NotRetryableError(exc) from exc

        log.info("Event processed", product_id=event.product_id)
        return HandlerOutcome.PROCESSED

    def _validate(self, attempt: DeliveryAttempt) -> ProductCreatedEvent:
        if not attempt.message_id:
            raise NotRetryableError(MissingMessageIdError("Message has no messageId header"))
        if (
            attempt.event_type is not None
            and self._trusted_event_types is not None
            and attempt.event_type not in self._trusted_event_types
        ):
            raise NotRetryableError(UntrustedEventTypeError(attempt.event_type))
        try:
            return ProductCreatedEvent.model_validate(attempt.payload)
        except ValidationError as exc:
            raise NotRetryableError(exc) from exc
