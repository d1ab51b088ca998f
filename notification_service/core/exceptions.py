"""Failure taxonomy for the products-created delivery pipeline.

Every failure surfaced by the event handler is one of :class:`RetryableError`
or :class:`NotRetryableError`. The remaining types are raised by collaborators
and mapped onto those two by :mod:`notification_service.services.error_classifier`.
"""

from __future__ import annotations


class DeliveryError(Exception):
    """Base class for classified delivery failures."""

    def __init__(self, message: str | BaseException) -> None:
        if isinstance(message, BaseException):
            self.cause: BaseException | None = message
            message = str(message) or type(message).__name__
        else:
            self.cause = None
        super().__init__(message)


class RetryableError(DeliveryError):
    """Transient failure; redelivering the same message may succeed."""


class NotRetryableError(DeliveryError):
    """Permanent failure; the message goes to the dead-letter channel."""


class DuplicateMessageError(Exception):
    """A processed-event record with the same message id already exists."""

    def __init__(self, message_id: str) -> None:
        self.message_id = message_id
        super().__init__(f"Message {message_id} has already been recorded as processed")


class MissingMessageIdError(ValueError):
    """The delivered message carries no messageId header."""


class UntrustedEventTypeError(ValueError):
    """The message declares a payload type outside the trusted set."""

    def __init__(self, event_type: str) -> None:
        self.event_type = event_type
        super().__init__(f"Event type {event_type!r} is not trusted for deserialization")


class NotificationDeliveryError(Exception):
    """Base class for failures talking to the notification service."""


class NotificationServiceUnavailableError(NotificationDeliveryError):
    """The notification service could not be reached or timed out."""


class NotificationRejectedError(NotificationDeliveryError):
    """The notification service answered with an error status."""

    def __init__(self, status_code: int, body: str = "") -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"Notification service responded with status {status_code}")
