"""Maps failures raised while handling a delivery onto retry semantics."""

from __future__ import annotations

import asyncio
from enum import Enum

import httpx
from pydantic import ValidationError
from sqlalchemy.exc import DisconnectionError, OperationalError

from notification_service.core.exceptions import (
    DuplicateMessageError,
    MissingMessageIdError,
    NotificationRejectedError,
    NotificationServiceUnavailableError,
    NotRetryableError,
    RetryableError,
    UntrustedEventTypeError,
)


class FailureKind(str, Enum):
    RETRYABLE = "retryable"
    NOT_RETRYABLE = "not_retryable"


_RETRYABLE_TYPES: tuple[type[BaseException], ...] = (
    RetryableError,
    NotificationServiceUnavailableError,
    httpx.TimeoutException,
    httpx.TransportError,
    asyncio.TimeoutError,
    TimeoutError,
    ConnectionError,
    OperationalError,
    DisconnectionError,
)

_NOT_RETRYABLE_TYPES: tuple[type[BaseException], ...] = (
    NotRetryableError,
    DuplicateMessageError,
    NotificationRejectedError,
    httpx.HTTPStatusError,
    ValidationError,
    MissingMessageIdError,
    UntrustedEventTypeError,
)


def classify(error: BaseException) -> FailureKind:
    """
    Classify ``error`` as retryable or not.

    Permanent types are checked first so that an error that is both (for
    instance a ``NotRetryableError`` wrapping a timeout) keeps its explicit
    classification. Anything unrecognised is treated as not retryable.
    """
    if isinstance(error, _NOT_RETRYABLE_TYPES):
        return FailureKind.NOT_RETRYABLE
    if isinstance(error, _RETRYABLE_TYPES):
        return FailureKind.RETRYABLE
    return FailureKind.NOT_RETRYABLE


def describe(error: BaseException) -> str:
    cause = getattr(error, "cause", None) or error
    message = str(cause)
    return f"{type(cause).__name__}: {message}" if message else type(cause).__name__
