"""Tests for failure classification."""

from __future__ import annotations

import asyncio

import httpx
import pytest
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, OperationalError

from notification_service.core.exceptions import (
    DuplicateMessageError,
    MissingMessageIdError,
    NotificationRejectedError,
    NotificationServiceUnavailableError,
    NotRetryableError,
    RetryableError,
    UntrustedEventTypeError,
)
from notification_service.schemas.events import ProductCreatedEvent
from notification_service.services.error_classifier import FailureKind, classify, describe


def _validation_error() -> ValidationError:
    try:
        ProductCreatedEvent.model_validate({"title": "missing everything else"})
    except ValidationError as exc:
        return exc
    raise AssertionError("expected validation to fail")


@pytest.mark.parametrize(
    "error",
    [
        RetryableError("try again"),
        NotificationServiceUnavailableError("connection refused"),
        httpx.ConnectError("connection refused"),
        httpx.ReadTimeout("read timed out"),
        asyncio.TimeoutError(),
        TimeoutError("timed out"),
        ConnectionResetError("reset by peer"),
        OperationalError("SELECT 1", {}, Exception("server closed the connection")),
    ],
)
def test_transient_failures_are_retryable(error):
    assert classify(error) is FailureKind.RETRYABLE


@pytest.mark.parametrize(
    "error",
    [
        NotRetryableError("bad"),
        DuplicateMessageError("m1"),
        NotificationRejectedError(503, "unavailable"),
        NotificationRejectedError(400, "bad request"),
        MissingMessageIdError("no message id"),
        UntrustedEventTypeError("java.lang.Runtime"),
        IntegrityError("INSERT", {}, Exception("unique constraint")),
    ],
)
def test_permanent_failures_are_not_retryable(error):
    assert classify(error) is FailureKind.NOT_RETRYABLE


def test_validation_error_is_not_retryable():
    assert classify(_validation_error()) is FailureKind.NOT_RETRYABLE


@pytest.mark.parametrize("error", [Exception("boom"), KeyError("x"), RuntimeError("unexpected"), ValueError("odd")])
def test_unknown_failures_fail_closed(error):
    assert classify(error) is FailureKind.NOT_RETRYABLE


def test_explicit_not_retryable_wins_over_wrapped_timeout():
    error = NotRetryableError(TimeoutError("timed out"))
    assert classify(error) is FailureKind.NOT_RETRYABLE


def test_describe_uses_wrapped_cause():
    error = RetryableError(NotificationServiceUnavailableError("Could not reach http://notify"))
    assert describe(error) == "NotificationServiceUnavailableError: Could not reach http://notify"
    assert describe(RuntimeError()) == "RuntimeError"
