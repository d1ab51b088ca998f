"""Tests for the retry / dead-letter policy."""

from __future__ import annotations

import pytest

from notification_service.core.exceptions import NotificationServiceUnavailableError, RetryableError
from notification_service.services.error_classifier import FailureKind
from notification_service.services.retry_policy import DeliveryAction, RetryPolicy, dead_letter_channel


def test_acknowledge():
    decision = RetryPolicy().acknowledge(2)
    assert decision.action is DeliveryAction.ACK
    assert decision.attempts == 2


def test_retryable_failures_redeliver_until_max_attempts():
    policy = RetryPolicy(backoff_seconds=7, max_attempts=3)

    for attempt_number in (1, 2, 3):
        decision = policy.decide(attempt_number, FailureKind.RETRYABLE, RetryableError("timeout"))
        assert decision.action is DeliveryAction.RETRY
        assert decision.backoff_seconds == 7

    decision = policy.decide(4, FailureKind.RETRYABLE, RetryableError("timeout"))
    assert decision.action is DeliveryAction.DEAD_LETTER
    assert decision.backoff_seconds == 0
    assert decision.reason.startswith("Retries exhausted after 4 attempts")


def test_not_retryable_dead_letters_immediately():
    decision = RetryPolicy(max_attempts=3).decide(1, FailureKind.NOT_RETRYABLE, ValueError("bad payload"))
    assert decision.action is DeliveryAction.DEAD_LETTER
    assert decision.attempts == 1
    assert decision.reason == "ValueError: bad payload"
    assert decision.exception_type == "ValueError"


def test_backoff_is_fixed():
    policy = RetryPolicy(backoff_seconds=3, max_attempts=5)
    backoffs = {policy.decide(n, FailureKind.RETRYABLE).backoff_seconds for n in range(1, 6)}
    assert backoffs == {3}


def test_zero_max_attempts_never_retries():
    decision = RetryPolicy(max_attempts=0).decide(1, FailureKind.RETRYABLE)
    assert decision.action is DeliveryAction.DEAD_LETTER


def test_exception_type_reports_wrapped_cause():
    error = RetryableError(NotificationServiceUnavailableError("down"))
    decision = RetryPolicy().decide(1, FailureKind.RETRYABLE, error)
    assert decision.exception_type == "NotificationServiceUnavailableError"


def test_invalid_configuration():
    with pytest.raises(ValueError):
        RetryPolicy(backoff_seconds=-1)
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=-1)


def test_dead_letter_channel_naming():
    assert dead_letter_channel("products-created-events-topic") == "products-created-events-topic-dlt"
    assert (
        dead_letter_channel("https://sqs.us-east-1.amazonaws.com/000000000000/products-created", ".DLT")
        == "https://sqs.us-east-1.amazonaws.com/000000000000/products-created.DLT"
    )
    with pytest.raises(ValueError):
        dead_letter_channel("")
