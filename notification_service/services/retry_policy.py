"""Retry / dead-letter decisions for a single delivered message."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from notification_service.services.error_classifier import FailureKind, describe


class DeliveryAction(str, Enum):
    ACK = "ack"
    RETRY = "retry"
    DEAD_LETTER = "dead_letter"


@dataclass(frozen=True)
class DeliveryDecision:
    action: DeliveryAction
    backoff_seconds: int = 0
    reason: str | None = None
    failure_kind: FailureKind | None = None
    exception_type: str | None = None
    attempts: int = 1


class RetryPolicy:
    """
    Fixed-backoff retry policy bounded by a maximum number of retries.

    ``attempt_number`` is the 1-based delivery count of the message. Retryable
    failures on attempts ``1..max_attempts`` are redelivered after
    ``backoff_seconds``; the next failure, whatever its kind, is dead-lettered.
    Non-retryable failures are dead-lettered straight away.
    """

    def __init__(self, *, backoff_seconds: int = 5, max_attempts: int = 3) -> None:
        if backoff_seconds < 0:
            raise ValueError("backoff_seconds must not be negative")
        if max_attempts < 0:
            raise ValueError("max_attempts must not be negative")
        self.backoff_seconds = backoff_seconds
        self.max_attempts = max_attempts

    def acknowledge(self, attempt_number: int = 1) -> DeliveryDecision:
        return DeliveryDecision(action=DeliveryAction.ACK, attempts=attempt_number)

    def decide(self, attempt_number: int, kind: FailureKind, error: BaseException | None = None) -> DeliveryDecision:
        reason = describe(error) if error is not None else None
        exception_type = type(getattr(error, "cause", None) or error).__name__ if error is not None else None
        if kind is FailureKind.NOT_RETRYABLE:
            return DeliveryDecision(
                action=DeliveryAction.DEAD_LETTER,
                reason=reason,
                failure_kind=kind,
                exception_type=exception_type,
                attempts=attempt_number,
            )
        if attempt_number <= self.max_attempts:
            return DeliveryDecision(
                action=DeliveryAction.RETRY,
                backoff_seconds=self.backoff_seconds,
                reason=reason,
                failure_kind=kind,
                exception_type=exception_type,
                attempts=attempt_number,
            )
        return DeliveryDecision(
            action=DeliveryAction.DEAD_LETTER,
            reason=f"Retries exhausted after {attempt_number} attempts" + (f": {reason}" if reason else ""),
            failure_kind=kind,
            exception_type=exception_type,
            attempts=attempt_number,
        )


def dead_letter_channel(source: str, suffix: str = "-dlt") -> str:
    """Derive the dead-letter channel from the source channel name or queue URL."""
    if not source:
        raise ValueError("source channel must not be empty")
    return f"{source.rstrip('/')}{suffix}"
