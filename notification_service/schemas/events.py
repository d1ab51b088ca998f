from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from notification_service.services.error_classifier import FailureKind


class ProductCreatedEvent(BaseModel):
    """Payload published by the products service when a product is created."""

    model_config = ConfigDict(populate_by_name=True)

    product_id: str = Field(..., alias="productId", min_length=1)
    title: str
    price: Decimal
    quantity: int


@dataclass
class DeliveryAttempt:
    """One delivery of a broker message to the handler."""

    message_id: str | None
    payload: dict[str, Any]
    attempt_number: int = 1
    message_key: str | None = None
    event_type: str | None = None
    classified_failure: FailureKind | None = None


class ProcessedEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    message_id: str
    product_id: str
    created_at: datetime | None = None
