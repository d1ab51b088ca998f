from __future__ import annotations

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from notification_service.models.base import Base, CreatedAtMixin, PrimaryKeyUUIDMixin


class ProcessedEvent(PrimaryKeyUUIDMixin, CreatedAtMixin, Base):
    """
    One successfully dispatched notification, keyed by the producer's message id.

    Rows are written only after the notification call succeeded and are never
    updated. The unique index on ``message_id`` is what stops two concurrent
    deliveries of the same message from both being recorded.
    """
    __tablename__ = "processed_events"

    message_id: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    product_id: Mapped[str] = mapped_column(String(255), nullable=False)

    def __repr__(self) -> str:
        return f"ProcessedEvent(message_id={self.message_id!r}, product_id={self.product_id!r})"
