"""Idempotency store backed by the ``processed_events`` table."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from notification_service.core.exceptions import DuplicateMessageError
from notification_service.models.processed_event import ProcessedEvent


class ProcessedEventRepository:
    """
    Reads and writes processed-event records within the caller's transaction.

    The repository never commits; the event handler owns the transaction scope
    so that the lookup, the notification call and the insert succeed or roll
    back together.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find_by_message_id(self, message_id: str) -> ProcessedEvent | None:
        result = await self._session.execute(select(ProcessedEvent).where(ProcessedEvent.message_id == message_id))
        return result.scalar_one_or_none()

    async def save(self, record: ProcessedEvent) -> ProcessedEvent:
        """
        Insert ``record``, flushing immediately so the unique index is checked now.

        Raises:
            DuplicateMessageError: a record with the same message id already exists,
                typically written by a concurrent delivery of the same message.
        """
        self._session.add(record)
        try:
            await self._session.flush()
        except IntegrityError as exc:
            raise DuplicateMessageError(record.message_id) from exc
        return record
