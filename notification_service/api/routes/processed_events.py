from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from notification_service.db.session import get_db_session
from notification_service.repositories.processed_event import ProcessedEventRepository
from notification_service.schemas.events import ProcessedEventResponse

router = APIRouter(prefix="/processed-events", tags=["processed-events"])


@router.get("/{message_id}", response_model=ProcessedEventResponse)
async def get_processed_event(
    message_id: str,
    session: AsyncSession = Depends(get_db_session),
) -> ProcessedEventResponse:
    record = await ProcessedEventRepository(session).find_by_message_id(message_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Message {message_id} has not been processed")
    return ProcessedEventResponse.model_validate(record)
