from fastapi import APIRouter

from notification_service.api.routes import processed_events

api_router = APIRouter()
api_router.include_router(processed_events.router)
