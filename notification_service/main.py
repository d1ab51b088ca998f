from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI

from notification_service.api.dependencies import get_event_handler, get_http_client
from notification_service.api.router import api_router
from notification_service.core.config import settings
from notification_service.core.logger import configure_logging, get_logger
from notification_service.workers.products_created_consumer import build_consumer_from_env

configure_logging()
logger = get_logger(component="FastAPI")

_consumer_task: asyncio.Task | None = None
_consumer_instance = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the products-created consumer on startup and stop it on shutdown."""
    global _consumer_task, _consumer_instance

    try:
        consumer = build_consumer_from_env(get_event_handler())

        if consumer:
            _consumer_instance = consumer
            _consumer_task = asyncio.create_task(consumer.run_forever())
            logger.info("Products-created consumer started as background task")
        else:
            logger.info("Products-created consumer not started (disabled or not configured)")
    except Exception as exc:
        logger.exception("Failed to start products-created consumer", error=str(exc))

    yield

    if _consumer_instance and _consumer_task:
        logger.info("Shutting down products-created consumer")
        try:
            try:
                await asyncio.wait_for(_consumer_instance.shutdown(), timeout=settings.consumer_shutdown_timeout)
            except asyncio.TimeoutError:
                logger.warning(
                    "Consumer did not stop in time, cancelling", timeout=settings.consumer_shutdown_timeout
                )
                _consumer_task.cancel()
                try:
                    await _consumer_task
                except asyncio.CancelledError:
                    pass
            logger.info("Products-created consumer shutdown complete")
        except Exception as exc:
            logger.exception("Error during consumer shutdown", error=str(exc))
        finally:
            _consumer_task = None
            _consumer_instance = None

    await get_http_client().aclose()
    get_http_client.cache_clear()
    get_event_handler.cache_clear()


def create_app() -> FastAPI:
    app = FastAPI(title=settings.project_name, version="1.0.0", lifespan=lifespan)

    app.include_router(api_router, prefix=settings.api_v1_prefix)

    @app.get("/healthz", tags=["health"])
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
