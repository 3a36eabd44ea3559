"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from quiz_sync.api.events import router as events_router
from quiz_sync.api.health import router as health_router
from quiz_sync.api.responses import sync_error_handler
from quiz_sync.api.sessions import router as sessions_router
from quiz_sync.app_logging import configure_logging
from quiz_sync.config import missing_supabase_settings
from quiz_sync.containers import AppContainer
from quiz_sync.domain.errors import SyncError


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        missing = missing_supabase_settings(app.state.container.settings)
        if missing:
            logger.warning(
                "Starting without Supabase configuration",
                extra={"missing": missing},
            )
        yield

    app = FastAPI(lifespan=lifespan)
    app.state.container = container
    app.add_exception_handler(SyncError, sync_error_handler)

    app.include_router(events_router)
    app.include_router(health_router)
    app.include_router(sessions_router)

    return app
