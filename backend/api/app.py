"""
FastAPI application factory.

Creates and configures the FastAPI application instance.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from modules.assistant.routes import router as chat_router
from modules.auth.routes import router as auth_router
from modules.billing.routes import router as payments_router
from modules.contacts.routes import router as contacts_router
from modules.imports.routes import router as uploads_router
from modules.interactions.routes import router as interactions_router
from modules.opportunities.routes import router as opportunities_router
from modules.reminders.routes import router as reminders_router
from shared.cache import close_redis_client
from shared.config import get_settings
from shared.logging_config import configure_logging

from .dependencies import get_container
from .errors import register_error_handlers
from .middleware.gate import GlobalRateLimitMiddleware
from .routes import health

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Starts the job sweeper on startup; on shutdown waits for in-flight
    background jobs, stops the sweeper and closes Redis.
    """
    settings = get_settings()
    container = get_container()
    logger.info(
        f"Starting {settings.app_name} on {settings.host}:{settings.port} "
        f"(storage={settings.storage_backend})"
    )
    container.job_sweeper.start()
    yield
    logger.info(f"Shutting down {settings.app_name}")
    await container.jobs.drain()
    await container.job_sweeper.stop()
    await close_redis_client()


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI instance
    """
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title=settings.app_name,
        description="Multi-tenant CRM backend for Malaysian SMEs",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/api/docs" if settings.debug else None,
        redoc_url="/api/redoc" if settings.debug else None,
    )

    register_error_handlers(app)

    # Global limiter runs inside CORS so preflights are answered first
    app.add_middleware(GlobalRateLimitMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    # Register routes
    app.include_router(health.router, prefix="/api", tags=["health"])
    app.include_router(auth_router, prefix="/api/auth", tags=["auth"])
    app.include_router(contacts_router, prefix="/api/contacts", tags=["contacts"])
    app.include_router(interactions_router, prefix="/api/interactions", tags=["interactions"])
    app.include_router(opportunities_router, prefix="/api/opportunities", tags=["opportunities"])
    app.include_router(reminders_router, prefix="/api/reminders", tags=["reminders"])
    app.include_router(uploads_router, prefix="/api/uploads", tags=["uploads"])
    app.include_router(chat_router, prefix="/api/chat", tags=["chat"])
    app.include_router(payments_router, prefix="/api/payments", tags=["payments"])

    return app


# Application instance for uvicorn
app = create_app()
