"""FastAPI application factory with lifespan context manager."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from scmhook.config import VERSION, get_settings
from scmhook.logging_config import configure_logging
from scmhook.routers import health, webhooks


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifespan: configure logging, open and close the HTTP client."""
    settings = get_settings()
    configure_logging(json_logs=not settings.debug, log_level=settings.log_level)

    async with httpx.AsyncClient(timeout=settings.http_timeout) as client:
        from scmhook.dependencies import init_production_deps

        init_production_deps(settings, client)
        structlog.get_logger().info(
            "webhook_server_started",
            notification_url=settings.notification_url or None,
            secrets_configured=settings.webhook_secrets is not None,
        )
        yield


def create_app() -> FastAPI:
    """Build the webhook gateway application."""
    settings = get_settings()
    application = FastAPI(title=settings.app_name, version=VERSION, lifespan=lifespan)

    @application.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Return a JSON 500 response for any unhandled exception."""
        logger = structlog.get_logger()
        logger.exception("unhandled_exception", path=request.url.path, method=request.method)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    # health first: the webhook routes match every path
    application.include_router(health.router)
    application.include_router(webhooks.router)
    return application


app = create_app()
