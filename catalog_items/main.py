"""Catalog item service main application module.

This module initializes the FastAPI application and configures
logging, middleware, routers, and startup/shutdown events.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
import uvicorn
from fastapi import FastAPI

from catalog_items.api.health import router as health_router
from catalog_items.api.middleware import setup_middleware
from catalog_items.infrastructure.config import settings
from catalog_items.infrastructure.database import engine
from catalog_items.infrastructure.logging_config import configure_logging

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup and shutdown events.

    Args:
        app: The FastAPI application instance.

    Yields:
        None after startup, cleanup happens after yield.
    """
    # Startup
    configure_logging(settings.log_level, debug=settings.debug)
    logger.info(
        "Starting catalog item service",
        version=settings.api_version,
        debug=settings.debug,
        cache_enabled=settings.cache_enabled,
    )

    yield

    # Shutdown
    logger.info("Shutting down catalog item service")
    await engine.dispose()


app = FastAPI(
    title="Catalog Item Service",
    description="Cached catalog product service",
    version=settings.api_version,
    lifespan=lifespan,
)

# Setup custom middleware (request ID, error handling)
setup_middleware(app)

# Include routers
app.include_router(health_router, tags=["Health"])


def run() -> None:
    """Run the service with uvicorn."""
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
