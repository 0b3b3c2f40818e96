"""
CV RAG Server Application Entry Point

This module defines the FastAPI application instance, registers all routers,
configures global exception handling, and provides a test-friendly application
factory.

Design Goals
------------
- Deterministic startup
- Centralized router registration
- Global exception safety net
- Test-friendly via create_app()
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from .config import settings
from .core.errors import (
    ConfigurationError,
    InvalidRequestError,
    ProviderError,
    RetrievalError,
    configuration_error_handler,
    invalid_request_handler,
    provider_error_handler,
    request_validation_handler,
    retrieval_error_handler,
    unhandled_exception_handler,
)
from .core.logging import configure_logging
from .db import dispose_engine

from .api import (
    chat_routes,
    search_routes,
    health_routes,
)


logger = logging.getLogger("cv.app")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Startup logs missing credentials instead of refusing to boot: requests
    that need them fail individually with a configuration error.
    """
    logger.info("Starting cv-rag-server")

    missing = settings.missing_credentials()
    if missing:
        logger.warning("Missing configuration: %s", ", ".join(missing))
    else:
        logger.info("Configuration validated successfully")

    yield

    logger.info("Shutting down cv-rag-server")
    await dispose_engine()


# ---------------------------------------------------------------------
# Application Factory (Test-Friendly)
# ---------------------------------------------------------------------

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns
    -------
    FastAPI
        Fully configured FastAPI application.
    """
    configure_logging(settings.log_level)

    app = FastAPI(
        title="cv-rag-server",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # --------------------------------------------------------------
    # Exception Handling
    # --------------------------------------------------------------

    app.add_exception_handler(ConfigurationError, configuration_error_handler)
    app.add_exception_handler(InvalidRequestError, invalid_request_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(RetrievalError, retrieval_error_handler)
    app.add_exception_handler(ProviderError, provider_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # --------------------------------------------------------------
    # Router Registration
    # --------------------------------------------------------------

    app.include_router(health_routes.router)
    app.include_router(chat_routes.router)
    app.include_router(search_routes.router)

    return app


# ---------------------------------------------------------------------
# Default Application Instance (for Uvicorn)
# ---------------------------------------------------------------------

app = create_app()
