"""FastAPI server for worklog activity sync and suggestions"""

from __future__ import annotations

import sqlite3
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from worklog.api.routes.activity_sync import router as activity_sync_router
from worklog.api.routes.github_webhook import router as github_webhook_router
from worklog.api.routes.health import router as health_router
from worklog.api.routes.suggestions import router as suggestions_router
from worklog.config import APP_VERSION
from worklog.errors import ConfigurationError
from worklog.infrastructure.database import init_database
from worklog.observability.logging import get_logger
from worklog.observability.telemetry import counter, log_event

# Load environment variables from .env file
load_dotenv()

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    # Schema creation is idempotent, safe on every startup
    try:
        logger.info("Initializing database schema...")
        init_database()
    except sqlite3.OperationalError as e:
        logger.critical("Database schema error: %s", e)
        raise RuntimeError(f"Database initialization failed: {e}") from e

    log_event("api.startup", service="worklog", version=APP_VERSION)
    yield


app = FastAPI(title="worklog API", version=APP_VERSION, lifespan=lifespan)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Sanitized validation errors: field names only, no validation internals.

    Side Effects:
        - Logs detailed validation errors for debugging
        - Increments validation error counter
    """
    logger.warning("Validation error on %s: %s", request.url.path, exc.errors())
    counter("api.validation_errors")

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": "Invalid request format. Please check your request and try again.",
            "error_count": len(exc.errors()),
            "invalid_fields": [str(err["loc"][-1]) for err in exc.errors()],
        },
    )


@app.exception_handler(ConfigurationError)
async def configuration_exception_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error("Configuration error on %s: %s", request.url.path, exc)
    counter("api.configuration_errors")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": exc.user_message or "Service is not configured"},
    )


app.include_router(health_router)
app.include_router(activity_sync_router)
app.include_router(github_webhook_router)
app.include_router(suggestions_router)
