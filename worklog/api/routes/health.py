"""Health check endpoints.

- /health - Service health including LLM readiness
- /health/db - Connection pool metrics and schema check
"""

from __future__ import annotations

import sqlite3
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter

from worklog.config import APP_VERSION
from worklog.llm.gemini import is_llm_configured

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> dict[str, Any]:
    """Service status and version. Does not call the LLM, only checks configuration."""
    return {
        "status": "healthy",
        "service": "worklog API",
        "version": APP_VERSION,
        "timestamp": datetime.now(UTC).isoformat(),
        "llm": {"ready": is_llm_configured()},
    }


@router.get("/health/db")
async def database_health() -> dict[str, Any]:
    """
    Database health check endpoint.

    Alerts if pool usage exceeds 80% or the schema is incomplete.
    """
    from worklog.infrastructure.database import get_db_connection, get_pool_stats
    from worklog.infrastructure.database_schema import validate_schema

    try:
        with get_db_connection() as conn:
            schema_ok = validate_schema(conn)
    except (FileNotFoundError, ValueError, sqlite3.Error):
        schema_ok = False

    stats = get_pool_stats()
    degraded = stats["usage_percent"] > 80 or not schema_ok

    return {
        "status": "degraded" if degraded else "healthy",
        "schema_ok": schema_ok,
        "pool": stats,
        "warning": "Pool usage high" if stats["usage_percent"] > 80 else None,
    }
