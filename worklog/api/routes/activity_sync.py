"""
Cron endpoint: sync every active GitHub source into the activity ledger.

POST /api/activity-sync
Header: Authorization: Bearer <WORKLOG_CRON_SECRET>
"""

from __future__ import annotations

import os
import secrets

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel

from worklog.activity.workday import trailing_days
from worklog.config import CRON_SECRET_ENV, SYNC_DEFAULT_DAYS
from worklog.observability.logging import get_logger
from worklog.observability.telemetry import counter
from worklog.services.activity_sync import ActivitySyncService

router = APIRouter(prefix="/api", tags=["sync"])
logger = get_logger(__name__)


class SyncSummary(BaseModel):
    start_date: str
    end_date: str
    total_users: int
    total_inserted: int
    error_count: int


def get_sync_service() -> ActivitySyncService:
    return ActivitySyncService()


async def verify_cron_secret(request: Request) -> None:
    """
    FastAPI dependency: constant-time check of the cron bearer token.

    Raises:
        HTTPException: 500 if the secret is not configured, 401 on mismatch
    """
    secret = os.getenv(CRON_SECRET_ENV)
    if not secret:
        logger.error("%s is not configured; refusing cron request", CRON_SECRET_ENV)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"{CRON_SECRET_ENV} not configured",
        )

    authorization = request.headers.get("Authorization", "")
    if not secrets.compare_digest(authorization.encode(), f"Bearer {secret}".encode()):
        counter("api.sync.unauthorized")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )


@router.post("/activity-sync", response_model=SyncSummary, dependencies=[Depends(verify_cron_secret)])
async def sync_activities(
    service: ActivitySyncService = Depends(get_sync_service),
) -> SyncSummary:
    """Sync the trailing 7 days for all users."""
    start_date, end_date = trailing_days(SYNC_DEFAULT_DAYS)
    results = await service.sync_all(start_date, end_date)

    return SyncSummary(
        start_date=start_date,
        end_date=end_date,
        total_users=len(results),
        total_inserted=sum(r.inserted for r in results),
        error_count=sum(1 for r in results if r.error),
    )
