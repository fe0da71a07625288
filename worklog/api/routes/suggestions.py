"""
Timesheet suggestion endpoint.

POST /api/suggestions builds one proposed entry per workday of the requested
month, either from the stored ledger or live from the connected GitHub source.
"""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, field_validator

from worklog.activity.types import Owner, SourceType
from worklog.activity.workday import month_range, parse_month
from worklog.infrastructure.ai_quota import SqliteUsageQuota
from worklog.observability.logging import get_logger
from worklog.observability.telemetry import counter
from worklog.storage.activity_ledger import ActivityLedger
from worklog.suggest.assembler import SuggestionAssembler
from worklog.suggest.models import ExistingEntry, SuggestResult

router = APIRouter(prefix="/api", tags=["suggestions"])
logger = get_logger(__name__)


class SuggestRequest(BaseModel):
    organization_id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
    month: str = Field(..., description="Target month (YYYY-MM)")
    identity: str | None = Field(default=None, description="Identity charged for AI summaries")
    client_id: str | None = Field(default=None, description="Only use repos mapped to this client")
    source: Literal["ledger", "github"] = "ledger"
    existing_entries: dict[str, ExistingEntry] = Field(default_factory=dict)
    timeout_seconds: float | None = Field(default=None, gt=0)

    @field_validator("month")
    @classmethod
    def validate_month(cls, v: str) -> str:
        parse_month(v)
        return v


def get_assembler() -> SuggestionAssembler:
    return SuggestionAssembler(quota=SqliteUsageQuota())


def get_ledger() -> ActivityLedger:
    return ActivityLedger()


@router.post("/suggestions", response_model=SuggestResult)
async def create_suggestions(
    request: SuggestRequest,
    assembler: SuggestionAssembler = Depends(get_assembler),
    ledger: ActivityLedger = Depends(get_ledger),
) -> SuggestResult:
    owner = Owner(request.organization_id, request.user_id)
    start_date, end_date = month_range(*parse_month(request.month))

    try:
        if request.source == "github":
            return await assembler.suggest_from_source(
                owner,
                start_date,
                end_date,
                existing_entries=request.existing_entries,
                identity=request.identity,
                period=request.month,
                client_id=request.client_id,
                timeout=request.timeout_seconds,
            )

        records = ledger.query(owner, start_date, end_date)
        if request.client_id:
            repos = assembler.router.repos_for_client(request.client_id, SourceType.GITHUB)
            records = assembler.router.filter_records(records, repos)
        return await assembler.suggest(
            owner,
            records,
            existing_entries=request.existing_entries,
            identity=request.identity,
            period=request.month,
            timeout=request.timeout_seconds,
        )
    except TimeoutError as e:
        counter("api.suggestions.timeout")
        logger.warning("Suggestion request for %s timed out", owner)
        raise HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail="Suggestion request timed out",
        ) from e
