"""
Suggestion Assembler - activity in, proposed timesheet entries out.

Pipeline per request:
1. Bucket activity by workday and estimate each day's window
2. Describe every day concurrently (AI upgrade gated by one AiAllowance)
3. Assemble entries in date order, flag dates that already have a timesheet row

The assembler never writes timesheet data. Quota records are the only side
effect, and only for AI descriptions that succeeded.
"""

from __future__ import annotations

import asyncio
from contextlib import nullcontext

from worklog.activity.github import ActivitySourceGateway, GitHubActivityGateway
from worklog.activity.types import (
    ActivityRecord,
    Err,
    ErrorKind,
    Ok,
    Owner,
    Result,
    SourceType,
)
from worklog.errors import (
    ActivitySourceError,
    ConfigurationError,
    CredentialDecryptionError,
)
from worklog.infrastructure.ai_quota import AiAllowance, UsageQuota
from worklog.observability.logging import get_logger
from worklog.observability.telemetry import counter, log_event, time_block
from worklog.storage.client_mapping import ClientRepoRouter
from worklog.storage.credential_vault import ActivitySourceRepository
from worklog.suggest.bucketer import WorkdayBucketer, WorkWindow
from worklog.suggest.models import (
    ExistingEntry,
    SourceStatus,
    SuggestedEntry,
    SuggestResult,
)
from worklog.suggest.summarizer import Description, DescriptionSummarizer

logger = get_logger(__name__)

NO_ACTIVITY_REASONING = "No activity found for the requested period"


def _is_conflicting(existing: ExistingEntry | dict | None) -> bool:
    if existing is None:
        return False
    if isinstance(existing, dict):
        existing = ExistingEntry(**existing)
    return not existing.is_empty()


def _reasoning(entries: list[SuggestedEntry]) -> str:
    total_hours = sum(entry.work_hours for entry in entries)
    return f"{len(entries)} days of activity, {total_hours:.1f}h estimated in total"


def _deadline(timeout: float | None):
    return asyncio.timeout(timeout) if timeout is not None else nullcontext()


class SuggestionAssembler:
    """
    Builds SuggestResults from activity.

    All collaborators are injected; defaults are the production implementations.
    """

    def __init__(
        self,
        bucketer: WorkdayBucketer | None = None,
        summarizer: DescriptionSummarizer | None = None,
        quota: UsageQuota | None = None,
        gateway: ActivitySourceGateway | None = None,
        sources: ActivitySourceRepository | None = None,
        router: ClientRepoRouter | None = None,
    ):
        self.bucketer = bucketer or WorkdayBucketer()
        self.summarizer = summarizer or DescriptionSummarizer(quota=quota)
        self.quota = quota if quota is not None else self.summarizer.quota
        self.gateway = gateway or GitHubActivityGateway()
        self.sources = sources or ActivitySourceRepository()
        self.router = router or ClientRepoRouter()

    async def _allowance(self, identity: str | None, period: str | None) -> AiAllowance:
        if not self.summarizer.llm_enabled or self.quota is None or not identity or not period:
            return AiAllowance(remaining=0)
        try:
            status = await asyncio.to_thread(self.quota.check, identity, period)
        except Exception as e:
            logger.warning("Quota check failed for %s/%s: %s", identity, period, e)
            counter("assembler.quota_check_failed")
            return AiAllowance(remaining=0)
        return AiAllowance(remaining=status.remaining)

    async def _describe_all(
        self,
        windows: list[tuple[WorkWindow, list[ActivityRecord]]],
        identity: str | None,
        period: str | None,
        allowance: AiAllowance,
    ) -> list[Description]:
        return await asyncio.gather(
            *(
                self.summarizer.describe(records, identity=identity, period=period, allowance=allowance)
                for _, records in windows
            )
        )

    async def suggest(
        self,
        owner: Owner,
        activities: list[ActivityRecord],
        existing_entries: dict[str, ExistingEntry | dict] | None = None,
        identity: str | None = None,
        period: str | None = None,
        timeout: float | None = None,
    ) -> SuggestResult:
        """
        Propose one entry per workday with activity.

        Args:
            owner: Whose activity this is (logging only)
            activities: Records to summarize, any order
            existing_entries: work_date -> already-recorded timesheet row
            identity: Who is charged for AI usage
            period: Quota period key (YYYY-MM)
            timeout: Deadline for the whole request in seconds

        Returns:
            SuggestResult with entries sorted by work_date

        Raises:
            TimeoutError: If `timeout` elapses; partial results are discarded
        """
        async with _deadline(timeout):
            return await self._suggest(owner, activities, existing_entries or {}, identity, period)

    async def _suggest(
        self,
        owner: Owner,
        activities: list[ActivityRecord],
        existing_entries: dict[str, ExistingEntry | dict],
        identity: str | None,
        period: str | None,
    ) -> SuggestResult:
        if not activities:
            return SuggestResult(entries=[], reasoning=NO_ACTIVITY_REASONING)

        windows = self.bucketer.windows(activities)
        allowance = await self._allowance(identity, period)

        with time_block("assembler.describe.latency"):
            descriptions = await self._describe_all(windows, identity, period, allowance)

        entries: list[SuggestedEntry] = []
        input_tokens = output_tokens = ai_days = 0
        for (window, _), description in zip(windows, descriptions, strict=True):
            entries.append(
                SuggestedEntry(
                    work_date=window.work_date,
                    start_time=window.start_time,
                    end_time=window.end_time,
                    break_minutes=window.break_minutes,
                    description=description.text,
                    conflicting=_is_conflicting(existing_entries.get(window.work_date)),
                )
            )
            input_tokens += description.input_tokens
            output_tokens += description.output_tokens
            ai_days += int(description.used_ai)

        entries.sort(key=lambda entry: entry.work_date)
        log_event(
            "assembler.suggested",
            owner=str(owner),
            days=len(entries),
            ai_days=ai_days,
            conflicts=sum(entry.conflicting for entry in entries),
        )

        return SuggestResult(
            entries=entries,
            reasoning=_reasoning(entries),
            ai_days_used=ai_days,
            total_input_tokens=input_tokens,
            total_output_tokens=output_tokens,
        )

    def _load_credential(self, owner: Owner) -> Result[str]:
        try:
            credential = self.sources.load_credential(owner, SourceType.GITHUB)
        except CredentialDecryptionError as e:
            return Err(ErrorKind.CREDENTIAL_INVALID, e.user_message or str(e))
        except ConfigurationError as e:
            return Err(ErrorKind.NOT_CONFIGURED, str(e))

        if credential is None:
            return Err(ErrorKind.NOT_CONFIGURED, "No GitHub source configured")
        return Ok(credential)

    async def _fetch(
        self, credential: str, start_date: str, end_date: str
    ) -> Result[list[ActivityRecord]]:
        try:
            username = await self.gateway.fetch_username(credential)
            records = await self.gateway.fetch_activities(credential, username, start_date, end_date)
        except ActivitySourceError as e:
            return Err(ErrorKind.FETCH_FAILED, str(e))
        return Ok(records)

    async def suggest_from_source(
        self,
        owner: Owner,
        start_date: str,
        end_date: str,
        existing_entries: dict[str, ExistingEntry | dict] | None = None,
        identity: str | None = None,
        period: str | None = None,
        client_id: str | None = None,
        timeout: float | None = None,
    ) -> SuggestResult:
        """
        Fetch the owner's activity from the connected source, then suggest.

        Failures to load the credential or fetch activity are returned as an
        empty result whose source_status names the failure. `timeout` covers
        loading, fetching and describing together.

        Raises:
            TimeoutError: If `timeout` elapses
        """
        async with _deadline(timeout):
            loaded = await asyncio.to_thread(self._load_credential, owner)
            if isinstance(loaded, Err):
                return self._failed(owner, loaded)

            fetched = await self._fetch(loaded.value, start_date, end_date)
            if isinstance(fetched, Err):
                return self._failed(owner, fetched)

            records = fetched.value
            if client_id is not None:
                repos = await asyncio.to_thread(self.router.repos_for_client, client_id, SourceType.GITHUB)
                records = self.router.filter_records(records, repos)

            return await self._suggest(
                owner,
                records,
                existing_entries or {},
                identity,
                period or start_date[:7],
            )

    @staticmethod
    def _failed(owner: Owner, error: Err) -> SuggestResult:
        counter(f"assembler.source_{error.kind.value}")
        logger.warning("Activity unavailable for %s: %s (%s)", owner, error.message, error.kind.value)
        return SuggestResult(
            entries=[],
            reasoning=f"Activity could not be loaded: {error.message}",
            source_status=SourceStatus(error.kind.value),
        )
