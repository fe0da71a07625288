"""End-to-end tests for SuggestionAssembler

Tests cover:
- JST scenario: one workday from a commit and a merged PR
- Conflict marking against existing timesheet rows
- AI accounting across concurrently described days
- Request deadline, including the source fetch
- Loading activity from the connected source (Ok/Err paths)
"""

from __future__ import annotations

import asyncio
import copy
import threading
import time

import httpx
import pytest

from worklog.activity.github import GitHubActivityGateway
from worklog.activity.types import Owner, SourceType
from worklog.infrastructure.ai_quota import InMemoryUsageQuota
from worklog.storage.client_mapping import ClientRepoRouter
from worklog.storage.credential_vault import ActivitySourceRepository, CredentialVault
from worklog.suggest.assembler import NO_ACTIVITY_REASONING, SuggestionAssembler
from worklog.suggest.bucketer import WorkdayBucketer
from worklog.suggest.models import SourceStatus
from worklog.suggest.summarizer import DescriptionSummarizer

OWNER = Owner("org-1", "user-1")


@pytest.fixture
def jst_activities(make_record):
    return [
        make_record("commit", "2025-01-15T01:30:00Z"),
        make_record("pr", "2025-01-15T09:00:00Z", title="Add feature", metadata={"action": "merged"}),
    ]


def make_assembler(llm=None, quota=None, **kwargs):
    summarizer = DescriptionSummarizer(llm=llm, quota=quota, llm_enabled=llm is not None)
    return SuggestionAssembler(
        bucketer=WorkdayBucketer(utc_offset_hours=9),
        summarizer=summarizer,
        quota=quota,
        **kwargs,
    )


def test_jst_end_to_end(jst_activities):
    result = asyncio.run(make_assembler().suggest(OWNER, jst_activities))

    assert len(result.entries) == 1
    entry = result.entries[0]
    assert entry.work_date == "2025-01-15"
    assert entry.start_time == "10:30"
    assert entry.end_time == "18:00"
    assert entry.break_minutes == 60
    assert "1commits" in entry.description
    assert "Add feature (merged)" in entry.description
    assert not entry.conflicting
    assert result.reasoning == "1 days of activity, 6.5h estimated in total"
    assert (result.ai_days_used, result.total_input_tokens, result.total_output_tokens) == (0, 0, 0)


def test_conflicts_only_where_entries_exist(jst_activities, make_record):
    activities = jst_activities + [make_record("commit", "2025-01-16T02:00:00Z")]
    existing = {
        "2025-01-15": {"start_time": "09:00", "end_time": "17:00"},
        "2025-01-16": {"start_time": None, "end_time": None, "hours": None},
    }

    result = asyncio.run(make_assembler().suggest(OWNER, activities, existing_entries=existing))

    assert [e.work_date for e in result.entries] == ["2025-01-15", "2025-01-16"]
    assert result.conflicting_dates == ["2025-01-15"]


def test_no_activity():
    result = asyncio.run(make_assembler().suggest(OWNER, []))

    assert result.entries == []
    assert result.reasoning == NO_ACTIVITY_REASONING


def test_entries_sorted_regardless_of_input_order(make_record):
    activities = [
        make_record("commit", "2025-01-20T01:00:00Z"),
        make_record("commit", "2025-01-03T01:00:00Z"),
        make_record("commit", "2025-01-11T01:00:00Z"),
    ]

    result = asyncio.run(make_assembler().suggest(OWNER, activities))

    assert [e.work_date for e in result.entries] == ["2025-01-03", "2025-01-11", "2025-01-20"]


def test_ai_days_capped_by_remaining_quota(make_record, fake_llm):
    activities = [make_record("commit", f"2025-01-1{day}T01:00:00Z") for day in range(5, 8)]
    quota = InMemoryUsageQuota(limit=3)
    quota.record("viewer", "2025-01", 1, 0, 0)
    llm = fake_llm(input_tokens=100, output_tokens=10)

    result = asyncio.run(
        make_assembler(llm=llm, quota=quota).suggest(OWNER, activities, identity="viewer", period="2025-01")
    )

    assert result.ai_days_used == 2
    assert (result.total_input_tokens, result.total_output_tokens) == (200, 20)
    assert sum(e.description == llm.text for e in result.entries) == 2
    assert quota.check("viewer", "2025-01").used == 3


def test_ai_failure_keeps_fallback_and_zero_usage(jst_activities, fake_llm):
    quota = InMemoryUsageQuota(limit=5)
    llm = fake_llm(error=ConnectionError("service unavailable"))

    result = asyncio.run(
        make_assembler(llm=llm, quota=quota).suggest(OWNER, jst_activities, identity="viewer", period="2025-01")
    )

    assert result.entries[0].description == "1commits(api) / PR: Add feature (merged)"
    assert (result.ai_days_used, result.total_input_tokens, result.total_output_tokens) == (0, 0, 0)
    assert quota.check("viewer", "2025-01").used == 0


def test_request_timeout_propagates(jst_activities, fake_llm):
    llm = fake_llm(delay=0.5)
    assembler = make_assembler(llm=llm, quota=InMemoryUsageQuota())

    with pytest.raises(TimeoutError):
        asyncio.run(assembler.suggest(OWNER, jst_activities, identity="viewer", period="2025-01", timeout=0.05))


def test_days_are_described_concurrently(make_record, fake_llm):
    activities = [make_record("commit", f"2025-01-1{day}T01:00:00Z") for day in range(3, 8)]
    assembler = make_assembler(llm=fake_llm(delay=0.3), quota=InMemoryUsageQuota(limit=30))

    started = time.perf_counter()
    result = asyncio.run(assembler.suggest(OWNER, activities, identity="viewer", period="2025-01"))
    elapsed = time.perf_counter() - started

    assert result.ai_days_used == 5
    # five sequential calls would take 1.5s
    assert elapsed < 1.0


class ThreadRecordingQuota(InMemoryUsageQuota):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.threads: list[int] = []

    def check(self, identity, period):
        self.threads.append(threading.get_ident())
        return super().check(identity, period)

    def record(self, *args, **kwargs):
        self.threads.append(threading.get_ident())
        return super().record(*args, **kwargs)


def test_quota_calls_stay_off_the_event_loop(jst_activities, fake_llm):
    quota = ThreadRecordingQuota(limit=5)
    assembler = make_assembler(llm=fake_llm(), quota=quota)

    asyncio.run(assembler.suggest(OWNER, jst_activities, identity="viewer", period="2025-01"))

    assert len(quota.threads) == 2
    assert threading.get_ident() not in quota.threads


class TestSuggestFromSource:
    @staticmethod
    def gateway(handler):
        return GitHubActivityGateway(
            api_url="https://api.github.test", utc_offset_hours=9, transport=httpx.MockTransport(handler)
        )

    def test_not_configured(self, temp_db, encryption_key, github_handler):
        assembler = make_assembler(gateway=self.gateway(github_handler), sources=ActivitySourceRepository())

        result = asyncio.run(assembler.suggest_from_source(OWNER, "2025-01-01", "2025-01-31"))

        assert result.entries == []
        assert result.source_status == SourceStatus.NOT_CONFIGURED.value
        assert "No GitHub source configured" in result.reasoning

    def test_credential_invalid(self, temp_db, github_handler):
        ActivitySourceRepository(CredentialVault(CredentialVault.generate_key())).save(
            OWNER, SourceType.GITHUB, "ghp_token"
        )
        rotated = ActivitySourceRepository(CredentialVault(CredentialVault.generate_key()))
        assembler = make_assembler(gateway=self.gateway(github_handler), sources=rotated)

        result = asyncio.run(assembler.suggest_from_source(OWNER, "2025-01-01", "2025-01-31"))

        assert result.entries == []
        assert result.source_status == SourceStatus.CREDENTIAL_INVALID.value

    def test_fetch_failed(self, temp_db, encryption_key):
        sources = ActivitySourceRepository()
        sources.save(OWNER, SourceType.GITHUB, "ghp_token")
        assembler = make_assembler(
            gateway=self.gateway(lambda request: httpx.Response(502)), sources=sources
        )

        result = asyncio.run(assembler.suggest_from_source(OWNER, "2025-01-01", "2025-01-31"))

        assert result.entries == []
        assert result.source_status == SourceStatus.FETCH_FAILED.value

    def test_success_with_client_filter(self, temp_db, encryption_key, github_handler):
        sources = ActivitySourceRepository()
        sources.save(OWNER, SourceType.GITHUB, "ghp_token")
        router = ClientRepoRouter()
        router.save_mapping("client-a", SourceType.GITHUB, "acme/api")
        assembler = make_assembler(gateway=self.gateway(github_handler), sources=sources, router=router)

        result = asyncio.run(
            assembler.suggest_from_source(OWNER, "2025-01-15", "2025-01-15", client_id="client-a")
        )

        assert result.source_status == SourceStatus.OK.value
        assert len(result.entries) == 1
        entry = result.entries[0]
        # acme/web review is not mapped to client-a
        assert "reviews" not in entry.description
        assert "3commits(api)" in entry.description
        assert "Add feature (merged)" in entry.description
        assert "Spike (closed)" in entry.description

    def test_bad_timestamp_is_a_fetch_failure(self, temp_db, encryption_key, github_data):
        data = copy.deepcopy(github_data)
        repo_contributions = data["user"]["contributionsCollection"]["commitContributionsByRepository"][0]
        repo_contributions["contributions"]["nodes"][0]["occurredAt"] = None

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/user":
                return httpx.Response(200, json={"login": "octocat"})
            return httpx.Response(200, json={"data": data})

        sources = ActivitySourceRepository()
        sources.save(OWNER, SourceType.GITHUB, "ghp_token")
        assembler = make_assembler(gateway=self.gateway(handler), sources=sources)

        result = asyncio.run(assembler.suggest_from_source(OWNER, "2025-01-15", "2025-01-15"))

        assert result.entries == []
        assert result.source_status == SourceStatus.FETCH_FAILED.value

    def test_timeout_covers_the_source_fetch(self, temp_db, encryption_key, github_handler):
        async def slow_handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(0.5)
            return github_handler(request)

        sources = ActivitySourceRepository()
        sources.save(OWNER, SourceType.GITHUB, "ghp_token")
        assembler = make_assembler(gateway=self.gateway(slow_handler), sources=sources)

        started = time.perf_counter()
        with pytest.raises(TimeoutError):
            asyncio.run(assembler.suggest_from_source(OWNER, "2025-01-15", "2025-01-15", timeout=0.05))
        assert time.perf_counter() - started < 0.5
