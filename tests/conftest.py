"""
Pytest configuration for worklog tests

Shared fixtures: throwaway SQLite database, Fernet key, record builder,
scripted LLM, mocked GitHub API.
"""

from __future__ import annotations

import json
import time
from pathlib import Path

import httpx
import pytest
from cryptography.fernet import Fernet

from worklog.activity.types import ActivityRecord, EventType, SourceType
from worklog.activity.workday import to_work_date
from worklog.infrastructure.database import init_database, reset_pool
from worklog.llm.client import LLMResponse
from worklog.observability.telemetry import reset_counters


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    """No test reaches Vertex AI, and counters start from zero."""
    monkeypatch.setenv("WORKLOG_USE_LLM", "false")
    monkeypatch.delenv("WORKLOG_CRON_SECRET", raising=False)
    monkeypatch.delenv("GITHUB_WEBHOOK_SECRET", raising=False)
    reset_counters()


@pytest.fixture
def temp_db(tmp_path, monkeypatch):
    """Fresh database with the full schema, reachable through the global pool."""
    db_path = tmp_path / "worklog.db"
    monkeypatch.setenv("WORKLOG_DB_PATH", str(db_path))
    reset_pool()
    init_database()
    yield db_path
    reset_pool()


@pytest.fixture
def encryption_key(monkeypatch):
    key = Fernet.generate_key().decode()
    monkeypatch.setenv("WORKLOG_ENCRYPTION_KEY", key)
    return key


@pytest.fixture
def make_record():
    """Build an ActivityRecord whose event_date follows the JST workday clock."""

    def _make(
        event_type: EventType | str,
        timestamp: str,
        repo: str | None = "acme/api",
        title: str | None = None,
        metadata: dict | None = None,
        url: str | None = None,
    ) -> ActivityRecord:
        return ActivityRecord(
            source_type=SourceType.GITHUB,
            event_type=EventType.parse(event_type),
            event_date=to_work_date(timestamp, 9),
            event_timestamp=timestamp,
            repo=repo,
            title=title,
            url=url,
            metadata=metadata,
        )

    return _make


class FakeLLM:
    """Records calls and returns a canned response (or raises)."""

    def __init__(
        self,
        text: str = "機能追加とレビュー対応",
        input_tokens: int = 120,
        output_tokens: int = 15,
        error: Exception | None = None,
        delay: float = 0.0,
    ):
        self.text = text
        self.input_tokens = input_tokens
        self.output_tokens = output_tokens
        self.error = error
        self.delay = delay
        self.calls: list[tuple[str, str]] = []

    def __call__(self, prompt: str, system_instruction: str) -> LLMResponse:
        self.calls.append((prompt, system_instruction))
        if self.delay:
            time.sleep(self.delay)
        if self.error:
            raise self.error
        return LLMResponse(self.text, self.input_tokens, self.output_tokens)


@pytest.fixture
def fake_llm():
    """Factory for FakeLLM instances."""
    return FakeLLM


@pytest.fixture(scope="session")
def github_data():
    """GraphQL `data` payload: activity around 2025-01-15 for octocat."""
    return json.loads((Path(__file__).parent / "fixtures" / "github_activities.json").read_text())


@pytest.fixture
def github_handler(github_data):
    """httpx MockTransport handler serving /user and /graphql; requests are kept on .seen."""
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path == "/user":
            return httpx.Response(200, json={"login": "octocat"})
        if request.url.path == "/graphql":
            return httpx.Response(200, json={"data": github_data})
        return httpx.Response(404)

    handler.seen = seen
    return handler
