"""
AI usage quota for description summarization.

Caps AI-assisted summaries per identity (end user or anonymous session) per
period (calendar month). The data owner is irrelevant here: the identity that
asked for the suggestion pays.

Gating is advisory. check() and record() are not one transaction, so
concurrent requests for the same identity can overshoot the limit slightly;
record() is an upsert-increment so no usage is ever lost. Within a single
request AiAllowance hands out at most `remaining` slots.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date
from threading import Lock
from typing import NamedTuple, Protocol

from worklog.config import AI_MONTHLY_LIMIT
from worklog.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from worklog.observability.logging import get_logger
from worklog.observability.telemetry import counter

logger = get_logger(__name__)


class QuotaStatus(NamedTuple):
    """Usage of one identity in one period."""

    used: int
    limit: int
    remaining: int

    @property
    def is_allowed(self) -> bool:
        return self.used < self.limit


def period_for(day: date | None = None) -> str:
    """Quota period key (YYYY-MM) containing `day`."""
    return (day or date.today()).strftime("%Y-%m")


def _status(used: int, limit: int) -> QuotaStatus:
    return QuotaStatus(used=used, limit=limit, remaining=max(0, limit - used))


class UsageQuota(Protocol):
    limit: int

    def check(self, identity: str, period: str) -> QuotaStatus: ...

    def record(
        self,
        identity: str,
        period: str,
        count: int,
        input_tokens: int,
        output_tokens: int,
        source_username: str | None = None,
    ) -> None: ...


class SqliteUsageQuota:
    """UsageQuota backed by the ai_usage table."""

    def __init__(self, limit: int = AI_MONTHLY_LIMIT):
        self.limit = limit

    @retry_on_db_lock()
    def check(self, identity: str, period: str) -> QuotaStatus:
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT request_count FROM ai_usage WHERE identity = ? AND period = ?",
                (identity, period),
            ).fetchone()

        used = row[0] if row else 0
        return _status(used, self.limit)

    @retry_on_db_lock()
    def record(
        self,
        identity: str,
        period: str,
        count: int,
        input_tokens: int,
        output_tokens: int,
        source_username: str | None = None,
    ) -> None:
        """
        Add usage for an identity/period.

        Side Effects:
            - Inserts the ai_usage row or increments its counters
        """
        with db_transaction() as conn:
            # Upsert: increment if exists, insert if not
            conn.execute(
                """
                INSERT INTO ai_usage (
                    id, identity, period, request_count,
                    total_input_tokens, total_output_tokens, source_username
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(identity, period)
                DO UPDATE SET
                    request_count = request_count + excluded.request_count,
                    total_input_tokens = total_input_tokens + excluded.total_input_tokens,
                    total_output_tokens = total_output_tokens + excluded.total_output_tokens,
                    source_username = COALESCE(excluded.source_username, source_username),
                    updated_at = CURRENT_TIMESTAMP
                """,
                (
                    str(uuid.uuid4()),
                    identity,
                    period,
                    count,
                    input_tokens,
                    output_tokens,
                    source_username,
                ),
            )

        counter("ai_quota.recorded", count)
        logger.debug("Recorded AI usage: identity=%s period=%s count=%d", identity, period, count)


class InMemoryUsageQuota:
    """UsageQuota kept in process memory (tests, anonymous callers)."""

    def __init__(self, limit: int = AI_MONTHLY_LIMIT):
        self.limit = limit
        self._lock = Lock()
        self._usage: dict[tuple[str, str], list[int]] = {}

    def check(self, identity: str, period: str) -> QuotaStatus:
        with self._lock:
            used = self._usage.get((identity, period), [0, 0, 0])[0]
        return _status(used, self.limit)

    def record(
        self,
        identity: str,
        period: str,
        count: int,
        input_tokens: int,
        output_tokens: int,
        source_username: str | None = None,
    ) -> None:
        with self._lock:
            row = self._usage.setdefault((identity, period), [0, 0, 0])
            row[0] += count
            row[1] += input_tokens
            row[2] += output_tokens

    def tokens(self, identity: str, period: str) -> tuple[int, int]:
        with self._lock:
            _, input_tokens, output_tokens = self._usage.get((identity, period), [0, 0, 0])
        return input_tokens, output_tokens


@dataclass
class AiAllowance:
    """
    AI slots available to one suggestion request.

    Days are described concurrently on one event loop; take() never awaits,
    so it cannot interleave and the request never exceeds `remaining` calls.
    """

    remaining: int
    used: int = 0

    def take(self) -> bool:
        if self.remaining <= 0:
            return False
        self.remaining -= 1
        self.used += 1
        return True

    def give_back(self) -> None:
        """Return a slot whose AI call failed."""
        self.remaining += 1
        self.used -= 1
