"""
Module: types
Purpose: Shared domain types for activity ingestion and suggestion.

Leaf module: no imports from the rest of worklog, so the gateway, ledger,
bucketer and summarizer can all depend on it without cycles.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Tagged enums
# ---------------------------------------------------------------------------


class SourceType(str, Enum):
    """Origin system of an activity."""

    GITHUB = "github"
    OTHER = "other"

    @classmethod
    def parse(cls, value: str | SourceType) -> SourceType:
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER


class EventType(str, Enum):
    """Kind of activity event."""

    COMMIT = "commit"
    PR = "pr"
    REVIEW = "review"
    ISSUE_COMMENT = "issue_comment"
    OTHER = "other"

    @classmethod
    def parse(cls, value: str | EventType) -> EventType:
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER


class PrAction(str, Enum):
    """Pull request lifecycle action, totally ordered by priority."""

    OPENED = "opened"
    CLOSED = "closed"
    MERGED = "merged"

    @property
    def priority(self) -> int:
        return _PR_ACTION_PRIORITY[self]

    @classmethod
    def parse(cls, value: Any) -> PrAction:
        try:
            return cls(value)
        except ValueError:
            return cls.OPENED


# merged > closed > opened
_PR_ACTION_PRIORITY = {PrAction.OPENED: 0, PrAction.CLOSED: 1, PrAction.MERGED: 2}


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Owner:
    """Organization + user pair that owns ledger rows and credentials."""

    organization_id: str
    user_id: str

    def __str__(self) -> str:
        return f"{self.organization_id}/{self.user_id}"


@dataclass(frozen=True)
class ActivityRecord:
    """One observed developer event."""

    source_type: SourceType
    event_type: EventType
    event_date: str  # YYYY-MM-DD on the 30-hour clock
    event_timestamp: str  # ISO 8601 instant
    repo: str | None = None
    title: str | None = None
    url: str | None = None
    metadata: dict[str, Any] | None = field(default=None, compare=False, hash=False)

    @classmethod
    def create(
        cls,
        source_type: str | SourceType,
        event_type: str | EventType,
        event_date: str,
        event_timestamp: str,
        repo: str | None = None,
        title: str | None = None,
        url: str | None = None,
        metadata: dict[str, Any] | str | None = None,
    ) -> ActivityRecord:
        """Build a record from loosely typed values (DB rows, API payloads)."""
        return cls(
            source_type=SourceType.parse(source_type),
            event_type=EventType.parse(event_type),
            event_date=event_date,
            event_timestamp=event_timestamp,
            repo=repo or None,
            title=title,
            url=url,
            metadata=parse_metadata(metadata),
        )

    @property
    def pr_action(self) -> PrAction | None:
        if self.event_type != EventType.PR:
            return None
        return PrAction.parse((self.metadata or {}).get("action"))

    @property
    def commit_count(self) -> int:
        """Commits represented by this record; a bare commit record counts as one."""
        count = (self.metadata or {}).get("count")
        if isinstance(count, bool) or not isinstance(count, int | float):
            return 1
        return int(count)

    def metadata_json(self) -> str | None:
        if self.metadata is None:
            return None
        return json.dumps(self.metadata, sort_keys=True)


def parse_metadata(value: dict[str, Any] | str | None) -> dict[str, Any] | None:
    """Accept a dict, a JSON string, or None; malformed JSON becomes None."""
    if value is None or isinstance(value, dict):
        return value
    try:
        parsed = json.loads(value)
    except (TypeError, ValueError):
        return None
    return parsed if isinstance(parsed, dict) else None


# ---------------------------------------------------------------------------
# Result types for external calls
# ---------------------------------------------------------------------------


class ErrorKind(str, Enum):
    """Why an external step produced no data."""

    NOT_CONFIGURED = "not_configured"
    CREDENTIAL_INVALID = "credential_invalid"
    FETCH_FAILED = "fetch_failed"


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: str


Result = Ok[T] | Err
