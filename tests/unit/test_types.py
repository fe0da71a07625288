"""Tests for activity record types and tagged enums"""

from __future__ import annotations

from worklog.activity.types import (
    ActivityRecord,
    EventType,
    PrAction,
    SourceType,
    parse_metadata,
)


def test_unknown_strings_fall_back_to_other():
    assert SourceType.parse("gitlab") is SourceType.OTHER
    assert EventType.parse("deployment") is EventType.OTHER
    assert EventType.parse("commit") is EventType.COMMIT


def test_pr_action_priority_is_total_order():
    ordered = sorted(PrAction, key=lambda action: action.priority)
    assert ordered == [PrAction.OPENED, PrAction.CLOSED, PrAction.MERGED]


def test_pr_action_parse_defaults_to_opened():
    assert PrAction.parse("merged") is PrAction.MERGED
    assert PrAction.parse(None) is PrAction.OPENED
    assert PrAction.parse("reopened") is PrAction.OPENED


def test_create_coerces_loose_values():
    record = ActivityRecord.create(
        source_type="github",
        event_type="pr",
        event_date="2025-01-15",
        event_timestamp="2025-01-15T09:00:00Z",
        repo="",
        title="Add feature",
        metadata='{"action": "closed"}',
    )

    assert record.source_type is SourceType.GITHUB
    assert record.repo is None
    assert record.pr_action is PrAction.CLOSED


def test_commit_count_defaults_to_one():
    base = dict(
        source_type=SourceType.GITHUB,
        event_type=EventType.COMMIT,
        event_date="2025-01-15",
        event_timestamp="2025-01-15T01:30:00Z",
    )
    assert ActivityRecord(**base).commit_count == 1
    assert ActivityRecord(**base, metadata={"count": 4}).commit_count == 4
    assert ActivityRecord(**base, metadata={"count": "many"}).commit_count == 1


def test_pr_action_only_for_pull_requests():
    record = ActivityRecord(
        source_type=SourceType.GITHUB,
        event_type=EventType.REVIEW,
        event_date="2025-01-15",
        event_timestamp="2025-01-15T01:30:00Z",
        metadata={"action": "merged"},
    )
    assert record.pr_action is None


def test_parse_metadata():
    assert parse_metadata(None) is None
    assert parse_metadata({"a": 1}) == {"a": 1}
    assert parse_metadata('{"count": 2}') == {"count": 2}
    assert parse_metadata("{broken") is None
    assert parse_metadata("[1, 2]") is None
