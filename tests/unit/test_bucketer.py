"""Tests for workday bucketing and window estimation

Validates:
1. Records group by work date in ascending order
2. Window bounds: 06:00 <= start < end <= 29:59
3. Break is 60 minutes exactly when the window reaches 6 hours
4. Fallback window when no timestamp is usable
"""

from __future__ import annotations

import pytest

from worklog.activity.types import ActivityRecord, EventType, SourceType
from worklog.suggest.bucketer import WorkdayBucketer


@pytest.fixture
def bucketer():
    return WorkdayBucketer(utc_offset_hours=9, fallback_start="09:00", fallback_end="18:00")


def test_bucket_groups_by_date_in_order(bucketer, make_record):
    records = [
        make_record("commit", "2025-01-16T01:00:00Z"),
        make_record("commit", "2025-01-15T01:00:00Z"),
        make_record("review", "2025-01-15T18:30:00Z"),  # 03:30 JST, still the 15th
    ]

    buckets = bucketer.bucket(records)

    assert list(buckets) == ["2025-01-15", "2025-01-16"]
    assert len(buckets["2025-01-15"]) == 2


def test_window_from_earliest_to_latest(bucketer, make_record):
    records = [
        make_record("commit", "2025-01-15T01:30:00Z"),  # 10:30 JST
        make_record("pr", "2025-01-15T09:00:00Z"),  # 18:00 JST
    ]

    window = bucketer.window("2025-01-15", records)

    assert window.start_time == "10:30"
    assert window.end_time == "18:00"
    assert window.break_minutes == 60


def test_late_night_activity_extends_past_midnight(bucketer, make_record):
    records = [
        make_record("commit", "2025-01-15T12:00:00Z"),  # 21:00 JST
        make_record("commit", "2025-01-15T17:15:00Z"),  # 02:15 JST -> 26:15
    ]

    window = bucketer.window("2025-01-15", records)

    assert window.start_time == "21:00"
    assert window.end_time == "26:15"
    assert window.break_minutes == 0


def test_single_event_widens_to_one_hour(bucketer, make_record):
    window = bucketer.window("2025-01-15", [make_record("commit", "2025-01-15T05:00:00Z")])

    assert (window.start_time, window.end_time) == ("14:00", "15:00")
    assert window.break_minutes == 0


def test_single_event_at_day_end_shifts_start_back(bucketer, make_record):
    # 05:59 JST -> 29:59, no room to widen forward
    window = bucketer.window("2025-01-15", [make_record("commit", "2025-01-15T20:59:00Z")])

    assert window.end_time == "29:59"
    assert window.start_time == "28:59"


def test_no_valid_timestamps_uses_fallback(bucketer):
    record = ActivityRecord(
        source_type=SourceType.GITHUB,
        event_type=EventType.COMMIT,
        event_date="2025-01-15",
        event_timestamp="unknown",
    )

    window = bucketer.window("2025-01-15", [record])

    assert (window.start_time, window.end_time) == ("09:00", "18:00")
    assert window.break_minutes == 60


def test_fallback_window_is_configurable():
    custom = WorkdayBucketer(fallback_start="10:00", fallback_end="12:00")
    window = custom.window("2025-01-15", [])

    assert (window.start_time, window.end_time, window.break_minutes) == ("10:00", "12:00", 0)


def test_fallback_window_must_be_ordered():
    with pytest.raises(ValueError):
        WorkdayBucketer(fallback_start="18:00", fallback_end="09:00")


def test_break_threshold_is_inclusive(bucketer, make_record):
    exactly_six = [
        make_record("commit", "2025-01-15T00:00:00Z"),  # 09:00 JST
        make_record("commit", "2025-01-15T06:00:00Z"),  # 15:00 JST
    ]
    just_under = [
        make_record("commit", "2025-01-15T00:01:00Z"),
        make_record("commit", "2025-01-15T06:00:00Z"),
    ]

    assert bucketer.window("2025-01-15", exactly_six).break_minutes == 60
    assert bucketer.window("2025-01-15", just_under).break_minutes == 0


@pytest.mark.parametrize(
    "timestamps",
    [
        ["2025-01-14T21:00:00Z"],
        ["2025-01-14T21:00:00Z", "2025-01-15T20:59:00Z"],
        ["2025-01-15T10:00:00Z", "2025-01-15T10:00:00Z"],
        ["2025-01-15T03:00:00Z", "2025-01-15T14:45:00Z", "2025-01-15T08:20:00Z"],
    ],
)
def test_window_bounds_hold(bucketer, make_record, timestamps):
    records = [make_record("commit", ts) for ts in timestamps]

    for window, _ in bucketer.windows(records):
        assert 6 * 60 <= window.start_minutes < window.end_minutes <= 29 * 60 + 59
        assert window.break_minutes == (60 if window.duration_minutes >= 360 else 0)
