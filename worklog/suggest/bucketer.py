"""
Workday Bucketer - groups activity into workdays and estimates each day's window.

Window rules (30-hour clock, minutes since the workday's midnight):
- start = max(06:00, earliest activity), end = min(29:59, latest activity)
- a collapsed window (end <= start) is widened to one hour
- no usable timestamps -> configurable fallback window (09:00-18:00)
- 60 minutes of break once the window reaches 6 hours
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass

from worklog.activity.types import ActivityRecord
from worklog.activity.workday import (
    DAY_END_MINUTES,
    DAY_START_MINUTES,
    hhmm_to_minutes,
    minutes_to_hhmm,
    to_work_minutes,
)
from worklog.config import (
    BREAK_MINUTES,
    BREAK_THRESHOLD_MINUTES,
    FALLBACK_END,
    FALLBACK_START,
    UTC_OFFSET_HOURS,
)

MIN_WINDOW_MINUTES = 60


@dataclass(frozen=True)
class WorkWindow:
    """Estimated working window for one workday."""

    work_date: str
    start_minutes: int
    end_minutes: int
    break_minutes: int

    @property
    def start_time(self) -> str:
        return minutes_to_hhmm(self.start_minutes)

    @property
    def end_time(self) -> str:
        return minutes_to_hhmm(self.end_minutes)

    @property
    def duration_minutes(self) -> int:
        return self.end_minutes - self.start_minutes


class WorkdayBucketer:
    def __init__(
        self,
        utc_offset_hours: float = UTC_OFFSET_HOURS,
        fallback_start: str = FALLBACK_START,
        fallback_end: str = FALLBACK_END,
    ):
        self.utc_offset_hours = utc_offset_hours
        self.fallback_start = hhmm_to_minutes(fallback_start)
        self.fallback_end = hhmm_to_minutes(fallback_end)
        if self.fallback_end <= self.fallback_start:
            raise ValueError("Fallback window end must be after its start")

    @staticmethod
    def bucket(records: Iterable[ActivityRecord]) -> dict[str, list[ActivityRecord]]:
        """Group records by event_date; keys come back in ascending date order."""
        by_date: dict[str, list[ActivityRecord]] = defaultdict(list)
        for record in records:
            by_date[record.event_date].append(record)
        return {work_date: by_date[work_date] for work_date in sorted(by_date)}

    def window(self, work_date: str, records: list[ActivityRecord]) -> WorkWindow:
        positions = [
            minutes
            for minutes in (to_work_minutes(r.event_timestamp, self.utc_offset_hours) for r in records)
            if minutes is not None
        ]

        if positions:
            start = max(DAY_START_MINUTES, min(positions))
            end = min(DAY_END_MINUTES, max(positions))
            if end <= start:
                end = min(start + MIN_WINDOW_MINUTES, DAY_END_MINUTES)
                if end <= start:
                    start = end - MIN_WINDOW_MINUTES
        else:
            start, end = self.fallback_start, self.fallback_end

        break_minutes = BREAK_MINUTES if end - start >= BREAK_THRESHOLD_MINUTES else 0
        return WorkWindow(work_date, start, end, break_minutes)

    def windows(self, records: Iterable[ActivityRecord]) -> list[tuple[WorkWindow, list[ActivityRecord]]]:
        """Bucket and estimate in one pass, ordered by work date."""
        return [
            (self.window(work_date, day_records), day_records)
            for work_date, day_records in self.bucket(records).items()
        ]
