"""
30-hour workday clock.

Timesheets run on a 30-hour clock starting at 06:00: local 00:00-05:59 belongs
to the previous calendar day's workday and is written as 24:00-29:59. Every
work date and every time-of-day position in the pipeline goes through this
module so the two always agree.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta, timezone

from worklog.config import UTC_OFFSET_HOURS, WORKDAY_START_HOUR

MINUTES_PER_HOUR = 60
DAY_START_MINUTES = WORKDAY_START_HOUR * MINUTES_PER_HOUR  # 06:00
DAY_END_MINUTES = (24 + WORKDAY_START_HOUR) * MINUTES_PER_HOUR - 1  # 29:59


def parse_timestamp(timestamp: str) -> datetime | None:
    """Parse an ISO-8601 instant; naive values are taken as UTC."""
    if not timestamp:
        return None
    try:
        parsed = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _local(instant: datetime, utc_offset_hours: float) -> datetime:
    return instant.astimezone(timezone(timedelta(hours=utc_offset_hours)))


def to_work_date(timestamp: str | datetime, utc_offset_hours: float = UTC_OFFSET_HOURS) -> str:
    """
    Work date (YYYY-MM-DD) an instant is attributed to.

    Raises:
        ValueError: If the timestamp cannot be parsed
    """
    instant = timestamp if isinstance(timestamp, datetime) else parse_timestamp(timestamp)
    if instant is None:
        raise ValueError(f"Invalid timestamp: {timestamp!r}")
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)

    local = _local(instant, utc_offset_hours)
    if local.hour < WORKDAY_START_HOUR:
        local -= timedelta(hours=WORKDAY_START_HOUR)
    return local.date().isoformat()


def to_work_minutes(timestamp: str, utc_offset_hours: float = UTC_OFFSET_HOURS) -> int | None:
    """Minutes since midnight on the 30-hour scale (0-1799), or None if unparseable."""
    instant = parse_timestamp(timestamp)
    if instant is None:
        return None

    local = _local(instant, utc_offset_hours)
    hour = local.hour
    if hour < WORKDAY_START_HOUR:
        hour += 24
    return hour * MINUTES_PER_HOUR + local.minute


def minutes_to_hhmm(minutes: int) -> str:
    hours, mins = divmod(minutes, MINUTES_PER_HOUR)
    return f"{hours:02d}:{mins:02d}"


def hhmm_to_minutes(value: str) -> int:
    """
    Parse HH:MM (hours 00-29).

    Raises:
        ValueError: If value is not HH:MM on the 30-hour clock
    """
    try:
        hours_str, mins_str = value.split(":")
        hours, mins = int(hours_str), int(mins_str)
    except (AttributeError, ValueError) as e:
        raise ValueError(f"Invalid time: {value!r}") from e
    if not (0 <= hours < 30 and 0 <= mins < 60):
        raise ValueError(f"Invalid time: {value!r}")
    return hours * MINUTES_PER_HOUR + mins


def month_range(year: int, month: int) -> tuple[str, str]:
    """First and last day of a month as ISO dates."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1).isoformat(), date(year, month, last_day).isoformat()


def parse_month(value: str) -> tuple[int, int]:
    """
    Parse YYYY-MM.

    Raises:
        ValueError: If value is not a valid month
    """
    try:
        year_str, month_str = value.split("-")
        year, month = int(year_str), int(month_str)
    except (AttributeError, ValueError) as e:
        raise ValueError(f"Invalid month (expected YYYY-MM): {value!r}") from e
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month (expected YYYY-MM): {value!r}")
    return year, month


def trailing_days(days: int, today: date | None = None) -> tuple[str, str]:
    """Date range covering the last `days` days up to today."""
    end = today or date.today()
    start = end - timedelta(days=days)
    return start.isoformat(), end.isoformat()


def work_range_bounds(
    start_date: str, end_date: str, utc_offset_hours: float = UTC_OFFSET_HOURS
) -> tuple[str, str]:
    """
    UTC instants covering whole workdays start_date..end_date.

    The first workday opens at 06:00 local on start_date and the last one
    closes at 05:59:59 local on the day after end_date.
    """
    tz = timezone(timedelta(hours=utc_offset_hours))
    opens = datetime.combine(date.fromisoformat(start_date), datetime.min.time(), tz)
    opens += timedelta(hours=WORKDAY_START_HOUR)
    closes = datetime.combine(date.fromisoformat(end_date), datetime.min.time(), tz)
    closes += timedelta(days=1, hours=WORKDAY_START_HOUR, seconds=-1)

    def utc(instant: datetime) -> str:
        return instant.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")

    return utc(opens), utc(closes)
