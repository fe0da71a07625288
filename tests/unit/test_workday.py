"""Tests for the 30-hour workday clock"""

from __future__ import annotations

from datetime import date

import pytest

from worklog.activity.workday import (
    hhmm_to_minutes,
    minutes_to_hhmm,
    month_range,
    parse_month,
    to_work_date,
    to_work_minutes,
    trailing_days,
    work_range_bounds,
)


class TestToWorkDate:
    def test_daytime_keeps_local_date(self):
        # 01:30Z = 10:30 JST
        assert to_work_date("2025-01-15T01:30:00Z", 9) == "2025-01-15"

    def test_early_morning_belongs_to_previous_day(self):
        # 18:30Z on the 15th = 03:30 JST on the 16th
        assert to_work_date("2025-01-15T18:30:00Z", 9) == "2025-01-15"

    def test_six_am_starts_new_workday(self):
        # 21:00Z = 06:00 JST next day
        assert to_work_date("2025-01-15T21:00:00Z", 9) == "2025-01-16"

    def test_crosses_month_boundary(self):
        # 02:00 JST on Feb 1 still belongs to Jan 31
        assert to_work_date("2025-01-31T17:00:00Z", 9) == "2025-01-31"

    def test_utc_offset_zero(self):
        assert to_work_date("2025-01-15T05:59:00Z", 0) == "2025-01-14"
        assert to_work_date("2025-01-15T06:00:00Z", 0) == "2025-01-15"

    def test_offset_in_timestamp_is_respected(self):
        assert to_work_date("2025-01-15T10:30:00+09:00", 9) == "2025-01-15"

    def test_invalid_timestamp_raises(self):
        with pytest.raises(ValueError):
            to_work_date("not-a-time", 9)


class TestToWorkMinutes:
    def test_daytime_position(self):
        assert to_work_minutes("2025-01-15T01:30:00Z", 9) == 10 * 60 + 30

    def test_after_midnight_uses_extended_hours(self):
        # 03:30 JST -> 27:30
        assert to_work_minutes("2025-01-15T18:30:00Z", 9) == 27 * 60 + 30

    def test_unparseable_returns_none(self):
        assert to_work_minutes("garbage", 9) is None
        assert to_work_minutes("", 9) is None


class TestHhmm:
    def test_format(self):
        assert minutes_to_hhmm(630) == "10:30"
        assert minutes_to_hhmm(1799) == "29:59"

    def test_parse(self):
        assert hhmm_to_minutes("09:00") == 540
        assert hhmm_to_minutes("29:59") == 1799

    @pytest.mark.parametrize("value", ["30:00", "12:60", "noon", "", "9"])
    def test_parse_rejects_invalid(self, value):
        with pytest.raises(ValueError):
            hhmm_to_minutes(value)


def test_month_range_handles_leap_year():
    assert month_range(2024, 2) == ("2024-02-01", "2024-02-29")
    assert month_range(2025, 12) == ("2025-12-01", "2025-12-31")


def test_parse_month():
    assert parse_month("2025-01") == (2025, 1)
    with pytest.raises(ValueError):
        parse_month("2025-13")
    with pytest.raises(ValueError):
        parse_month("January")


def test_trailing_days():
    assert trailing_days(7, today=date(2025, 1, 15)) == ("2025-01-08", "2025-01-15")


class TestWorkRangeBounds:
    def test_jst_single_day(self):
        assert work_range_bounds("2025-01-15", "2025-01-15", 9) == (
            "2025-01-14T21:00:00Z",
            "2025-01-15T20:59:59Z",
        )

    def test_bounds_map_back_to_first_and_last_work_date(self):
        opens, closes = work_range_bounds("2025-01-01", "2025-01-31", 9)

        assert to_work_date(opens, 9) == "2025-01-01"
        assert to_work_date(closes, 9) == "2025-01-31"

    def test_utc_offset_zero(self):
        assert work_range_bounds("2025-01-15", "2025-01-16", 0) == (
            "2025-01-15T06:00:00Z",
            "2025-01-17T05:59:59Z",
        )
