"""Tests for in-memory telemetry helpers"""

from __future__ import annotations

import pytest

from worklog.observability.telemetry import (
    counter,
    get_counter,
    get_latency_stats,
    reset_counters,
    time_block,
)


def test_counter_accumulates():
    assert counter("sync.owner_failed") == 1
    assert counter("sync.owner_failed", 3) == 4
    assert get_counter("sync.owner_failed") == 4
    assert get_counter("never.touched") == 0


def test_time_block_records_samples_even_on_error():
    with time_block("github.fetch_activities.latency"):
        pass
    with pytest.raises(RuntimeError), time_block("github.fetch_activities.latency"):
        raise RuntimeError("boom")

    stats = get_latency_stats("github.fetch_activities.latency")
    assert stats["count"] == 2
    assert stats["min"] <= stats["avg"] <= stats["max"]


def test_reset_clears_everything():
    counter("a")
    with time_block("b.latency"):
        pass

    reset_counters()

    assert get_counter("a") == 0
    assert get_latency_stats("b.latency")["count"] == 0
