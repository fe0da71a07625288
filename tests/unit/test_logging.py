"""Tests for the package logger"""

from __future__ import annotations

import logging

from worklog.observability.logging import PACKAGE_LOGGER, get_logger


def test_module_loggers_nest_under_package():
    assert get_logger("worklog.api.app").name == "worklog.api.app"
    assert get_logger("scripts.backfill").name == "worklog.scripts.backfill"


def test_package_logger_gets_one_handler():
    get_logger("worklog.a")
    get_logger("worklog.b")

    assert len(logging.getLogger(PACKAGE_LOGGER).handlers) == 1
