"""Activity records, workday clock, and activity source gateways"""

from __future__ import annotations

from worklog.activity.types import (
    ActivityRecord,
    Err,
    ErrorKind,
    EventType,
    Ok,
    Owner,
    PrAction,
    Result,
    SourceType,
)

__all__ = [
    "ActivityRecord",
    "Err",
    "ErrorKind",
    "EventType",
    "Ok",
    "Owner",
    "PrAction",
    "Result",
    "SourceType",
]
