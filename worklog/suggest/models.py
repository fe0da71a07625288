"""
Suggestion domain models.

Times are HH:MM on the 30-hour clock (00:00-29:59); comparisons use minutes
since the workday's midnight.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from worklog.activity.workday import hhmm_to_minutes


class SourceStatus(str, Enum):
    """Outcome of loading activity for a suggestion request."""

    OK = "ok"
    NOT_CONFIGURED = "not_configured"
    CREDENTIAL_INVALID = "credential_invalid"
    FETCH_FAILED = "fetch_failed"


class SuggestedEntry(BaseModel):
    """One proposed timesheet row."""

    model_config = ConfigDict(use_enum_values=True)

    work_date: str = Field(..., description="Work date (YYYY-MM-DD)")
    start_time: str = Field(..., description="Start (HH:MM, 30-hour clock)")
    end_time: str = Field(..., description="End (HH:MM, 30-hour clock)")
    break_minutes: int = Field(default=0, ge=0)
    description: str
    conflicting: bool = Field(
        default=False, description="An entry already exists for this work date"
    )

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_hhmm(cls, v: str) -> str:
        hhmm_to_minutes(v)
        return v

    @model_validator(mode="after")
    def validate_window(self) -> SuggestedEntry:
        duration = self.duration_minutes
        if duration <= 0:
            raise ValueError("end_time must be after start_time")
        if self.break_minutes > duration:
            raise ValueError("break_minutes cannot exceed the work window")
        return self

    @property
    def duration_minutes(self) -> int:
        return hhmm_to_minutes(self.end_time) - hhmm_to_minutes(self.start_time)

    @property
    def work_hours(self) -> float:
        return (self.duration_minutes - self.break_minutes) / 60


class ExistingEntry(BaseModel):
    """A timesheet row the user already recorded."""

    start_time: str | None = None
    end_time: str | None = None
    hours: float | None = None

    def is_empty(self) -> bool:
        return not self.start_time and not self.end_time and not self.hours


class SuggestResult(BaseModel):
    """Suggested entries for a date range plus a one-line explanation."""

    model_config = ConfigDict(use_enum_values=True)

    entries: list[SuggestedEntry] = Field(default_factory=list)
    reasoning: str
    source_status: SourceStatus = SourceStatus.OK
    ai_days_used: int = 0
    total_input_tokens: int = 0
    total_output_tokens: int = 0

    @property
    def conflicting_dates(self) -> list[str]:
        return [entry.work_date for entry in self.entries if entry.conflicting]
