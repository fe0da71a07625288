"""Timesheet suggestion: workday windows, descriptions, assembly"""

from __future__ import annotations

from worklog.suggest.assembler import SuggestionAssembler
from worklog.suggest.bucketer import WorkdayBucketer, WorkWindow
from worklog.suggest.models import ExistingEntry, SourceStatus, SuggestedEntry, SuggestResult
from worklog.suggest.summarizer import Description, DescriptionSummarizer, fallback_description

__all__ = [
    "Description",
    "DescriptionSummarizer",
    "ExistingEntry",
    "SourceStatus",
    "SuggestResult",
    "SuggestedEntry",
    "SuggestionAssembler",
    "WorkWindow",
    "WorkdayBucketer",
    "fallback_description",
]
