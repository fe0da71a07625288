"""worklog - turn developer activity into proposed timesheet entries"""

from __future__ import annotations

__version__ = "0.1.0"


# Lazy imports so `import worklog` does not pull in httpx, pydantic or Vertex AI
def __getattr__(name: str):
    if name == "SuggestionAssembler":
        from worklog.suggest.assembler import SuggestionAssembler

        return SuggestionAssembler
    if name == "ActivityLedger":
        from worklog.storage.activity_ledger import ActivityLedger

        return ActivityLedger
    if name == "GitHubActivityGateway":
        from worklog.activity.github import GitHubActivityGateway

        return GitHubActivityGateway
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["ActivityLedger", "GitHubActivityGateway", "SuggestionAssembler", "__version__"]
