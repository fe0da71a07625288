"""
GitHub push webhook - record pushed commits as ledger activity.

The push sender is matched to owners through the `username` stored in each
active GitHub source's config; every matching owner gets the commits.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timezone
from typing import Any

from worklog.activity.types import ActivityRecord, EventType, Owner, SourceType
from worklog.activity.workday import parse_timestamp, to_work_date
from worklog.config import UTC_OFFSET_HOURS
from worklog.observability.logging import get_logger
from worklog.observability.telemetry import counter, log_event
from worklog.storage.activity_ledger import ActivityLedger
from worklog.storage.credential_vault import ActivitySourceRepository

logger = get_logger(__name__)

NO_MATCHING_USER = "No matching user"


@dataclass(frozen=True)
class PushOutcome:
    inserted: int = 0
    skipped: bool = False
    reason: str | None = None


def commit_records(
    repo: str, commits: list[dict[str, Any]], utc_offset_hours: float = UTC_OFFSET_HOURS
) -> list[ActivityRecord]:
    """
    Commit records for one push.

    Commits without a parseable timestamp are dropped.
    """
    records = []
    for commit in commits:
        instant = parse_timestamp(commit.get("timestamp") or "")
        if instant is None or not commit.get("id"):
            counter("webhook.bad_commit")
            logger.warning("Skipping pushed commit without id or timestamp in %s", repo)
            continue

        message = commit.get("message") or ""
        records.append(
            ActivityRecord(
                source_type=SourceType.GITHUB,
                event_type=EventType.COMMIT,
                event_date=to_work_date(instant, utc_offset_hours),
                event_timestamp=instant.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
                repo=repo,
                title=message.split("\n", 1)[0] or None,
                url=commit.get("url") or None,
                metadata={"sha": commit["id"]},
            )
        )
    return records


class PushEventRecorder:
    def __init__(
        self,
        sources: ActivitySourceRepository | None = None,
        ledger: ActivityLedger | None = None,
        utc_offset_hours: float = UTC_OFFSET_HOURS,
    ):
        self.sources = sources or ActivitySourceRepository()
        self.ledger = ledger or ActivityLedger()
        self.utc_offset_hours = utc_offset_hours

    def owners_for_login(self, login: str) -> list[Owner]:
        return [
            source.owner
            for source in self.sources.list_active(SourceType.GITHUB)
            if (source.config or {}).get("username") == login
        ]

    def record(self, event: str | None, payload: dict[str, Any]) -> PushOutcome:
        """
        Store the commits of a push event for every owner the sender maps to.

        Other events, pushes without commits, and payloads without a sender
        or repository are skipped.

        Side Effects:
            - Inserts commit activity into the ledger (duplicates skipped)
        """
        commits = payload.get("commits")
        if event != "push" or not isinstance(commits, list):
            return PushOutcome(skipped=True)

        repo = (payload.get("repository") or {}).get("full_name")
        login = (payload.get("sender") or {}).get("login")
        if not repo or not login:
            return PushOutcome(skipped=True)

        owners = self.owners_for_login(login)
        if not owners:
            counter("webhook.unmatched_sender")
            return PushOutcome(skipped=True, reason=NO_MATCHING_USER)

        records = commit_records(repo, commits, self.utc_offset_hours)
        inserted = sum(self.ledger.insert(owner, records) for owner in owners)

        log_event("webhook.push_recorded", repo=repo, owners=len(owners), commits=len(records), inserted=inserted)
        return PushOutcome(inserted=inserted)
