"""
Activity Sync Service - copy source activity into the ledger.

Orchestrates between:
- ActivitySourceRepository (encrypted credentials)
- ActivitySourceGateway (GitHub)
- ActivityLedger (deduplicated persistence)

One owner's failure never stops a batch: it is reported in that owner's
SyncResult and the next owner is processed.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass

from worklog.activity.github import ActivitySourceGateway, GitHubActivityGateway
from worklog.activity.types import Owner, SourceType
from worklog.errors import WorklogError
from worklog.observability.logging import get_logger
from worklog.observability.telemetry import counter, log_event
from worklog.storage.activity_ledger import ActivityLedger
from worklog.storage.credential_vault import ActivitySourceRepository

logger = get_logger(__name__)


@dataclass(frozen=True)
class SyncResult:
    organization_id: str
    user_id: str
    inserted: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ActivitySyncService:
    def __init__(
        self,
        gateway: ActivitySourceGateway | None = None,
        sources: ActivitySourceRepository | None = None,
        ledger: ActivityLedger | None = None,
    ):
        self.gateway = gateway or GitHubActivityGateway()
        self.sources = sources or ActivitySourceRepository()
        self.ledger = ledger or ActivityLedger()

    async def sync_owner(self, owner: Owner, start_date: str, end_date: str) -> SyncResult:
        """
        Fetch one owner's GitHub activity for [start_date, end_date] into the ledger.

        Returns:
            SyncResult; `error` is set (and inserted is 0) when the source is
            missing, the credential can't be decrypted, the fetch fails or the
            ledger write fails
        """
        try:
            source = self.sources.get(owner, SourceType.GITHUB)
            if source is None:
                return SyncResult(owner.organization_id, owner.user_id, error="No GitHub source configured")

            credential = self.sources.vault.decrypt(source.credentials)
            username = await self.gateway.fetch_username(credential)
            records = await self.gateway.fetch_activities(credential, username, start_date, end_date)
            inserted = self.ledger.insert(owner, records)
        except (WorklogError, sqlite3.Error, OSError, ValueError) as e:
            counter("sync.owner_failed")
            logger.warning("Sync failed for %s: %s", owner, e)
            return SyncResult(owner.organization_id, owner.user_id, error=str(e))

        counter("sync.owner_succeeded")
        return SyncResult(owner.organization_id, owner.user_id, inserted=inserted)

    async def sync_all(self, start_date: str, end_date: str) -> list[SyncResult]:
        """Sync every active GitHub source, one owner at a time."""
        results = []
        for source in self.sources.list_active(SourceType.GITHUB):
            results.append(await self.sync_owner(source.owner, start_date, end_date))

        log_event(
            "sync.completed",
            owners=len(results),
            inserted=sum(r.inserted for r in results),
            failed=sum(1 for r in results if not r.ok),
        )
        return results
