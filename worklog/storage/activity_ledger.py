"""
Activity Ledger - deduplicated store of fetched activity.

Rows are unique on (organization, user, source, event type, timestamp, repo).
Repeated syncs over the same window are expected; duplicates are skipped
without failing the batch.
"""

from __future__ import annotations

import uuid

from worklog.activity.types import ActivityRecord, Owner
from worklog.activity.workday import month_range
from worklog.config import LEDGER_INSERT_CHUNK_SIZE
from worklog.infrastructure.database import db_transaction, retry_on_db_lock
from worklog.observability.logging import get_logger
from worklog.observability.telemetry import counter
from worklog.storage import BaseRepository

logger = get_logger(__name__)

_ROW_PLACEHOLDERS = "(?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)"


def _row(owner: Owner, record: ActivityRecord) -> tuple:
    return (
        str(uuid.uuid4()),
        owner.organization_id,
        owner.user_id,
        record.source_type.value,
        record.event_type.value,
        record.event_date,
        record.event_timestamp,
        record.repo or "",
        record.title,
        record.url,
        record.metadata_json(),
    )


class ActivityLedger(BaseRepository):
    """Append-only, idempotent store of ActivityRecords per owner."""

    def __init__(self, chunk_size: int = LEDGER_INSERT_CHUNK_SIZE):
        super().__init__("activity")
        self.chunk_size = chunk_size

    @retry_on_db_lock()
    def insert(self, owner: Owner, records: list[ActivityRecord]) -> int:
        """
        Insert records, skipping any that already exist.

        Args:
            owner: Organization/user the sync ran for
            records: Records to persist

        Returns:
            Number of records actually inserted

        Side Effects:
            - Inserts rows into the activity table, one multi-row statement per chunk
        """
        if not records:
            return 0

        inserted = 0
        with db_transaction() as conn:
            for i in range(0, len(records), self.chunk_size):
                chunk = records[i : i + self.chunk_size]
                placeholders = ", ".join([_ROW_PLACEHOLDERS] * len(chunk))
                params = [value for record in chunk for value in _row(owner, record)]
                cursor = conn.execute(
                    f"""
                    INSERT INTO activity (
                        id, organization_id, user_id, source_type, event_type,
                        event_date, event_timestamp, repo, title, url, metadata
                    ) VALUES {placeholders}
                    ON CONFLICT(organization_id, user_id, source_type, event_type, event_timestamp, repo)
                    DO NOTHING
                    """,
                    params,
                )
                inserted += max(cursor.rowcount, 0)

        skipped = len(records) - inserted
        counter("ledger.inserted", inserted)
        if skipped:
            counter("ledger.duplicates_skipped", skipped)
        logger.info("Ledger insert for %s: %d new, %d duplicates skipped", owner, inserted, skipped)
        return inserted

    def query(self, owner: Owner, start_date: str, end_date: str) -> list[ActivityRecord]:
        """
        Stored activity for an owner with event_date in [start_date, end_date].

        Returns:
            Records ordered by (event_date, event_timestamp) ascending
        """
        rows = self.query_all(
            """
            SELECT source_type, event_type, event_date, event_timestamp,
                   repo, title, url, metadata
            FROM activity
            WHERE organization_id = ? AND user_id = ?
              AND event_date >= ? AND event_date <= ?
            ORDER BY event_date ASC, event_timestamp ASC
            """,
            (owner.organization_id, owner.user_id, start_date, end_date),
        )
        return [
            ActivityRecord.create(
                source_type=row["source_type"],
                event_type=row["event_type"],
                event_date=row["event_date"],
                event_timestamp=row["event_timestamp"],
                repo=row["repo"],
                title=row["title"],
                url=row["url"],
                metadata=row["metadata"],
            )
            for row in rows
        ]

    def query_month(self, owner: Owner, year: int, month: int) -> list[ActivityRecord]:
        start_date, end_date = month_range(year, month)
        return self.query(owner, start_date, end_date)
