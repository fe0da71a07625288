"""
Client → repository routing.

A client is mapped to the repositories whose activity counts as work for it.
Suggestions for a client only see activity from its mapped repositories.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable

from worklog.activity.types import ActivityRecord, SourceType
from worklog.observability.logging import get_logger
from worklog.storage import BaseRepository

logger = get_logger(__name__)


class ClientRepoRouter(BaseRepository):
    """Client ↔ source identifier (repository) mappings."""

    def __init__(self):
        super().__init__("client_source_mapping")

    def save_mapping(self, client_id: str, source_type: SourceType, source_identifier: str) -> bool:
        """
        Map a repository to a client.

        Returns:
            True if a new mapping was created, False if it already existed
        """
        created = self.execute(
            """
            INSERT INTO client_source_mapping (id, client_id, source_type, source_identifier)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(client_id, source_type, source_identifier) DO NOTHING
            """,
            (str(uuid.uuid4()), client_id, source_type.value, source_identifier),
        )
        return created > 0

    def delete_mapping(self, client_id: str, source_type: SourceType, source_identifier: str) -> None:
        self.execute(
            """
            DELETE FROM client_source_mapping
            WHERE client_id = ? AND source_type = ? AND source_identifier = ?
            """,
            (client_id, source_type.value, source_identifier),
        )

    def list_mappings(self, client_ids: list[str], source_type: SourceType) -> list[tuple[str, str]]:
        """(client_id, source_identifier) pairs for the given clients."""
        if not client_ids:
            return []
        placeholders = ",".join("?" * len(client_ids))
        rows = self.query_all(
            f"""
            SELECT client_id, source_identifier
            FROM client_source_mapping
            WHERE client_id IN ({placeholders}) AND source_type = ?
            ORDER BY client_id, source_identifier
            """,
            (*client_ids, source_type.value),
        )
        return [(row["client_id"], row["source_identifier"]) for row in rows]

    def repos_for_client(self, client_id: str, source_type: SourceType) -> set[str]:
        return {repo for _, repo in self.list_mappings([client_id], source_type)}

    @staticmethod
    def filter_records(records: Iterable[ActivityRecord], repos: set[str]) -> list[ActivityRecord]:
        """Keep records from mapped repos; an empty mapping keeps nothing."""
        if not repos:
            return []
        return [record for record in records if record.repo and record.repo in repos]
