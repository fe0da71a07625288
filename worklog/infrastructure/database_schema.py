"""
Database schema initialization for worklog.

Contains the SQL schema and initialization logic, kept apart from database.py.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

from worklog.observability.logging import get_logger

logger = get_logger(__name__)

EXPECTED_TABLES = ("activity", "activity_source", "client_source_mapping", "ai_usage")


def init_database(db_path: Path) -> None:
    """
    Initialize database with schema (idempotent)

    Safe to run multiple times - uses CREATE TABLE IF NOT EXISTS.

    Side Effects:
    - Creates the data directory if needed
    - Creates tables and indexes if they don't exist
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path)
    try:
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS activity (
                id TEXT PRIMARY KEY,
                organization_id TEXT NOT NULL,
                user_id TEXT NOT NULL,
                source_type TEXT NOT NULL,
                event_type TEXT NOT NULL,
                event_date TEXT NOT NULL,
                event_timestamp TEXT NOT NULL,
                repo TEXT NOT NULL DEFAULT '',
                title TEXT,
                url TEXT,
                metadata TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );

            CREATE UNIQUE INDEX IF NOT EXISTS idx_activity_natural_key
                ON activity(organization_id, user_id, source_type, event_type, event_timestamp, repo);

            CREATE INDEX IF NOT EXISTS idx_activity_owner_date
                ON activity(organization_id, user_id, event_date);

            CREATE TABLE IF NOT EXISTS activity_source (
                id TEXT PRIMARY KEY,
                organization_id TEXT NOT NULL,
                user_id TEXT NOT NULL,
                source_type TEXT NOT NULL,
                credentials TEXT NOT NULL,
                config TEXT,
                is_active INTEGER NOT NULL DEFAULT 1,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                UNIQUE(organization_id, user_id, source_type)
            );

            CREATE TABLE IF NOT EXISTS client_source_mapping (
                id TEXT PRIMARY KEY,
                client_id TEXT NOT NULL,
                source_type TEXT NOT NULL,
                source_identifier TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                UNIQUE(client_id, source_type, source_identifier)
            );

            CREATE TABLE IF NOT EXISTS ai_usage (
                id TEXT PRIMARY KEY,
                identity TEXT NOT NULL,
                period TEXT NOT NULL,
                request_count INTEGER NOT NULL DEFAULT 0,
                total_input_tokens INTEGER NOT NULL DEFAULT 0,
                total_output_tokens INTEGER NOT NULL DEFAULT 0,
                source_username TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                UNIQUE(identity, period)
            );
        """)
        conn.commit()
    finally:
        conn.close()

    logger.info("Database schema ready at %s", db_path)


def validate_schema(conn: sqlite3.Connection) -> bool:
    """
    Validate database has expected tables

    Raises:
        ValueError: If tables are missing
    """
    rows = conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
    present = {row[0] for row in rows}
    missing = [table for table in EXPECTED_TABLES if table not in present]
    if missing:
        raise ValueError(f"Missing tables: {', '.join(missing)}")
    return True
