"""Centralized configuration for the worklog backend.

Re-exports everything from worklog.infrastructure.settings, then adds typed
constants for database, workday, summarization, quota, and sync settings.
Environment variable overrides use safe defaults so the app starts without
extra env configuration.
"""

from __future__ import annotations

import os

from worklog.infrastructure.settings import *  # noqa: F401, F403

# --- App ---
APP_VERSION: str = "0.1.0"

# --- Database ---
DB_POOL_SIZE: int = int(os.getenv("WORKLOG_DB_POOL_SIZE", "5"))
DB_POOL_TIMEOUT: float = float(os.getenv("WORKLOG_DB_POOL_TIMEOUT", "5.0"))
DB_CONNECT_TIMEOUT: float = float(os.getenv("WORKLOG_DB_CONNECT_TIMEOUT", "30.0"))
DB_RETRY_MAX: int = int(os.getenv("WORKLOG_DB_RETRY_MAX", "5"))
DB_RETRY_BASE_DELAY: float = float(os.getenv("WORKLOG_DB_RETRY_BASE_DELAY", "0.1"))
DB_RETRY_MAX_DELAY: float = float(os.getenv("WORKLOG_DB_RETRY_MAX_DELAY", "2.0"))
DB_RETRY_JITTER: float = float(os.getenv("WORKLOG_DB_RETRY_JITTER", "0.1"))

# --- Ledger ---
# 90 rows x 11 columns stays under SQLite's 999 bound-parameter limit
LEDGER_INSERT_CHUNK_SIZE: int = 90

# --- Workday ---
# Fixed offset used for the 30-hour workday (JST by default)
UTC_OFFSET_HOURS: float = float(os.getenv("WORKLOG_UTC_OFFSET_HOURS", "9"))
WORKDAY_START_HOUR: int = 6
FALLBACK_START: str = os.getenv("WORKLOG_FALLBACK_START", "09:00")
FALLBACK_END: str = os.getenv("WORKLOG_FALLBACK_END", "18:00")
BREAK_THRESHOLD_MINUTES: int = 360
BREAK_MINUTES: int = 60

# --- Summarizer ---
LLM_TIMEOUT_SECONDS: float = float(os.getenv("WORKLOG_LLM_TIMEOUT", "30"))
SUMMARY_LANGUAGE: str = os.getenv("WORKLOG_SUMMARY_LANGUAGE", "Japanese")
SUMMARY_MAX_CHARS: int = 50
SUMMARY_MAX_PR_TITLES: int = 3

# --- AI Quota ---
AI_MONTHLY_LIMIT: int = int(os.getenv("WORKLOG_AI_MONTHLY_LIMIT", "30"))

# --- Sync ---
SYNC_DEFAULT_DAYS: int = 7
CRON_SECRET_ENV: str = "WORKLOG_CRON_SECRET"
WEBHOOK_SECRET_ENV: str = "GITHUB_WEBHOOK_SECRET"

# --- Credentials ---
ENCRYPTION_KEY_ENV: str = "WORKLOG_ENCRYPTION_KEY"
