"""Database access for worklog

Everything lives in one SQLite file (worklog/data/worklog.db unless
WORKLOG_DB_PATH says otherwise): the activity ledger, connected sources,
client mappings and AI usage counters.

Connections come from a small lazily-filled pool so the API's worker threads
(LLM calls, quota checks) and the event loop can share them. Writers that may
race the cron sync are wrapped in retry_on_db_lock.
"""

from __future__ import annotations

import atexit
import os
import random
import sqlite3
import time
from collections.abc import Callable, Generator
from contextlib import contextmanager
from functools import lru_cache, wraps
from pathlib import Path
from queue import Empty, Queue
from threading import Lock
from typing import Any, TypeVar

from worklog.config import (
    DB_CONNECT_TIMEOUT,
    DB_POOL_SIZE,
    DB_POOL_TIMEOUT,
    DB_RETRY_BASE_DELAY,
    DB_RETRY_JITTER,
    DB_RETRY_MAX,
    DB_RETRY_MAX_DELAY,
)
from worklog.observability.logging import get_logger
from worklog.observability.telemetry import counter

F = TypeVar("F", bound=Callable[..., Any])

DB_PATH = Path(__file__).parent.parent / "data" / "worklog.db"

logger = get_logger(__name__)


def _is_lock_error(error: sqlite3.OperationalError) -> bool:
    message = str(error).lower()
    return "locked" in message or "busy" in message


def _backoff(attempt: int, base_delay: float, max_delay: float) -> float:
    delay = min(base_delay * (2**attempt), max_delay)
    return delay + random.uniform(0, delay * DB_RETRY_JITTER)


def retry_on_db_lock(
    max_retries: int = DB_RETRY_MAX,
    base_delay: float = DB_RETRY_BASE_DELAY,
    max_delay: float = DB_RETRY_MAX_DELAY,
) -> Callable[[F], F]:
    """
    Retry a database operation while SQLite reports the file as locked.

    Other OperationalErrors are raised immediately.

    Usage:
        @retry_on_db_lock()
        def insert(self, owner, records):
            with db_transaction() as conn:
                ...
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            attempt = 0
            while True:
                try:
                    return func(*args, **kwargs)
                except sqlite3.OperationalError as e:
                    if not _is_lock_error(e) or attempt >= max_retries:
                        if attempt >= max_retries:
                            counter("database.lock_retries_exhausted")
                            logger.error("%s gave up after %d lock retries: %s", func.__name__, attempt, e)
                        raise

                    pause = _backoff(attempt, base_delay, max_delay)
                    attempt += 1
                    counter("database.lock_retry")
                    logger.warning(
                        "%s hit a locked database (retry %d/%d in %.2fs)",
                        func.__name__,
                        attempt,
                        max_retries,
                        pause,
                    )
                    time.sleep(pause)

        return wrapper  # type: ignore[return-value]

    return decorator


class ConnectionPool:
    """
    Bounded set of SQLite connections for one database file.

    Connections are opened on demand up to `size`; after that callers wait up
    to DB_POOL_TIMEOUT seconds for one to be handed back.
    """

    def __init__(self, db_path: Path, size: int = DB_POOL_SIZE):
        self.db_path = db_path
        self.size = size
        self.closed = False
        self._idle: Queue[sqlite3.Connection] = Queue()
        self._opened = 0
        self._lock = Lock()

    def _open(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            str(self.db_path),
            timeout=DB_CONNECT_TIMEOUT,
            check_same_thread=False,
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    def acquire(self) -> sqlite3.Connection:
        """
        Raises:
            RuntimeError: If the pool is closed or stays exhausted past the timeout
        """
        if self.closed:
            raise RuntimeError("Connection pool has been closed")

        try:
            return self._idle.get_nowait()
        except Empty:
            pass

        with self._lock:
            can_open = self._opened < self.size
            if can_open:
                self._opened += 1
        if can_open:
            try:
                return self._open()
            except sqlite3.Error:
                with self._lock:
                    self._opened -= 1
                raise

        try:
            return self._idle.get(timeout=DB_POOL_TIMEOUT)
        except Empty:
            counter("database.pool_exhausted")
            logger.error("No database connection free after %.1fs (size=%d)", DB_POOL_TIMEOUT, self.size)
            raise RuntimeError(f"Database connection pool exhausted (size={self.size})") from None

    def release(self, conn: sqlite3.Connection) -> None:
        if self.closed:
            conn.close()
            return
        self._idle.put(conn)

    def close(self) -> None:
        self.closed = True
        while True:
            try:
                self._idle.get_nowait().close()
            except Empty:
                break

    def stats(self) -> dict[str, Any]:
        idle = self._idle.qsize()
        in_use = self._opened - idle
        return {
            "pool_size": self.size,
            "opened": self._opened,
            "available": self.size - in_use,
            "in_use": in_use,
            "usage_percent": round(in_use / self.size * 100, 1) if self.size else 0.0,
            "closed": self.closed,
        }


@lru_cache(maxsize=1)
def get_pool() -> ConnectionPool:
    """Process-wide pool for get_db_path(). Call reset_pool() after changing WORKLOG_DB_PATH."""
    pool = ConnectionPool(get_db_path())
    atexit.register(pool.close)
    return pool


def reset_pool() -> None:
    """Close and forget the process-wide pool."""
    if get_pool.cache_info().currsize:
        get_pool().close()
    get_pool.cache_clear()


def get_db_path() -> Path:
    if env_path := os.getenv("WORKLOG_DB_PATH"):
        return Path(env_path)
    return DB_PATH


@contextmanager
def get_db_connection() -> Generator[sqlite3.Connection, None, None]:
    """
    Borrow a pooled connection.

    Raises:
        FileNotFoundError: If the database file does not exist yet
    """
    db_path = get_db_path()
    if not db_path.exists():
        raise FileNotFoundError(f"Database not found: {db_path}\nRun: worklog init-db")

    pool = get_pool()
    conn = pool.acquire()
    try:
        yield conn
    finally:
        pool.release(conn)


@contextmanager
def db_transaction() -> Generator[sqlite3.Connection, None, None]:
    """Borrow a connection; commit when the block succeeds, roll back when it raises."""
    with get_db_connection() as conn:
        try:
            yield conn
        except BaseException:
            conn.rollback()
            raise
        conn.commit()


def get_pool_stats() -> dict[str, Any]:
    return get_pool().stats()


def init_database() -> None:
    """Create the database file and schema at get_db_path() (idempotent)."""
    from worklog.infrastructure.database_schema import init_database as _init_database

    _init_database(get_db_path())
