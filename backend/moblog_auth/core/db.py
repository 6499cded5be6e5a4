"""SQLite connection helpers for account and refresh-token persistence."""

from __future__ import annotations

import sqlite3

BUSY_TIMEOUT_SECONDS = 5.0


def create_sqlite_connection(path: str) -> sqlite3.Connection:
    """Create a SQLite connection with foreign keys on and a writer busy timeout.

    Autocommit mode is used so callers open transactions explicitly with
    ``BEGIN IMMEDIATE`` when they need a read-check-write to be atomic.
    """
    conn = sqlite3.connect(path, timeout=BUSY_TIMEOUT_SECONDS, isolation_level=None)
    conn.execute("PRAGMA foreign_keys=ON")
    return conn
