"""Schema bootstrap for account and refresh-token tables."""

from __future__ import annotations

from moblog_auth.core.config import Settings
from moblog_auth.core.db import create_sqlite_connection


CREATE_AUTH_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY,
    username TEXT NOT NULL UNIQUE,
    email TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    role TEXT NOT NULL DEFAULT 'USER',
    banned INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS refresh_tokens (
    id INTEGER PRIMARY KEY,
    user_id INTEGER NOT NULL,
    token_hash TEXT NOT NULL,
    expires_at TEXT NOT NULL,
    created_at TEXT NOT NULL,
    revoked_at TEXT NULL,
    FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_refresh_tokens_user_id ON refresh_tokens(user_id, created_at);
"""


def init_auth_schema(settings: Settings) -> None:
    """Ensure auth tables/indexes exist."""
    conn = create_sqlite_connection(settings.moblog_sqlite_path)
    try:
        conn.executescript(CREATE_AUTH_SCHEMA_SQL)
    finally:
        conn.close()
