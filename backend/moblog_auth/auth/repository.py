"""Account and refresh-token persistence: store interfaces and SQLite adapters."""

from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Protocol

from moblog_auth.auth.entities import Account
from moblog_auth.auth.entities import RefreshRecord
from moblog_auth.core.clock import from_utc_iso
from moblog_auth.core.clock import to_utc_iso
from moblog_auth.core.db import create_sqlite_connection
from moblog_auth.core.roles import Role


class DuplicateAccountError(ValueError):
    """Raised when a username or email is already registered."""

    def __init__(self, field: str) -> None:
        super().__init__(f"{field} already exists")
        self.field = field


class AccountStore(Protocol):
    def create_account(
        self,
        *,
        username: str,
        email: str,
        password_hash: str,
        role: Role,
        created_at: datetime,
    ) -> Account: ...

    def get_by_id(self, user_id: int) -> Account | None: ...

    def find_by_login(self, identifier: str) -> Account | None: ...

    def set_banned(self, user_id: int, banned: bool) -> None: ...


class RefreshStore(Protocol):
    def get_current(self, user_id: int) -> RefreshRecord | None: ...

    def upsert(
        self,
        *,
        user_id: int,
        token_hash: str,
        expires_at: datetime,
        now: datetime,
    ) -> RefreshRecord: ...

    def replace(
        self,
        *,
        record_id: int,
        expected_hash: str,
        token_hash: str,
        expires_at: datetime,
    ) -> bool: ...

    def revoke(self, *, record_id: int, expected_hash: str, revoked_at: datetime) -> bool: ...


_ACCOUNT_COLUMNS = "id, username, email, password_hash, role, banned, created_at"
_RECORD_COLUMNS = "id, user_id, token_hash, expires_at, created_at, revoked_at"


def _account_from_row(row: tuple) -> Account:
    user_id, username, email, password_hash, role, banned, created_at = row
    return Account(
        id=int(user_id),
        username=str(username),
        email=str(email),
        password_hash=str(password_hash),
        role=Role.parse(role),
        banned=bool(banned),
        created_at=from_utc_iso(str(created_at)),
    )


def _record_from_row(row: tuple) -> RefreshRecord:
    record_id, user_id, token_hash, expires_at, created_at, revoked_at = row
    return RefreshRecord(
        id=int(record_id),
        user_id=int(user_id),
        token_hash=str(token_hash),
        expires_at=from_utc_iso(str(expires_at)),
        created_at=from_utc_iso(str(created_at)),
        revoked_at=from_utc_iso(str(revoked_at)) if revoked_at is not None else None,
    )


class SqliteAccountStore:
    """Account store backed by the ``users`` table."""

    def __init__(self, path: str) -> None:
        self._path = path

    def create_account(
        self,
        *,
        username: str,
        email: str,
        password_hash: str,
        role: Role,
        created_at: datetime,
    ) -> Account:
        """Insert a user and return it with its assigned id."""
        conn = create_sqlite_connection(self._path)
        try:
            cursor = conn.execute(
                """
                INSERT INTO users (username, email, password_hash, role, banned, created_at)
                VALUES (?, ?, ?, ?, 0, ?)
                """,
                (username, email, password_hash, Role.parse(role).value, to_utc_iso(created_at)),
            )
            user_id = int(cursor.lastrowid)
        except sqlite3.IntegrityError as exc:
            field = "email" if "users.email" in str(exc) else "username"
            raise DuplicateAccountError(field) from exc
        finally:
            conn.close()
        return Account(
            id=user_id,
            username=username,
            email=email,
            password_hash=password_hash,
            role=Role.parse(role),
            banned=False,
            created_at=from_utc_iso(to_utc_iso(created_at)),
        )

    def get_by_id(self, user_id: int) -> Account | None:
        return self._fetch_one(f"SELECT {_ACCOUNT_COLUMNS} FROM users WHERE id = ?", (user_id,))

    def find_by_login(self, identifier: str) -> Account | None:
        """Resolve a username or an email address to one account."""
        return self._fetch_one(
            f"SELECT {_ACCOUNT_COLUMNS} FROM users WHERE username = ? OR email = ? ORDER BY id LIMIT 1",
            (identifier, identifier.lower()),
        )

    def set_banned(self, user_id: int, banned: bool) -> None:
        conn = create_sqlite_connection(self._path)
        try:
            conn.execute("UPDATE users SET banned = ? WHERE id = ?", (1 if banned else 0, user_id))
        finally:
            conn.close()

    def _fetch_one(self, sql: str, params: tuple) -> Account | None:
        conn = create_sqlite_connection(self._path)
        try:
            row = conn.execute(sql, params).fetchone()
        finally:
            conn.close()
        if row is None:
            return None
        return _account_from_row(row)


class SqliteRefreshStore:
    """Refresh store backed by the ``refresh_tokens`` table, one live row per user."""

    def __init__(self, path: str) -> None:
        self._path = path

    def get_current(self, user_id: int) -> RefreshRecord | None:
        """Return the most recently created record of a user."""
        conn = create_sqlite_connection(self._path)
        try:
            row = conn.execute(
                f"""
                SELECT {_RECORD_COLUMNS}
                FROM refresh_tokens
                WHERE user_id = ?
                ORDER BY created_at DESC, id DESC
                LIMIT 1
                """,
                (user_id,),
            ).fetchone()
        finally:
            conn.close()
        if row is None:
            return None
        return _record_from_row(row)

    def upsert(
        self,
        *,
        user_id: int,
        token_hash: str,
        expires_at: datetime,
        now: datetime,
    ) -> RefreshRecord:
        """Overwrite the user's current record in place, or insert the first one."""
        conn = create_sqlite_connection(self._path)
        try:
            conn.execute("BEGIN IMMEDIATE")
            row = conn.execute(
                """
                SELECT id
                FROM refresh_tokens
                WHERE user_id = ?
                ORDER BY created_at DESC, id DESC
                LIMIT 1
                """,
                (user_id,),
            ).fetchone()
            if row is None:
                cursor = conn.execute(
                    """
                    INSERT INTO refresh_tokens (user_id, token_hash, expires_at, created_at, revoked_at)
                    VALUES (?, ?, ?, ?, NULL)
                    """,
                    (user_id, token_hash, to_utc_iso(expires_at), to_utc_iso(now)),
                )
                record_id = int(cursor.lastrowid)
            else:
                record_id = int(row[0])
                conn.execute(
                    """
                    UPDATE refresh_tokens
                    SET token_hash = ?, expires_at = ?, revoked_at = NULL
                    WHERE id = ?
                    """,
                    (token_hash, to_utc_iso(expires_at), record_id),
                )
            record_row = conn.execute(
                f"SELECT {_RECORD_COLUMNS} FROM refresh_tokens WHERE id = ?",
                (record_id,),
            ).fetchone()
            conn.execute("COMMIT")
        except Exception:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()
        return _record_from_row(record_row)

    def replace(
        self,
        *,
        record_id: int,
        expected_hash: str,
        token_hash: str,
        expires_at: datetime,
    ) -> bool:
        """Swap the stored hash only if it still equals ``expected_hash``."""
        conn = create_sqlite_connection(self._path)
        try:
            cursor = conn.execute(
                """
                UPDATE refresh_tokens
                SET token_hash = ?, expires_at = ?, revoked_at = NULL
                WHERE id = ? AND token_hash = ? AND revoked_at IS NULL
                """,
                (token_hash, to_utc_iso(expires_at), record_id, expected_hash),
            )
            return cursor.rowcount == 1
        finally:
            conn.close()

    def revoke(self, *, record_id: int, expected_hash: str, revoked_at: datetime) -> bool:
        """Mark a record dead only while it still holds ``expected_hash``.

        Idempotent: the first revocation time wins. Returns False when the
        record was superseded (or removed) since the caller read it.
        """
        conn = create_sqlite_connection(self._path)
        try:
            cursor = conn.execute(
                """
                UPDATE refresh_tokens
                SET revoked_at = COALESCE(revoked_at, ?)
                WHERE id = ? AND token_hash = ?
                """,
                (to_utc_iso(revoked_at), record_id, expected_hash),
            )
            return cursor.rowcount == 1
        finally:
            conn.close()
