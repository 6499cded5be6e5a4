"""In-memory account and refresh stores used by unit tests and local runs."""

from __future__ import annotations

import dataclasses
import threading
from datetime import datetime

from moblog_auth.auth.entities import Account
from moblog_auth.auth.entities import RefreshRecord
from moblog_auth.auth.repository import DuplicateAccountError
from moblog_auth.core.roles import Role


class InMemoryAccountStore:
    """Dict-backed account store; returned accounts are copies."""

    def __init__(self) -> None:
        self._accounts: dict[int, Account] = {}
        self._next_id = 1
        self._guard = threading.Lock()

    def create_account(
        self,
        *,
        username: str,
        email: str,
        password_hash: str,
        role: Role,
        created_at: datetime,
    ) -> Account:
        with self._guard:
            for existing in self._accounts.values():
                if existing.username == username:
                    raise DuplicateAccountError("username")
                if existing.email == email:
                    raise DuplicateAccountError("email")
            account = Account(
                id=self._next_id,
                username=username,
                email=email,
                password_hash=password_hash,
                role=Role.parse(role),
                banned=False,
                created_at=created_at,
            )
            self._accounts[account.id] = account
            self._next_id += 1
            return dataclasses.replace(account)

    def add(self, account: Account) -> Account:
        """Seed an account with a caller-chosen id."""
        with self._guard:
            self._accounts[account.id] = dataclasses.replace(account)
            self._next_id = max(self._next_id, account.id + 1)
        return account

    def get_by_id(self, user_id: int) -> Account | None:
        with self._guard:
            account = self._accounts.get(user_id)
            return dataclasses.replace(account) if account is not None else None

    def find_by_login(self, identifier: str) -> Account | None:
        with self._guard:
            for account in sorted(self._accounts.values(), key=lambda item: item.id):
                if account.username == identifier or account.email == identifier.lower():
                    return dataclasses.replace(account)
        return None

    def set_banned(self, user_id: int, banned: bool) -> None:
        with self._guard:
            account = self._accounts.get(user_id)
            if account is not None:
                account.banned = banned


class InMemoryRefreshStore:
    """Refresh store keeping one record per user; replace and revoke are compare-and-swap."""

    def __init__(self) -> None:
        self._records: dict[int, RefreshRecord] = {}
        self._next_id = 1
        self._guard = threading.Lock()

    def get_current(self, user_id: int) -> RefreshRecord | None:
        with self._guard:
            record = self._records.get(user_id)
            return dataclasses.replace(record) if record is not None else None

    def upsert(
        self,
        *,
        user_id: int,
        token_hash: str,
        expires_at: datetime,
        now: datetime,
    ) -> RefreshRecord:
        with self._guard:
            record = self._records.get(user_id)
            if record is None:
                record = RefreshRecord(
                    id=self._next_id,
                    user_id=user_id,
                    token_hash=token_hash,
                    expires_at=expires_at,
                    created_at=now,
                )
                self._next_id += 1
                self._records[user_id] = record
            else:
                record.token_hash = token_hash
                record.expires_at = expires_at
                record.revoked_at = None
            return dataclasses.replace(record)

    def replace(
        self,
        *,
        record_id: int,
        expected_hash: str,
        token_hash: str,
        expires_at: datetime,
    ) -> bool:
        with self._guard:
            record = self._find(record_id)
            if record is None or record.revoked_at is not None or record.token_hash != expected_hash:
                return False
            record.token_hash = token_hash
            record.expires_at = expires_at
            return True

    def revoke(self, *, record_id: int, expected_hash: str, revoked_at: datetime) -> bool:
        with self._guard:
            record = self._find(record_id)
            if record is None or record.token_hash != expected_hash:
                return False
            if record.revoked_at is None:
                record.revoked_at = revoked_at
            return True

    def _find(self, record_id: int) -> RefreshRecord | None:
        for record in self._records.values():
            if record.id == record_id:
                return record
        return None
