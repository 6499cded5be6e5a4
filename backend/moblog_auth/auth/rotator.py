"""Refresh-token rotation and revocation.

A presented refresh token resolves to exactly one :class:`RefreshOutcome`.
Only ``VALID`` tokens rotate; every other outcome is reported to the caller
as a plain ``UnauthorizedError`` so clients cannot tell which check failed.

Rotation is single-use: the stored hash is swapped with a compare-and-swap
write keyed on the old hash while the account lock is held, so replaying a
rotated token (or racing two rotations of the same token) ends in
``HASH_MISMATCH`` for every caller but one.
"""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import NoReturn

from moblog_auth.auth.entities import Account
from moblog_auth.auth.entities import RefreshRecord
from moblog_auth.auth.entities import TokenPair
from moblog_auth.auth.errors import UnauthorizedError
from moblog_auth.auth.issuer import CredentialIssuer
from moblog_auth.auth.locks import AccountLocks
from moblog_auth.auth.repository import AccountStore
from moblog_auth.auth.repository import RefreshStore
from moblog_auth.core.clock import Clock
from moblog_auth.core.clock import utc_now
from moblog_auth.core.tokens import TokenCodec
from moblog_auth.core.tokens import TokenError
from moblog_auth.core.tokens import TokenExpiredError
from moblog_auth.core.tokens import digest

logger = logging.getLogger(__name__)

REFRESH_REJECTED_MESSAGE = "Invalid refresh token"


class RefreshOutcome(str, Enum):
    SIGNATURE_INVALID = "signature_invalid"
    EXPIRED = "expired"
    ACCOUNT_MISSING = "account_missing"
    RECORD_MISSING = "record_missing"
    RECORD_REVOKED = "record_revoked"
    RECORD_EXPIRED = "record_expired"
    HASH_MISMATCH = "hash_mismatch"
    VALID = "valid"


@dataclass(slots=True)
class _Resolution:
    outcome: RefreshOutcome
    account: Account | None = None
    record: RefreshRecord | None = None


class RefreshRotator:
    def __init__(
        self,
        *,
        codec: TokenCodec,
        accounts: AccountStore,
        refresh_store: RefreshStore,
        issuer: CredentialIssuer,
        locks: AccountLocks,
        clock: Clock = utc_now,
    ) -> None:
        self._codec = codec
        self._accounts = accounts
        self._refresh_store = refresh_store
        self._issuer = issuer
        self._locks = locks
        self._clock = clock

    def inspect(self, raw_token: str) -> RefreshOutcome:
        """Classify a refresh token without changing any state."""
        now = self._clock()
        resolution = self._resolve_account(raw_token, now=now)
        if resolution.account is None:
            return resolution.outcome
        return self._check_record(resolution.account, raw_token, now=now).outcome

    def rotate(self, raw_token: str) -> tuple[Account, TokenPair]:
        """Exchange a valid refresh token for a new pair, invalidating it."""
        now = self._clock()
        resolution = self._resolve_account(raw_token, now=now)
        account = resolution.account
        if account is None:
            self._reject(resolution.outcome, user_id=None)

        with self._locks.hold(account.id):
            resolution = self._check_record(account, raw_token, now=now)
            if resolution.outcome is not RefreshOutcome.VALID:
                self._reject(resolution.outcome, user_id=account.id)

            record = resolution.record
            minted = self._issuer.mint(account, now=now)
            swapped = self._refresh_store.replace(
                record_id=record.id,
                expected_hash=record.token_hash,
                token_hash=minted.refresh_hash,
                expires_at=minted.refresh_expires_at,
            )
            if not swapped:
                self._reject(RefreshOutcome.HASH_MISMATCH, user_id=account.id)

        logger.info("rotated refresh token user_id=%s", account.id)
        return account, minted.pair

    def revoke(self, raw_token: str) -> None:
        """Mark the matching record revoked; silently does nothing otherwise."""
        try:
            now = self._clock()
            resolution = self._resolve_account(raw_token, now=now)
            if resolution.account is None:
                return
            with self._locks.hold(resolution.account.id):
                record = self._refresh_store.get_current(resolution.account.id)
                if record is None or not _hash_matches(record, raw_token):
                    return
                revoked = self._refresh_store.revoke(
                    record_id=record.id,
                    expected_hash=record.token_hash,
                    revoked_at=now,
                )
            if not revoked:
                logger.info("refresh record superseded before revoke user_id=%s", resolution.account.id)
                return
            logger.info("revoked refresh token user_id=%s", resolution.account.id)
        except Exception:
            logger.warning("refresh token revocation failed", exc_info=True)

    def _resolve_account(self, raw_token: str, *, now: datetime) -> _Resolution:
        try:
            payload = self._codec.verify(raw_token, now=now)
        except TokenExpiredError:
            return _Resolution(RefreshOutcome.EXPIRED)
        except TokenError:
            return _Resolution(RefreshOutcome.SIGNATURE_INVALID)

        account = self._accounts.find_by_login(payload["sub"])
        if account is None:
            return _Resolution(RefreshOutcome.ACCOUNT_MISSING)
        return _Resolution(RefreshOutcome.VALID, account=account)

    def _check_record(self, account: Account, raw_token: str, *, now: datetime) -> _Resolution:
        record = self._refresh_store.get_current(account.id)
        if record is None:
            return _Resolution(RefreshOutcome.RECORD_MISSING, account=account)
        if record.is_revoked():
            return _Resolution(RefreshOutcome.RECORD_REVOKED, account=account, record=record)
        if record.is_expired(now):
            return _Resolution(RefreshOutcome.RECORD_EXPIRED, account=account, record=record)
        if not _hash_matches(record, raw_token):
            return _Resolution(RefreshOutcome.HASH_MISMATCH, account=account, record=record)
        return _Resolution(RefreshOutcome.VALID, account=account, record=record)

    @staticmethod
    def _reject(outcome: RefreshOutcome, *, user_id: int | None) -> NoReturn:
        if outcome is RefreshOutcome.HASH_MISMATCH:
            # A superseded token was replayed; possible theft of the old token.
            logger.warning("refresh token reuse detected user_id=%s", user_id)
        else:
            logger.info("refresh rejected outcome=%s user_id=%s", outcome.value, user_id)
        raise UnauthorizedError(REFRESH_REJECTED_MESSAGE)


def _hash_matches(record: RefreshRecord, raw_token: str) -> bool:
    return hmac.compare_digest(record.token_hash, digest(raw_token))
