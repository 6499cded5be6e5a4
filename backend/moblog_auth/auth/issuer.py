"""Credential issuance: mint an access/refresh pair and persist the refresh hash."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from datetime import timedelta

from moblog_auth.auth.entities import Account
from moblog_auth.auth.entities import TokenPair
from moblog_auth.auth.locks import AccountLocks
from moblog_auth.auth.repository import RefreshStore
from moblog_auth.core.clock import Clock
from moblog_auth.core.clock import utc_now
from moblog_auth.core.tokens import TokenCodec
from moblog_auth.core.tokens import digest

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MintedPair:
    """A token pair plus the refresh metadata that must be persisted for it."""

    pair: TokenPair
    refresh_hash: str
    refresh_expires_at: datetime


class CredentialIssuer:
    def __init__(
        self,
        *,
        codec: TokenCodec,
        refresh_store: RefreshStore,
        locks: AccountLocks,
        access_ttl_seconds: int,
        refresh_ttl_seconds: int,
        clock: Clock = utc_now,
    ) -> None:
        self._codec = codec
        self._refresh_store = refresh_store
        self._locks = locks
        self._access_ttl = access_ttl_seconds
        self._refresh_ttl = refresh_ttl_seconds
        self._clock = clock

    def mint(self, account: Account, *, now: datetime) -> MintedPair:
        """Sign a new pair without touching the store."""
        access_token = self._codec.issue_access(
            subject=account.username,
            user_id=account.id,
            email=account.email,
            role=account.role,
            now=now,
            expires_in_seconds=self._access_ttl,
        )
        refresh_token = self._codec.issue_opaque(
            subject=account.username,
            now=now,
            expires_in_seconds=self._refresh_ttl,
        )
        return MintedPair(
            pair=TokenPair(
                access_token=access_token,
                refresh_token=refresh_token,
                access_expires_in=self._access_ttl,
                refresh_expires_in=self._refresh_ttl,
            ),
            refresh_hash=digest(refresh_token),
            refresh_expires_at=now + timedelta(seconds=self._refresh_ttl),
        )

    def issue(self, account: Account) -> TokenPair:
        """Mint a pair and supersede the account's previous refresh record.

        The store upsert is the only write; if it fails the exception
        propagates and no tokens leave this method.
        """
        now = self._clock()
        minted = self.mint(account, now=now)
        with self._locks.hold(account.id):
            self._refresh_store.upsert(
                user_id=account.id,
                token_hash=minted.refresh_hash,
                expires_at=minted.refresh_expires_at,
                now=now,
            )
        logger.info("issued credentials user_id=%s", account.id)
        return minted.pair
