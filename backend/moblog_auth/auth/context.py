"""Wiring of the token lifecycle components around one pair of stores."""

from __future__ import annotations

from dataclasses import dataclass

from moblog_auth.auth.authenticator import RequestAuthenticator
from moblog_auth.auth.issuer import CredentialIssuer
from moblog_auth.auth.locks import AccountLocks
from moblog_auth.auth.repository import AccountStore
from moblog_auth.auth.repository import RefreshStore
from moblog_auth.auth.repository import SqliteAccountStore
from moblog_auth.auth.repository import SqliteRefreshStore
from moblog_auth.auth.rotator import RefreshRotator
from moblog_auth.core.clock import Clock
from moblog_auth.core.clock import utc_now
from moblog_auth.core.config import Settings
from moblog_auth.core.tokens import TokenCodec


@dataclass(slots=True)
class AuthContext:
    settings: Settings
    accounts: AccountStore
    refresh_store: RefreshStore
    codec: TokenCodec
    issuer: CredentialIssuer
    rotator: RefreshRotator
    authenticator: RequestAuthenticator


def build_auth_context(
    settings: Settings,
    *,
    accounts: AccountStore | None = None,
    refresh_store: RefreshStore | None = None,
    clock: Clock = utc_now,
) -> AuthContext:
    """Build the auth components; stores default to the configured SQLite file."""
    if accounts is None:
        accounts = SqliteAccountStore(settings.moblog_sqlite_path)
    if refresh_store is None:
        refresh_store = SqliteRefreshStore(settings.moblog_sqlite_path)

    codec = TokenCodec(secret=settings.moblog_jwt_secret, issuer=settings.moblog_jwt_issuer)
    locks = AccountLocks()
    issuer = CredentialIssuer(
        codec=codec,
        refresh_store=refresh_store,
        locks=locks,
        access_ttl_seconds=settings.moblog_access_token_expire_seconds,
        refresh_ttl_seconds=settings.moblog_refresh_token_expire_seconds,
        clock=clock,
    )
    return AuthContext(
        settings=settings,
        accounts=accounts,
        refresh_store=refresh_store,
        codec=codec,
        issuer=issuer,
        rotator=RefreshRotator(
            codec=codec,
            accounts=accounts,
            refresh_store=refresh_store,
            issuer=issuer,
            locks=locks,
            clock=clock,
        ),
        authenticator=RequestAuthenticator(codec=codec, accounts=accounts, clock=clock),
    )
