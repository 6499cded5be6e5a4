"""Request authentication with the live account re-check."""

from __future__ import annotations

import pytest

from moblog_auth.auth.context import AuthContext
from moblog_auth.auth.entities import Account
from moblog_auth.auth.errors import ForbiddenError
from moblog_auth.auth.errors import UnauthorizedError
from moblog_auth.core.roles import Role


def test_banned_flag_flip_after_issue_is_forbidden(memory_ctx: AuthContext, alice: Account) -> None:
    """Contract: a signed, unexpired token is refused once the account is banned."""
    pair = memory_ctx.issuer.issue(alice)
    assert memory_ctx.authenticator.authenticate(pair.access_token).user_id == alice.id

    memory_ctx.accounts.set_banned(alice.id, True)

    with pytest.raises(ForbiddenError) as exc_info:
        memory_ctx.authenticator.authenticate(pair.access_token)
    assert exc_info.value.status_code == 403
    assert exc_info.value.message == "Account is banned."


def test_unban_restores_access(memory_ctx: AuthContext, alice: Account) -> None:
    pair = memory_ctx.issuer.issue(alice)
    memory_ctx.accounts.set_banned(alice.id, True)
    memory_ctx.accounts.set_banned(alice.id, False)

    assert memory_ctx.authenticator.authenticate(pair.access_token).username == "alice"


def test_roles_come_from_the_live_account(memory_ctx: AuthContext, alice: Account, clock) -> None:
    token = memory_ctx.codec.issue_access(
        subject="alice",
        user_id=alice.id,
        email=alice.email,
        role=Role.ADMIN,
        now=clock.now,
        expires_in_seconds=900,
    )

    identity = memory_ctx.authenticator.authenticate(token)

    assert identity.roles == (Role.USER,)
    assert not identity.has_role(Role.ADMIN)


def test_subject_id_mismatch_is_unauthorized(memory_ctx: AuthContext, alice: Account, clock) -> None:
    token = memory_ctx.codec.issue_access(
        subject="alice",
        user_id=99,
        email=alice.email,
        role=Role.USER,
        now=clock.now,
        expires_in_seconds=900,
    )

    with pytest.raises(UnauthorizedError) as exc_info:
        memory_ctx.authenticator.authenticate(token)
    assert exc_info.value.message == "Invalid token subject"


def test_unknown_account_is_unauthorized(memory_ctx: AuthContext, clock) -> None:
    token = memory_ctx.codec.issue_access(
        subject="ghost",
        user_id=7,
        email="ghost@example.com",
        role=Role.USER,
        now=clock.now,
        expires_in_seconds=900,
    )

    with pytest.raises(UnauthorizedError) as exc_info:
        memory_ctx.authenticator.authenticate(token)
    assert exc_info.value.message == "Invalid token"


def test_expired_access_token_is_unauthorized(memory_ctx: AuthContext, alice: Account, clock) -> None:
    pair = memory_ctx.issuer.issue(alice)
    clock.advance(900)

    with pytest.raises(UnauthorizedError):
        memory_ctx.authenticator.authenticate(pair.access_token)


@pytest.mark.parametrize("raw", ["", "garbage", "a.b.c"])
def test_malformed_access_token_is_unauthorized(memory_ctx: AuthContext, raw: str) -> None:
    with pytest.raises(UnauthorizedError):
        memory_ctx.authenticator.authenticate(raw)


def test_refresh_token_is_not_an_access_token(memory_ctx: AuthContext, alice: Account) -> None:
    pair = memory_ctx.issuer.issue(alice)

    with pytest.raises(UnauthorizedError):
        memory_ctx.authenticator.authenticate(pair.refresh_token)
