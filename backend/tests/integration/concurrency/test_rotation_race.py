"""Concurrent refresh rotation of one token."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from moblog_auth.auth.context import AuthContext
from moblog_auth.auth.context import build_auth_context
from moblog_auth.auth.entities import Account
from moblog_auth.auth.errors import UnauthorizedError
from moblog_auth.auth.rotator import RefreshOutcome
from moblog_auth.auth.schema import init_auth_schema
from moblog_auth.core.config import Settings
from moblog_auth.core.roles import Role
from moblog_auth.core.tokens import digest

WORKERS = 8


def _race(contexts: list[AuthContext], raw_token: str) -> list[str]:
    start_barrier = threading.Barrier(WORKERS)

    def _rotate_worker(index: int) -> str:
        ctx = contexts[index % len(contexts)]
        start_barrier.wait()
        try:
            _, pair = ctx.rotator.rotate(raw_token)
            return pair.refresh_token
        except UnauthorizedError:
            return "401"

    with ThreadPoolExecutor(max_workers=WORKERS) as executor:
        return list(executor.map(_rotate_worker, range(WORKERS)))


def _create_alice(ctx: AuthContext, clock) -> Account:
    return ctx.accounts.create_account(
        username="alice",
        email="alice@example.com",
        password_hash="not-used",
        role=Role.USER,
        created_at=clock.now,
    )


def test_concurrent_rotate_in_memory_has_one_winner(memory_ctx: AuthContext, alice: Account) -> None:
    """Contract: N simultaneous rotations of one token yield one success and N-1 rejections."""
    pair = memory_ctx.issuer.issue(alice)

    results = _race([memory_ctx], pair.refresh_token)

    winners = [result for result in results if result != "401"]
    assert len(winners) == 1
    assert results.count("401") == WORKERS - 1
    assert memory_ctx.refresh_store.get_current(alice.id).token_hash == digest(winners[0])


def test_concurrent_rotate_on_sqlite_has_one_winner(settings: Settings, clock) -> None:
    init_auth_schema(settings)
    ctx = build_auth_context(settings, clock=clock)
    alice = _create_alice(ctx, clock)
    pair = ctx.issuer.issue(alice)

    results = _race([ctx], pair.refresh_token)

    winners = [result for result in results if result != "401"]
    assert len(winners) == 1
    assert ctx.refresh_store.get_current(alice.id).token_hash == digest(winners[0])


def test_concurrent_rotate_across_processes_sharing_a_database(settings: Settings, clock) -> None:
    """Contract: the stored compare-and-swap holds even without a shared lock registry."""
    init_auth_schema(settings)
    first = build_auth_context(settings, clock=clock)
    second = build_auth_context(settings, clock=clock)
    alice = _create_alice(first, clock)
    pair = first.issuer.issue(alice)

    results = _race([first, second], pair.refresh_token)

    winners = [result for result in results if result != "401"]
    assert len(winners) == 1
    assert second.rotator.inspect(winners[0]).value == "valid"


def test_stale_logout_cannot_revoke_login_from_another_process(
    settings: Settings,
    clock,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Contract: a logout racing a newer login on another worker leaves the new session live."""
    init_auth_schema(settings)
    worker_a = build_auth_context(settings, clock=clock)
    worker_b = build_auth_context(settings, clock=clock)
    alice = _create_alice(worker_a, clock)
    old_pair = worker_a.issuer.issue(alice)
    new_pairs = []

    read_current = worker_a.refresh_store.get_current

    def _read_then_login_elsewhere(user_id: int):
        record = read_current(user_id)
        new_pairs.append(worker_b.issuer.issue(alice))
        return record

    monkeypatch.setattr(worker_a.refresh_store, "get_current", _read_then_login_elsewhere)

    worker_a.rotator.revoke(old_pair.refresh_token)

    assert len(new_pairs) == 1
    assert worker_b.rotator.inspect(new_pairs[0].refresh_token) is RefreshOutcome.VALID
    assert worker_b.rotator.inspect(old_pair.refresh_token) is RefreshOutcome.HASH_MISMATCH
