"""Shared fixtures for auth and admission tests."""

from __future__ import annotations

import importlib
import os
from datetime import datetime
from datetime import timedelta
from datetime import timezone
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient

from moblog_auth.auth.context import AuthContext
from moblog_auth.auth.context import build_auth_context
from moblog_auth.auth.entities import Account
from moblog_auth.auth.memory import InMemoryAccountStore
from moblog_auth.auth.memory import InMemoryRefreshStore
from moblog_auth.core.config import Settings
from moblog_auth.core.roles import Role

TEST_SECRET = "unit-test-secret-key-32-bytes-minimum"

# moblog_auth.runtime loads settings at import time.
os.environ.setdefault("MOBLOG_JWT_SECRET", TEST_SECRET)


class FrozenClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class FakeMonotonic:
    def __init__(self) -> None:
        self.value = 1000.0

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2026, 2, 14, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def monotonic() -> FakeMonotonic:
    return FakeMonotonic()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        moblog_jwt_secret=TEST_SECRET,
        moblog_sqlite_path=str(tmp_path / "auth.sqlite3"),
        moblog_access_token_expire_seconds=900,
        moblog_refresh_token_expire_seconds=3600,
    )


@pytest.fixture
def memory_ctx(settings: Settings, clock: FrozenClock) -> AuthContext:
    """Auth components over in-memory stores and a frozen clock."""
    return build_auth_context(
        settings,
        accounts=InMemoryAccountStore(),
        refresh_store=InMemoryRefreshStore(),
        clock=clock,
    )


@pytest.fixture
def alice(memory_ctx: AuthContext) -> Account:
    account = Account(
        id=1,
        username="alice",
        email="alice@example.com",
        password_hash="not-used",
        role=Role.USER,
        banned=False,
    )
    memory_ctx.accounts.add(account)
    return account


@pytest.fixture
def app_main(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Any:
    """Fresh runtime + app bound to a temporary SQLite file."""
    monkeypatch.setenv("MOBLOG_SQLITE_PATH", str(tmp_path / "api.sqlite3"))
    monkeypatch.setenv("MOBLOG_JWT_SECRET", TEST_SECRET)

    import moblog_auth.runtime as runtime

    runtime.startup()

    import moblog_auth.main as main_module

    return importlib.reload(main_module)


@pytest.fixture
def client(app_main: Any) -> TestClient:
    return TestClient(app_main.app)


@pytest.fixture
def register_payload() -> dict[str, str]:
    return {
        "username": "alice",
        "email": "alice@example.com",
        "password": "s3cret-pass",
        "confirmPassword": "s3cret-pass",
    }
