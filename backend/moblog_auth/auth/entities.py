"""Account, refresh record and identity value types."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from moblog_auth.core.roles import Role


@dataclass(slots=True)
class Account:
    """User account as seen by the auth core; owned by the account store."""

    id: int
    username: str
    email: str
    password_hash: str
    role: Role = Role.USER
    banned: bool = False
    created_at: datetime | None = None


@dataclass(slots=True)
class RefreshRecord:
    """The single live refresh-token record of one account."""

    id: int
    user_id: int
    token_hash: str
    expires_at: datetime
    created_at: datetime
    revoked_at: datetime | None = None

    def is_revoked(self) -> bool:
        return self.revoked_at is not None

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


@dataclass(frozen=True, slots=True)
class TokenPair:
    """Freshly minted credentials handed to the client exactly once."""

    access_token: str
    refresh_token: str
    access_expires_in: int
    refresh_expires_in: int


@dataclass(frozen=True, slots=True)
class Identity:
    """Resolved caller identity attached to authenticated requests."""

    user_id: int
    username: str
    email: str
    roles: tuple[Role, ...]

    def has_role(self, role: Role) -> bool:
        return role in self.roles
