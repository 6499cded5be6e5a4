"""Signed token codec for access and refresh credentials."""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime
from datetime import timedelta
from datetime import timezone
from typing import Any

import jwt

from moblog_auth.core.clock import to_timestamp
from moblog_auth.core.roles import Role

ALGORITHM = "HS256"


class TokenError(ValueError):
    """Base token verification error."""


class TokenSignatureError(TokenError):
    """Raised when the token signature does not match the shared secret."""


class TokenMalformedError(TokenError):
    """Raised when a token cannot be parsed or lacks required claims."""


class TokenExpiredError(TokenError):
    """Raised when a correctly signed token is past its exp claim."""


@dataclass(frozen=True, slots=True)
class AccessClaims:
    """Identity claims carried by a verified access token."""

    subject: str
    user_id: int
    email: str
    role: Role
    issued_at: datetime
    expires_at: datetime
    issuer: str


def digest(token: str) -> str:
    """One-way digest used to persist refresh tokens without the raw value."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class TokenCodec:
    """HS256 JWT signer/verifier bound to one secret and issuer tag."""

    def __init__(self, *, secret: str, issuer: str) -> None:
        self._secret = secret
        self._issuer = issuer

    @property
    def issuer(self) -> str:
        return self._issuer

    def issue_access(
        self,
        *,
        subject: str,
        user_id: int,
        email: str,
        role: Role,
        now: datetime,
        expires_in_seconds: int,
    ) -> str:
        """Create an access token carrying the full identity claim set."""
        payload = self._base_claims(subject=subject, now=now, expires_in_seconds=expires_in_seconds)
        payload.update({"uid": user_id, "email": email, "role": Role.parse(role).value})
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def issue_opaque(self, *, subject: str, now: datetime, expires_in_seconds: int) -> str:
        """Create a minimal token (subject plus a nonce) for refresh use."""
        payload = self._base_claims(subject=subject, now=now, expires_in_seconds=expires_in_seconds)
        payload["jti"] = secrets.token_urlsafe(16)
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def verify(self, token: str, *, now: datetime) -> dict[str, Any]:
        """Check signature, then structure, then expiry against ``now``."""
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                issuer=self._issuer,
                options={
                    "require": ["sub", "exp", "iat", "iss"],
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                },
            )
        except jwt.InvalidSignatureError as exc:
            raise TokenSignatureError("token signature mismatch") from exc
        except jwt.InvalidTokenError as exc:
            raise TokenMalformedError("token cannot be decoded") from exc

        exp = payload.get("exp")
        if not isinstance(exp, int) or not isinstance(payload.get("sub"), str):
            raise TokenMalformedError("missing or invalid sub/exp")

        if to_timestamp(now) >= exp:
            raise TokenExpiredError("token expired")
        return payload

    def decode_access(self, token: str, *, now: datetime) -> AccessClaims:
        """Verify an access token and return its typed claims."""
        payload = self.verify(token, now=now)
        user_id = payload.get("uid")
        if not isinstance(user_id, int) or isinstance(user_id, bool):
            raise TokenMalformedError("missing or invalid uid")
        try:
            role = Role.parse(payload.get("role"))
        except ValueError as exc:
            raise TokenMalformedError("unknown role claim") from exc

        return AccessClaims(
            subject=payload["sub"],
            user_id=user_id,
            email=str(payload.get("email", "")),
            role=role,
            issued_at=datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            issuer=str(payload["iss"]),
        )

    def _base_claims(self, *, subject: str, now: datetime, expires_in_seconds: int) -> dict[str, Any]:
        return {
            "sub": subject,
            "iat": to_timestamp(now),
            "exp": to_timestamp(now + timedelta(seconds=expires_in_seconds)),
            "iss": self._issuer,
        }
