"""Token codec contract tests."""

from __future__ import annotations

from datetime import datetime
from datetime import timedelta
from datetime import timezone

import jwt
import pytest

from moblog_auth.core.roles import Role
from moblog_auth.core.tokens import TokenCodec
from moblog_auth.core.tokens import TokenExpiredError
from moblog_auth.core.tokens import TokenMalformedError
from moblog_auth.core.tokens import TokenSignatureError
from moblog_auth.core.tokens import digest

SECRET = "unit-test-secret-key-32-bytes-minimum"
NOW = datetime(2026, 2, 14, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def codec() -> TokenCodec:
    return TokenCodec(secret=SECRET, issuer="moblogging")


def _access(codec: TokenCodec, **overrides: object) -> str:
    fields: dict[str, object] = {
        "subject": "alice",
        "user_id": 1,
        "email": "alice@example.com",
        "role": Role.USER,
        "now": NOW,
        "expires_in_seconds": 60,
    }
    fields.update(overrides)
    return codec.issue_access(**fields)


def test_access_token_round_trips_identity_claims(codec: TokenCodec) -> None:
    """Input: access token inside its window -> Output: typed claims."""
    claims = codec.decode_access(_access(codec), now=NOW + timedelta(seconds=30))

    assert claims.subject == "alice"
    assert claims.user_id == 1
    assert claims.email == "alice@example.com"
    assert claims.role is Role.USER
    assert claims.issuer == "moblogging"
    assert claims.issued_at == NOW
    assert claims.expires_at == NOW + timedelta(seconds=60)


def test_access_token_is_rejected_at_and_after_exp(codec: TokenCodec) -> None:
    token = _access(codec, expires_in_seconds=1)

    with pytest.raises(TokenExpiredError):
        codec.verify(token, now=NOW + timedelta(seconds=1))
    with pytest.raises(TokenExpiredError):
        codec.verify(token, now=NOW + timedelta(days=3))


def test_signature_is_checked_before_expiry(codec: TokenCodec) -> None:
    """Input: expired token signed with another key -> Output: signature error, not expiry."""
    foreign = TokenCodec(secret="another-secret-key-that-is-32-bytes+", issuer="moblogging")
    token = _access(foreign, expires_in_seconds=1)

    with pytest.raises(TokenSignatureError):
        codec.verify(token, now=NOW + timedelta(hours=1))


def test_tampered_payload_fails_signature(codec: TokenCodec) -> None:
    header, payload, signature = _access(codec).split(".")
    forged_payload = jwt.utils.base64url_encode(
        b'{"sub":"mallory","uid":1,"role":"ADMIN","iat":1,"exp":9999999999,"iss":"moblogging"}'
    ).decode("ascii")

    with pytest.raises(TokenSignatureError):
        codec.verify(f"{header}.{forged_payload}.{signature}", now=NOW)


@pytest.mark.parametrize("raw", ["", "garbage", "a.b.c", "Bearer xyz"])
def test_unparseable_tokens_are_malformed(codec: TokenCodec, raw: str) -> None:
    with pytest.raises(TokenMalformedError):
        codec.verify(raw, now=NOW)


def test_foreign_issuer_is_malformed(codec: TokenCodec) -> None:
    other = TokenCodec(secret=SECRET, issuer="someone-else")

    with pytest.raises(TokenMalformedError):
        codec.verify(_access(other), now=NOW)


def test_refresh_style_token_cannot_be_decoded_as_access(codec: TokenCodec) -> None:
    """Input: opaque token (no uid claim) -> Output: malformed access token."""
    opaque = codec.issue_opaque(subject="alice", now=NOW, expires_in_seconds=60)

    assert codec.verify(opaque, now=NOW)["sub"] == "alice"
    with pytest.raises(TokenMalformedError):
        codec.decode_access(opaque, now=NOW)


def test_unknown_role_claim_is_malformed(codec: TokenCodec) -> None:
    token = jwt.encode(
        {"sub": "alice", "uid": 1, "role": "SUPERUSER", "iat": 1, "exp": 9999999999, "iss": "moblogging"},
        SECRET,
        algorithm="HS256",
    )

    with pytest.raises(TokenMalformedError):
        codec.decode_access(token, now=NOW)


def test_opaque_tokens_minted_in_the_same_second_differ(codec: TokenCodec) -> None:
    first = codec.issue_opaque(subject="alice", now=NOW, expires_in_seconds=60)
    second = codec.issue_opaque(subject="alice", now=NOW, expires_in_seconds=60)

    assert first != second
    assert digest(first) != digest(second)


def test_digest_is_deterministic_and_hides_raw_value(codec: TokenCodec) -> None:
    token = codec.issue_opaque(subject="alice", now=NOW, expires_in_seconds=60)

    assert digest(token) == digest(token)
    assert len(digest(token)) == 64
    assert token not in digest(token)
