"""Username and email normalization/validation helpers for registration."""

from __future__ import annotations

import unicodedata

import regex

MIN_USERNAME_GRAPHEMES = 3
MAX_USERNAME_GRAPHEMES = 30
_GRAPHEME_PATTERN = regex.compile(r"\X")
_USERNAME_PATTERN = regex.compile(r"^[\p{L}\p{N}_.\-]+$")
_EMAIL_PATTERN = regex.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class IdentifierValidationError(ValueError):
    """Raised when a username or email violates registration rules."""


def normalize_username(raw_username: str) -> str:
    """Trim and normalize username to NFC form."""
    return unicodedata.normalize("NFC", raw_username.strip())


def count_graphemes(value: str) -> int:
    """Count user-visible characters using grapheme clusters."""
    return len(_GRAPHEME_PATTERN.findall(value))


def normalize_and_validate_username(raw_username: str) -> str:
    normalized = normalize_username(raw_username)
    if not normalized:
        raise IdentifierValidationError("Username Is Empty")
    grapheme_count = count_graphemes(normalized)
    if grapheme_count < MIN_USERNAME_GRAPHEMES or grapheme_count > MAX_USERNAME_GRAPHEMES:
        raise IdentifierValidationError(
            f"username length must be {MIN_USERNAME_GRAPHEMES}-{MAX_USERNAME_GRAPHEMES} characters"
        )
    if "@" in normalized or not _USERNAME_PATTERN.match(normalized):
        raise IdentifierValidationError("username may only contain letters, digits, '_', '.', '-'")
    return normalized


def normalize_email(raw_email: str) -> str:
    return raw_email.strip().lower()


def normalize_and_validate_email(raw_email: str) -> str:
    normalized = normalize_email(raw_email)
    if not normalized:
        raise IdentifierValidationError("Email Is Empty")
    if not _EMAIL_PATTERN.match(normalized):
        raise IdentifierValidationError("email address is not valid")
    return normalized


def normalize_login_identifier(raw_identifier: str) -> str:
    """Emails are matched case-insensitively, usernames by their NFC form."""
    if "@" in raw_identifier:
        return normalize_email(raw_identifier)
    return normalize_username(raw_identifier)
