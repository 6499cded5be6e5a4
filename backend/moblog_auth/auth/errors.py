"""Auth domain errors and their HTTP translations."""

from __future__ import annotations

from typing import NoReturn

from fastapi import HTTPException

from moblog_auth.auth.http import api_error


class AuthError(Exception):
    """Base class for auth-domain failures carrying a client-safe message."""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UnauthorizedError(AuthError):
    """Bad credentials, bad/expired/mismatched token, or unknown account."""

    status_code = 401


class ForbiddenError(AuthError):
    """Credentials are valid but the account may not act (banned)."""

    status_code = 403


class ConflictError(AuthError):
    """Username or email already taken."""

    status_code = 409


class ValidationFailedError(AuthError):
    """Registration/login input rejected before touching the store."""

    status_code = 400


def raise_http_error(exc: AuthError) -> NoReturn:
    """Translate one domain error into the unified HTTP envelope."""
    raise HTTPException(
        status_code=exc.status_code,
        detail=api_error(message=exc.message),
    ) from exc


def raise_unauthorized(message: str) -> NoReturn:
    raise HTTPException(status_code=401, detail=api_error(message=message))
