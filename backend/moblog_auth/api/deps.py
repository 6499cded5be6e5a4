"""Dependency helpers shared by API routers."""

from __future__ import annotations

from fastapi import Header
from fastapi import Request

import moblog_auth.runtime as runtime
from moblog_auth.auth.entities import Identity
from moblog_auth.auth.errors import AuthError
from moblog_auth.auth.errors import raise_http_error
from moblog_auth.auth.errors import raise_unauthorized


def parse_bearer(authorization: str | None) -> str | None:
    """Return the token of a ``Bearer`` header, ``""`` for an empty one, else None."""
    if authorization is None:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip()


def require_current_user(
    request: Request,
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> Identity:
    """Authenticate the Bearer token and attach the identity to the request."""
    token = parse_bearer(authorization)
    if token is None:
        raise_unauthorized("Authentication required")
    if not token:
        raise_unauthorized("Invalid token")

    try:
        identity = runtime.auth.authenticator.authenticate(token)
    except AuthError as exc:
        raise_http_error(exc)

    request.state.identity = identity
    return identity
