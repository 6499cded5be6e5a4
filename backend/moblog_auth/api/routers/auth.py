"""Auth REST routes."""

from __future__ import annotations

from fastapi import APIRouter
from fastapi import Depends
from fastapi import Request
from fastapi import Response

import moblog_auth.runtime as runtime
from moblog_auth.api.deps import require_current_user
from moblog_auth.auth.entities import Identity
from moblog_auth.auth.entities import TokenPair
from moblog_auth.auth.errors import AuthError
from moblog_auth.auth.errors import raise_http_error
from moblog_auth.auth.http import api_success
from moblog_auth.auth.http import clear_refresh_cookie
from moblog_auth.auth.http import set_refresh_cookie
from moblog_auth.auth.models import AuthResponse
from moblog_auth.auth.models import LoginRequest
from moblog_auth.auth.models import RegisterRequest
from moblog_auth.auth.service import current_user
from moblog_auth.auth.service import login_user
from moblog_auth.auth.service import logout_session
from moblog_auth.auth.service import refresh_session
from moblog_auth.auth.service import register_user

router = APIRouter()


def _refresh_cookie(request: Request) -> str | None:
    return request.cookies.get(runtime.settings.moblog_refresh_cookie_name)


def _session_response(response: Response, *, pair: TokenPair, message: str) -> dict[str, object]:
    set_refresh_cookie(response, settings=runtime.settings, refresh_token=pair.refresh_token)
    return api_success(message=message, data=AuthResponse.from_pair(pair).model_dump())


@router.post("/register", status_code=201)
def register(payload: RegisterRequest, response: Response) -> dict[str, object]:
    """Create an account and start its session."""
    try:
        _, pair = register_user(ctx=runtime.auth, payload=payload)
    except AuthError as exc:
        raise_http_error(exc)
    return _session_response(response, pair=pair, message="User registered successfully")


@router.post("/login")
def login(payload: LoginRequest, response: Response) -> dict[str, object]:
    """Authenticate and issue a pair that supersedes the previous session."""
    try:
        _, pair = login_user(ctx=runtime.auth, payload=payload)
    except AuthError as exc:
        raise_http_error(exc)
    return _session_response(response, pair=pair, message="Login successful")


@router.post("/refresh")
def refresh(request: Request, response: Response) -> dict[str, object]:
    """Rotate the refresh cookie and issue a new access token."""
    try:
        pair = refresh_session(ctx=runtime.auth, refresh_token=_refresh_cookie(request))
    except AuthError as exc:
        raise_http_error(exc)
    return _session_response(response, pair=pair, message="Token refreshed")


@router.post("/logout")
def logout(request: Request, response: Response) -> dict[str, object]:
    """Revoke the refresh cookie; always succeeds."""
    logout_session(ctx=runtime.auth, refresh_token=_refresh_cookie(request))
    clear_refresh_cookie(response, settings=runtime.settings)
    return api_success(message="Logged out successfully")


@router.get("/me")
def me(identity: Identity = Depends(require_current_user)) -> dict[str, object]:
    return api_success(message="Current user retrieved", data=current_user(identity).model_dump())
