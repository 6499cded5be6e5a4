"""HTTP helpers for the unified {success,message} envelope and refresh cookie."""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException
from fastapi import Request
from fastapi import Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from moblog_auth.core.config import Settings


def api_error(*, message: str, errors: dict[str, Any] | None = None) -> dict[str, Any]:
    """Build a failure payload."""
    payload: dict[str, Any] = {"success": False, "message": message}
    if errors:
        payload["errors"] = errors
    return payload


def api_success(*, message: str, data: Any = None) -> dict[str, Any]:
    """Build a success payload; ``data`` is omitted when empty."""
    payload: dict[str, Any] = {"success": True, "message": message}
    if data is not None:
        payload["data"] = data
    return payload


async def handle_http_exception(_: Request, exc: HTTPException) -> JSONResponse:
    """Unify HTTP errors to the {success,message} payload."""
    if isinstance(exc.detail, dict) and {"success", "message"} <= set(exc.detail):
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.detail,
            headers=exc.headers,
        )

    return JSONResponse(
        status_code=exc.status_code,
        content=api_error(message=str(exc.detail)),
        headers=exc.headers,
    )


async def handle_validation_exception(_: Request, exc: RequestValidationError) -> JSONResponse:
    """Render body validation failures as 400 with per-field messages."""
    errors: dict[str, Any] = {}
    for item in exc.errors():
        location = [str(part) for part in item.get("loc", ()) if part != "body"]
        errors[".".join(location) or "body"] = item.get("msg", "invalid value")
    return JSONResponse(status_code=400, content=api_error(message="Validation failed", errors=errors))


def set_refresh_cookie(response: Response, *, settings: Settings, refresh_token: str) -> None:
    """Deliver the raw refresh token as an HTTP-only cookie scoped to the auth routes."""
    response.set_cookie(
        key=settings.moblog_refresh_cookie_name,
        value=refresh_token,
        max_age=settings.moblog_refresh_token_expire_seconds,
        path=settings.refresh_cookie_path,
        httponly=True,
        secure=settings.moblog_refresh_cookie_secure,
        samesite="lax",
    )


def clear_refresh_cookie(response: Response, *, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.moblog_refresh_cookie_name,
        path=settings.refresh_cookie_path,
        httponly=True,
        secure=settings.moblog_refresh_cookie_secure,
        samesite="lax",
    )
