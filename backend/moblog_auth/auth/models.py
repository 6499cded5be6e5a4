"""Pydantic models for auth requests and responses."""

from __future__ import annotations

from pydantic import BaseModel
from pydantic import Field

from moblog_auth.auth.entities import TokenPair


class RegisterRequest(BaseModel):
    """POST /api/auth/register request body."""

    username: str
    email: str
    password: str
    confirm_password: str = Field(alias="confirmPassword")

    model_config = {"populate_by_name": True}


class LoginRequest(BaseModel):
    """POST /api/auth/login request body."""

    username_or_email: str = Field(alias="usernameOrEmail")
    password: str

    model_config = {"populate_by_name": True}


class AuthResponse(BaseModel):
    """Access token returned in the body; the refresh token travels as a cookie."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int

    @classmethod
    def from_pair(cls, pair: TokenPair) -> "AuthResponse":
        return cls(access_token=pair.access_token, expires_in=pair.access_expires_in)


class CurrentUser(BaseModel):
    """GET /api/auth/me payload."""

    id: int
    username: str
    email: str
    roles: list[str]
