"""Application settings for the auth service runtime and tests."""

from __future__ import annotations

from pydantic import Field
from pydantic import field_validator
from pydantic import model_validator
from pydantic_settings import BaseSettings

MIN_JWT_SECRET_BYTES = 32


class Settings(BaseSettings):
    """Typed settings loaded from environment variables or explicit kwargs."""

    moblog_app_env: str = "dev"
    moblog_app_host: str = "127.0.0.1"
    moblog_app_port: int = Field(default=8080, ge=1)
    moblog_log_level: str = "INFO"

    moblog_jwt_secret: str = Field(min_length=1)
    moblog_jwt_issuer: str = "moblogging"
    moblog_access_token_expire_seconds: int = Field(default=3600, ge=1)
    moblog_refresh_token_expire_seconds: int = Field(default=604800, ge=1)

    moblog_auth_prefix: str = "/api/auth"
    moblog_refresh_cookie_name: str = "refresh_token"
    moblog_refresh_cookie_secure: bool = False

    moblog_sqlite_path: str = "moblog.db"
    moblog_cors_allow_origins: str = "*"

    moblog_rate_limit_enabled: bool = True
    moblog_rate_limit_trust_forwarded: bool = True
    moblog_rate_limit_max_buckets: int = Field(default=10000, ge=1)
    moblog_rate_limit_login_per_minute: int = Field(default=5, ge=1)
    moblog_rate_limit_register_per_minute: int = Field(default=3, ge=1)
    moblog_rate_limit_refresh_per_minute: int = Field(default=10, ge=1)
    moblog_rate_limit_default_per_minute: int = Field(default=100, ge=1)

    @field_validator("moblog_jwt_secret")
    @classmethod
    def validate_secret_length(cls, value: str) -> str:
        """HS256 keys shorter than the digest size are rejected."""
        if len(value.encode("utf-8")) < MIN_JWT_SECRET_BYTES:
            raise ValueError(f"MOBLOG_JWT_SECRET must be at least {MIN_JWT_SECRET_BYTES} bytes")
        return value

    @model_validator(mode="after")
    def validate_token_lifetimes(self) -> "Settings":
        """Ensure the refresh credential outlives the access credential."""
        if self.moblog_refresh_token_expire_seconds <= self.moblog_access_token_expire_seconds:
            raise ValueError(
                "MOBLOG_REFRESH_TOKEN_EXPIRE_SECONDS must be greater than "
                "MOBLOG_ACCESS_TOKEN_EXPIRE_SECONDS"
            )
        return self

    @model_validator(mode="after")
    def validate_rate_limit_shape(self) -> "Settings":
        """Credential-issuing routes must stay stricter than the default class."""
        default = self.moblog_rate_limit_default_per_minute
        for name in (
            "moblog_rate_limit_login_per_minute",
            "moblog_rate_limit_register_per_minute",
            "moblog_rate_limit_refresh_per_minute",
        ):
            if getattr(self, name) >= default:
                raise ValueError(
                    f"{name.upper()} must be lower than MOBLOG_RATE_LIMIT_DEFAULT_PER_MINUTE"
                )
        return self

    @property
    def refresh_cookie_path(self) -> str:
        return self.moblog_auth_prefix.rstrip("/") or "/"


def load_settings() -> Settings:
    """Load settings from process environment."""
    return Settings()
