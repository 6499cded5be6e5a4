"""Process-wide runtime state shared by the HTTP layer."""

from __future__ import annotations

from moblog_auth.auth.context import AuthContext
from moblog_auth.auth.context import build_auth_context
from moblog_auth.auth.schema import init_auth_schema
from moblog_auth.core.config import Settings
from moblog_auth.core.config import load_settings
from moblog_auth.ratelimit.buckets import AdmissionController
from moblog_auth.ratelimit.middleware import build_admission_controller

settings = load_settings()
auth: AuthContext = build_auth_context(settings)
admission: AdmissionController | None = (
    build_admission_controller(settings) if settings.moblog_rate_limit_enabled else None
)


def startup() -> None:
    """Reload settings, ensure the schema exists and reset in-memory quotas."""
    global settings, auth, admission
    settings = load_settings()
    init_auth_schema(settings)
    auth = build_auth_context(settings)
    admission = build_admission_controller(settings) if settings.moblog_rate_limit_enabled else None


def current_admission() -> AdmissionController | None:
    return admission


__all__ = [
    "Settings",
    "admission",
    "auth",
    "current_admission",
    "settings",
    "startup",
]
