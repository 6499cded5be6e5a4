"""HTTP middleware that gates every request through the admission controller."""

from __future__ import annotations

import time
from collections.abc import Callable

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.base import RequestResponseEndpoint
from starlette.responses import Response
from starlette.types import ASGIApp

from moblog_auth.auth.http import api_error
from moblog_auth.core.config import Settings
from moblog_auth.ratelimit.buckets import AdmissionController
from moblog_auth.ratelimit.buckets import RateLimit
from moblog_auth.ratelimit.buckets import RouteClass

TOO_MANY_REQUESTS_MESSAGE = "Too many requests"


def build_admission_controller(
    settings: Settings,
    *,
    monotonic: Callable[[], float] = time.monotonic,
) -> AdmissionController:
    """Build a controller whose per-class budgets come from settings."""

    def per_minute(value: int) -> RateLimit:
        return RateLimit(capacity=value, refill_per_minute=value)

    limits = {
        RouteClass.LOGIN: per_minute(settings.moblog_rate_limit_login_per_minute),
        RouteClass.REGISTER: per_minute(settings.moblog_rate_limit_register_per_minute),
        RouteClass.REFRESH: per_minute(settings.moblog_rate_limit_refresh_per_minute),
        RouteClass.LOGOUT: per_minute(settings.moblog_rate_limit_refresh_per_minute),
        RouteClass.DEFAULT: per_minute(settings.moblog_rate_limit_default_per_minute),
    }
    return AdmissionController(
        limits=limits,
        max_buckets=settings.moblog_rate_limit_max_buckets,
        auth_prefix=settings.moblog_auth_prefix,
        trust_forwarded=settings.moblog_rate_limit_trust_forwarded,
        monotonic=monotonic,
    )


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Short-circuits with 429 before routing when the client's bucket is empty.

    The controller is looked up per request so a runtime restart can swap it.
    """

    def __init__(self, app: ASGIApp, *, controller: Callable[[], AdmissionController | None]) -> None:
        super().__init__(app)
        self._controller = controller

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        controller = self._controller()
        if controller is None or request.method == "OPTIONS":
            return await call_next(request)

        peer = request.client.host if request.client else None
        key = controller.classify(request.url.path, request.headers, peer)
        if not controller.admit(key):
            return JSONResponse(
                status_code=429,
                content=api_error(message=TOO_MANY_REQUESTS_MESSAGE),
                headers={"Retry-After": str(controller.retry_after(key))},
            )
        return await call_next(request)
