"""Per-client, per-route request admission (token buckets)."""

from moblog_auth.ratelimit.buckets import AdmissionController
from moblog_auth.ratelimit.buckets import RateLimit
from moblog_auth.ratelimit.buckets import RouteClass
from moblog_auth.ratelimit.middleware import RateLimitMiddleware
from moblog_auth.ratelimit.middleware import build_admission_controller

__all__ = [
    "AdmissionController",
    "RateLimit",
    "RateLimitMiddleware",
    "RouteClass",
    "build_admission_controller",
]
