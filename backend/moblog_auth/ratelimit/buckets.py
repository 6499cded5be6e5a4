"""Token-bucket admission control keyed by client identity and route class."""

from __future__ import annotations

import logging
import math
import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)

REFILL_WINDOW_SECONDS = 60.0
SWEEP_INTERVAL_SECONDS = 60.0
UNKNOWN_CLIENT = "unknown"


class RouteClass(str, Enum):
    LOGIN = "auth:login"
    REGISTER = "auth:register"
    REFRESH = "auth:refresh"
    LOGOUT = "auth:logout"
    DEFAULT = "default"


@dataclass(frozen=True, slots=True)
class RateLimit:
    """Bucket capacity and how many tokens flow back in per minute."""

    capacity: int
    refill_per_minute: int

    def tokens_after(self, elapsed: float) -> float:
        """Tokens regained over ``elapsed`` seconds."""
        return elapsed * self.refill_per_minute / REFILL_WINDOW_SECONDS

    def seconds_until(self, tokens: float) -> float:
        """Seconds needed to regain ``tokens``."""
        return tokens * REFILL_WINDOW_SECONDS / self.refill_per_minute


DEFAULT_LIMITS: dict[RouteClass, RateLimit] = {
    RouteClass.LOGIN: RateLimit(capacity=5, refill_per_minute=5),
    RouteClass.REGISTER: RateLimit(capacity=3, refill_per_minute=3),
    RouteClass.REFRESH: RateLimit(capacity=10, refill_per_minute=10),
    RouteClass.LOGOUT: RateLimit(capacity=10, refill_per_minute=10),
    RouteClass.DEFAULT: RateLimit(capacity=100, refill_per_minute=100),
}


class BucketRetiredError(Exception):
    """Raised when a bucket dropped from the registry is used again."""


class TokenBucket:
    """Continuously refilling bucket; all state changes happen under its own lock."""

    def __init__(self, limit: RateLimit, *, now: float) -> None:
        self.limit = limit
        self._tokens = float(limit.capacity)
        self._last_refill = now
        self._retired = False
        self._lock = threading.Lock()

    def try_consume(self, *, now: float, cost: float = 1.0) -> bool:
        with self._lock:
            if self._retired:
                raise BucketRetiredError()
            self._refill(now)
            if self._tokens >= cost:
                self._tokens -= cost
                return True
            return False

    def retry_after(self, *, now: float, cost: float = 1.0) -> float:
        """Seconds until ``cost`` tokens are available again."""
        with self._lock:
            self._refill(now)
            missing = cost - self._tokens
            if missing <= 0:
                return 0.0
            return self.limit.seconds_until(missing)

    def is_full(self, *, now: float) -> bool:
        with self._lock:
            self._refill(now)
            return self._tokens >= self.limit.capacity

    def retire_if_full(self, *, now: float) -> bool:
        """Retire the bucket once it has refilled completely."""
        with self._lock:
            self._refill(now)
            if self._tokens >= self.limit.capacity:
                self._retired = True
            return self._retired

    def retire(self) -> None:
        with self._lock:
            self._retired = True

    @property
    def retired(self) -> bool:
        return self._retired

    @property
    def tokens(self) -> float:
        return self._tokens

    def _refill(self, now: float) -> None:
        elapsed = max(0.0, now - self._last_refill)
        self._tokens = min(float(self.limit.capacity), self._tokens + self.limit.tokens_after(elapsed))
        self._last_refill = now


class BucketRegistry:
    """Bounded LRU map of buckets.

    The guard lock covers lookup, insertion and eviction only; token math runs
    under each bucket's own lock so different keys never wait on each other
    for longer than a dict operation. Buckets leaving the map are retired
    first, so a caller still holding one retries against the live entry
    instead of spending tokens nobody tracks.
    """

    def __init__(self, *, max_buckets: int) -> None:
        if max_buckets < 1:
            raise ValueError("max_buckets must be >= 1")
        self._max_buckets = max_buckets
        self._buckets: OrderedDict[str, TokenBucket] = OrderedDict()
        self._guard = threading.Lock()

    def get_or_create(self, key: str, limit: RateLimit, *, now: float) -> TokenBucket:
        with self._guard:
            bucket = self._buckets.get(key)
            if bucket is not None and not bucket.retired:
                self._buckets.move_to_end(key)
                return bucket
            bucket = TokenBucket(limit, now=now)
            self._buckets[key] = bucket
            self._buckets.move_to_end(key)
            while len(self._buckets) > self._max_buckets:
                evicted_key, evicted = self._buckets.popitem(last=False)
                evicted.retire()
                logger.debug("evicted rate bucket key=%s", evicted_key)
            return bucket

    def consume(self, key: str, limit: RateLimit, *, now: float, cost: float = 1.0) -> bool:
        """Spend ``cost`` tokens from the live bucket for ``key``."""
        while True:
            bucket = self.get_or_create(key, limit, now=now)
            try:
                return bucket.try_consume(now=now, cost=cost)
            except BucketRetiredError:
                continue

    def sweep(self, *, now: float) -> int:
        """Drop buckets that have refilled completely; they behave like new ones."""
        with self._guard:
            candidates = list(self._buckets.items())
        idle = [(key, bucket) for key, bucket in candidates if bucket.retire_if_full(now=now)]
        removed = 0
        with self._guard:
            for key, bucket in idle:
                if self._buckets.get(key) is bucket:
                    del self._buckets[key]
                    removed += 1
        if removed:
            logger.debug("swept %d idle rate buckets", removed)
        return removed

    def __contains__(self, key: object) -> bool:
        with self._guard:
            return key in self._buckets

    def __len__(self) -> int:
        with self._guard:
            return len(self._buckets)


class AdmissionController:
    def __init__(
        self,
        *,
        limits: Mapping[RouteClass, RateLimit] | None = None,
        max_buckets: int = 10000,
        auth_prefix: str = "/api/auth",
        trust_forwarded: bool = True,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._limits = dict(DEFAULT_LIMITS)
        if limits:
            self._limits.update(limits)
        self._auth_prefix = auth_prefix.rstrip("/")
        self._trust_forwarded = trust_forwarded
        self._monotonic = monotonic
        self.registry = BucketRegistry(max_buckets=max_buckets)
        self._last_sweep = monotonic()
        self._sweep_lock = threading.Lock()

    def classify_route(self, path: str) -> RouteClass:
        prefix = self._auth_prefix
        for route_class, suffix in (
            (RouteClass.LOGIN, "/login"),
            (RouteClass.REGISTER, "/register"),
            (RouteClass.REFRESH, "/refresh"),
            (RouteClass.LOGOUT, "/logout"),
        ):
            if path.startswith(prefix + suffix):
                return route_class
        return RouteClass.DEFAULT

    def client_identity(self, headers: Mapping[str, str], peer: str | None) -> str:
        """First X-Forwarded-For hop when trusted, else the socket peer."""
        if self._trust_forwarded:
            forwarded = headers.get("x-forwarded-for", "")
            first_hop = forwarded.split(",")[0].strip()
            if first_hop:
                return first_hop
        return peer or UNKNOWN_CLIENT

    def classify(self, path: str, headers: Mapping[str, str], peer: str | None) -> str:
        """Bucket key ``<client>:<route class>`` for one request."""
        return f"{self.client_identity(headers, peer)}:{self.classify_route(path).value}"

    def limit_for(self, route_class: RouteClass) -> RateLimit:
        return self._limits[route_class]

    def admit(self, key: str) -> bool:
        """Consume one token from the key's bucket, creating it on first use."""
        now = self._monotonic()
        self._maybe_sweep(now)
        allowed = self.registry.consume(key, self.limit_for(_route_class_of(key)), now=now)
        if not allowed:
            logger.warning("rate limit exceeded key=%s", key)
        return allowed

    def retry_after(self, key: str) -> int:
        """Whole seconds a denied client should wait before retrying."""
        now = self._monotonic()
        bucket = self.registry.get_or_create(key, self.limit_for(_route_class_of(key)), now=now)
        return max(1, math.ceil(bucket.retry_after(now=now)))

    def _maybe_sweep(self, now: float) -> None:
        if now - self._last_sweep < SWEEP_INTERVAL_SECONDS:
            return
        if not self._sweep_lock.acquire(blocking=False):
            return
        try:
            self._last_sweep = now
            self.registry.sweep(now=now)
        finally:
            self._sweep_lock.release()


def _route_class_of(key: str) -> RouteClass:
    for route_class in RouteClass:
        if key.endswith(":" + route_class.value):
            return route_class
    return RouteClass.DEFAULT
