"""
Volunteer API — Rate Limiting Middleware
=========================================

What:  Per-client fixed window rate limiter for the API prefix.
Why:   Protects the API from floods and credential stuffing without
       requiring authentication.
How:   Each client key owns a counter {count, reset_at}. On each request:
       absent or expired counter → reset to 1 with a fresh window;
       otherwise increment. A count above `max_requests` raises
       RateLimitExceededError, which the error normalizer renders as 429;
       the request never reaches routing.

Algorithm: Fixed Window Counter
    window 15 min, max 200:
        t=0:00  request 1   → count=1,   reset_at=0:15
        t=0:10  request 200 → count=200  (allowed)
        t=0:11  request 201 → count=201  → 429, Retry-After: 240
        t=0:15  request     → window elapsed → count=1

Storage:
    Counters live behind the RateLimitStore interface. The in-memory store
    keeps them in a dict owned by the event loop thread; all mutations happen
    between awaits, so per-key increments are atomic with respect to the
    scheduler and need no lock. A multi-process deployment swaps in a shared
    store (e.g. Redis INCR + EXPIRE) without touching the middleware.
"""

import logging
import math
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from volunteer_api.exceptions import RateLimitExceededError
from volunteer_api.middleware.client import client_address

logger = logging.getLogger(__name__)


@dataclass
class WindowState:
    """Snapshot of a client's counter after an increment."""

    count: int
    resets_in: float  # seconds until the window closes


class RateLimitStore(ABC):
    """
    Counter table shared by every request.

    Implementations must make increment atomic per key.
    """

    @abstractmethod
    async def increment(self, key: str, window_seconds: float) -> WindowState:
        """Counts one hit for `key`, opening a new window if needed."""

    @abstractmethod
    async def decrement(self, key: str) -> None:
        """Removes one hit from `key`'s current window (skip-failed mode)."""

    @abstractmethod
    async def reset(self, key: str) -> None:
        """Forgets `key` entirely."""


@dataclass
class _Counter:
    count: int
    reset_at: float


class InMemoryRateLimitStore(RateLimitStore):
    """
    Process-local counter table.

    Args:
        clock:       Monotonic time source (injectable for tests)
        purge_every: Expired counters are dropped every N increments so keys of
                     clients that went away do not accumulate forever
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, purge_every: int = 1000):
        self.clock = clock
        self.purge_every = purge_every
        self._counters: Dict[str, _Counter] = {}
        self._hits = 0

    def __len__(self) -> int:
        return len(self._counters)

    async def increment(self, key: str, window_seconds: float) -> WindowState:
        now = self.clock()
        counter = self._counters.get(key)
        if counter is None or now >= counter.reset_at:
            counter = _Counter(count=1, reset_at=now + window_seconds)
            self._counters[key] = counter
        else:
            counter.count += 1

        self._hits += 1
        if self._hits % self.purge_every == 0:
            self._purge_expired(now)

        return WindowState(count=counter.count, resets_in=max(counter.reset_at - now, 0.0))

    async def decrement(self, key: str) -> None:
        counter = self._counters.get(key)
        if counter is not None and counter.count > 0:
            counter.count -= 1

    async def reset(self, key: str) -> None:
        self._counters.pop(key, None)

    def _purge_expired(self, now: float) -> None:
        expired = [key for key, counter in self._counters.items() if counter.reset_at <= now]
        for key in expired:
            del self._counters[key]
        if expired:
            logger.debug("Purged %d expired rate-limit counters", len(expired))


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Enforces the window budget on paths under `path_prefix`.

    Configuration (all from settings, none hardcoded):
        max_requests:         Requests allowed per window per client key
        window_seconds:       Window length
        message:              Client-facing 429 message
        trusted_hops:         Proxy hops trusted for X-Forwarded-For
        skip_failed_requests: Requests ending with status >= 400 are refunded

    Successful responses carry RateLimit-Limit / RateLimit-Remaining /
    RateLimit-Reset so clients can pace themselves.
    """

    def __init__(
        self,
        app: ASGIApp,
        store: RateLimitStore,
        max_requests: int,
        window_seconds: float,
        message: str,
        path_prefix: str = "/api/",
        trusted_hops: int = 0,
        skip_failed_requests: bool = False,
    ):
        super().__init__(app)
        self.store = store
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.message = message
        self.path_prefix = path_prefix
        self.trusted_hops = trusted_hops
        self.skip_failed_requests = skip_failed_requests

    def applies_to(self, path: str) -> bool:
        return path.startswith(self.path_prefix) or path == self.path_prefix.rstrip("/")

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if not self.applies_to(request.url.path):
            return await call_next(request)

        key = client_address(request, self.trusted_hops)
        state = await self.store.increment(key, self.window_seconds)
        reset_seconds = math.ceil(state.resets_in)

        if state.count > self.max_requests:
            logger.warning(
                "Rate limit exceeded for %s: %d requests in %ss window",
                key,
                state.count,
                self.window_seconds,
            )
            raise RateLimitExceededError(
                message=self.message,
                retry_after=max(reset_seconds, 1),
                limit=self.max_requests,
            )

        try:
            response = await call_next(request)
        except Exception:
            if self.skip_failed_requests:
                await self.store.decrement(key)
            raise

        if self.skip_failed_requests and response.status_code >= 400:
            await self.store.decrement(key)

        response.headers["RateLimit-Limit"] = str(self.max_requests)
        response.headers["RateLimit-Remaining"] = str(max(self.max_requests - state.count, 0))
        response.headers["RateLimit-Reset"] = str(reset_seconds)
        return response
