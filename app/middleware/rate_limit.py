"""Per-client throttling for the unauthenticated routes.

Login, registration and the public link routes can be reached without a
token, so each is given a fixed-window budget per client IP. Counters live
in process memory; a multi-worker deployment gets one budget per worker.
"""

import logging
import re
import time
from dataclasses import dataclass
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

logger = logging.getLogger(__name__)

_UUID = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.IGNORECASE
)
_PUBLIC_TOKEN = re.compile(r"^(/api/v1/public-link/)[^/]+")

TOO_MANY_REQUESTS = "Too many requests. Please try again later."


@dataclass(frozen=True)
class RateLimitConfig:
    """Allowed number of requests per window."""

    requests: int
    window_seconds: int


@dataclass
class _Window:
    started: float
    hits: int = 0


DEFAULT_RATE_LIMITS: dict[tuple[str, str], RateLimitConfig] = {
    ("POST", "/api/v1/auth/login"): RateLimitConfig(requests=5, window_seconds=60),
    ("POST", "/api/v1/auth/register"): RateLimitConfig(requests=5, window_seconds=60),
    # Token guessing shows up as many GETs on distinct tokens
    ("GET", "/api/v1/public-link/{token}"): RateLimitConfig(requests=60, window_seconds=60),
    ("POST", "/api/v1/public-link/{token}/submit"): RateLimitConfig(
        requests=10, window_seconds=3600
    ),
}


def client_address(request: Request) -> str:
    """First hop of X-Forwarded-For, else the socket peer."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def normalize_path(path: str) -> str:
    """Replace UUIDs with ``{id}`` and public link tokens with ``{token}``."""
    return _UUID.sub("{id}", _PUBLIC_TOKEN.sub(r"\1{token}", path))


class InMemoryRateLimitStorage:
    """Fixed windows keyed by an arbitrary string.

    Windows idle for longer than ``retention_seconds`` are pruned at most once
    every ``prune_every`` seconds.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        retention_seconds: int = 3600,
        prune_every: int = 300,
    ) -> None:
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._retention = retention_seconds
        self._prune_every = prune_every
        self._last_prune = clock()

    def _prune(self, now: float) -> None:
        if now - self._last_prune < self._prune_every:
            return
        stale = [k for k, w in self._windows.items() if now - w.started > self._retention]
        for key in stale:
            del self._windows[key]
        self._last_prune = now

    def check_and_increment(
        self, key: str, limit: int, window_seconds: int
    ) -> tuple[bool, int, int]:
        """Count one request against ``key``.

        Returns ``(allowed, remaining, seconds_until_reset)``. A denied
        request is not counted.
        """
        now = self._clock()
        self._prune(now)

        window = self._windows.get(key)
        if window is None or now - window.started > window_seconds:
            window = self._windows[key] = _Window(started=now)

        reset = int(window_seconds - (now - window.started))
        if window.hits >= limit:
            return False, 0, reset

        window.hits += 1
        return True, limit - window.hits, reset


def _too_many_requests(config: RateLimitConfig, reset: int) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={"detail": TOO_MANY_REQUESTS, "retry_after": reset},
        headers={
            "Retry-After": str(reset),
            "X-RateLimit-Limit": str(config.requests),
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": str(reset),
        },
    )


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Answers 429 once a client exhausts the budget of a configured route.

    Routes without a rule pass through untouched. Allowed responses carry
    ``X-RateLimit-*`` headers.
    """

    def __init__(
        self,
        app,
        rate_limits: dict[tuple[str, str], RateLimitConfig] | None = None,
        storage: InMemoryRateLimitStorage | None = None,
        enabled: bool = True,
    ) -> None:
        super().__init__(app)
        self.rate_limits = rate_limits or DEFAULT_RATE_LIMITS
        self.storage = storage or InMemoryRateLimitStorage()
        self.enabled = enabled

    async def dispatch(self, request: Request, call_next) -> Response:
        if not self.enabled:
            return await call_next(request)

        route = normalize_path(request.url.path)
        config = self.rate_limits.get((request.method, route))
        if config is None:
            return await call_next(request)

        client = client_address(request)
        allowed, remaining, reset = self.storage.check_and_increment(
            f"{request.method}:{route}:{client}", config.requests, config.window_seconds
        )
        if not allowed:
            logger.warning(f"Rate limit exceeded: {request.method} {route} from {client}")
            return _too_many_requests(config, reset)

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(config.requests)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        response.headers["X-RateLimit-Reset"] = str(reset)
        return response
