import logging
import time
from collections import defaultdict, deque
from typing import Optional

import redis
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from kernelpanel.core.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

UNLIMITED_PATHS = {"/api/v1/health"}


class SlidingWindowStore:
    def __init__(self) -> None:
        self._buckets: dict[str, deque[float]] = defaultdict(deque)

    def _trim(self, key: str, window_seconds: int) -> deque[float]:
        bucket = self._buckets[key]
        threshold = time.time() - window_seconds
        while bucket and bucket[0] < threshold:
            bucket.popleft()
        return bucket

    def count(self, key: str, window_seconds: int) -> int:
        return len(self._trim(key, window_seconds))

    def add(self, key: str, window_seconds: int) -> int:
        bucket = self._trim(key, window_seconds)
        bucket.append(time.time())
        return len(bucket)

    def clear(self, key: str) -> None:
        self._buckets.pop(key, None)


class WindowCounter:
    """Counts hits per key inside a fixed window.

    Uses Redis when a URL is configured and reachable, so several API workers
    share one budget; otherwise falls back to a per-process sliding window.
    """

    def __init__(self, namespace: str, window_seconds: int, redis_url: str = "") -> None:
        self.namespace = namespace
        self.window_seconds = window_seconds
        self.redis_client: Optional[redis.Redis] = None
        self.memory_store = SlidingWindowStore()
        if redis_url:
            try:
                self.redis_client = redis.from_url(redis_url, decode_responses=True)
                self.redis_client.ping()
            except redis.RedisError as exc:
                logger.warning("Redis unavailable for %s counters, using memory: %s", namespace, exc)
                self.redis_client = None

    def _redis_key(self, key: str) -> str:
        return f"{self.namespace}:{key}:{int(time.time() // self.window_seconds)}"

    def count(self, key: str) -> int:
        if self.redis_client is not None:
            return int(self.redis_client.get(self._redis_key(key)) or 0)
        return self.memory_store.count(key, self.window_seconds)

    def hit(self, key: str) -> int:
        if self.redis_client is not None:
            redis_key = self._redis_key(key)
            current = self.redis_client.incr(redis_key)
            if current == 1:
                self.redis_client.expire(redis_key, self.window_seconds)
            return current
        return self.memory_store.add(key, self.window_seconds)

    def clear(self, key: str) -> None:
        if self.redis_client is not None:
            self.redis_client.delete(self._redis_key(key))
            return
        self.memory_store.clear(key)


class LoginThrottle:
    def __init__(self, counter: WindowCounter, max_failures: int) -> None:
        self.counter = counter
        self.max_failures = max_failures

    @staticmethod
    def key(client_host: str, username: str) -> str:
        return f"{client_host}:{username.lower()}"

    def is_locked(self, key: str) -> bool:
        return self.counter.count(key) >= self.max_failures

    def record_failure(self, key: str) -> None:
        failures = self.counter.hit(key)
        if failures >= self.max_failures:
            logger.warning("Login locked for %s after %d failed attempts", key, failures)

    def record_success(self, key: str) -> None:
        self.counter.clear(key)


api_counter = WindowCounter("rl", 60, settings.redis_url)
login_throttle = LoginThrottle(
    WindowCounter("login", settings.login_failure_window_seconds, settings.redis_url),
    settings.login_max_failures,
)


class RateLimitMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        if request.url.path in UNLIMITED_PATHS:
            return await call_next(request)

        client_host = request.client.host if request.client else "unknown"
        auth_marker = request.headers.get("authorization") or client_host
        key = f"{client_host}:{request.url.path}:{hash(auth_marker)}"
        if api_counter.hit(key) > settings.rate_limit_per_minute:
            return JSONResponse(status_code=429, content={"error": "rate_limit_exceeded"})

        return await call_next(request)
