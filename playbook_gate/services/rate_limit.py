"""In-memory per-IP rate limiter for the public POST routes."""

import time
from collections import defaultdict

from fastapi import HTTPException, Request


class RateLimiter:
    """Simple sliding window: at most `limit` requests per `window` seconds per IP."""

    def __init__(self, limit: int = 30, window: int = 60):
        self.limit = limit
        self.window = window
        self._buckets: dict[str, list[float]] = defaultdict(list)

    def check(self, request: Request) -> None:
        """Raise 429 if the client IP exceeds the rate limit."""
        ip = request.client.host if request.client else "unknown"
        now = time.monotonic()
        cutoff = now - self.window
        self._buckets[ip] = bucket = [t for t in self._buckets[ip] if t > cutoff]
        if len(bucket) >= self.limit:
            raise HTTPException(status_code=429, detail="Rate limit exceeded")
        bucket.append(now)
