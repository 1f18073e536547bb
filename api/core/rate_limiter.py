"""In-process, per-IP fixed-window limiter for the login and register posts."""
from __future__ import annotations

import logging
import math
import threading
import time
from typing import Dict, Tuple

from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)


class _RateLimiter:
    def __init__(self) -> None:
        # key -> (hits in window, window end)
        self._windows: Dict[str, Tuple[int, float]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._windows)

    def _prune(self, now: float) -> None:
        expired = [key for key, (_, ends_at) in self._windows.items() if ends_at < now]
        for key in expired:
            del self._windows[key]

    def hit(self, key: str, limit: int, window_seconds: int, now: float | None = None) -> None:
        now = time.time() if now is None else now
        with self._lock:
            self._prune(now)
            hits, ends_at = self._windows.get(key, (0, now + window_seconds))
            if now > ends_at:
                hits, ends_at = 0, now + window_seconds
            hits += 1
            self._windows[key] = (hits, ends_at)
        if hits <= limit:
            return
        retry_after = max(1, math.ceil(ends_at - now))
        logger.warning("Rate limit hit for %s (%d requests, retry in %ss)", key, hits, retry_after)
        raise HTTPException(
            429,
            "Too many requests. Please try again shortly.",
            headers={"Retry-After": str(retry_after)},
        )

    def clear(self) -> None:
        with self._lock:
            self._windows.clear()


_limiter = _RateLimiter()


def _client_ip(request: Request) -> str:
    forwarded = (request.headers.get("x-forwarded-for") or "").split(",")[0].strip()
    if forwarded:
        return forwarded
    return request.client.host if request.client and request.client.host else "unknown"


def rate_limit_ip(request: Request, scope: str, *, limit: int, window_seconds: int) -> None:
    _limiter.hit(f"{scope}:{_client_ip(request)}", limit, window_seconds)


def reset_limits() -> None:
    """Forget every window (tests)."""
    _limiter.clear()
