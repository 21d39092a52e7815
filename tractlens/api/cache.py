"""In-memory TTL cache for Census fetch results."""

from __future__ import annotations

import os
import threading
import time
from functools import wraps
from typing import Any, Callable

DEFAULT_TTL = int(os.getenv("TRACTLENS_CACHE_TTL", "3600"))
MAX_ENTRIES = int(os.getenv("TRACTLENS_CACHE_MAX_ENTRIES", "256"))

_cache: dict[tuple, tuple[float, Any]] = {}
_lock = threading.Lock()


def cached(ttl: int = DEFAULT_TTL):
    """Memoise a function's return value for *ttl* seconds.

    Keys combine the qualified function name and its arguments, which must
    be hashable. Exceptions are never cached, so a failed fetch is retried
    on the next call.
    """
    def decorator(func: Callable) -> Callable:
        name = f"{func.__module__}.{func.__qualname__}"

        @wraps(func)
        def wrapper(*args, **kwargs):
            key = (name, args, tuple(sorted(kwargs.items())))
            now = time.monotonic()
            with _lock:
                hit = _cache.get(key)
            if hit is not None and now < hit[0]:
                return hit[1]
            result = func(*args, **kwargs)
            with _lock:
                _evict(now)
                _cache[key] = (now + ttl, result)
            return result
        return wrapper
    return decorator


def _evict(now: float) -> None:
    """Drop expired entries, then the soonest-expiring ones above MAX_ENTRIES.

    Caller holds the lock.
    """
    for key in [k for k, (expires, _) in _cache.items() if expires <= now]:
        del _cache[key]
    overflow = len(_cache) - MAX_ENTRIES + 1
    if overflow > 0:
        for key in sorted(_cache, key=lambda k: _cache[k][0])[:overflow]:
            del _cache[key]


def cache_size() -> int:
    with _lock:
        return len(_cache)


def clear_cache() -> int:
    """Flush the entire cache. Returns the number of evicted entries."""
    with _lock:
        count = len(_cache)
        _cache.clear()
    return count
