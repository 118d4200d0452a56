"""
core/metrics.py -- Shared visit counter for the static file server.

The counter is created once in the API lifespan and stored on app.state, so
routes and middleware receive it explicitly instead of reaching for a global.
Increments happen on worker threads (FastAPI runs sync handlers in a thread
pool), so every operation takes the lock.

Reset authorization is not decided here: the admin route only calls reset()
when Settings.is_dev is true.
"""

from __future__ import annotations

import threading


class VisitCounter:
    """Thread-safe integer counter with increment, read and reset."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._hits = 0

    def increment(self) -> int:
        with self._lock:
            self._hits += 1
            return self._hits

    @property
    def value(self) -> int:
        with self._lock:
            return self._hits

    def reset(self) -> None:
        with self._lock:
            self._hits = 0
