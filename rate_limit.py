# rate_limit.py
"""
Fixed-window request counter keyed by client identity.

State lives in a RateLimiter instance owned by the serving process
(app.state.rate_limiter). It is per-instance and in-memory only: several
workers or replicas each count on their own.

A burst straddling a window boundary can admit up to 2 x limit requests.
That is how fixed windows behave.
"""
import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


def _now_ms() -> float:
    return time.time() * 1000.0


@dataclass
class RateBucket:
    count: int
    window_end: float  # epoch ms


@dataclass(frozen=True)
class AdmissionResult:
    admitted: bool
    remaining: int
    window_end: float

    def retry_after_seconds(self, now_ms: Optional[float] = None) -> int:
        now = _now_ms() if now_ms is None else now_ms
        return max(1, math.ceil((self.window_end - now) / 1000.0))


class RateLimiter:
    def __init__(self, clock: Optional[Callable[[], float]] = None, sweep_interval_ms: int = 0):
        self._clock = clock or _now_ms
        self._buckets: Dict[str, RateBucket] = {}
        self._locks: Dict[str, threading.Lock] = {}
        # guards creation/removal of entries; per-identity updates use _locks
        self._registry_lock = threading.Lock()
        self._sweep_interval_ms = sweep_interval_ms
        self._last_sweep = self._clock()

    def __len__(self) -> int:
        return len(self._buckets)

    def now(self) -> float:
        return self._clock()

    def get(self, identity: str) -> Optional[RateBucket]:
        return self._buckets.get(identity)

    def _lock_for(self, identity: str) -> threading.Lock:
        lock = self._locks.get(identity)
        if lock is None:
            with self._registry_lock:
                lock = self._locks.setdefault(identity, threading.Lock())
        return lock

    def admit(self, identity: str, limit: int, window_ms: int) -> AdmissionResult:
        if limit <= 0 or window_ms <= 0:
            raise ValueError("limit and window_ms must be positive integers")

        self._maybe_sweep()

        while True:
            lock = self._lock_for(identity)
            with lock:
                # a concurrent sweep may have retired this lock
                if self._locks.get(identity) is not lock:
                    continue
                return self._admit_locked(identity, limit, window_ms)

    def _admit_locked(self, identity: str, limit: int, window_ms: int) -> AdmissionResult:
        now = self._clock()
        bucket = self._buckets.get(identity)

        # new window
        if bucket is None or now > bucket.window_end:
            bucket = RateBucket(count=1, window_end=now + window_ms)
            with self._registry_lock:
                self._buckets[identity] = bucket
            return AdmissionResult(True, limit - 1, bucket.window_end)

        # exceeded: rejected attempts consume nothing
        if bucket.count >= limit:
            logger.warning(
                "Rate limit hit for %s (limit=%d, window ends at %.0f)",
                identity, limit, bucket.window_end,
            )
            return AdmissionResult(False, 0, bucket.window_end)

        bucket.count += 1
        return AdmissionResult(True, max(0, limit - bucket.count), bucket.window_end)

    def sweep(self, grace_ms: float = 0) -> int:
        """Drop buckets whose window ended more than ``grace_ms`` ago.

        Returns the number of identities removed.
        """
        cutoff = self._clock() - grace_ms
        removed = 0
        with self._registry_lock:
            for identity in [k for k, b in self._buckets.items() if b.window_end < cutoff]:
                lock = self._locks.get(identity)
                # skip identities mid-update; they get picked up next time
                if lock is not None and not lock.acquire(blocking=False):
                    continue
                try:
                    bucket = self._buckets.get(identity)
                    if bucket is not None and bucket.window_end < cutoff:
                        del self._buckets[identity]
                        self._locks.pop(identity, None)
                        removed += 1
                finally:
                    if lock is not None:
                        lock.release()
        if removed:
            logger.debug("Swept %d stale rate-limit buckets", removed)
        return removed

    def _maybe_sweep(self) -> None:
        if self._sweep_interval_ms <= 0:
            return
        now = self._clock()
        if now - self._last_sweep < self._sweep_interval_ms:
            return
        self._last_sweep = now
        self.sweep()

    def reset(self) -> None:
        with self._registry_lock:
            self._buckets.clear()
            self._locks.clear()
