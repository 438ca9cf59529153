import time
import logging
import threading
from typing import Any, Callable, Dict, NamedTuple, Optional

from .config import Settings
from .exceptions import RateLimitExceeded

logger = logging.getLogger(__name__)


class ConsumeResult(NamedTuple):
    admitted: bool
    remaining: int


class BucketRetired(Exception):
    """The bucket was evicted from its registry; resolve the client again."""


class TokenBucket:
    """Fixed-window token bucket for a single client.

    Tokens are never trickled back in. The first consume attempt made at
    least ``refill_interval`` seconds after ``window_start`` opens a new
    window and resets the bucket to full capacity. A client can therefore
    spend ``capacity`` tokens at the end of one window and ``capacity`` more
    right after the rollover.
    """

    def __init__(self, capacity: int, refill_interval: float, now: float):
        self.capacity = capacity
        self.refill_interval = refill_interval
        self.available_tokens = capacity
        self.window_start = now
        self.last_seen = now
        self.retired = False
        self.lock = threading.Lock()

    def try_consume(self, now: float) -> ConsumeResult:
        """Roll the window if it has expired, then spend one token if any are left"""
        with self.lock:
            if self.retired:
                raise BucketRetired()
            # A caller may have read the clock before another caller that
            # got the lock first; last_seen never moves backwards.
            self.last_seen = max(self.last_seen, now)
            if now - self.window_start >= self.refill_interval:
                self.window_start = now
                self.available_tokens = self.capacity
            if self.available_tokens > 0:
                self.available_tokens -= 1
                return ConsumeResult(True, self.available_tokens)
            return ConsumeResult(False, 0)

    def retire_if_idle(self, now: float, idle_ttl: float) -> bool:
        """Mark the bucket retired if it is idle and its window has expired"""
        with self.lock:
            if now - self.last_seen < idle_ttl:
                return False
            # A fresh bucket must never replace one whose window is still open
            if now - self.window_start < self.refill_interval:
                return False
            self.retired = True
            return True


class BucketRegistry:
    """Maps client identities to their token buckets.

    Buckets are created on first sight. Lookups of known clients do not take
    the registry lock; creation and eviction do, so at most one live bucket
    exists per client.

    Every ``now`` passed in must come from the same timebase as ``clock``.
    The sweep timer starts at the first bucket creation, so a registry
    driven only by explicit ``now`` values sweeps on that timebase.
    """

    def __init__(
        self,
        capacity: int,
        refill_interval: float,
        idle_ttl: Optional[float] = None,
        sweep_interval: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if idle_ttl is not None and idle_ttl < refill_interval:
            raise ValueError("idle_ttl must be at least refill_interval")
        self.capacity = capacity
        self.refill_interval = refill_interval
        self.idle_ttl = idle_ttl
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._buckets: Dict[str, TokenBucket] = {}
        self._lock = threading.Lock()
        self._last_sweep: Optional[float] = None

    def resolve(self, client_id: str, now: Optional[float] = None) -> TokenBucket:
        """Return the client's bucket, creating a full one on first sight"""
        bucket = self._buckets.get(client_id)
        if bucket is not None:
            return bucket
        with self._lock:
            bucket = self._buckets.get(client_id)
            if bucket is None:
                now = self._clock() if now is None else now
                bucket = TokenBucket(self.capacity, self.refill_interval, now)
                self._buckets[client_id] = bucket
                if self._last_sweep is None:
                    self._last_sweep = now
            return bucket

    def evict_idle(self, now: Optional[float] = None) -> int:
        """Drop buckets that have not been touched for ``idle_ttl`` seconds"""
        if self.idle_ttl is None:
            return 0
        now = self._clock() if now is None else now
        evicted = 0
        with self._lock:
            for client_id, bucket in list(self._buckets.items()):
                if bucket.retire_if_idle(now, self.idle_ttl):
                    del self._buckets[client_id]
                    evicted += 1
            self._last_sweep = now
        if evicted:
            logger.info(f"Evicted {evicted} idle rate limit buckets, {len(self)} remaining")
        return evicted

    def maybe_evict(self, now: float) -> None:
        """Run an eviction sweep if ``sweep_interval`` has passed since the last one"""
        last_sweep = self._last_sweep
        if self.idle_ttl is None or last_sweep is None or now - last_sweep < self.sweep_interval:
            return
        self.evict_idle(now)

    def clear(self) -> None:
        """Retire and forget every bucket"""
        with self._lock:
            for bucket in self._buckets.values():
                with bucket.lock:
                    bucket.retired = True
            self._buckets.clear()

    def __len__(self) -> int:
        return len(self._buckets)

    def __contains__(self, client_id: str) -> bool:
        return client_id in self._buckets


class RateLimiter:
    """Per-client admission control on top of a bucket registry"""

    def __init__(
        self,
        capacity: int = 3,
        refill_interval: float = 60.0,
        idle_ttl: Optional[float] = None,
        sweep_interval: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.capacity = capacity
        self.refill_interval = refill_interval
        self._clock = clock
        self.registry = BucketRegistry(
            capacity,
            refill_interval,
            idle_ttl=idle_ttl,
            sweep_interval=sweep_interval,
            clock=clock,
        )

    @classmethod
    def from_settings(cls, settings: Settings, clock: Callable[[], float] = time.monotonic) -> "RateLimiter":
        return cls(
            capacity=settings.rate_limit_capacity,
            refill_interval=settings.rate_limit_refill_seconds,
            idle_ttl=settings.rate_limit_idle_ttl_seconds,
            sweep_interval=settings.rate_limit_sweep_interval_seconds,
            clock=clock,
        )

    def check(self, client_id: str, now: Optional[float] = None) -> ConsumeResult:
        """Try to spend one token for ``client_id``"""
        now = self._clock() if now is None else now
        while True:
            bucket = self.registry.resolve(client_id, now)
            try:
                result = bucket.try_consume(now)
                break
            except BucketRetired:
                continue
        self.registry.maybe_evict(now)
        return result

    def admit(self, client_id: str, now: Optional[float] = None) -> int:
        """Spend one token and return the tokens left, or raise RateLimitExceeded"""
        result = self.check(client_id, now)
        if not result.admitted:
            logger.warning(f"Rate limit exceeded for client: {client_id}")
            raise RateLimitExceeded(self.capacity, self.refill_interval)
        return result.remaining

    def get_stats(self) -> Dict[str, Any]:
        """Registry size and limiter configuration"""
        return {
            "total_clients": len(self.registry),
            "capacity": self.capacity,
            "refill_interval_seconds": self.refill_interval,
            "idle_ttl_seconds": self.registry.idle_ttl,
            "sweep_interval_seconds": self.registry.sweep_interval,
        }

    def clear(self) -> None:
        """Forget every client (useful for testing)"""
        self.registry.clear()
