"""Circuit breaker that opens on sustained failures, tracked over a rolling window."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field, replace
from enum import IntEnum
from typing import Any, Callable, Optional

from scifind.errors import new_circuit_breaker_error

Clock = Callable[[], float]
StateCallback = Callable[["CircuitBreakerState", "CircuitBreakerState"], None]

_BUCKET_COUNT = 10


class CircuitBreakerState(IntEnum):
    """The state a circuit breaker is in."""

    CLOSED = 0
    HALF_OPEN = 1
    OPEN = 2

    def __str__(self) -> str:
        return {
            CircuitBreakerState.CLOSED: "closed",
            CircuitBreakerState.HALF_OPEN: "half_open",
            CircuitBreakerState.OPEN: "open",
        }[self]


@dataclass
class CircuitBreakerConfig:
    """Breaker parameters; ``timeout`` and ``sliding_window`` are in seconds."""

    name: str = ""
    failure_threshold: int = 5
    success_threshold: int = 1
    timeout: float = 60.0
    max_requests: int = 1
    expected_failure_rate: float = 0.0
    min_request_count: int = 0
    sliding_window: float = 60.0


@dataclass
class CircuitBreakerMetrics:
    """Operational counters of a circuit breaker."""

    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    timeout_requests: int = 0
    circuit_open_requests: int = 0
    last_failure_time: int = 0
    last_success_time: int = 0
    state_changes: int = 0
    current_failure_rate: float = 0.0


@dataclass
class _TimeBucket:
    timestamp: float
    failures: int = 0
    requests: int = 0


class RollingWindow:
    """Counts requests and failures over a sliding time window."""

    def __init__(self, window: float, clock: Clock = time.monotonic) -> None:
        self.window = window
        self._clock = clock
        self._lock = threading.Lock()
        self._current = 0
        now = clock()
        self._buckets = [
            _TimeBucket(timestamp=now - window + i * window / _BUCKET_COUNT)
            for i in range(_BUCKET_COUNT)
        ]

    def record(self, is_failure: bool) -> None:
        """Count one request, as a failure when ``is_failure`` is true."""
        with self._lock:
            now = self._clock()
            self._evict_old_buckets(now)
            bucket = self._current_bucket(now)
            bucket.requests += 1
            if is_failure:
                bucket.failures += 1

    def failure_count(self) -> int:
        with self._lock:
            self._evict_old_buckets(self._clock())
            return sum(bucket.failures for bucket in self._buckets)

    def total_count(self) -> int:
        with self._lock:
            self._evict_old_buckets(self._clock())
            return sum(bucket.requests for bucket in self._buckets)

    def success_count(self) -> int:
        return self.total_count() - self.failure_count()

    def _evict_old_buckets(self, now: float) -> None:
        cutoff = now - self.window
        for index, bucket in enumerate(self._buckets):
            if bucket.timestamp < cutoff:
                self._buckets[index] = _TimeBucket(timestamp=now)

    def _current_bucket(self, now: float) -> _TimeBucket:
        threshold = now - self.window / len(self._buckets)
        for bucket in self._buckets:
            if bucket.timestamp > threshold:
                return bucket
        bucket = _TimeBucket(timestamp=now)
        self._buckets[self._current] = bucket
        self._current = (self._current + 1) % len(self._buckets)
        return bucket


class CircuitBreaker:
    """Guards calls to a dependency, rejecting them while the circuit is open."""

    def __init__(
        self,
        config: CircuitBreakerConfig,
        logger: Optional[logging.Logger] = None,
        clock: Clock = time.monotonic,
    ) -> None:
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self._clock = clock
        self._state = CircuitBreakerState.CLOSED
        self._metrics = CircuitBreakerMetrics()
        self._failures = RollingWindow(config.sliding_window, clock)
        self._lock = threading.RLock()
        self._state_changed = clock()
        self._on_state_change: Optional[StateCallback] = None

    def execute(self, fn: Callable[[], Any]) -> Any:
        """Call ``fn`` under protection and return its result.

        Raises a CIRCUIT_OPEN SciFindError when the call is not allowed;
        exceptions from ``fn`` are recorded as failures and re-raised.
        """
        if not self.allow():
            with self._lock:
                self._metrics.circuit_open_requests += 1
            raise new_circuit_breaker_error(self.config.name)

        start = self._clock()
        try:
            result = fn()
        except Exception:
            self.record(False, self._clock() - start)
            raise
        self.record(True, self._clock() - start)
        return result

    def allow(self) -> bool:
        """Whether a request may go through now."""
        with self._lock:
            if self._state == CircuitBreakerState.CLOSED:
                return True
            if self._state == CircuitBreakerState.OPEN:
                return self._clock() - self._state_changed >= self.config.timeout
            if self._state == CircuitBreakerState.HALF_OPEN:
                return self._metrics.total_requests < self.config.max_requests
            return False

    def record(self, success: bool, duration: float) -> None:
        """Record the outcome of a request that took ``duration`` seconds."""
        with self._lock:
            now = int(time.time())
            self._metrics.total_requests += 1
            if success:
                self._metrics.successful_requests += 1
                self._metrics.last_success_time = now
                self._on_success()
            else:
                self._metrics.failed_requests += 1
                self._metrics.last_failure_time = now
                self._on_failure()

            self._failures.record(not success)
            self._update_failure_rate()
            self._evaluate_state_change()

            self.logger.debug(
                "Circuit breaker recorded result: name=%s success=%s duration=%.6fs "
                "state=%s failure_rate=%.4f",
                self.config.name,
                success,
                duration,
                self._state,
                self._metrics.current_failure_rate,
            )

    def _on_success(self) -> None:
        if self._state == CircuitBreakerState.HALF_OPEN:
            if self._failures.success_count() >= self.config.success_threshold:
                self._set_state(CircuitBreakerState.CLOSED)

    def _on_failure(self) -> None:
        if self._state == CircuitBreakerState.HALF_OPEN:
            self._set_state(CircuitBreakerState.OPEN)

    def _update_failure_rate(self) -> None:
        total = self._failures.total_count()
        if total > 0:
            self._metrics.current_failure_rate = self._failures.failure_count() / total

    def _evaluate_state_change(self) -> None:
        if self._state != CircuitBreakerState.CLOSED:
            return
        if self._failures.total_count() < self.config.min_request_count:
            return
        if self._metrics.current_failure_rate > self.config.expected_failure_rate:
            if self._failures.failure_count() >= self.config.failure_threshold:
                self._set_state(CircuitBreakerState.OPEN)

    def _set_state(self, new_state: CircuitBreakerState) -> None:
        old_state = self._state
        self._state = new_state
        self._state_changed = self._clock()
        self._metrics.state_changes += 1
        if self._on_state_change is not None:
            self._on_state_change(old_state, new_state)
        self.logger.info(
            "Circuit breaker state changed: name=%s from=%s to=%s failure_rate=%.4f",
            self.config.name,
            old_state,
            new_state,
            self._metrics.current_failure_rate,
        )

    def metrics(self) -> CircuitBreakerMetrics:
        """A snapshot of the current metrics."""
        with self._lock:
            return replace(self._metrics)

    def state(self) -> CircuitBreakerState:
        with self._lock:
            return self._state

    def set_on_state_change(self, callback: Optional[StateCallback]) -> None:
        """Register ``callback(from_state, to_state)`` for state transitions."""
        self._on_state_change = callback


@dataclass
class CircuitBreakerManager:
    """Keeps one circuit breaker per name."""

    logger: Optional[logging.Logger] = None
    clock: Clock = time.monotonic
    _breakers: dict[str, CircuitBreaker] = field(default_factory=dict, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def get_or_create(self, name: str, config: CircuitBreakerConfig) -> CircuitBreaker:
        """Return the breaker named ``name``, creating it from ``config`` if absent."""
        with self._lock:
            breaker = self._breakers.get(name)
            if breaker is None:
                breaker = CircuitBreaker(replace(config, name=name), self.logger, self.clock)
                self._breakers[name] = breaker
            return breaker

    def get(self, name: str) -> Optional[CircuitBreaker]:
        with self._lock:
            return self._breakers.get(name)

    def all(self) -> dict[str, CircuitBreaker]:
        with self._lock:
            return dict(self._breakers)

    def metrics(self) -> dict[str, CircuitBreakerMetrics]:
        with self._lock:
            breakers = dict(self._breakers)
        return {name: breaker.metrics() for name, breaker in breakers.items()}