"""Retry execution with exponential backoff, jitter and error-aware policies."""

from __future__ import annotations

import logging
import random
import threading
import time
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Optional

from scifind.classifier import ErrorClassifier
from scifind.errors import ErrorType, SciFindError, new_error, parse_duration

_JITTER_FRACTION = 0.1

RetryCallback = Callable[[int, BaseException], None]
RetryDecision = Callable[[BaseException, Optional[SciFindError], int], bool]


@dataclass
class RetryConfig:
    """Retry behaviour; delays are in seconds."""

    max_attempts: int = 3
    initial_delay: float = 0.0
    max_delay: float = 0.0
    backoff_factor: float = 1.0
    jitter: bool = False
    retryable_errors: list[ErrorType] = field(default_factory=list)


@dataclass
class RetryStats:
    """Counters describing what a retry executor has done."""

    total_attempts: int = 0
    successful_retries: int = 0
    failed_retries: int = 0
    average_attempts: float = 0.0


@dataclass
class RetryableOperation:
    """An operation together with optional custom retry policy and callback."""

    name: str
    operation: Callable[[], Any]
    should_retry: Optional[Callable[[BaseException], bool]] = None
    on_retry: Optional[RetryCallback] = None


class RetryExecutor:
    """Runs operations, retrying failures according to a RetryConfig."""

    def __init__(
        self,
        config: RetryConfig,
        classifier: Optional[ErrorClassifier] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config
        self.classifier = classifier or ErrorClassifier()
        self.logger = logger or logging.getLogger(__name__)
        self._stats = RetryStats()
        self._lock = threading.Lock()

    def execute(
        self,
        operation: str,
        fn: Callable[[], Any],
        cancel: Optional[threading.Event] = None,
    ) -> Any:
        """Call ``fn`` with retries and return its result.

        Raises a RETRY_EXHAUSTED SciFindError when every allowed attempt failed,
        and InterruptedError when ``cancel`` is set while waiting to retry.
        """
        return self.execute_with_callback(operation, fn, None, cancel)

    def execute_with_callback(
        self,
        operation: str,
        fn: Callable[[], Any],
        on_retry: Optional[RetryCallback] = None,
        cancel: Optional[threading.Event] = None,
    ) -> Any:
        """Like :meth:`execute`, calling ``on_retry(attempt, err)`` before each retry."""
        return self._run(
            operation,
            fn,
            lambda err, classified, attempt: self._should_retry(classified, attempt),
            on_retry,
            cancel,
        )

    def execute_retryable_operation(
        self, op: RetryableOperation, cancel: Optional[threading.Event] = None
    ) -> Any:
        """Run a RetryableOperation, honouring its own retry predicate if it has one."""
        if op.should_retry is not None:
            custom = op.should_retry
            return self._run(
                op.name,
                op.operation,
                lambda err, classified, attempt: custom(err),
                op.on_retry,
                cancel,
            )
        return self.execute_with_callback(op.name, op.operation, op.on_retry, cancel)

    def _run(
        self,
        operation: str,
        fn: Callable[[], Any],
        decide: RetryDecision,
        on_retry: Optional[RetryCallback],
        cancel: Optional[threading.Event],
    ) -> Any:
        if self.config.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        with self._lock:
            self._stats.total_attempts += 1

        last_error: Optional[BaseException] = None
        attempts = 0
        while attempts < self.config.max_attempts:
            attempts += 1
            try:
                result = fn()
            except Exception as err:  # noqa: BLE001 - every failure is a retry candidate
                last_error = err
            else:
                if attempts > 1:
                    with self._lock:
                        self._stats.successful_retries += 1
                        self._update_average_attempts(attempts)
                    self.logger.info(
                        "Operation succeeded after retries: operation=%s attempts=%d",
                        operation,
                        attempts,
                    )
                return result

            classified = self.classifier.classify(last_error)
            if not decide(last_error, classified, attempts):
                break
            if on_retry is not None:
                on_retry(attempts, last_error)

            delay = self.calculate_delay(attempts, classified)
            self.logger.warning(
                "Operation failed, retrying: operation=%s attempt=%d error=%s delay=%.3fs",
                operation,
                attempts,
                last_error,
                delay,
            )
            self._wait(delay, cancel)

        with self._lock:
            self._stats.failed_retries += 1
            self._update_average_attempts(attempts)

        self.logger.error(
            "Operation failed after all retries: operation=%s attempts=%d final_error=%s",
            operation,
            attempts,
            last_error,
        )
        raise (
            new_error(
                ErrorType.PERMANENT,
                "RETRY_EXHAUSTED",
                f"Operation failed after {attempts} attempts",
            )
            .with_cause(last_error)
            .with_component("retry_executor")
            .with_operation(operation)
            .with_detail("attempts", attempts)
            .with_detail("max_attempts", self.config.max_attempts)
            .retryable(False)
            .with_stack()
            .build()
        )

    @staticmethod
    def _wait(delay: float, cancel: Optional[threading.Event]) -> None:
        if cancel is None:
            time.sleep(max(delay, 0.0))
            return
        if cancel.is_set() or cancel.wait(max(delay, 0.0)):
            raise InterruptedError("operation cancelled")

    def _should_retry(self, err: Optional[SciFindError], attempt: int) -> bool:
        if err is None:
            return False
        if attempt >= self.config.max_attempts:
            return False
        if not err.retryable:
            return False
        return err.type in self.config.retryable_errors

    def calculate_delay(self, attempt: int, err: Optional[SciFindError]) -> float:
        """Seconds to wait before the retry following ``attempt``."""
        delay = self.config.initial_delay * self.config.backoff_factor ** (attempt - 1)
        delay = min(delay, self.config.max_delay)

        if err is not None and err.type == ErrorType.RATE_LIMIT:
            retry_after = err.details.get("retry_after")
            if isinstance(retry_after, str):
                try:
                    delay = parse_duration(retry_after)
                except ValueError:
                    pass
            else:
                delay *= 2

        if self.config.jitter:
            delay += random.random() * delay * _JITTER_FRACTION
        return delay

    def _update_average_attempts(self, attempts: int) -> None:
        total = self._stats.successful_retries + self._stats.failed_retries
        if total > 0:
            self._stats.average_attempts = (
                self._stats.average_attempts * (total - 1) + attempts
            ) / total
        else:
            self._stats.average_attempts = float(attempts)

    def stats(self) -> RetryStats:
        """A snapshot of the current statistics."""
        with self._lock:
            return replace(self._stats)

    def reset_stats(self) -> None:
        with self._lock:
            self._stats = RetryStats()


def with_exponential_backoff(
    max_attempts: int, initial_delay: float, max_delay: float
) -> RetryConfig:
    """Doubling delays with jitter; rate limits are retried too."""
    return RetryConfig(
        max_attempts=max_attempts,
        initial_delay=initial_delay,
        max_delay=max_delay,
        backoff_factor=2.0,
        jitter=True,
        retryable_errors=[
            ErrorType.TRANSIENT,
            ErrorType.TIMEOUT,
            ErrorType.NETWORK,
            ErrorType.RATE_LIMIT,
        ],
    )


def with_linear_backoff(max_attempts: int, delay: float) -> RetryConfig:
    """Constant base delay with jitter."""
    return RetryConfig(
        max_attempts=max_attempts,
        initial_delay=delay,
        max_delay=delay * max_attempts,
        backoff_factor=1.0,
        jitter=True,
        retryable_errors=[ErrorType.TRANSIENT, ErrorType.TIMEOUT, ErrorType.NETWORK],
    )


def with_fixed_delay(max_attempts: int, delay: float) -> RetryConfig:
    """The same delay before every retry, without jitter."""
    return RetryConfig(
        max_attempts=max_attempts,
        initial_delay=delay,
        max_delay=delay,
        backoff_factor=1.0,
        jitter=False,
        retryable_errors=[ErrorType.TRANSIENT, ErrorType.TIMEOUT, ErrorType.NETWORK],
    )