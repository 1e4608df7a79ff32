"""Structured error types, an error builder and predefined error constructors."""

from __future__ import annotations

import re
import traceback
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from fractions import Fraction
from http import HTTPStatus
from typing import Any, Mapping, Optional


class ErrorType(str, Enum):
    """Categories of errors, each implying a handling strategy."""

    TRANSIENT = "transient"
    PERMANENT = "permanent"
    CIRCUIT_BREAKER = "circuit_breaker"
    RATE_LIMIT = "rate_limit"
    AUTH = "authentication"
    VALIDATION = "validation"
    TIMEOUT = "timeout"
    NETWORK = "network"
    RESOURCE = "resource"

    def __str__(self) -> str:
        return self.value


_RETRYABLE_BY_DEFAULT = frozenset(
    {ErrorType.TRANSIENT, ErrorType.TIMEOUT, ErrorType.NETWORK}
)

_STATUS_BY_TYPE = {
    ErrorType.VALIDATION: HTTPStatus.BAD_REQUEST,
    ErrorType.AUTH: HTTPStatus.UNAUTHORIZED,
    ErrorType.RATE_LIMIT: HTTPStatus.TOO_MANY_REQUESTS,
    ErrorType.TIMEOUT: HTTPStatus.REQUEST_TIMEOUT,
    ErrorType.NETWORK: HTTPStatus.SERVICE_UNAVAILABLE,
    ErrorType.TRANSIENT: HTTPStatus.SERVICE_UNAVAILABLE,
    ErrorType.CIRCUIT_BREAKER: HTTPStatus.SERVICE_UNAVAILABLE,
    ErrorType.RESOURCE: HTTPStatus.INSUFFICIENT_STORAGE,
}

_STACK_DEPTH = 32


@dataclass(eq=False)
class SciFindError(Exception):
    """An error carrying a category, a code and contextual details."""

    type: ErrorType
    code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)
    cause: Optional[BaseException] = None
    stack: str = ""
    component: str = ""
    operation: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    request_id: str = ""
    user_id: str = ""
    retryable: bool = False
    status_code: int = 0

    def __post_init__(self) -> None:
        super().__init__(self.message)
        if self.cause is not None:
            self.__cause__ = self.cause

    def __str__(self) -> str:
        return f"[{self.component}:{self.code}] {self.message}"

    def matches(self, other: object) -> bool:
        """True when ``other`` is a SciFindError of the same type and code."""
        return (
            isinstance(other, SciFindError)
            and self.type == other.type
            and self.code == other.code
        )

    def http_status(self) -> int:
        """The HTTP status code appropriate for this error."""
        if self.status_code:
            return self.status_code
        return int(_STATUS_BY_TYPE.get(self.type, HTTPStatus.INTERNAL_SERVER_ERROR))


def _capture_stack() -> str:
    frames = traceback.extract_stack()[:-2]
    frames = list(reversed(frames))[:_STACK_DEPTH]
    return "".join(f"{frame.name}\n\t{frame.filename}:{frame.lineno}\n" for frame in frames)


class ErrorBuilder:
    """Fluent builder for SciFindError instances."""

    def __init__(self, error_type: ErrorType | str, code: str, message: str) -> None:
        kind = ErrorType(error_type)
        self._error = SciFindError(
            type=kind,
            code=code,
            message=message,
            retryable=kind in _RETRYABLE_BY_DEFAULT,
        )

    def with_cause(self, cause: Optional[BaseException]) -> "ErrorBuilder":
        self._error.cause = cause
        return self

    def with_component(self, component: str) -> "ErrorBuilder":
        self._error.component = component
        return self

    def with_operation(self, operation: str) -> "ErrorBuilder":
        self._error.operation = operation
        return self

    def with_detail(self, key: str, value: Any) -> "ErrorBuilder":
        self._error.details[key] = value
        return self

    def with_details(self, details: Optional[Mapping[str, Any]]) -> "ErrorBuilder":
        if details:
            self._error.details.update(details)
        return self

    def with_request_id(self, request_id: str) -> "ErrorBuilder":
        self._error.request_id = request_id
        return self

    def with_user_id(self, user_id: str) -> "ErrorBuilder":
        self._error.user_id = user_id
        return self

    def with_status_code(self, status_code: int) -> "ErrorBuilder":
        self._error.status_code = int(status_code)
        return self

    def with_stack(self) -> "ErrorBuilder":
        self._error.stack = _capture_stack()
        return self

    def retryable(self, retryable: bool) -> "ErrorBuilder":
        self._error.retryable = retryable
        return self

    def build(self) -> SciFindError:
        """Return the constructed error."""
        error = self._error
        error.__cause__ = error.cause
        return error


def new_error(error_type: ErrorType | str, code: str, message: str) -> ErrorBuilder:
    """Start building an error of the given type."""
    return ErrorBuilder(error_type, code, message)


# Durations

_NS_PER_UNIT = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}
_DURATION_PART = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)")
_DURATION_FULL = re.compile(r"(?:(?:\d+\.?\d*|\.\d+)(?:ns|us|µs|μs|ms|s|m|h))+")


def _fraction(value: int, precision: int) -> tuple[str, int]:
    scale = 10**precision
    digits = f"{value % scale:0{precision}d}".rstrip("0")
    return ("." + digits if digits else ""), value // scale


def format_duration(seconds: float) -> str:
    """Render a duration in seconds in the compact form such as ``1m30s`` or ``1.5ms``."""
    ns = round(seconds * 1_000_000_000)
    if ns == 0:
        return "0s"
    sign = "-" if ns < 0 else ""
    u = abs(ns)
    if u < 1_000_000_000:
        if u < 1_000:
            return f"{sign}{u}ns"
        if u < 1_000_000:
            frac, whole = _fraction(u, 3)
            return f"{sign}{whole}{frac}µs"
        frac, whole = _fraction(u, 6)
        return f"{sign}{whole}{frac}ms"
    frac, whole_seconds = _fraction(u, 9)
    text = f"{whole_seconds % 60}{frac}s"
    minutes = whole_seconds // 60
    if minutes > 0:
        text = f"{minutes % 60}m{text}"
        hours = minutes // 60
        if hours > 0:
            text = f"{hours}h{text}"
    return sign + text


def parse_duration(text: str) -> float:
    """Parse a duration such as ``300ms`` or ``1h15m`` into seconds.

    Raises ValueError when the text is not a valid duration.
    """
    original = text
    sign = 1
    if text[:1] in ("+", "-"):
        if text[0] == "-":
            sign = -1
        text = text[1:]
    if text == "0":
        return 0.0
    if not text or not _DURATION_FULL.fullmatch(text):
        raise ValueError(f"invalid duration: {original!r}")
    total = Fraction(0)
    for number, unit in _DURATION_PART.findall(text):
        if number.endswith("."):
            number = number[:-1]
        total += Fraction(number) * _NS_PER_UNIT[unit]
    return sign * int(total) / 1_000_000_000


# Predefined constructors


def new_validation_error(message: str, field: str, value: Any) -> SciFindError:
    return (
        new_error(ErrorType.VALIDATION, "VALIDATION_ERROR", message)
        .with_detail("field", field)
        .with_detail("rejected_value", value)
        .with_status_code(HTTPStatus.BAD_REQUEST)
        .build()
    )


def new_not_found_error(resource: str, resource_id: str) -> SciFindError:
    return (
        new_error(ErrorType.PERMANENT, "NOT_FOUND", f"{resource} not found")
        .with_detail("resource", resource)
        .with_detail("id", resource_id)
        .with_status_code(HTTPStatus.NOT_FOUND)
        .retryable(False)
        .build()
    )


def new_authentication_error(message: str) -> SciFindError:
    return (
        new_error(ErrorType.AUTH, "AUTHENTICATION_FAILED", message)
        .with_status_code(HTTPStatus.UNAUTHORIZED)
        .retryable(False)
        .build()
    )


def new_rate_limit_error(message: str, retry_after: float) -> SciFindError:
    """Rate limit error; ``retry_after`` is in seconds."""
    return (
        new_error(ErrorType.RATE_LIMIT, "RATE_LIMIT_EXCEEDED", message)
        .with_detail("retry_after", format_duration(retry_after))
        .with_status_code(HTTPStatus.TOO_MANY_REQUESTS)
        .build()
    )


def new_timeout_error(operation: str, timeout: float) -> SciFindError:
    """Timeout error; ``timeout`` is in seconds."""
    return (
        new_error(ErrorType.TIMEOUT, "OPERATION_TIMEOUT", f"Operation {operation} timed out")
        .with_operation(operation)
        .with_detail("timeout", format_duration(timeout))
        .with_status_code(HTTPStatus.REQUEST_TIMEOUT)
        .build()
    )


def new_network_error(message: str, cause: Optional[BaseException]) -> SciFindError:
    return (
        new_error(ErrorType.NETWORK, "NETWORK_ERROR", message)
        .with_cause(cause)
        .with_status_code(HTTPStatus.SERVICE_UNAVAILABLE)
        .build()
    )


def new_circuit_breaker_error(service: str) -> SciFindError:
    return (
        new_error(ErrorType.CIRCUIT_BREAKER, "CIRCUIT_OPEN", f"Circuit breaker open for {service}")
        .with_detail("service", service)
        .with_status_code(HTTPStatus.SERVICE_UNAVAILABLE)
        .build()
    )


def new_database_error(operation: str, cause: Optional[BaseException]) -> SciFindError:
    return (
        new_error(ErrorType.TRANSIENT, "DATABASE_ERROR", "Database operation failed")
        .with_operation(operation)
        .with_cause(cause)
        .with_component("database")
        .with_status_code(HTTPStatus.INTERNAL_SERVER_ERROR)
        .build()
    )


def new_provider_error(
    provider: str, message: str, cause: Optional[BaseException]
) -> SciFindError:
    return (
        new_error(ErrorType.TRANSIENT, "PROVIDER_ERROR", message)
        .with_component(f"{provider}_provider")
        .with_cause(cause)
        .with_detail("provider", provider)
        .with_status_code(HTTPStatus.SERVICE_UNAVAILABLE)
        .build()
    )


def new_messaging_error(message: str, details: Optional[Mapping[str, Any]]) -> SciFindError:
    return (
        new_error(ErrorType.TRANSIENT, "MESSAGING_ERROR", message)
        .with_details(details)
        .with_status_code(HTTPStatus.SERVICE_UNAVAILABLE)
        .build()
    )


def new_serialization_error(message: str, data: Any) -> SciFindError:
    return (
        new_error(ErrorType.PERMANENT, "SERIALIZATION_ERROR", message)
        .with_detail("data", data)
        .with_status_code(HTTPStatus.BAD_REQUEST)
        .build()
    )


def new_duplicate_error(message: str, key: str) -> SciFindError:
    return (
        new_error(ErrorType.PERMANENT, "DUPLICATE_ERROR", message)
        .with_detail("key", key)
        .with_status_code(HTTPStatus.CONFLICT)
        .build()
    )


def new_internal_error(message: str, err: Optional[BaseException] = None) -> SciFindError:
    builder = new_error(ErrorType.PERMANENT, "INTERNAL_ERROR", message).with_status_code(
        HTTPStatus.INTERNAL_SERVER_ERROR
    )
    if err is not None:
        builder = builder.with_cause(err)
    return builder.build()


def new_health_check_error(message: str, component: str) -> SciFindError:
    return (
        new_error(ErrorType.TRANSIENT, "HEALTH_CHECK_ERROR", message)
        .with_component(component)
        .with_operation("health_check")
        .with_status_code(HTTPStatus.SERVICE_UNAVAILABLE)
        .build()
    )


def is_duplicate_key_error(err: Optional[BaseException]) -> bool:
    """True when the error text reports a uniqueness violation."""
    if err is None:
        return False
    text = str(err)
    return "duplicate key" in text or "UNIQUE constraint" in text or "already exists" in text


ERR_INVALID_INPUT = new_error(ErrorType.VALIDATION, "INVALID_INPUT", "Invalid input provided").build()
ERR_UNAUTHORIZED = (
    new_error(ErrorType.AUTH, "UNAUTHORIZED", "Authentication required")
    .with_status_code(HTTPStatus.UNAUTHORIZED)
    .build()
)
ERR_FORBIDDEN = (
    new_error(ErrorType.AUTH, "FORBIDDEN", "Access denied")
    .with_status_code(HTTPStatus.FORBIDDEN)
    .build()
)
ERR_INTERNAL = (
    new_error(ErrorType.PERMANENT, "INTERNAL_ERROR", "Internal server error")
    .with_status_code(HTTPStatus.INTERNAL_SERVER_ERROR)
    .build()
)