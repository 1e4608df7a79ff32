"""Classification of arbitrary errors into structured SciFindError values."""

from __future__ import annotations

from http import HTTPStatus
from typing import Optional

from scifind.errors import (
    ErrorType,
    SciFindError,
    new_authentication_error,
    new_database_error,
    new_error,
    new_network_error,
    new_provider_error,
)

_TRANSIENT_CODES = frozenset(
    {
        HTTPStatus.INTERNAL_SERVER_ERROR,
        HTTPStatus.BAD_GATEWAY,
        HTTPStatus.SERVICE_UNAVAILABLE,
        HTTPStatus.GATEWAY_TIMEOUT,
    }
)

_PERMANENT_CODES = frozenset(
    {
        HTTPStatus.BAD_REQUEST,
        HTTPStatus.UNAUTHORIZED,
        HTTPStatus.FORBIDDEN,
        HTTPStatus.NOT_FOUND,
        HTTPStatus.METHOD_NOT_ALLOWED,
        HTTPStatus.CONFLICT,
        HTTPStatus.UNPROCESSABLE_ENTITY,
    }
)

_TIMEOUT_PATTERNS = (
    "timeout",
    "deadline exceeded",
    "context canceled",
    "connection reset",
)

_NETWORK_PATTERNS = (
    "connection refused",
    "no such host",
    "network unreachable",
    "connection reset",
    "broken pipe",
    "connection closed",
)

_RATE_LIMIT_PATTERNS = (
    "rate limit",
    "too many requests",
    "quota exceeded",
    "throttled",
)

_DATABASE_PATTERNS = (
    "database",
    "sql",
    "connection pool",
    "deadlock",
    "constraint",
    "foreign key",
    "duplicate key",
    "table doesn't exist",
    "column doesn't exist",
)

_PROVIDER_PATTERNS = {
    "arxiv": ("arxiv", "export.arxiv.org"),
    "semantic_scholar": ("semantic scholar", "semanticscholar.org"),
    "exa": ("exa", "api.exa.ai"),
    "tavily": ("tavily", "api.tavily.com"),
}


def _contains_any(text: str, patterns: tuple[str, ...]) -> bool:
    return any(pattern in text for pattern in patterns)


class ErrorClassifier:
    """Determines an error's type and the strategy for handling it."""

    def __init__(self) -> None:
        self.transient_codes = set(_TRANSIENT_CODES)
        self.permanent_codes = set(_PERMANENT_CODES)
        self.timeout_patterns = _TIMEOUT_PATTERNS
        self.network_patterns = _NETWORK_PATTERNS
        self.rate_limit_patterns = _RATE_LIMIT_PATTERNS

    def _is_timeout(self, text: str) -> bool:
        return _contains_any(text, self.timeout_patterns)

    def _is_network(self, text: str) -> bool:
        return _contains_any(text, self.network_patterns)

    def _is_rate_limit(self, text: str) -> bool:
        return _contains_any(text, self.rate_limit_patterns)

    @staticmethod
    def _is_database(text: str) -> bool:
        return _contains_any(text, _DATABASE_PATTERNS)

    @staticmethod
    def _is_provider_error(text: str, provider: str) -> bool:
        return _contains_any(text, _PROVIDER_PATTERNS.get(provider, ()))

    def classify(self, err: Optional[BaseException]) -> Optional[SciFindError]:
        """Wrap ``err`` in a SciFindError according to its message."""
        if err is None:
            return None
        if isinstance(err, SciFindError):
            return err

        text = str(err).lower()
        if self._is_timeout(text):
            return (
                new_error(ErrorType.TIMEOUT, "OPERATION_TIMEOUT", "Unknown operation timed out")
                .with_cause(err)
                .with_stack()
                .build()
            )
        if self._is_network(text):
            return new_network_error("Network connectivity issue", err)
        if self._is_rate_limit(text):
            return (
                new_error(ErrorType.RATE_LIMIT, "RATE_LIMIT_EXCEEDED", "Rate limit exceeded")
                .with_cause(err)
                .with_stack()
                .build()
            )
        if self._is_database(text):
            return new_database_error("database operation", err)
        return (
            new_error(ErrorType.TRANSIENT, "UNKNOWN", "Unknown error occurred")
            .with_cause(err)
            .with_status_code(HTTPStatus.INTERNAL_SERVER_ERROR)
            .with_stack()
            .retryable(False)
            .build()
        )

    def classify_http_error(self, status_code: int, body: str) -> SciFindError:
        """Classify an HTTP response by its status code."""
        if status_code in self.transient_codes:
            return (
                new_error(ErrorType.TRANSIENT, "HTTP_ERROR", "HTTP request failed")
                .with_detail("status_code", status_code)
                .with_detail("response_body", body)
                .with_status_code(status_code)
                .build()
            )
        if status_code in self.permanent_codes:
            return (
                new_error(ErrorType.PERMANENT, "HTTP_ERROR", "HTTP request failed")
                .with_detail("status_code", status_code)
                .with_detail("response_body", body)
                .with_status_code(status_code)
                .retryable(False)
                .build()
            )
        if status_code == HTTPStatus.TOO_MANY_REQUESTS:
            return (
                new_error(ErrorType.RATE_LIMIT, "HTTP_RATE_LIMIT", "HTTP rate limit exceeded")
                .with_detail("status_code", status_code)
                .with_detail("response_body", body)
                .build()
            )
        if status_code == HTTPStatus.REQUEST_TIMEOUT:
            return (
                new_error(ErrorType.TIMEOUT, "HTTP_TIMEOUT", "HTTP request timed out")
                .with_detail("status_code", status_code)
                .with_detail("response_body", body)
                .build()
            )
        return (
            new_error(ErrorType.TRANSIENT, "HTTP_ERROR", "HTTP request failed")
            .with_detail("status_code", status_code)
            .with_detail("response_body", body)
            .with_status_code(status_code)
            .build()
        )

    def classify_provider_error(
        self, provider: str, err: Optional[BaseException]
    ) -> Optional[SciFindError]:
        """Classify an error raised while talking to a named search provider."""
        if err is None:
            return None
        text = str(err).lower()
        handlers = {
            "arxiv": self._classify_arxiv,
            "semantic_scholar": self._classify_semantic_scholar,
            "exa": self._classify_exa,
            "tavily": self._classify_tavily,
        }
        handler = handlers.get(provider)
        if handler is None:
            return new_provider_error(provider, "Provider error occurred", err)
        return handler(err, text)

    def _classify_arxiv(self, err: BaseException, text: str) -> SciFindError:
        if "rate limit" in text or "429" in text:
            return (
                new_error(ErrorType.RATE_LIMIT, "ARXIV_RATE_LIMIT", "ArXiv API rate limit exceeded")
                .with_component("arxiv_provider")
                .with_cause(err)
                .with_detail("rate_limit", "1 request per 3 seconds")
                .with_stack()
                .build()
            )
        if self._is_timeout(text):
            return (
                new_error(ErrorType.TIMEOUT, "ARXIV_TIMEOUT", "ArXiv API request timed out")
                .with_component("arxiv_provider")
                .with_cause(err)
                .with_stack()
                .build()
            )
        if self._is_network(text):
            return new_network_error("Failed to connect to ArXiv API", err)
        return new_provider_error("arxiv", "ArXiv API error", err)

    def _classify_semantic_scholar(self, err: BaseException, text: str) -> SciFindError:
        if "quota exceeded" in text or "rate limit" in text:
            return (
                new_error(
                    ErrorType.RATE_LIMIT,
                    "SS_RATE_LIMIT",
                    "Semantic Scholar API rate limit exceeded",
                )
                .with_component("semantic_scholar_provider")
                .with_cause(err)
                .with_stack()
                .build()
            )
        if "unauthorized" in text or "401" in text:
            return new_authentication_error("Semantic Scholar API authentication failed")
        return new_provider_error("semantic_scholar", "Semantic Scholar API error", err)

    def _classify_exa(self, err: BaseException, text: str) -> SciFindError:
        if "insufficient credits" in text:
            return (
                new_error(
                    ErrorType.RESOURCE,
                    "EXA_INSUFFICIENT_CREDITS",
                    "Exa API insufficient credits",
                )
                .with_component("exa_provider")
                .with_cause(err)
                .with_status_code(HTTPStatus.PAYMENT_REQUIRED)
                .with_detail("action_required", "check billing and credit balance")
                .retryable(False)
                .with_stack()
                .build()
            )
        if "invalid api key" in text:
            return new_authentication_error("Exa API key is invalid")
        return new_provider_error("exa", "Exa API error", err)

    def _classify_tavily(self, err: BaseException, text: str) -> SciFindError:
        if self._is_rate_limit(text):
            return (
                new_error(ErrorType.RATE_LIMIT, "TAVILY_RATE_LIMIT", "Tavily API rate limit exceeded")
                .with_component("tavily_provider")
                .with_cause(err)
                .with_stack()
                .build()
            )
        return new_provider_error("tavily", "Tavily API error", err)


def _error_type_of(err: BaseException) -> ErrorType:
    if isinstance(err, SciFindError):
        return err.type
    classified = ErrorClassifier().classify(err)
    assert classified is not None
    return classified.type


def is_timeout_error(err: Optional[BaseException]) -> bool:
    """True when the error is, or classifies as, a timeout."""
    return err is not None and _error_type_of(err) == ErrorType.TIMEOUT


def is_rate_limit_error(err: Optional[BaseException]) -> bool:
    """True when the error is, or classifies as, a rate limit."""
    return err is not None and _error_type_of(err) == ErrorType.RATE_LIMIT


def is_network_error(err: Optional[BaseException]) -> bool:
    """True when the error is, or classifies as, a network failure."""
    return err is not None and _error_type_of(err) == ErrorType.NETWORK


def is_validation_error(err: Optional[BaseException]) -> bool:
    """True when the error is a validation error."""
    return err is not None and _error_type_of(err) == ErrorType.VALIDATION