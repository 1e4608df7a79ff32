from http import HTTPStatus

import pytest

from scifind.errors import (
    ERR_FORBIDDEN,
    ERR_INTERNAL,
    ERR_INVALID_INPUT,
    ErrorType,
    SciFindError,
    format_duration,
    is_duplicate_key_error,
    new_authentication_error,
    new_circuit_breaker_error,
    new_database_error,
    new_duplicate_error,
    new_error,
    new_health_check_error,
    new_internal_error,
    new_messaging_error,
    new_network_error,
    new_not_found_error,
    new_provider_error,
    new_rate_limit_error,
    new_serialization_error,
    new_timeout_error,
    new_validation_error,
    parse_duration,
)


@pytest.mark.parametrize(
    "kind, expected",
    [
        (ErrorType.TRANSIENT, True),
        (ErrorType.TIMEOUT, True),
        (ErrorType.NETWORK, True),
        (ErrorType.PERMANENT, False),
        (ErrorType.RATE_LIMIT, False),
        (ErrorType.AUTH, False),
        (ErrorType.VALIDATION, False),
        (ErrorType.RESOURCE, False),
        (ErrorType.CIRCUIT_BREAKER, False),
    ],
)
def test_default_retryable(kind, expected):
    assert new_error(kind, "X", "m").build().retryable is expected


def test_error_string_format():
    err = new_database_error("insert", ValueError("boom"))
    assert str(err) == "[database:DATABASE_ERROR] Database operation failed"


def test_error_is_exception_and_raisable():
    err = new_authentication_error("bad credentials")
    assert err.type is ErrorType.AUTH
    assert err.code == "AUTHENTICATION_FAILED"
    assert err.http_status() == HTTPStatus.UNAUTHORIZED
    with pytest.raises(SciFindError, match="bad credentials"):
        raise err


@pytest.mark.parametrize(
    "kind, status",
    [
        (ErrorType.VALIDATION, HTTPStatus.BAD_REQUEST),
        (ErrorType.AUTH, HTTPStatus.UNAUTHORIZED),
        (ErrorType.RATE_LIMIT, HTTPStatus.TOO_MANY_REQUESTS),
        (ErrorType.TIMEOUT, HTTPStatus.REQUEST_TIMEOUT),
        (ErrorType.NETWORK, HTTPStatus.SERVICE_UNAVAILABLE),
        (ErrorType.TRANSIENT, HTTPStatus.SERVICE_UNAVAILABLE),
        (ErrorType.CIRCUIT_BREAKER, HTTPStatus.SERVICE_UNAVAILABLE),
        (ErrorType.RESOURCE, HTTPStatus.INSUFFICIENT_STORAGE),
        (ErrorType.PERMANENT, HTTPStatus.INTERNAL_SERVER_ERROR),
    ],
)
def test_http_status_by_type(kind, status):
    assert new_error(kind, "C", "m").build().http_status() == status


def test_explicit_status_code_wins():
    err = new_error(ErrorType.VALIDATION, "C", "m").with_status_code(HTTPStatus.CONFLICT).build()
    assert err.http_status() == HTTPStatus.CONFLICT


def test_matches_on_type_and_code():
    a = new_error(ErrorType.PERMANENT, "NOT_FOUND", "a").build()
    b = new_error(ErrorType.PERMANENT, "NOT_FOUND", "b").build()
    c = new_error(ErrorType.PERMANENT, "OTHER", "a").build()
    d = new_error(ErrorType.TRANSIENT, "NOT_FOUND", "a").build()
    assert a.matches(b)
    assert not a.matches(c)
    assert not a.matches(d)
    assert not a.matches(ValueError("NOT_FOUND"))


def test_cause_is_chained():
    cause = OSError("disk")
    err = new_network_error("net down", cause)
    assert err.cause is cause
    assert err.__cause__ is cause


def test_builder_sets_fields():
    err = (
        new_error("timeout", "CODE", "message")
        .with_component("comp")
        .with_operation("op")
        .with_request_id("req-1")
        .with_user_id("user-1")
        .with_detail("a", 1)
        .with_details({"b": 2, "a": 3})
        .retryable(False)
        .build()
    )
    assert err.type is ErrorType.TIMEOUT
    assert err.component == "comp"
    assert err.operation == "op"
    assert err.request_id == "req-1"
    assert err.user_id == "user-1"
    assert err.details == {"a": 3, "b": 2}
    assert err.retryable is False


def test_with_stack_records_caller():
    err = new_error(ErrorType.PERMANENT, "X", "m").with_stack().build()
    assert "test_with_stack_records_caller" in err.stack.splitlines()[0]


def test_unknown_error_type_rejected():
    with pytest.raises(ValueError):
        new_error("bogus", "X", "m")


def test_validation_error():
    err = new_validation_error("Query is required", "query", "")
    assert err.type is ErrorType.VALIDATION
    assert err.details == {"field": "query", "rejected_value": ""}
    assert err.http_status() == HTTPStatus.BAD_REQUEST


def test_not_found_error():
    err = new_not_found_error("Paper", "p1")
    assert err.message == "Paper not found"
    assert err.details["id"] == "p1"
    assert err.retryable is False
    assert err.http_status() == HTTPStatus.NOT_FOUND


def test_rate_limit_error_round_trips_retry_after():
    err = new_rate_limit_error("slow down", 30)
    assert parse_duration(err.details["retry_after"]) == 30
    assert err.http_status() == HTTPStatus.TOO_MANY_REQUESTS


def test_timeout_error():
    err = new_timeout_error("search", 2.5)
    assert err.operation == "search"
    assert "search" in err.message
    assert parse_duration(err.details["timeout"]) == 2.5


def test_circuit_breaker_error():
    err = new_circuit_breaker_error("arxiv")
    assert err.message == "Circuit breaker open for arxiv"
    assert err.code == "CIRCUIT_OPEN"


def test_provider_error():
    cause = RuntimeError("x")
    err = new_provider_error("arxiv", "ArXiv API error", cause)
    assert err.component == "arxiv_provider"
    assert err.details["provider"] == "arxiv"
    assert err.cause is cause


def test_messaging_error_accepts_no_details():
    err = new_messaging_error("NATS client is not connected", None)
    assert err.details == {}
    assert err.code == "MESSAGING_ERROR"


def test_serialization_and_duplicate_errors():
    ser = new_serialization_error("Failed to serialize message data", {"k": 1})
    dup = new_duplicate_error("exists", "doi")
    assert ser.details["data"] == {"k": 1}
    assert ser.http_status() == HTTPStatus.BAD_REQUEST
    assert dup.details["key"] == "doi"
    assert dup.http_status() == HTTPStatus.CONFLICT


def test_internal_error_cause_optional():
    assert new_internal_error("x").cause is None
    cause = KeyError("k")
    assert new_internal_error("x", cause).cause is cause


def test_health_check_error():
    err = new_health_check_error("messaging system is not healthy", "messaging")
    assert err.operation == "health_check"
    assert err.component == "messaging"


def test_common_errors():
    probe = new_error(ErrorType.VALIDATION, "INVALID_INPUT", "probe").build()
    assert ERR_INVALID_INPUT.matches(probe)
    assert ERR_FORBIDDEN.http_status() == HTTPStatus.FORBIDDEN
    assert ERR_INTERNAL.type is ErrorType.PERMANENT


@pytest.mark.parametrize(
    "text, expected",
    [
        ("duplicate key value violates", True),
        ("UNIQUE constraint failed: papers.doi", True),
        ("relation already exists", True),
        ("connection refused", False),
    ],
)
def test_is_duplicate_key_error(text, expected):
    assert is_duplicate_key_error(Exception(text)) is expected


def test_is_duplicate_key_error_none():
    assert is_duplicate_key_error(None) is False


def test_format_duration_pinned():
    assert format_duration(0) == "0s"
    assert format_duration(1.5) == "1.5s"
    assert format_duration(180) == "3m0s"


@pytest.mark.parametrize("seconds", [0.000001, 0.0025, 0.3, 1, 45.25, 90, 3600, 3725.5, -2])
def test_duration_round_trip(seconds):
    assert parse_duration(format_duration(seconds)) == pytest.approx(seconds)


def test_parse_duration_compound():
    assert parse_duration("1h15m") == parse_duration("75m")
    assert parse_duration("0") == 0


@pytest.mark.parametrize("text", ["", "abc", "5", "1x", ".s", "-"])
def test_parse_duration_invalid(text):
    with pytest.raises(ValueError):
        parse_duration(text)