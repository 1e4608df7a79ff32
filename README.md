# scifind

Building blocks for a scientific paper search service. The package has no
dependencies outside the standard library.

- **Structured errors** (`scifind.errors`): `SciFindError` is an exception
  carrying an `ErrorType`, a code, a message, a `details` dict, a cause and an
  HTTP status (`http_status()`). Errors are built fluently with
  `new_error(type, code, message)` and the `ErrorBuilder` methods
  (`with_cause`, `with_detail`, `with_status_code`, `retryable`, `build`, ...),
  or with ready-made constructors such as `new_validation_error`,
  `new_not_found_error`, `new_rate_limit_error` and `new_timeout_error`.
  `format_duration` and `parse_duration` convert between seconds and compact
  duration text such as `1m30s` or `300ms`.
- **Error classification** (`scifind.classifier`): `ErrorClassifier` turns
  arbitrary exceptions (by their message), HTTP status codes
  (`classify_http_error`) and provider failures for `arxiv`,
  `semantic_scholar`, `exa` and `tavily` (`classify_provider_error`) into
  typed `SciFindError` values. `is_timeout_error`, `is_rate_limit_error`,
  `is_network_error` and `is_validation_error` answer the common questions.
- **Retries** (`scifind.retry`): `RetryExecutor` runs a callable, retrying
  failures whose classified type is listed in the `RetryConfig`. Policies come
  from `with_exponential_backoff`, `with_linear_backoff` and
  `with_fixed_delay`; delays are in seconds. When attempts run out a
  `RETRY_EXHAUSTED` error is raised; an optional `threading.Event` cancels the
  wait between attempts with `InterruptedError`. `stats()` and `reset_stats()`
  give and clear the running counters.
- **Circuit breaking** (`scifind.circuit_breaker`): `CircuitBreaker` backed by
  a `RollingWindow`, with `execute`, `allow`, `record`, `state()`, `metrics()`
  and a state-change callback; `CircuitBreakerManager` keeps one breaker per
  name. A call rejected by an open breaker raises a `CIRCUIT_OPEN` error.
- **Data models** (`scifind.paper`, `scifind.author`, `scifind.category`,
  `scifind.search`): `Paper`, `Author`, `Category` and `SearchRequest`
  dataclasses with helpers such as `calculate_h_index`,
  `Paper.update_quality_score`, `build_category_tree`,
  `predefined_categories` and `SearchRequest.validate`.

## Installation

```
pip install .
```

## Examples

Classify an error and inspect it:

```python
from scifind.classifier import ErrorClassifier

classifier = ErrorClassifier()
err = classifier.classify(ConnectionError("connection refused"))
print(err.type, err.code, err.http_status())
```

Retry an operation with exponential backoff:

```python
from scifind.classifier import ErrorClassifier
from scifind.retry import RetryExecutor, with_exponential_backoff

config = with_exponential_backoff(3, 0.1, 2.0)
executor = RetryExecutor(config, ErrorClassifier())
executor.execute("fetch", lambda: None)
print(executor.stats())
```

Protect a call with a circuit breaker:

```python
from scifind.circuit_breaker import CircuitBreakerConfig, CircuitBreakerManager

manager = CircuitBreakerManager()
breaker = manager.get_or_create("arxiv", CircuitBreakerConfig(
    failure_threshold=5, success_threshold=2, timeout=30.0,
    max_requests=3, expected_failure_rate=0.5,
    min_request_count=10, sliding_window=60.0,
))
breaker.execute(lambda: None)
print(breaker.state(), breaker.metrics())
```

Build a category tree from the predefined arXiv categories:

```python
from scifind.category import build_category_tree, predefined_categories

for node in build_category_tree(predefined_categories()):
    print(node.category.name, [child.category.name for child in node.children])
```

## What this package does not do

It is a library of building blocks only. It does not search any provider,
store papers or search history in a database, serve HTTP requests or publish
and receive messages. The model classes (`SearchHistory`, `SearchCache` and
the others) are plain dataclasses with no persistence behind them.

## Running the tests

```
pip install .[test]
pytest
```