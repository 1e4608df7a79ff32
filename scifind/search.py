"""Search requests, responses, statistics and cached search results."""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from scifind.errors import new_validation_error
from scifind.paper import Paper

_RANDOM_CHARSET = string.ascii_lowercase + string.digits
_DEFAULT_LIMIT = 20
_MAX_LIMIT = 100
_DEFAULT_PROVIDERS = ("arxiv", "semantic_scholar")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_random_string(length: int) -> str:
    """A random string of lowercase ASCII letters and digits."""
    return "".join(secrets.choice(_RANDOM_CHARSET) for _ in range(length))


def _generate_search_query_id() -> str:
    return f"sq_{datetime.now().strftime('%Y%m%d%H%M%S')}_{generate_random_string(8)}"


@dataclass
class DateRange:
    """An optional lower and upper bound on publication dates."""

    start: Optional[datetime] = None
    end: Optional[datetime] = None


@dataclass
class SearchQuery:
    """The internal form of a search, ready to send to providers."""

    id: str
    text: str
    filters: dict[str, str] = field(default_factory=dict)
    providers: list[str] = field(default_factory=list)
    limit: int = 0
    offset: int = 0
    sort_by: str = ""
    sort_order: str = ""
    requested_at: datetime = field(default_factory=_utcnow)


@dataclass
class SearchRequest:
    """A search query as submitted by a client."""

    query: str = ""
    providers: list[str] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)
    date_range: Optional[DateRange] = None
    language: str = ""
    limit: int = 0
    offset: int = 0
    sort_by: str = ""
    sort_order: str = ""
    filters: dict[str, str] = field(default_factory=dict)
    include_text: bool = False

    def validate(self) -> None:
        """Check the request and fill in defaults.

        Raises a validation SciFindError when the query is empty. The limit is
        brought into the range 1..100 and a negative offset becomes 0.
        """
        if not self.query:
            raise new_validation_error("Query is required", "query", self.query)
        if self.limit <= 0:
            self.limit = _DEFAULT_LIMIT
        if self.limit > _MAX_LIMIT:
            self.limit = _MAX_LIMIT
        if self.offset < 0:
            self.offset = 0
        if not self.sort_by:
            self.sort_by = "relevance"
        if not self.sort_order:
            self.sort_order = "desc"

    def enabled_providers(self) -> list[str]:
        """The requested providers, or the default ones when none were named."""
        if self.providers:
            return list(self.providers)
        return list(_DEFAULT_PROVIDERS)

    def has_date_filter(self) -> bool:
        return self.date_range is not None and (
            self.date_range.start is not None or self.date_range.end is not None
        )

    def has_category_filter(self) -> bool:
        return bool(self.categories)

    def has_provider_filter(self) -> bool:
        return bool(self.providers)

    def get_filter(self, key: str) -> Optional[str]:
        """The filter value for ``key``, or None when it is not set."""
        return self.filters.get(key)

    def set_filter(self, key: str, value: str) -> None:
        self.filters[key] = value

    def to_search_query(self) -> SearchQuery:
        """Convert to a SearchQuery with a freshly generated id."""
        return SearchQuery(
            id=_generate_search_query_id(),
            text=self.query,
            filters=dict(self.filters),
            providers=self.enabled_providers(),
            limit=self.limit,
            offset=self.offset,
            sort_by=self.sort_by,
            sort_order=self.sort_order,
            requested_at=_utcnow(),
        )


def default_search_request() -> SearchRequest:
    """A request carrying the default paging, sorting and language."""
    return SearchRequest(
        limit=_DEFAULT_LIMIT,
        offset=0,
        sort_by="relevance",
        sort_order="desc",
        language="en",
        filters={},
    )


@dataclass
class SearchFacets:
    """Counts of results grouped by various attributes."""

    categories: dict[str, int] = field(default_factory=dict)
    authors: dict[str, int] = field(default_factory=dict)
    journals: dict[str, int] = field(default_factory=dict)
    years: dict[str, int] = field(default_factory=dict)
    languages: dict[str, int] = field(default_factory=dict)
    providers: dict[str, int] = field(default_factory=dict)


@dataclass
class ProviderStats:
    """Per-provider statistics; ``response_time`` is in seconds."""

    name: str
    response_time: float = 0.0
    result_count: int = 0
    error: Optional[str] = None
    cache_hit: bool = False
    status_code: int = 0


@dataclass
class SearchStats:
    """Statistics of one search operation; ``total_time`` is in seconds."""

    query_id: str
    query: str
    providers: list[ProviderStats] = field(default_factory=list)
    total_time: float = 0.0
    cache_hit: bool = False
    results_found: int = 0
    timestamp: datetime = field(default_factory=_utcnow)


@dataclass
class SearchResponse:
    """The results of a search as returned to a client."""

    query: str
    total_count: int = 0
    result_count: int = 0
    limit: int = 0
    offset: int = 0
    duration: str = ""
    papers: list[Paper] = field(default_factory=list)
    facets: Optional[SearchFacets] = None
    suggestions: list[str] = field(default_factory=list)
    next_cursor: Optional[str] = None
    stats: Optional[SearchStats] = None


@dataclass
class SearchResult:
    """Results from a single provider; ``duration`` is in seconds."""

    provider: str
    query: str
    papers: list[Paper] = field(default_factory=list)
    total_count: int = 0
    duration: float = 0.0
    error: Optional[BaseException] = None
    cache_hit: bool = False
    requested_at: datetime = field(default_factory=_utcnow)


@dataclass
class AggregatedResult:
    """Results merged from several providers; ``duration`` is in seconds."""

    query: str
    papers: list[Paper] = field(default_factory=list)
    total_count: int = 0
    provider_stats: list[ProviderStats] = field(default_factory=list)
    duration: float = 0.0
    cache_hits: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class SearchSuggestion:
    """A suggested query, author, journal or category."""

    text: str
    score: float = 0.0
    type: str = "query"


@dataclass
class SearchHistory:
    """A stored search; ``duration`` is in milliseconds."""

    id: str
    query: str
    user_id: Optional[str] = None
    result_count: int = 0
    duration: int = 0
    providers: list[str] = field(default_factory=list)
    filters: str = ""
    requested_at: datetime = field(default_factory=_utcnow)
    created_at: datetime = field(default_factory=_utcnow)

    table_name = "search_history"


@dataclass
class SearchCache:
    """Cached results of a search."""

    id: str
    query_hash: str
    query: str
    results: str
    expires_at: datetime
    result_count: int = 0
    provider: str = ""
    created_at: datetime = field(default_factory=_utcnow)
    access_count: int = 0
    last_access: datetime = field(default_factory=_utcnow)

    table_name = "search_cache"

    def is_expired(self) -> bool:
        """True once the expiry time has passed."""
        return datetime.now(self.expires_at.tzinfo) > self.expires_at

    def increment_access(self) -> None:
        """Count one more access and note when it happened."""
        self.access_count += 1
        self.last_access = datetime.now(self.last_access.tzinfo)