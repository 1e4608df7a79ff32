"""Author model with research metrics."""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Optional

_RANDOM_CHARSET = string.ascii_lowercase + string.digits
_MAX_SIMPLIFIED_LENGTH = 20


@dataclass
class Author:
    """A paper author with profile and citation metrics."""

    id: str = ""
    name: str = ""
    email: Optional[str] = None
    affiliation: Optional[str] = None
    orcid: Optional[str] = None
    research_areas: list[str] = field(default_factory=list)
    website: Optional[str] = None
    paper_count: int = 0
    citation_count: int = 0
    h_index: int = 0
    papers: list[Any] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    table_name = "authors"

    def ensure_id(self) -> str:
        """Assign a generated id when none is set and return the id."""
        if not self.id:
            self.id = generate_author_id(self.name, self.email)
        return self.id

    def has_email(self) -> bool:
        return bool(self.email)

    def has_orcid(self) -> bool:
        return bool(self.orcid)

    def has_affiliation(self) -> bool:
        return bool(self.affiliation)

    def has_website(self) -> bool:
        return bool(self.website)

    def add_research_area(self, area: str) -> None:
        if area not in self.research_areas:
            self.research_areas.append(area)

    def remove_research_area(self, area: str) -> None:
        if area in self.research_areas:
            self.research_areas.remove(area)

    def update_metrics(self, papers: Iterable[Any]) -> None:
        """Recompute paper count, total citations and h-index from papers."""
        citations = [paper.citation_count for paper in papers]
        self.paper_count = len(citations)
        self.citation_count = sum(citations)
        self.h_index = calculate_h_index(citations)

    def display_name(self) -> str:
        if self.name:
            return self.name
        if self.has_email():
            return self.email  # type: ignore[return-value]
        return self.id

    def is_productive_author(self) -> bool:
        return self.paper_count >= 5 and self.h_index >= 3


def calculate_h_index(citations: Iterable[int]) -> int:
    """The largest h such that h papers have at least h citations each."""
    h_index = 0
    for rank, count in enumerate(sorted(citations, reverse=True), start=1):
        if count < rank:
            break
        h_index = rank
    return h_index


def _random_string(length: int) -> str:
    return "".join(secrets.choice(_RANDOM_CHARSET) for _ in range(length))


def generate_author_id(name: str, email: Optional[str]) -> str:
    """Build an author id from the name, the e-mail prefix or random text, plus a timestamp."""
    if name:
        base = "author_" + simplify_string(name)
    elif email:
        base = "author_" + extract_email_prefix(email)
    else:
        base = "author_" + _random_string(8)
    return f"{base}_{datetime.now().strftime('%Y%m%d%H%M%S')}"


def simplify_string(text: str) -> str:
    """Keep ASCII letters and digits, turn spaces into underscores, cap the length."""
    kept = []
    for char in text:
        if char.isascii() and char.isalnum():
            kept.append(char)
        elif char == " ":
            kept.append("_")
    return "".join(kept)[:_MAX_SIMPLIFIED_LENGTH]


def extract_email_prefix(email: str) -> str:
    """The part of an e-mail address before the first '@'."""
    return email.partition("@")[0]


@dataclass
class AuthorFilter:
    """Criteria for querying authors."""

    ids: list[str] = field(default_factory=list)
    name: str = ""
    email: str = ""
    affiliation: str = ""
    orcid: str = ""
    research_areas: list[str] = field(default_factory=list)
    min_papers: Optional[int] = None
    max_papers: Optional[int] = None
    min_citations: Optional[int] = None
    max_citations: Optional[int] = None
    min_h_index: Optional[int] = None
    max_h_index: Optional[int] = None
    created_from: Optional[datetime] = None
    created_to: Optional[datetime] = None


@dataclass
class AuthorSort:
    """Sort order for author queries."""

    field: str = "name"
    order: str = "asc"


def default_author_sort() -> AuthorSort:
    return AuthorSort(field="name", order="asc")