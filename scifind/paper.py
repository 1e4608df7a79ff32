"""Scientific paper model with metadata, citations and quality scoring."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from scifind.author import Author
from scifind.category import Category


@dataclass
class Paper:
    """A scientific paper and everything known about it."""

    id: str = ""
    doi: Optional[str] = None
    arxiv_id: Optional[str] = None

    title: str = ""
    abstract: Optional[str] = None
    authors: list[Author] = field(default_factory=list)

    journal: Optional[str] = None
    volume: Optional[str] = None
    issue: Optional[str] = None
    pages: Optional[str] = None
    published_at: Optional[datetime] = None

    url: Optional[str] = None
    pdf_url: Optional[str] = None

    categories: list[Category] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)
    language: str = "en"

    citation_count: int = 0
    references: list[str] = field(default_factory=list)
    citations: list[str] = field(default_factory=list)

    full_text: Optional[str] = None
    extracted_data: Optional[str] = None

    search_vector: Optional[str] = field(default=None, repr=False)
    embedding: list[float] = field(default_factory=list, repr=False)

    source_provider: str = ""
    source_id: str = ""
    source_url: Optional[str] = None

    quality_score: float = 0.0
    processing_state: str = "pending"

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    table_name = "papers"

    def ensure_id(self) -> str:
        """Assign an id built from provider and source id when none is set."""
        if not self.id:
            self.id = generate_paper_id(self.source_provider, self.source_id)
        return self.id

    def is_published(self) -> bool:
        return self.published_at is not None

    def year(self) -> int:
        """The publication year, or 0 when unknown."""
        return self.published_at.year if self.published_at is not None else 0

    def has_full_text(self) -> bool:
        return bool(self.full_text)

    def has_pdf(self) -> bool:
        return bool(self.pdf_url)

    def primary_author(self) -> Optional[Author]:
        return self.authors[0] if self.authors else None

    def author_names(self) -> list[str]:
        return [author.name for author in self.authors]

    def category_names(self) -> list[str]:
        return [category.name for category in self.categories]

    def is_completed(self) -> bool:
        return self.processing_state == "completed"

    def is_pending(self) -> bool:
        return self.processing_state == "pending"

    def is_processing(self) -> bool:
        return self.processing_state == "processing"

    def is_failed(self) -> bool:
        return self.processing_state == "failed"

    def set_processing_state(self, state: str) -> None:
        self.processing_state = state

    def add_keyword(self, keyword: str) -> None:
        if keyword not in self.keywords:
            self.keywords.append(keyword)

    def remove_keyword(self, keyword: str) -> None:
        if keyword in self.keywords:
            self.keywords.remove(keyword)

    def add_reference(self, paper_id: str) -> None:
        if paper_id not in self.references:
            self.references.append(paper_id)

    def add_citation(self, paper_id: str) -> None:
        """Record a citing paper and refresh the citation count."""
        if paper_id in self.citations:
            return
        self.citations.append(paper_id)
        self.citation_count = len(self.citations)

    def update_quality_score(self) -> None:
        """Recompute the quality score from metadata completeness and citations."""
        score = 0.0
        if self.title:
            score += 0.1
        if self.abstract:
            score += 0.2
        if self.authors:
            score += 0.1
            if len(self.authors) >= 2:
                score += 0.1
        if self.journal:
            score += 0.1
        if self.published_at is not None:
            score += 0.1
        if self.citation_count > 0:
            score += 0.2 * (1.0 - 1.0 / (1 + self.citation_count))
        if self.has_full_text():
            score += 0.1
        if self.has_pdf():
            score += 0.1
        self.quality_score = score


def generate_paper_id(provider: str, source_id: str) -> str:
    return f"{provider}_{source_id}"


@dataclass
class PaperFilter:
    """Criteria for querying papers."""

    ids: list[str] = field(default_factory=list)
    dois: list[str] = field(default_factory=list)
    arxiv_ids: list[str] = field(default_factory=list)
    title: str = ""
    authors: list[str] = field(default_factory=list)
    journal: str = ""
    categories: list[str] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)
    language: str = ""
    source_provider: str = ""
    min_citations: Optional[int] = None
    max_citations: Optional[int] = None
    min_quality: Optional[float] = None
    max_quality: Optional[float] = None
    published_from: Optional[datetime] = None
    published_to: Optional[datetime] = None
    created_from: Optional[datetime] = None
    created_to: Optional[datetime] = None
    states: list[str] = field(default_factory=list)
    has_full_text: Optional[bool] = None
    has_pdf: Optional[bool] = None


@dataclass
class PaperSort:
    """Sort order for paper queries."""

    field: str = "created_at"
    order: str = "desc"


def default_paper_sort() -> PaperSort:
    return PaperSort(field="created_at", order="desc")