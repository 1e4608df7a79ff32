from datetime import datetime

import pytest

from scifind.author import Author
from scifind.category import Category
from scifind.paper import (
    Paper,
    PaperFilter,
    PaperSort,
    default_paper_sort,
    generate_paper_id,
)


def _full_paper(citations=0):
    return Paper(
        title="A Study",
        abstract="We study things.",
        authors=[Author(name="Ada"), Author(name="Bob")],
        journal="Journal of Studies",
        published_at=datetime(2021, 5, 4),
        citation_count=citations,
        full_text="Body",
        pdf_url="https://example.com/a.pdf",
    )


def test_generate_paper_id():
    assert generate_paper_id("arxiv", "2101.00001") == "arxiv_2101.00001"


def test_ensure_id():
    paper = Paper(source_provider="arxiv", source_id="2101.00001")
    assert paper.ensure_id() == "arxiv_2101.00001"
    assert paper.id == "arxiv_2101.00001"
    assert Paper(id="fixed", source_provider="arxiv", source_id="x").ensure_id() == "fixed"


def test_defaults():
    paper = Paper()
    assert paper.language == "en"
    assert paper.is_pending()
    assert paper.keywords == []


def test_publication_and_year():
    paper = Paper(published_at=datetime(2019, 1, 2))
    assert paper.is_published()
    assert paper.year() == 2019
    unpublished = Paper()
    assert not unpublished.is_published()
    assert unpublished.year() == 0


def test_full_text_and_pdf():
    assert Paper(full_text="x").has_full_text()
    assert not Paper(full_text="").has_full_text()
    assert not Paper().has_full_text()
    assert Paper(pdf_url="https://example.com/x.pdf").has_pdf()
    assert not Paper(pdf_url="").has_pdf()


def test_authors_and_categories():
    paper = Paper(
        authors=[Author(name="Ada"), Author(name="Bob")],
        categories=[Category(name="Physics"), Category(name="Mathematics")],
    )
    assert paper.primary_author().name == "Ada"
    assert paper.author_names() == ["Ada", "Bob"]
    assert paper.category_names() == ["Physics", "Mathematics"]
    assert Paper().primary_author() is None


@pytest.mark.parametrize(
    "state, expected",
    [
        ("pending", (True, False, False, False)),
        ("processing", (False, True, False, False)),
        ("completed", (False, False, True, False)),
        ("failed", (False, False, False, True)),
    ],
)
def test_processing_states(state, expected):
    paper = Paper()
    paper.set_processing_state(state)
    assert paper.processing_state == state
    assert (
        paper.is_pending(),
        paper.is_processing(),
        paper.is_completed(),
        paper.is_failed(),
    ) == expected


def test_keywords_add_and_remove():
    paper = Paper()
    paper.add_keyword("ml")
    paper.add_keyword("ml")
    paper.add_keyword("nlp")
    assert paper.keywords == ["ml", "nlp"]
    paper.remove_keyword("ml")
    assert paper.keywords == ["nlp"]
    paper.remove_keyword("absent")
    assert paper.keywords == ["nlp"]


def test_add_reference_deduplicates():
    paper = Paper()
    paper.add_reference("p1")
    paper.add_reference("p1")
    paper.add_reference("p2")
    assert paper.references == ["p1", "p2"]


def test_add_citation_updates_count():
    paper = Paper()
    paper.add_citation("c1")
    paper.add_citation("c2")
    paper.add_citation("c1")
    assert paper.citations == ["c1", "c2"]
    assert paper.citation_count == len(paper.citations)


def test_quality_score_empty_and_title_only():
    empty = Paper()
    empty.update_quality_score()
    assert empty.quality_score == 0.0
    titled = Paper(title="T")
    titled.update_quality_score()
    assert titled.quality_score == pytest.approx(0.1)


def test_quality_score_abstract_adds_its_weight():
    without = Paper(title="T")
    with_abstract = Paper(title="T", abstract="A")
    without.update_quality_score()
    with_abstract.update_quality_score()
    assert with_abstract.quality_score - without.quality_score == pytest.approx(0.2)


def test_quality_score_grows_with_completeness():
    partial = Paper(title="T", authors=[Author(name="Ada")])
    partial.update_quality_score()
    full = _full_paper()
    full.update_quality_score()
    assert full.quality_score > partial.quality_score


def test_quality_score_monotonic_in_citations():
    scores = []
    for count in (0, 1, 10, 1000):
        paper = _full_paper(count)
        paper.update_quality_score()
        scores.append(paper.quality_score)
    assert scores == sorted(scores)
    assert len(set(scores)) == len(scores)
    assert scores[-1] - scores[0] < 0.2


def test_author_metrics_from_papers():
    papers = [Paper(citation_count=c) for c in (10, 5, 3, 1)]
    author = Author(name="Ada")
    author.update_metrics(papers)
    assert author.paper_count == len(papers)
    assert author.citation_count == sum(p.citation_count for p in papers)
    assert author.h_index == 3


def test_default_paper_sort():
    assert default_paper_sort() == PaperSort(field="created_at", order="desc")


def test_paper_filter_defaults():
    flt = PaperFilter(title="x", min_citations=3)
    assert flt.title == "x"
    assert flt.min_citations == 3
    assert flt.states == [] and flt.has_pdf is None