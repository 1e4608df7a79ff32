"""Paper classification categories and their hierarchy."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Optional

_SEPARATOR = " > "


@dataclass
class Category:
    """A classification category, optionally nested under a parent."""

    id: str = ""
    name: str = ""
    description: Optional[str] = None
    parent_id: Optional[str] = None
    level: int = 0
    parent: Optional["Category"] = field(default=None, compare=False, repr=False)
    children: list["Category"] = field(default_factory=list)
    source: str = ""
    source_code: str = ""
    is_active: bool = True
    paper_count: int = 0
    papers: list[Any] = field(default_factory=list, compare=False, repr=False)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    table_name = "categories"

    def ensure_id(self) -> str:
        """Assign an id built from source and source code when none is set."""
        if not self.id:
            self.id = generate_category_id(self.source, self.source_code)
        return self.id

    def is_top_level(self) -> bool:
        return not self.parent_id

    def has_children(self) -> bool:
        return bool(self.children)

    def full_path(self) -> str:
        """The names from the root down to this category, joined by ' > '."""
        if self.is_top_level() or self.parent is None:
            return self.name
        return self.parent.full_path() + _SEPARATOR + self.name

    def ancestors(self) -> list["Category"]:
        """Ancestors ordered from the root to the immediate parent."""
        chain: list[Category] = []
        current = self.parent
        while current is not None:
            chain.append(current)
            current = current.parent
        chain.reverse()
        return chain

    def descendants(self) -> list["Category"]:
        """All descendants, depth first, each child before its own children."""
        result: list[Category] = []
        for child in self.children:
            result.append(child)
            result.extend(child.descendants())
        return result

    def update_paper_count(self, count: int) -> None:
        self.paper_count = count

    def is_arxiv_category(self) -> bool:
        return self.source == "arxiv"

    def is_acm_category(self) -> bool:
        return self.source == "acm"

    def is_ieee_category(self) -> bool:
        return self.source == "ieee"

    def is_manual_category(self) -> bool:
        return self.source == "manual"


def generate_category_id(source: str, source_code: str) -> str:
    return f"{source}_{source_code}"


_PREDEFINED = (
    # (id, name, description, parent_id, source_code, level)
    ("arxiv_cs", "Computer Science", "Computer Science", None, "cs", 0),
    ("arxiv_cs.AI", "Artificial Intelligence", "Artificial Intelligence", "arxiv_cs", "cs.AI", 1),
    ("arxiv_cs.CL", "Computation and Language", "Computation and Language", "arxiv_cs", "cs.CL", 1),
    (
        "arxiv_cs.CV",
        "Computer Vision and Pattern Recognition",
        "Computer Vision and Pattern Recognition",
        "arxiv_cs",
        "cs.CV",
        1,
    ),
    ("arxiv_cs.LG", "Machine Learning", "Machine Learning", "arxiv_cs", "cs.LG", 1),
    ("arxiv_physics", "Physics", "Physics", None, "physics", 0),
    ("arxiv_quant-ph", "Quantum Physics", "Quantum Physics", None, "quant-ph", 0),
    ("arxiv_math", "Mathematics", "Mathematics", None, "math", 0),
    ("arxiv_stat", "Statistics", "Statistics", None, "stat", 0),
    (
        "arxiv_stat.ML",
        "Machine Learning (Statistics)",
        "Machine Learning from Statistics perspective",
        "arxiv_stat",
        "stat.ML",
        1,
    ),
)


def predefined_categories() -> list[Category]:
    """A fresh list of the common ArXiv categories."""
    return [
        Category(
            id=category_id,
            name=name,
            description=description,
            parent_id=parent_id,
            source="arxiv",
            source_code=source_code,
            level=level,
            is_active=True,
        )
        for category_id, name, description, parent_id, source_code, level in _PREDEFINED
    ]


@dataclass
class CategoryFilter:
    """Criteria for querying categories."""

    ids: list[str] = field(default_factory=list)
    names: list[str] = field(default_factory=list)
    source: str = ""
    source_codes: list[str] = field(default_factory=list)
    parent_id: Optional[str] = None
    level: Optional[int] = None
    is_active: Optional[bool] = None
    min_papers: Optional[int] = None
    max_papers: Optional[int] = None
    created_from: Optional[datetime] = None
    created_to: Optional[datetime] = None


@dataclass
class CategorySort:
    """Sort order for category queries."""

    field: str = "name"
    order: str = "asc"


def default_category_sort() -> CategorySort:
    return CategorySort(field="name", order="asc")


@dataclass
class CategoryTree:
    """A category together with its subtree."""

    category: Category
    children: list["CategoryTree"] = field(default_factory=list)


def build_category_tree(categories: Iterable[Category]) -> list[CategoryTree]:
    """Arrange a flat collection of categories into trees rooted at top-level ones."""
    by_id = {category.id: category for category in categories}

    def build(node: CategoryTree, seen: frozenset[str]) -> CategoryTree:
        for category in by_id.values():
            if category.parent_id and category.parent_id == node.category.id:
                if category.id in seen:
                    continue
                node.children.append(build(CategoryTree(category), seen | {category.id}))
        return node

    return [
        build(CategoryTree(category), frozenset({category.id}))
        for category in by_id.values()
        if category.is_top_level()
    ]