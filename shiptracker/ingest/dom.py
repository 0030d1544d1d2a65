"""Thin document-node interface over BeautifulSoup.

The classifier and extractors only talk to ``DocumentNode``, so they do not
depend on which HTML parser produced the tree.
"""

from typing import Iterable, List, Optional

from bs4 import BeautifulSoup
from bs4.element import Tag

HTML_PARSER = "lxml"


class DocumentNode:
    """One element of a parsed page."""

    __slots__ = ("_element",)

    def __init__(self, element: Tag):
        self._element = element

    def __repr__(self) -> str:
        return f"DocumentNode(<{self.tag}>)"

    def __eq__(self, other) -> bool:
        return isinstance(other, DocumentNode) and other._element is self._element

    def __hash__(self) -> int:
        return id(self._element)

    @property
    def tag(self) -> str:
        return (self._element.name or "").lower()

    @property
    def text(self) -> str:
        """All descendant text, whitespace-trimmed."""
        return self._element.get_text(" ", strip=True)

    def attr(self, name: str, default: Optional[str] = None) -> Optional[str]:
        value = self._element.get(name, default)
        if isinstance(value, list):
            return " ".join(value)
        return value

    def has_class(self, name: str) -> bool:
        return name in (self._element.get("class") or [])

    def children(self) -> List["DocumentNode"]:
        return [DocumentNode(c) for c in self._element.children if isinstance(c, Tag)]

    def next_sibling(self) -> Optional["DocumentNode"]:
        sibling = self._element.find_next_sibling()
        return DocumentNode(sibling) if sibling is not None else None

    def parent(self) -> Optional["DocumentNode"]:
        parent = self._element.parent
        if parent is None or not isinstance(parent, Tag):
            return None
        return DocumentNode(parent)

    def ancestor(self, tag: str) -> Optional["DocumentNode"]:
        """Nearest enclosing element with the given tag name."""
        element = self._element.find_parent(tag)
        return DocumentNode(element) if element is not None else None

    def find_all(self, tags: Iterable[str]) -> List["DocumentNode"]:
        """Descendants with any of the given tag names, in document order."""
        return [DocumentNode(e) for e in self._element.find_all(list(tags))]

    def select(self, selector: str) -> List["DocumentNode"]:
        return [DocumentNode(e) for e in self._element.select(selector)]

    def select_one(self, selector: str) -> Optional["DocumentNode"]:
        element = self._element.select_one(selector)
        return DocumentNode(element) if element is not None else None


def parse_document(html: str) -> DocumentNode:
    """Parse an HTML string into the root node."""
    return DocumentNode(BeautifulSoup(html or "", HTML_PARSER))
