"""Map page numbers to note headings and back.

Only the root's direct child headings are notes; each one may carry the
page property. Every search is a single forward pass over those children, so
with duplicated pages the first note wins. A note whose page value is not
an integer (say `xii`) never counts as preceding a page.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from pagenoter.core.errors import NO_NEXT_NOTE, NO_PREVIOUS_NOTE, NavigationMiss
from pagenoter.outline.tree import OutlineNode

if TYPE_CHECKING:
    from pagenoter.core.session import PropertyNames


def parse_page(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


@dataclass(frozen=True)
class InsertionPoint:
    exact: Optional[OutlineNode] = None
    preceding: Optional[OutlineNode] = None


class Resolver:
    def __init__(self, names: "PropertyNames") -> None:
        self.names = names

    def page_value(self, node: OutlineNode) -> Optional[str]:
        return node.get(self.names.note_page)

    def page_of(self, node: OutlineNode) -> Optional[int]:
        return parse_page(self.page_value(node))

    def find_exact(self, root: OutlineNode, page: int) -> Optional[OutlineNode]:
        wanted = str(page)
        for child in root.children:
            if self.page_value(child) == wanted:
                return child
        return None

    def find_insertion_point(self, root: OutlineNode, page: int) -> InsertionPoint:
        wanted = str(page)
        preceding = None
        for child in root.children:
            value = self.page_value(child)
            if value == wanted:
                return InsertionPoint(exact=child, preceding=preceding)
            if value is None:
                preceding = child
                continue
            number = parse_page(value)
            if number is not None and number < page:
                preceding = child
        return InsertionPoint(preceding=preceding)

    def enclosing_note(self, root: OutlineNode, offset: int) -> Optional[OutlineNode]:
        children = root.children
        for index, child in enumerate(children):
            if child.contains(offset, closed=index == len(children) - 1):
                return child
        return None

    def enclosing_page_of(self, root: OutlineNode, offset: int) -> Optional[int]:
        note = self.enclosing_note(root, offset)
        return None if note is None else self.page_of(note)

    def previous_page_of(self, root: OutlineNode, offset: int) -> int:
        previous = None
        children = root.children
        for index, child in enumerate(children):
            if child.contains(offset, closed=index == len(children) - 1):
                if previous is None:
                    break
                return previous
            page = self.page_of(child)
            if page is not None:
                previous = page
        raise NavigationMiss(NO_PREVIOUS_NOTE)

    def next_page_of(self, root: OutlineNode, offset: int) -> int:
        for child in root.children:
            if child.begin <= offset:
                continue
            page = self.page_of(child)
            if page is not None:
                return page
        raise NavigationMiss(NO_NEXT_NOTE)
