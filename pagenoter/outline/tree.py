from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from pagenoter.outline.document import Heading, OutlineDocument


@dataclass
class OutlineNode:
    """Snapshot of one heading and its subtree, taken from a document."""

    level: int
    title: str
    begin: int
    end: int
    contents_begin: int
    section_end: int
    drawer_end: Optional[int]
    properties: Dict[str, str]
    text: str = field(repr=False)
    children: List["OutlineNode"] = field(default_factory=list)

    @classmethod
    def from_heading(cls, heading: Heading, text: str) -> "OutlineNode":
        return cls(
            level=heading.level,
            title=heading.title,
            begin=heading.begin,
            end=heading.end,
            contents_begin=heading.contents_begin,
            section_end=heading.section_end,
            drawer_end=heading.drawer_end,
            properties=dict(heading.properties),
            text=text,
        )

    def get(self, name: str) -> Optional[str]:
        return self.properties.get(name.upper())

    def contains(self, offset: int, *, closed: bool = False) -> bool:
        if closed:
            return self.begin <= offset <= self.end
        return self.begin <= offset < self.end


def build_tree(document: OutlineDocument, root: Heading) -> OutlineNode:
    """Parse the subtree rooted at ``root`` into nested ``OutlineNode`` objects."""
    text = document.text
    node = OutlineNode.from_heading(root, text)
    stack = [node]
    for heading in document.headings():
        if heading.begin <= root.begin:
            continue
        if heading.begin >= root.end:
            break
        while stack[-1].level >= heading.level:
            stack.pop()
        child = OutlineNode.from_heading(heading, text)
        stack[-1].children.append(child)
        stack.append(child)
    return node
