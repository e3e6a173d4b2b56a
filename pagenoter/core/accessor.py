from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from pagenoter.outline.document import OutlineDocument
from pagenoter.outline.tree import OutlineNode, build_tree

if TYPE_CHECKING:
    from pagenoter.core.session import PropertyNames
    from pagenoter.core.surfaces import NotesSurface


def locate_root(
    document: OutlineDocument,
    identity_key: str,
    names: "PropertyNames",
    point: Optional[int] = None,
) -> Optional[OutlineNode]:
    """Find the heading carrying ``identity_key`` and parse its subtree.

    The heading around ``point`` and its ancestors are tried first; failing
    that, the first heading in the document with the key wins.
    """
    heading = document.heading_at(point) if point is not None else None
    while heading is not None:
        if heading.get(names.document) == identity_key:
            return build_tree(document, heading)
        heading = document.parent_of(heading)

    begin = document.find_first_with_property(names.document, identity_key)
    if begin is None:
        return None
    return build_tree(document, document.heading_starting_at(begin))


def parse_root(
    surface: Optional["NotesSurface"],
    identity_key: str,
    names: "PropertyNames",
) -> Optional[OutlineNode]:
    if surface is None or not surface.is_live():
        return None
    return locate_root(surface.document, identity_key, names, surface.point)


def properties_end(node: Optional[OutlineNode], force_trim: bool = False) -> Optional[int]:
    """Offset where ``node``'s property drawer ends.

    With ``force_trim`` (or when nothing but blank lines follows the drawer in
    the node's own section) the offset is pulled back to just after the
    drawer's closing ``:END:``.
    """
    if node is None:
        return None
    if node.drawer_end is None:
        return node.contents_begin
    end = node.drawer_end
    if force_trim or node.section_end == end:
        while end > 0 and node.text[end - 1] != ":":
            end -= 1
    return end


def insert_heading(surface: "NotesSurface", level: int, title: str = "") -> int:
    """Insert a heading at the cursor and fix its level to exactly ``level``."""
    document = surface.document
    begin = document.insert_heading(surface.point, title)
    delta = level - document.heading_starting_at(begin).level
    for _ in range(abs(delta)):
        if delta > 0:
            document.demote(begin)
        else:
            document.promote(begin)
    surface.point = document.heading_starting_at(begin).line_end
    return begin
