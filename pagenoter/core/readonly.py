from __future__ import annotations

from pagenoter.core.accessor import properties_end
from pagenoter.outline.document import OutlineDocument
from pagenoter.outline.tree import OutlineNode


def protect(document: OutlineDocument, root: OutlineNode) -> None:
    """Make the root heading prefix and its property drawer read-only.

    The title stays editable and text can still be typed right after the
    drawer's ``:END:``. The document's modified flag is left as it was.
    """
    if root.drawer_end is None:
        return
    modified = document.modified
    try:
        title_begin = root.begin + root.level + 1
        drawer_last = properties_end(root, True)
        document.put_read_only(max(0, root.begin - 1), root.begin)
        document.put_read_only(root.begin, title_begin - 1, front_sticky=True)
        document.put_read_only(title_begin - 1, title_begin, rear_nonsticky=True)
        document.put_read_only(root.contents_begin - 1, drawer_last - 1)
        document.put_read_only(drawer_last - 1, drawer_last, rear_nonsticky=True)
    finally:
        document.set_modified(modified)


def unprotect(document: OutlineDocument, root: OutlineNode) -> None:
    modified = document.modified
    try:
        document.remove_read_only(max(0, root.begin - 1), properties_end(root, True))
    finally:
        document.set_modified(modified)
