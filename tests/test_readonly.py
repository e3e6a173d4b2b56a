from __future__ import annotations

from pagenoter.core.accessor import locate_root, properties_end
from pagenoter.core.readonly import protect, unprotect
from pagenoter.core.session import PropertyNames
from pagenoter.outline.document import OutlineDocument
from pagenoter.outline.tree import build_tree


ROOT = "* Paper\n:PROPERTIES:\n:DOC_FILE: paper.pdf\n:END:\nIntro\n"


def _protected(text: str = ROOT):
    doc = OutlineDocument(text)
    root = locate_root(doc, "paper.pdf", PropertyNames())
    protect(doc, root)
    return doc, root


def test_heading_prefix_and_drawer_are_locked() -> None:
    doc, root = _protected()

    assert not doc.can_replace(0, 0)
    assert not doc.can_replace(1, 1)
    assert not doc.can_replace(0, 1, inserting=False)
    drawer_mid = doc.text.index("DOC_FILE")
    assert not doc.can_replace(drawer_mid, drawer_mid)
    assert not doc.can_replace(drawer_mid, drawer_mid + 3, inserting=False)
    # the newline ending the title line
    assert not doc.can_replace(root.contents_begin - 1, root.contents_begin, inserting=False)


def test_title_and_body_stay_editable() -> None:
    doc, root = _protected()
    title_begin = root.begin + root.level + 1

    assert doc.can_replace(title_begin, title_begin)
    assert doc.can_replace(title_begin, title_begin + len("Paper"), inserting=False)
    assert doc.can_replace(root.contents_begin - 1, root.contents_begin - 1)

    after_drawer = properties_end(root, True)
    doc.insert(after_drawer, " trailing")
    assert ":END: trailing\nIntro" in doc.text

    intro = doc.text.index("Intro")
    doc.insert(intro, "More ")
    assert "More Intro" in doc.text


def test_newline_before_root_is_locked() -> None:
    doc, root = _protected("preamble\n" + ROOT)

    assert root.begin == len("preamble\n")
    assert not doc.can_replace(root.begin - 1, root.begin, inserting=False)
    assert not doc.can_replace(root.begin, root.begin)
    assert doc.can_replace(root.begin - 1, root.begin - 1)


def test_protect_keeps_modified_flag() -> None:
    doc = OutlineDocument(ROOT)
    root = locate_root(doc, "paper.pdf", PropertyNames())

    protect(doc, root)
    assert not doc.modified
    assert doc.read_only_count() > 0

    unprotect(doc, root)
    assert not doc.modified
    assert doc.read_only_count() == 0


def test_protect_without_drawer_is_a_no_op() -> None:
    doc = OutlineDocument("* Paper\nIntro\n")
    root = locate_root(doc, "x", PropertyNames())
    assert root is None

    protect(doc, build_tree(doc, doc.headings()[0]))
    assert doc.read_only_count() == 0
