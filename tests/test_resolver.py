from __future__ import annotations

import pytest

from pagenoter.core.accessor import locate_root
from pagenoter.core.errors import NO_NEXT_NOTE, NO_PREVIOUS_NOTE, NavigationMiss
from pagenoter.core.resolver import Resolver, parse_page
from pagenoter.core.session import PropertyNames
from pagenoter.outline.document import OutlineDocument


ROOT = "* Paper\n:PROPERTIES:\n:DOC_FILE: paper.pdf\n:END:\n"


def _note(page, body: str = "", title: str = "") -> str:
    title = title or f"Notes for page {page}"
    if page is None:
        return f"** {title}\n{body}"
    return f"** {title}\n:PROPERTIES:\n:DOC_NOTE_PAGE: {page}\n:END:\n{body}"


def _root(*notes: str):
    doc = OutlineDocument(ROOT + "".join(notes))
    return doc, locate_root(doc, "paper.pdf", PropertyNames())


RESOLVER = Resolver(PropertyNames())


def test_parse_page() -> None:
    assert parse_page("12") == 12
    assert parse_page(" 3 ") == 3
    assert parse_page("iv") is None
    assert parse_page(None) is None


def test_find_exact_first_duplicate_wins() -> None:
    _, root = _root(_note(2), _note(5, title="first five"), _note(5, title="second five"), _note(9))

    assert RESOLVER.find_exact(root, 5).title == "first five"
    assert RESOLVER.find_exact(root, 9).title == "Notes for page 9"
    assert RESOLVER.find_exact(root, 3) is None


def test_nested_headings_are_not_notes() -> None:
    _, root = _root(_note(2, body="*** Detail\n:PROPERTIES:\n:DOC_NOTE_PAGE: 7\n:END:\n"))

    assert RESOLVER.find_exact(root, 7) is None
    assert RESOLVER.find_exact(root, 2) is not None


@pytest.mark.parametrize(
    "page, exact, preceding",
    [
        (1, None, None),
        (2, 2, None),
        (3, None, 2),
        (5, 5, 2),
        (6, None, 5),
        (10, None, 9),
    ],
)
def test_find_insertion_point(page, exact, preceding) -> None:
    _, root = _root(_note(2), _note(5), _note(9))
    found = RESOLVER.find_insertion_point(root, page)

    assert (RESOLVER.page_of(found.exact) if found.exact else None) == exact
    assert (RESOLVER.page_of(found.preceding) if found.preceding else None) == preceding


def test_insertion_point_skips_over_pageless_but_not_non_numeric_notes() -> None:
    _, root = _root(_note(2), _note(None, title="Summary"), _note("xii", title="Roman"))
    found = RESOLVER.find_insertion_point(root, 4)

    assert found.exact is None
    assert found.preceding.title == "Summary"


def test_enclosing_note_includes_end_of_last_note() -> None:
    doc, root = _root(_note(2, body="two\n"), _note(5, body="five\n"))

    assert RESOLVER.enclosing_page_of(root, doc.text.index("two")) == 2
    assert RESOLVER.enclosing_page_of(root, doc.text.index("five")) == 5
    assert RESOLVER.enclosing_page_of(root, len(doc)) == 5
    assert RESOLVER.enclosing_note(root, 0) is None


def test_previous_and_next_pages() -> None:
    doc, root = _root(
        _note(2, body="two\n"),
        _note(None, title="Aside", body="aside\n"),
        _note(5, body="five\n"),
        _note(9, body="nine\n"),
    )
    five = doc.text.index("five")
    aside = doc.text.index("aside")

    assert RESOLVER.previous_page_of(root, five) == 2
    assert RESOLVER.next_page_of(root, five) == 9
    assert RESOLVER.next_page_of(root, aside) == 5
    assert RESOLVER.previous_page_of(root, doc.text.index("nine")) == 5
    assert RESOLVER.next_page_of(root, 0) == 2


def test_navigation_misses() -> None:
    doc, root = _root(_note(2, body="two\n"), _note(9, body="nine\n"))

    with pytest.raises(NavigationMiss, match=NO_PREVIOUS_NOTE):
        RESOLVER.previous_page_of(root, doc.text.index("two"))
    with pytest.raises(NavigationMiss, match=NO_NEXT_NOTE):
        RESOLVER.next_page_of(root, doc.text.index("nine"))
    with pytest.raises(NavigationMiss):
        RESOLVER.previous_page_of(root, 0)


def test_previous_then_next_returns_to_start() -> None:
    doc, root = _root(_note(2, body="two\n"), _note(5, body="five\n"), _note(9, body="nine\n"))
    five = doc.text.index("five")

    previous = RESOLVER.previous_page_of(root, five)
    landing = RESOLVER.find_exact(root, previous)
    assert RESOLVER.next_page_of(root, landing.begin) == 5
