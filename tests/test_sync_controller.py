from __future__ import annotations

from pathlib import Path

import pytest

from pagenoter.core.accessor import locate_root, properties_end
from pagenoter.core.controller import CURRENT_HEADING_ONLY, SyncController
from pagenoter.core.errors import (
    NO_NEXT_NOTE,
    NO_NOTE_SELECTED,
    NO_PREVIOUS_NOTE,
    OUTSIDE_HEADING,
    NavigationMiss,
    UserInputError,
)
from pagenoter.core.headless import HeadlessNotesSurface, HeadlessPlatform, ScriptedPrompter
from pagenoter.core.resolver import Resolver
from pagenoter.core.session import PropertyNames, SyncState
from pagenoter.outline.document import OutlineDocument, ReadOnlyError
from pagenoter.viewer import base
from pagenoter.viewer.base import PagedDocument, ViewerKind


ROOT = "* Paper\n:PROPERTIES:\n:DOC_FILE: paper.pdf\n:END:\n"


def _note(page: int, body: str = "") -> str:
    return f"** Notes for page {page}\n:PROPERTIES:\n:DOC_NOTE_PAGE: {page}\n:END:\n{body}"


class _Noter:
    """Headless controller wired to a 10-page fake viewer in ``tmp_path``."""

    def __init__(self, tmp_path: Path, text: str = ROOT, config=None, answers=()) -> None:
        self.pdf = tmp_path / "paper.pdf"
        self.pdf.write_bytes(b"%PDF-1.4\n%%EOF\n")
        self.document = OutlineDocument(text, path=tmp_path / "notes.org")
        self.prompter = ScriptedPrompter(answers)
        self.platform = HeadlessPlatform(
            self.prompter, viewer_factory=lambda path: PagedDocument(10, path)
        )
        self.controller = SyncController(self.platform, config)
        self.source = HeadlessNotesSurface(self.document, point=2)

    def start(self, **kwargs):
        return self.controller.start(self.source, **kwargs)

    def root(self, session):
        return locate_root(self.document, "paper.pdf", PropertyNames(), session.notes.point)

    def note(self, session, page):
        return Resolver(PropertyNames()).find_exact(self.root(session), page)


def test_start_opens_group_and_protects_root(tmp_path: Path) -> None:
    noter = _Noter(tmp_path)
    session = noter.start()

    opened = noter.platform.opened[0]
    assert session.viewer is opened.viewer
    assert session.notes is opened.notes
    assert opened.group.title == "paper.pdf with notes"
    assert session.keys.document_path == noter.pdf.resolve()
    assert session.state is SyncState.IDLE
    assert noter.controller.hooks_attached
    assert not noter.document.can_replace(0, 0)
    assert not noter.document.modified
    with pytest.raises(ReadOnlyError):
        noter.document.insert(noter.document.text.index("DOC_FILE"), "x")


def test_start_twice_focuses_existing_session(tmp_path: Path) -> None:
    noter = _Noter(tmp_path)
    first = noter.start()
    first.group.selected = False

    assert noter.start() is first
    assert first.group.selected
    assert len(noter.platform.opened) == 1


def test_insert_notes_keeps_page_order(tmp_path: Path) -> None:
    noter = _Noter(tmp_path)
    session = noter.start()

    session.viewer.goto_page(3)
    assert session.state is SyncState.IDLE
    noter.controller.insert_note(session)
    after_first = noter.document.text

    noter.controller.insert_note(session)
    assert noter.document.text == after_first
    assert session.notes.point == len(noter.document) - 1

    session.viewer.goto_page(1)
    noter.controller.insert_note(session)

    assert noter.document.text == (
        ROOT
        + "** Notes for page 1\n:PROPERTIES:\n:DOC_NOTE_PAGE: 1\n:END:\n\n"
        + "** Notes for page 3\n:PROPERTIES:\n:DOC_NOTE_PAGE: 3\n:END:\n\n"
    )
    assert session.state is SyncState.SYNCED
    assert noter.document.text[session.notes.point - 1:session.notes.point + 1] == "\n\n"


def test_insert_note_after_last_note_keeps_blank_line(tmp_path: Path) -> None:
    noter = _Noter(tmp_path, ROOT + _note(3, "three\n\n"))
    session = noter.start()

    session.viewer.goto_page(5)
    noter.controller.insert_note(session)

    text = noter.document.text
    assert "three\n\n** Notes for page 5\n" in text
    assert noter.note(session, 5) is not None


def test_insert_note_uses_title_template_and_prompt(tmp_path: Path) -> None:
    noter = _Noter(
        tmp_path,
        config={"note_title_template": "p. $p$"},
        answers=["", "Custom"],
    )
    session = noter.start()

    session.viewer.goto_page(4)
    noter.controller.insert_note(session)
    assert "** p. 4\n" in noter.document.text

    session.viewer.goto_page(2)
    noter.controller.insert_note(session, prompt_for_title=True)
    session.viewer.goto_page(6)
    noter.controller.insert_note(session, prompt_for_title=True)

    text = noter.document.text
    assert "** p. 2\n" in text
    assert "** Custom\n" in text
    assert [kind for kind, _, _ in noter.prompter.asked] == ["text", "text"]


def test_dismissed_title_prompt_inserts_nothing(tmp_path: Path) -> None:
    noter = _Noter(tmp_path)
    session = noter.start()
    before = noter.document.text

    assert noter.controller.insert_note(session, prompt_for_title=True) is None
    assert noter.document.text == before


def test_inserted_note_body_is_root_body_when_nothing_precedes(tmp_path: Path) -> None:
    noter = _Noter(tmp_path, ROOT + "Root remarks\n")
    session = noter.start()

    noter.controller.insert_note(session)

    note = noter.note(session, 1)
    assert "Root remarks" in noter.document.text[note.begin:note.end]


def test_page_change_reveals_matching_note(tmp_path: Path) -> None:
    noter = _Noter(tmp_path, ROOT + _note(2, "two\n") + _note(5, "five\n"))
    session = noter.start()
    session.notes.point = noter.document.text.index("two")

    session.viewer.goto_page(5)

    note = noter.note(session, 5)
    assert session.state is SyncState.SYNCED
    assert session.notes.point == properties_end(note, True)
    assert ("subtree", note.begin, note.end) in session.notes.reveals

    session.viewer.goto_page(7)
    assert session.state is SyncState.IDLE
    assert session.notes.point == properties_end(note, True)


def test_point_inside_revealed_note_is_kept(tmp_path: Path) -> None:
    noter = _Noter(tmp_path, ROOT + _note(2, "two\n") + _note(5, "five\n"))
    session = noter.start()
    inside = noter.document.text.index("five")
    session.notes.point = inside

    session.viewer.goto_page(5)
    assert session.notes.point == inside


def test_sync_round_trip(tmp_path: Path) -> None:
    noter = _Noter(
        tmp_path, ROOT + _note(2, "two\n") + _note(5, "five\n") + _note(9, "nine\n")
    )
    session = noter.start()
    text = noter.document.text
    session.notes.point = text.index("five")

    assert noter.controller.sync_to_current_note(session) == 5
    assert session.viewer.page == 5
    assert session.viewer.selected
    assert session.state is SyncState.SYNCED

    assert noter.controller.sync_to_previous_note(session) == 2
    assert session.viewer.page == 2
    assert session.notes.point == properties_end(noter.note(session, 2), True)

    assert noter.controller.sync_to_next_note(session) == 5
    assert session.viewer.page == 5


def test_sync_to_current_page_reruns_reveal(tmp_path: Path) -> None:
    noter = _Noter(tmp_path, ROOT + _note(1, "one\n"))
    session = noter.start()
    session.notes.reveals.clear()
    session.notes.point = noter.document.text.index("one")

    assert noter.controller.sync_to_current_note(session) == 1
    assert session.notes.reveals


def test_sync_misses(tmp_path: Path) -> None:
    noter = _Noter(tmp_path, ROOT + "intro\n" + _note(2, "two\n") + _note(9, "nine\n"))
    session = noter.start()
    text = noter.document.text

    session.notes.point = text.index("two")
    with pytest.raises(NavigationMiss, match=NO_PREVIOUS_NOTE):
        noter.controller.sync_to_previous_note(session)
    session.notes.point = text.index("nine")
    with pytest.raises(NavigationMiss, match=NO_NEXT_NOTE):
        noter.controller.sync_to_next_note(session)
    session.notes.point = text.index("intro")
    with pytest.raises(NavigationMiss, match=NO_NOTE_SELECTED):
        noter.controller.sync_to_current_note(session)
    assert session.viewer.page == 1


def test_start_outside_heading(tmp_path: Path) -> None:
    noter = _Noter(tmp_path, "preamble\n" + ROOT)
    noter.source.point = 0

    with pytest.raises(UserInputError, match=OUTSIDE_HEADING):
        noter.start()


def test_start_with_missing_document(tmp_path: Path) -> None:
    noter = _Noter(tmp_path, ROOT.replace("paper.pdf", "missing.pdf"))

    with pytest.raises(UserInputError):
        noter.start()
    assert noter.platform.opened == []


def test_start_from_child_heading_walks_up(tmp_path: Path) -> None:
    noter = _Noter(tmp_path, ROOT + _note(2, "two\n"))
    noter.source.point = noter.document.text.index("two")

    session = noter.start()
    assert session.keys.identity_key == "paper.pdf"
    assert session.notes.point == noter.document.text.index("two")


def test_current_heading_only_asks_for_document(tmp_path: Path) -> None:
    noter = _Noter(tmp_path, ROOT + _note(2, "two\n"))
    noter.source.point = noter.document.text.index("two")

    with pytest.raises(UserInputError):
        noter.start(mode=CURRENT_HEADING_ONLY)
    assert noter.prompter.asked[0][0] == "file"


@pytest.mark.parametrize(
    "policy, answers, expected",
    [
        ("ask", [True], "paper.pdf"),
        ("ask", [False], None),
        ("always", [], "paper.pdf"),
        ("never", [], None),
    ],
)
def test_document_path_is_asked_and_stored(tmp_path: Path, policy, answers, expected) -> None:
    pdf = tmp_path / "paper.pdf"
    noter = _Noter(
        tmp_path,
        "* Reading\nbody\n",
        config={"store_relative_paths": policy},
        answers=[str(pdf), *answers],
    )

    session = noter.start()

    stored = noter.document.headings()[0].get("DOC_FILE")
    assert stored == (expected or str(pdf.resolve()))
    assert session.keys.identity_key == stored
    assert "body" in noter.document.text


def test_aborted_start_leaves_notes_untouched(tmp_path: Path, monkeypatch) -> None:
    pdf = tmp_path / "paper.pdf"
    noter = _Noter(tmp_path, "* Paper\n", answers=[str(pdf)], config={"store_relative_paths": "never"})
    monkeypatch.delitem(base._DRIVERS, ViewerKind.PAGED)

    with pytest.raises(UserInputError):
        noter.start()

    assert noter.document.text == "* Paper\n"
    assert not noter.document.modified
    assert noter.platform.opened[0].group.closed
    assert len(noter.controller.registry) == 0


def test_unloadable_document_leaves_notes_untouched(tmp_path: Path) -> None:
    pdf = tmp_path / "paper.pdf"
    noter = _Noter(tmp_path, "* Paper\n", answers=[str(pdf)], config={"store_relative_paths": "never"})

    def refuse(path):
        raise UserInputError(f"Cannot open {path}")

    noter.platform._viewer_factory = refuse

    with pytest.raises(UserInputError):
        noter.start()

    assert noter.document.text == "* Paper\n"
    assert not noter.document.modified


def test_start_from_document_appends_heading(tmp_path: Path) -> None:
    noter = _Noter(tmp_path, "", config={"store_relative_paths": "always"})

    session = noter.controller.start_from_document(noter.source, noter.pdf)

    assert noter.document.text == "* paper\n:PROPERTIES:\n:DOC_FILE: paper.pdf\n:END:\n"
    assert session.keys.identity_key == "paper.pdf"


def test_start_from_document_reuses_existing_heading(tmp_path: Path) -> None:
    noter = _Noter(tmp_path, "* Other\n" + ROOT)

    session = noter.controller.start_from_document(noter.source, noter.pdf)

    assert noter.document.text == "* Other\n" + ROOT
    assert noter.root(session).title == "Paper"


def test_kill_session_releases_everything(tmp_path: Path) -> None:
    noter = _Noter(tmp_path)
    session = noter.start()
    viewer = session.viewer

    assert noter.controller.kill_session(session) is session
    assert noter.document.read_only_count() == 0
    assert viewer.closed
    assert session.group.closed
    assert not noter.controller.hooks_attached
    assert len(noter.controller.registry) == 0


def test_hooks_stay_while_any_session_lives(tmp_path: Path) -> None:
    noter = _Noter(tmp_path, ROOT + "* Book\n:PROPERTIES:\n:DOC_FILE: ./paper.pdf\n:END:\n")
    first = noter.start()
    noter.source.point = noter.document.text.index("* Book") + 2
    second = noter.start()

    assert second is not first
    noter.controller.kill_session(first)
    assert noter.controller.hooks_attached
    assert second.viewer.listener_count == 1

    noter.controller.kill_session(second)
    assert not noter.controller.hooks_attached


def test_stale_session_releases_its_hook(tmp_path: Path) -> None:
    noter = _Noter(tmp_path, ROOT + "* Book\n:PROPERTIES:\n:DOC_FILE: ./paper.pdf\n:END:\n")
    first = noter.start()
    noter.source.point = noter.document.text.index("* Book") + 2
    second = noter.start()

    first.notes.close()

    assert not noter.controller.registry.is_valid(first)
    assert noter.controller.hooked_viewers == [second.viewer]
    assert second.viewer.listener_count == 1


def test_closed_group_invalidates_session(tmp_path: Path) -> None:
    noter = _Noter(tmp_path)
    session = noter.start()

    session.group.close()

    with pytest.raises(UserInputError):
        noter.controller.insert_note(session)
    assert len(noter.controller.registry) == 0
    assert noter.document.read_only_count() == 0
    assert noter.controller.page_changed(session, 1) is SyncState.IDLE
    assert not noter.controller.hooks_attached


def test_commands_without_session_pick_one(tmp_path: Path) -> None:
    noter = _Noter(tmp_path)
    with pytest.raises(UserInputError):
        noter.controller.insert_note()

    session = noter.start()
    session.viewer.goto_page(2)
    node = noter.controller.insert_note()
    assert node.get("DOC_NOTE_PAGE") == "2"


def test_handle_surface_closed(tmp_path: Path) -> None:
    noter = _Noter(tmp_path)
    session = noter.start()

    noter.controller.handle_notes_closed(session.notes)
    assert session.killed

    session = noter.start()
    noter.controller.handle_viewer_closed(session.viewer)
    assert session.killed

    session = noter.start()
    noter.controller.shutdown()
    assert session.killed
    assert noter.document.read_only_count() == 0


def test_custom_property_names(tmp_path: Path) -> None:
    text = "* Paper\n:PROPERTIES:\n:PDF: paper.pdf\n:END:\n"
    noter = _Noter(
        tmp_path,
        text,
        config={"property_names": {"document": "pdf", "note_page": "page"}},
    )
    session = noter.start()
    session.viewer.goto_page(4)

    node = noter.controller.insert_note(session)
    assert node.get("PAGE") == "4"
    assert ":PAGE: 4\n" in noter.document.text
