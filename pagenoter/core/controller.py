from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pagenoter.configs import PAGE_PLACEHOLDER
from pagenoter.core.accessor import insert_heading, locate_root, parse_root, properties_end
from pagenoter.core.errors import (
    NO_NOTE_SELECTED,
    OUTSIDE_HEADING,
    NavigationMiss,
    PageNoterError,
    UserInputError,
)
from pagenoter.core.readonly import protect
from pagenoter.core.resolver import Resolver
from pagenoter.core.session import (
    PropertyNames,
    Session,
    SessionKeys,
    SessionRegistry,
    SyncState,
)
from pagenoter.core.surfaces import DisplayGroup, NotesSurface, Platform
from pagenoter.outline.document import OutlineDocument, ReadOnlyError
from pagenoter.outline.tree import OutlineNode
from pagenoter.utils.logger import logger
from pagenoter.viewer.base import ViewerDriver, driver_for

CURRENT_HEADING_ONLY = "current-heading-only"
DEFAULT_TITLE_TEMPLATE = f"Notes for page {PAGE_PLACEHOLDER}"


def resolve_document_path(value: str, notes_path: Optional[Path]) -> Path:
    path = Path(value).expanduser()
    if not path.is_absolute():
        base = notes_path.parent if notes_path is not None else Path.cwd()
        path = base / path
    return path.resolve()


def check_readable(path: Path) -> None:
    if not path.is_file():
        raise UserInputError(f"Document not found: {path}")
    if not os.access(str(path), os.R_OK):
        raise UserInputError(f"Document is not readable: {path}")


class SyncController:
    """Keeps viewer pages and page notes in step for every live session."""

    def __init__(
        self,
        platform: Platform,
        config: Optional[Mapping[str, Any]] = None,
        registry: Optional[SessionRegistry] = None,
    ) -> None:
        self.platform = platform
        self.config = dict(config or {})
        self.registry = registry if registry is not None else SessionRegistry()
        self.registry.add_emptied_listener(self._detach_hooks)
        self.registry.add_killed_listener(self._release_hook)
        self._hooked: Dict[int, Tuple[ViewerDriver, Any]] = {}

    # ------------------------------------------------------------------ hooks
    @property
    def hooks_attached(self) -> bool:
        return bool(self._hooked)

    @property
    def hooked_viewers(self) -> List[Any]:
        return [viewer for _, viewer in self._hooked.values()]

    def _attach_hook(self, session: Session) -> None:
        key = id(session.viewer)
        if key in self._hooked:
            return
        session.driver.connect_page_changed(session.viewer, self._on_viewer_page_changed)
        self._hooked[key] = (session.driver, session.viewer)

    def _release_hook(self, session: Session) -> None:
        entry = self._hooked.pop(id(session.viewer), None)
        if entry is not None:
            self._disconnect(*entry)

    def _detach_hooks(self) -> None:
        for driver, viewer in list(self._hooked.values()):
            self._disconnect(driver, viewer)
        self._hooked.clear()
        logger.debug("No sessions left; viewer page hooks detached")

    def _disconnect(self, driver: ViewerDriver, viewer: Any) -> None:
        try:
            if driver.is_live(viewer):
                driver.disconnect_page_changed(viewer, self._on_viewer_page_changed)
        except RuntimeError as exc:
            logger.debug("Viewer gone before unhooking: %s", exc)

    def _on_viewer_page_changed(self, viewer: Any, page: int) -> None:
        session = self.registry.find_by_viewer(viewer)
        if session is None:
            return
        self.page_changed(session, page)

    # ------------------------------------------------------------------ helpers
    @property
    def names(self) -> PropertyNames:
        return PropertyNames.from_config(self.config)

    def _require_session(self, session: Optional[Session], context: Optional[Session] = None) -> Session:
        if session is None:
            session = self.registry.choose(self.platform.prompter, context)
        if session is None or not self.registry.is_valid(session):
            raise UserInputError("No active noter session")
        return session

    def _root(self, session: Session) -> OutlineNode:
        root = parse_root(session.notes, session.keys.identity_key, session.names)
        if root is None:
            raise UserInputError(
                f"No heading with {session.names.document} = {session.keys.identity_key}"
            )
        return root

    def _note_title(self, page: int, prompt_for_title: bool) -> Optional[str]:
        template = str(self.config.get("note_title_template") or DEFAULT_TITLE_TEMPLATE)
        default = template.replace(PAGE_PLACEHOLDER, str(page))
        if not prompt_for_title:
            return default
        answer = self.platform.prompter.read_text("Note title", default)
        if answer is None:
            return None
        return answer.strip() or default

    def _reveal(self, session: Session, node: OutlineNode) -> None:
        notes = session.notes
        notes.show_context(node.begin)
        notes.show_subtree(node.begin, node.end)
        at_end = node.end >= len(session.document)
        if not node.contains(notes.point, closed=at_end):
            notes.point = properties_end(node, True)

    # ------------------------------------------------------------------ sync
    def page_changed(self, session: Session, page: int) -> SyncState:
        """Scroll the notes to the note for ``page`` if there is one."""
        if not self.registry.is_valid(session):
            return SyncState.IDLE
        root = parse_root(session.notes, session.keys.identity_key, session.names)
        node = Resolver(session.names).find_exact(root, page) if root is not None else None
        if node is None:
            session.state = SyncState.IDLE
        else:
            self._reveal(session, node)
            session.state = SyncState.SYNCED
        logger.debug("Page %s -> %s", page, session.state.value)
        return session.state

    def insert_note(
        self,
        session: Optional[Session] = None,
        prompt_for_title: bool = False,
        context: Optional[Session] = None,
    ) -> Optional[OutlineNode]:
        session = self._require_session(session, context)
        names = session.names
        resolver = Resolver(names)
        document = session.document
        notes = session.notes
        page = session.driver.current_page(session.viewer)

        found = resolver.find_insertion_point(self._root(session), page)
        if found.exact is not None:
            self._open_line_at_end(notes, found.exact)
        else:
            title = self._note_title(page, prompt_for_title)
            if title is None:
                return None
            root = self._root(session)
            found = resolver.find_insertion_point(root, page)
            if found.preceding is not None:
                notes.point = found.preceding.end
            else:
                notes.point = properties_end(root, True)
            begin = insert_heading(notes, root.level + 1, title)
            document.set_property(begin, names.note_page, str(page))
            created = resolver.find_exact(self._root(session), page)
            body = properties_end(created, True)
            document.insert(body, "\n")
            notes.point = body + 1
            logger.info("Inserted note for page %s", page)

        node = resolver.find_exact(self._root(session), page)
        self._reveal(session, node)
        session.state = SyncState.SYNCED
        return node

    @staticmethod
    def _open_line_at_end(notes: NotesSurface, note: OutlineNode) -> None:
        document = notes.document
        text = document.text
        end = note.end
        if end >= 2 and text[end - 2:end] == "\n\n":
            notes.point = end - 1
        elif end >= 1 and text[end - 1] == "\n":
            document.insert(end - 1, "\n")
            notes.point = end
        else:
            document.insert(end, "\n")
            notes.point = end + 1

    def _sync(self, session: Optional[Session], direction: str, context: Optional[Session]) -> int:
        session = self._require_session(session, context)
        root = self._root(session)
        resolver = Resolver(session.names)
        point = session.notes.point
        if direction == "previous":
            page = resolver.previous_page_of(root, point)
        elif direction == "next":
            page = resolver.next_page_of(root, point)
        else:
            page = resolver.enclosing_page_of(root, point)
            if page is None:
                raise NavigationMiss(NO_NOTE_SELECTED)

        driver = session.driver
        if page == driver.current_page(session.viewer):
            self.page_changed(session, page)
        else:
            driver.goto_page(session.viewer, page)
        driver.select(session.viewer)
        return page

    def sync_to_previous_note(self, session: Optional[Session] = None, context: Optional[Session] = None) -> int:
        return self._sync(session, "previous", context)

    def sync_to_current_note(self, session: Optional[Session] = None, context: Optional[Session] = None) -> int:
        return self._sync(session, "current", context)

    def sync_to_next_note(self, session: Optional[Session] = None, context: Optional[Session] = None) -> int:
        return self._sync(session, "next", context)

    # ------------------------------------------------------------------ lifecycle
    def start(self, notes: NotesSurface, mode: Optional[str] = None) -> Session:
        """Begin (or focus) the session rooted at the heading around the cursor."""
        document = notes.document
        names = self.names
        heading = document.heading_at(notes.point)
        if heading is None:
            raise UserInputError(OUTSIDE_HEADING)

        root_heading = None
        if mode != CURRENT_HEADING_ONLY:
            candidate = heading
            while candidate is not None:
                if candidate.get(names.document):
                    root_heading = candidate
                    break
                candidate = document.parent_of(candidate)
        if root_heading is None:
            root_heading = heading

        identity_key = root_heading.get(names.document)
        pending = not identity_key
        if pending:
            identity_key, document_path = self._ask_document(document)
        else:
            document_path = resolve_document_path(identity_key, document.path)
            check_readable(document_path)

        existing = self.registry.find_by_identity(document, identity_key)
        if existing is not None and self.registry.is_valid(existing):
            if pending:
                document.set_property(root_heading.begin, names.document, identity_key)
            existing.group.select()
            existing.driver.select(existing.viewer)
            return existing

        opened = self.platform.open_display_group(
            document_path, notes, title=f"{document_path.name} with notes"
        )
        try:
            driver = driver_for(opened.viewer_kind)
            # The notes stay untouched until the viewer is known to work.
            if pending:
                document.set_property(root_heading.begin, names.document, identity_key)
        except (PageNoterError, ReadOnlyError):
            opened.group.close()
            raise
        keys = SessionKeys(
            identity_key=identity_key,
            document_path=document_path,
            notes_path=document.path,
            names=names,
        )
        session = self.registry.create(
            opened.viewer, opened.notes, opened.group, opened.viewer_kind, keys
        )
        root = locate_root(document, identity_key, names, notes.point)
        if root is not None:
            protect(document, root)
            if not root.contains(opened.notes.point):
                opened.notes.point = properties_end(root, True)
        self._attach_hook(session)
        self.page_changed(session, driver.current_page(opened.viewer))
        return session

    def start_from_document(self, notes: NotesSurface, document_path: Path) -> Session:
        """Start on the heading for ``document_path``, appending one if missing."""
        document = notes.document
        names = self.names
        target = resolve_document_path(str(document_path), None)
        check_readable(target)
        for heading in document.headings():
            value = heading.get(names.document)
            if value and resolve_document_path(value, document.path) == target:
                notes.point = heading.begin
                return self.start(notes)

        value = self._property_value_for(target, document)
        text = document.text
        prefix = "" if not text or text.endswith("\n") else "\n"
        begin = len(text) + len(prefix)
        document.insert(len(text), f"{prefix}* {target.stem}\n")
        document.set_property(begin, names.document, value)
        notes.point = begin
        return self.start(notes)

    def _ask_document(self, document: OutlineDocument) -> Tuple[str, Path]:
        directory = document.path.parent if document.path is not None else None
        answer = self.platform.prompter.read_file("Document to annotate", directory)
        if not answer:
            raise UserInputError("No document selected")
        path = resolve_document_path(answer, document.path)
        check_readable(path)
        return self._property_value_for(path, document), path

    def _property_value_for(self, path: Path, document: OutlineDocument) -> str:
        policy = str(self.config.get("store_relative_paths") or "ask")
        if document.path is None or policy == "never":
            return str(path)
        try:
            relative = os.path.relpath(str(path), str(document.path.parent.resolve()))
        except ValueError:
            return str(path)
        if policy == "always" or self.platform.prompter.confirm(
            f"Store the document path relative to the notes file ({relative})?"
        ):
            return relative
        return str(path)

    def kill_session(
        self,
        session: Optional[Session] = None,
        disambiguate: bool = False,
        context: Optional[Session] = None,
    ) -> Optional[Session]:
        if session is None:
            session = self.registry.choose(self.platform.prompter, context, disambiguate)
        if session is None:
            return None
        self.registry.kill(session)
        return session

    def handle_group_closed(self, group: DisplayGroup) -> None:
        for session in self.registry.sessions():
            if session.group is group:
                self.kill_session(session)

    def handle_notes_closed(self, notes: NotesSurface) -> None:
        session = self.registry.find_by_notes(notes)
        if session is not None:
            self.kill_session(session)

    def handle_viewer_closed(self, viewer: Any) -> None:
        session = self.registry.find_by_viewer(viewer)
        if session is not None:
            self.kill_session(session)

    def shutdown(self) -> None:
        for session in self.registry.sessions():
            self.kill_session(session)
