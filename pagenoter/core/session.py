from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional

from pagenoter.core.accessor import locate_root
from pagenoter.core.readonly import unprotect
from pagenoter.core.surfaces import DisplayGroup, NotesSurface, Prompter
from pagenoter.outline.document import OutlineDocument
from pagenoter.utils.logger import logger
from pagenoter.viewer.base import ViewerDriver, ViewerKind, driver_for


@dataclass(frozen=True)
class PropertyNames:
    """Names of the two properties the noter writes into the notes file."""

    document: str = "DOC_FILE"
    note_page: str = "DOC_NOTE_PAGE"

    @classmethod
    def from_config(cls, config: Optional[Mapping[str, Any]]) -> "PropertyNames":
        section = dict((config or {}).get("property_names") or {})
        return cls(
            document=str(section.get("document") or cls.document).upper(),
            note_page=str(section.get("note_page") or cls.note_page).upper(),
        )


class SyncState(Enum):
    IDLE = "idle"
    SYNCED = "synced"


@dataclass(frozen=True)
class SessionKeys:
    identity_key: str
    document_path: Path
    notes_path: Optional[Path] = None
    names: PropertyNames = field(default_factory=PropertyNames)


@dataclass(eq=False)
class Session:
    viewer: Any
    notes: NotesSurface
    group: DisplayGroup
    viewer_kind: ViewerKind
    keys: SessionKeys
    document: OutlineDocument
    state: SyncState = SyncState.IDLE
    killed: bool = False

    @property
    def driver(self) -> ViewerDriver:
        return driver_for(self.viewer_kind)

    @property
    def names(self) -> PropertyNames:
        return self.keys.names

    @property
    def label(self) -> str:
        notes_name = self.keys.notes_path.name if self.keys.notes_path else "<unsaved notes>"
        return f"{self.keys.document_path.name} with notes from {notes_name}"


class SessionRegistry:
    """Live noter sessions, oldest first."""

    def __init__(self) -> None:
        self._sessions: List[Session] = []
        self._emptied_listeners: List[Callable[[], None]] = []
        self._killed_listeners: List[Callable[[Session], None]] = []

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self) -> Iterator[Session]:
        return iter(list(self._sessions))

    def __contains__(self, session: object) -> bool:
        return session in self._sessions

    def sessions(self) -> List[Session]:
        return list(self._sessions)

    def add_emptied_listener(self, listener: Callable[[], None]) -> None:
        if listener not in self._emptied_listeners:
            self._emptied_listeners.append(listener)

    def add_killed_listener(self, listener: Callable[[Session], None]) -> None:
        if listener not in self._killed_listeners:
            self._killed_listeners.append(listener)

    def create(
        self,
        viewer: Any,
        notes: NotesSurface,
        group: DisplayGroup,
        viewer_kind: ViewerKind,
        keys: SessionKeys,
    ) -> Session:
        for existing in self._sessions:
            if existing.viewer is viewer and existing.notes is notes:
                raise ValueError("These surfaces already belong to a session.")
        session = Session(
            viewer=viewer,
            notes=notes,
            group=group,
            viewer_kind=viewer_kind,
            keys=keys,
            document=notes.document,
        )
        self._sessions.append(session)
        logger.info("Started session: %s", session.label)
        return session

    def find_by_viewer(self, viewer: Any) -> Optional[Session]:
        for session in self._sessions:
            if session.viewer is viewer:
                return session
        return None

    def find_by_notes(self, notes: NotesSurface) -> Optional[Session]:
        for session in self._sessions:
            if session.notes is notes:
                return session
        return None

    def find_by_identity(self, document: OutlineDocument, identity_key: str) -> Optional[Session]:
        for session in reversed(self._sessions):
            if session.document is document and session.keys.identity_key == identity_key:
                return session
        return None

    def is_valid(self, session: Optional[Session]) -> bool:
        if session is None or session.killed:
            return False
        try:
            live = (
                session.group.is_live()
                and session.notes.is_live()
                and session.driver.is_live(session.viewer)
            )
        except RuntimeError:
            # Qt raises once the wrapped C++ widget has been deleted.
            live = False
        if not live:
            logger.debug("Session %s is stale; tearing it down", session.label)
            self.kill(session)
        return live

    def kill(self, session: Session) -> None:
        if session.killed:
            return
        session.killed = True
        point = None
        try:
            if session.notes.is_live():
                point = session.notes.point
        except RuntimeError:
            point = None
        root = locate_root(session.document, session.keys.identity_key, session.names, point)
        if root is not None:
            unprotect(session.document, root)
        for listener in list(self._killed_listeners):
            listener(session)

        if session in self._sessions:
            self._sessions.remove(session)
        self._close_quietly(session)
        logger.info("Killed session: %s", session.label)

        if not self._sessions:
            for listener in list(self._emptied_listeners):
                listener()

    @staticmethod
    def _close_quietly(session: Session) -> None:
        closers = (
            (session.group.is_live, session.group.close),
            (session.notes.is_live, session.notes.close),
            (
                lambda: session.driver.is_live(session.viewer),
                lambda: session.driver.close(session.viewer),
            ),
        )
        for is_live, close in closers:
            try:
                if is_live():
                    close()
            except RuntimeError as exc:
                logger.debug("Surface already gone while closing: %s", exc)

    def choose(
        self,
        prompter: Optional[Prompter],
        context: Optional[Session] = None,
        disambiguate: bool = False,
    ) -> Optional[Session]:
        """Pick the session a command applies to, prompting when ambiguous."""
        live = [session for session in list(self._sessions) if self.is_valid(session)]
        if not live:
            return None
        if context not in live:
            context = None
        if len(live) == 1:
            return live[0]
        if context is not None and not disambiguate:
            return context
        if prompter is None:
            return context or live[-1]

        by_label: Dict[str, Session] = {}
        for session in reversed(live):
            label = session.label
            suffix = 2
            while label in by_label:
                label = f"{session.label} <{suffix}>"
                suffix += 1
            by_label[label] = session
        default = next(
            (label for label, session in by_label.items() if session is context),
            None,
        )
        answer = prompter.choose("Session", list(by_label), default)
        if answer is None:
            return None
        return by_label.get(answer)
