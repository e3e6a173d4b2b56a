"""Window-less surfaces, prompts and platform for scripting and tests."""

from __future__ import annotations

from collections import deque
from pathlib import Path
from typing import Callable, Deque, Iterable, List, Optional, Sequence, Tuple

from pagenoter.core.surfaces import (
    DisplayGroup,
    NotesSurface,
    OpenedGroup,
    Platform,
    Prompter,
)
from pagenoter.outline.document import OutlineDocument
from pagenoter.viewer.base import PagedDocument, ViewerKind


class HeadlessNotesSurface(NotesSurface):
    def __init__(self, document: OutlineDocument, point: int = 0) -> None:
        self._document = document
        self._point = max(0, min(point, len(document)))
        self.closed = False
        self.selected = False
        self.reveals: List[Tuple[str, int, int]] = []
        document.add_change_listener(self._on_document_changed)

    @property
    def document(self) -> OutlineDocument:
        return self._document

    def get_point(self) -> int:
        return self._point

    def set_point(self, offset: int) -> None:
        self._point = max(0, min(int(offset), len(self._document)))

    def _on_document_changed(self, position: int, removed: int, inserted: str) -> None:
        if self._point >= position + removed:
            self._point += len(inserted) - removed
        elif self._point > position:
            self._point = position

    def is_live(self) -> bool:
        return not self.closed

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._document.remove_change_listener(self._on_document_changed)

    def select(self) -> None:
        self.selected = True

    def show_context(self, offset: int) -> None:
        self.reveals.append(("context", offset, offset))

    def show_subtree(self, begin: int, end: int) -> None:
        self.reveals.append(("subtree", begin, end))


class HeadlessDisplayGroup(DisplayGroup):
    def __init__(self, title: str = "") -> None:
        self.title = title
        self.closed = False
        self.selected = False
        self.members: List[object] = []

    def is_live(self) -> bool:
        return not self.closed

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        for member in self.members:
            close = getattr(member, "close", None)
            if close is not None:
                close()

    def select(self) -> None:
        self.selected = True


class ScriptedPrompter(Prompter):
    """Answers prompts from a queue; records every question asked."""

    def __init__(self, answers: Iterable[object] = ()) -> None:
        self.answers: Deque[object] = deque(answers)
        self.asked: List[Tuple[str, str, object]] = []

    def _next(self, kind: str, prompt: str, extra: object = None):
        self.asked.append((kind, prompt, extra))
        if not self.answers:
            return None
        return self.answers.popleft()

    def choose(self, prompt: str, options: Sequence[str], default: Optional[str] = None) -> Optional[str]:
        answer = self._next("choose", prompt, (list(options), default))
        if answer is None:
            return default
        return str(answer)

    def read_text(self, prompt: str, default: str = "") -> Optional[str]:
        answer = self._next("text", prompt, default)
        return None if answer is None else str(answer)

    def confirm(self, question: str) -> bool:
        return bool(self._next("confirm", question))

    def read_file(self, prompt: str, directory: Optional[Path] = None) -> Optional[str]:
        answer = self._next("file", prompt, directory)
        return None if answer is None else str(answer)


class HeadlessPlatform(Platform):
    """Opens display groups made of a ``PagedDocument`` and a headless notes view."""

    def __init__(
        self,
        prompter: Optional[Prompter] = None,
        viewer_factory: Optional[Callable[[Path], PagedDocument]] = None,
    ) -> None:
        self.prompter = prompter or ScriptedPrompter()
        self._viewer_factory = viewer_factory or PagedDocument.open
        self.opened: List[OpenedGroup] = []

    def open_display_group(
        self,
        document_path: Path,
        source: NotesSurface,
        title: str = "",
    ) -> OpenedGroup:
        viewer = self._viewer_factory(document_path)
        notes = HeadlessNotesSurface(source.document, source.point)
        group = HeadlessDisplayGroup(title)
        group.members.extend([viewer, notes])
        opened = OpenedGroup(group=group, viewer=viewer, viewer_kind=ViewerKind.PAGED, notes=notes)
        self.opened.append(opened)
        return opened
