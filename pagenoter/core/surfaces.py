"""
Interfaces for the collaborators the noter drives.

The Qt front end and the window-less implementation in
``pagenoter.core.headless`` both provide these.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Sequence

from pagenoter.outline.document import OutlineDocument
from pagenoter.viewer.base import ViewerKind


class NotesSurface(ABC):
    """A view onto the notes document with its own cursor."""

    @property
    @abstractmethod
    def document(self) -> OutlineDocument:
        pass

    @property
    def path(self) -> Optional[Path]:
        return self.document.path

    @abstractmethod
    def get_point(self) -> int:
        pass

    @abstractmethod
    def set_point(self, offset: int) -> None:
        pass

    @property
    def point(self) -> int:
        return self.get_point()

    @point.setter
    def point(self, offset: int) -> None:
        self.set_point(offset)

    @abstractmethod
    def is_live(self) -> bool:
        pass

    @abstractmethod
    def close(self) -> None:
        pass

    @abstractmethod
    def select(self) -> None:
        pass

    @abstractmethod
    def show_context(self, offset: int) -> None:
        """Unfold the headings above ``offset`` so it becomes visible."""
        pass

    @abstractmethod
    def show_subtree(self, begin: int, end: int) -> None:
        """Unfold the whole ``[begin, end)`` subtree and scroll it into view."""
        pass


class DisplayGroup(ABC):
    """Window (or frame) holding a paired viewer and notes surface."""

    @abstractmethod
    def is_live(self) -> bool:
        pass

    @abstractmethod
    def close(self) -> None:
        pass

    @abstractmethod
    def select(self) -> None:
        pass


class Prompter(ABC):
    """Synchronous user prompts; ``None`` means the user dismissed the prompt."""

    @abstractmethod
    def choose(self, prompt: str, options: Sequence[str], default: Optional[str] = None) -> Optional[str]:
        pass

    @abstractmethod
    def read_text(self, prompt: str, default: str = "") -> Optional[str]:
        pass

    @abstractmethod
    def confirm(self, question: str) -> bool:
        pass

    @abstractmethod
    def read_file(self, prompt: str, directory: Optional[Path] = None) -> Optional[str]:
        pass


@dataclass
class OpenedGroup:
    group: DisplayGroup
    viewer: Any
    viewer_kind: ViewerKind
    notes: NotesSurface


class Platform(ABC):
    prompter: Prompter

    @abstractmethod
    def open_display_group(
        self,
        document_path: Path,
        source: NotesSurface,
        title: str = "",
    ) -> OpenedGroup:
        """Open a viewer on ``document_path`` next to a new view of ``source``'s document."""
        pass
