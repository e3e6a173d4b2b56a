"""Qt implementations of the surfaces, prompts and viewer driver."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple

from qtpy import QtWidgets

from pagenoter.core.errors import PageNoterError
from pagenoter.core.surfaces import (
    DisplayGroup,
    NotesSurface,
    OpenedGroup,
    Platform,
    Prompter,
)
from pagenoter.gui.widgets.noter_window import NoterWindow
from pagenoter.gui.widgets.notes_editor import NotesEditor
from pagenoter.gui.widgets.pdf_viewer import PdfViewerWidget
from pagenoter.outline.document import OutlineDocument
from pagenoter.utils.logger import logger
from pagenoter.viewer.base import PageListener, ViewerDriver, ViewerKind, register_driver


class QtPrompter(Prompter):
    def __init__(self, parent: Optional[QtWidgets.QWidget] = None) -> None:
        self.parent = parent

    def choose(self, prompt: str, options: Sequence[str], default: Optional[str] = None) -> Optional[str]:
        items = list(options)
        current = items.index(default) if default in items else 0
        item, ok = QtWidgets.QInputDialog.getItem(
            self.parent, "pagenoter", prompt, items, current, False
        )
        return str(item) if ok else None

    def read_text(self, prompt: str, default: str = "") -> Optional[str]:
        text, ok = QtWidgets.QInputDialog.getText(
            self.parent, "pagenoter", prompt, QtWidgets.QLineEdit.Normal, default
        )
        return str(text) if ok else None

    def confirm(self, question: str) -> bool:
        answer = QtWidgets.QMessageBox.question(
            self.parent,
            "pagenoter",
            question,
            QtWidgets.QMessageBox.Yes | QtWidgets.QMessageBox.No,
            QtWidgets.QMessageBox.Yes,
        )
        return answer == QtWidgets.QMessageBox.Yes

    def read_file(self, prompt: str, directory: Optional[Path] = None) -> Optional[str]:
        filename, _ = QtWidgets.QFileDialog.getOpenFileName(
            self.parent,
            prompt,
            str(directory or ""),
            "PDF files (*.pdf);;All files (*)",
        )
        return str(filename) if filename else None


class QtNotesSurface(NotesSurface):
    def __init__(self, editor: NotesEditor) -> None:
        self.editor = editor

    @property
    def document(self) -> OutlineDocument:
        return self.editor.model

    def get_point(self) -> int:
        return self.editor.get_point()

    def set_point(self, offset: int) -> None:
        self.editor.set_point(offset)

    def is_live(self) -> bool:
        try:
            return not self.editor.is_closed()
        except RuntimeError:
            return False

    def close(self) -> None:
        self.editor.release()
        self.editor.close()

    def select(self) -> None:
        self.editor.window().activateWindow()
        self.editor.setFocus()

    def show_context(self, offset: int) -> None:
        self.editor.show_context(offset)

    def show_subtree(self, begin: int, end: int) -> None:
        self.editor.show_subtree(begin, end)


class QtDisplayGroup(DisplayGroup):
    def __init__(self, window: NoterWindow) -> None:
        self.window = window

    def is_live(self) -> bool:
        try:
            return not self.window.is_closed()
        except RuntimeError:
            return False

    def close(self) -> None:
        self.window.close()

    def select(self) -> None:
        self.window.show()
        self.window.raise_()
        self.window.activateWindow()


class QtPdfDriver(ViewerDriver):
    """Drives ``PdfViewerWidget``; its 0-based page index is shifted to 1-based."""

    kind = ViewerKind.QT_PDF

    def __init__(self) -> None:
        self._slots: Dict[Tuple[int, PageListener], Callable[[int, int], None]] = {}

    def current_page(self, handle: PdfViewerWidget) -> int:
        return handle.current_page_index() + 1

    def goto_page(self, handle: PdfViewerWidget, page: int) -> None:
        handle.go_to_page(page - 1)

    def page_count(self, handle: PdfViewerWidget) -> int:
        return handle.page_count()

    def connect_page_changed(self, handle: PdfViewerWidget, listener: PageListener) -> None:
        key = (id(handle), listener)
        if key in self._slots:
            return

        def slot(index: int, _total: int) -> None:
            listener(handle, index + 1)

        handle.page_changed.connect(slot)
        self._slots[key] = slot

    def disconnect_page_changed(self, handle: PdfViewerWidget, listener: PageListener) -> None:
        slot = self._slots.pop((id(handle), listener), None)
        if slot is None:
            return
        try:
            handle.page_changed.disconnect(slot)
        except (RuntimeError, TypeError) as exc:
            logger.debug("Page hook already disconnected: %s", exc)

    def is_live(self, handle: PdfViewerWidget) -> bool:
        try:
            return not handle.is_closed()
        except RuntimeError:
            return False

    def close(self, handle: PdfViewerWidget) -> None:
        handle.release()

    def select(self, handle: PdfViewerWidget) -> None:
        handle.window().activateWindow()
        handle.setFocus()


register_driver(QtPdfDriver())


class QtPlatform(Platform):
    """Opens a ``NoterWindow`` per session and routes its commands to a handler."""

    def __init__(
        self,
        config: Optional[Mapping[str, Any]] = None,
        parent: Optional[QtWidgets.QWidget] = None,
    ) -> None:
        self.config = dict(config or {})
        self.prompter = QtPrompter(parent)
        self.controller = None
        self.windows: list[NoterWindow] = []

    def open_display_group(
        self,
        document_path: Path,
        source: NotesSurface,
        title: str = "",
    ) -> OpenedGroup:
        window = NoterWindow(
            source.document,
            shortcuts=self.config.get("shortcuts"),
            zoom_percent=float(self.config.get("initial_zoom_percent") or 150),
        )
        try:
            window.load_pdf(str(document_path))
        except Exception as exc:
            window.close()
            raise PageNoterError(f"Could not open {document_path}: {exc}") from exc
        window.setWindowTitle(title or document_path.name)
        notes = QtNotesSurface(window.notes_editor)
        notes.point = source.point
        group = QtDisplayGroup(window)
        self._wire(window, group)
        self.windows.append(window)
        window.show()
        return OpenedGroup(
            group=group,
            viewer=window.pdf_viewer,
            viewer_kind=ViewerKind.QT_PDF,
            notes=notes,
        )

    def _wire(self, window: NoterWindow, group: QtDisplayGroup) -> None:
        def session():
            return self.controller.registry.find_by_viewer(window.pdf_viewer)

        def run(command: Callable[[], Any]) -> None:
            self.run_command(window, command)

        window.insert_note_requested.connect(
            lambda titled: run(lambda: self.controller.insert_note(session(), prompt_for_title=titled))
        )
        window.sync_requested.connect(
            lambda direction: run(
                lambda: getattr(self.controller, f"sync_to_{direction}_note")(session())
            )
        )
        window.kill_requested.connect(lambda: run(lambda: self.controller.kill_session(session())))
        window.save_requested.connect(lambda: run(window.notes_editor.model.save))
        window.closed.connect(lambda: self._on_window_closed(window, group))

    def _on_window_closed(self, window: NoterWindow, group: QtDisplayGroup) -> None:
        if window in self.windows:
            self.windows.remove(window)
        if self.controller is not None:
            self.controller.handle_group_closed(group)

    def run_command(self, window: QtWidgets.QWidget, command: Callable[[], Any]) -> Any:
        """Run a noter command, reporting user-facing failures on ``window``."""
        if self.controller is None:
            return None
        try:
            return command()
        except PageNoterError as exc:
            logger.info("Command failed: %s", exc)
            show = getattr(window, "show_message", None)
            if show is not None:
                show(str(exc))
            else:
                QtWidgets.QMessageBox.warning(window, "pagenoter", str(exc))
            return None
