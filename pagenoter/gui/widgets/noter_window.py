from __future__ import annotations

from typing import Mapping, Optional

from qtpy import QtCore, QtGui, QtWidgets
from qtpy.QtCore import Qt

from pagenoter.gui.widgets.notes_editor import NotesEditor
from pagenoter.gui.widgets.pdf_controls import PdfControlsWidget
from pagenoter.gui.widgets.pdf_viewer import PdfViewerWidget
from pagenoter.outline.document import OutlineDocument


class NoterWindow(QtWidgets.QMainWindow):
    """Side-by-side PDF viewer and notes view for one noter session."""

    insert_note_requested = QtCore.Signal(bool)
    sync_requested = QtCore.Signal(str)
    kill_requested = QtCore.Signal()
    save_requested = QtCore.Signal()
    closed = QtCore.Signal()

    def __init__(
        self,
        document: OutlineDocument,
        shortcuts: Optional[Mapping[str, str]] = None,
        zoom_percent: float = 150,
        parent: Optional[QtWidgets.QWidget] = None,
    ) -> None:
        super().__init__(parent)
        self._closed = False
        self._shortcuts = dict(shortcuts or {})
        self.setAttribute(Qt.WA_DeleteOnClose, False)

        self.pdf_viewer = PdfViewerWidget(self, zoom_percent=zoom_percent)
        self.pdf_controls = PdfControlsWidget(self)
        self.notes_editor = NotesEditor(document, self)

        viewer_panel = QtWidgets.QWidget(self)
        viewer_layout = QtWidgets.QVBoxLayout(viewer_panel)
        viewer_layout.setContentsMargins(0, 0, 0, 0)
        viewer_layout.setSpacing(4)
        viewer_layout.addWidget(self.pdf_controls)
        viewer_layout.addWidget(self.pdf_viewer, 1)

        splitter = QtWidgets.QSplitter(Qt.Horizontal, self)
        splitter.addWidget(viewer_panel)
        splitter.addWidget(self.notes_editor)
        splitter.setStretchFactor(0, 3)
        splitter.setStretchFactor(1, 2)
        self.setCentralWidget(splitter)
        self.setStatusBar(QtWidgets.QStatusBar(self))
        self.resize(1400, 900)

        self._wire_controls()
        self._install_shortcuts()

    def _wire_controls(self) -> None:
        viewer = self.pdf_viewer
        controls = self.pdf_controls
        controls.previous_requested.connect(viewer.previous_page)
        controls.next_requested.connect(viewer.next_page)
        controls.page_requested.connect(viewer.go_to_page)
        controls.rotation_requested.connect(viewer.rotate_clockwise)
        controls.reset_zoom_requested.connect(self._reset_zoom)
        controls.zoom_changed.connect(viewer.set_zoom_percent)
        viewer.page_changed.connect(controls.set_page_info)
        viewer.page_changed.connect(self._on_page_changed)
        viewer.insert_note_requested.connect(self.insert_note_requested.emit)

    def _shortcut(self, name: str, widget: QtWidgets.QWidget, slot) -> None:
        sequence = self._shortcuts.get(name)
        if not sequence:
            return
        shortcut = QtWidgets.QShortcut(QtGui.QKeySequence(sequence), widget)
        shortcut.setContext(Qt.WidgetWithChildrenShortcut)
        shortcut.activated.connect(slot)

    def _install_shortcuts(self) -> None:
        viewer = self.pdf_viewer
        notes = self.notes_editor
        self._shortcut("insert_note", viewer, lambda: self.insert_note_requested.emit(False))
        self._shortcut("insert_note_with_title", viewer, lambda: self.insert_note_requested.emit(True))
        self._shortcut("next_page", viewer, viewer.next_page)
        self._shortcut("previous_page", viewer, viewer.previous_page)
        self._shortcut("insert_note_with_title", notes, lambda: self.insert_note_requested.emit(True))
        self._shortcut("sync_previous_note", notes, lambda: self.sync_requested.emit("previous"))
        self._shortcut("sync_current_note", notes, lambda: self.sync_requested.emit("current"))
        self._shortcut("sync_next_note", notes, lambda: self.sync_requested.emit("next"))
        self._shortcut("kill_session", self, self.kill_requested.emit)
        self._shortcut("save", self, self.save_requested.emit)

    def load_pdf(self, pdf_path: str) -> None:
        self.pdf_viewer.load_pdf(pdf_path)
        self.pdf_controls.set_page_info(
            self.pdf_viewer.current_page_index(), self.pdf_viewer.page_count()
        )
        self.pdf_controls.set_zoom_percent(self.pdf_viewer.current_zoom_percent())

    def _reset_zoom(self) -> None:
        self.pdf_viewer.reset_zoom()
        self.pdf_controls.set_zoom_percent(self.pdf_viewer.current_zoom_percent())

    def _on_page_changed(self, current: int, total: int) -> None:
        self.statusBar().showMessage(f"Page {current + 1} of {total}", 3000)

    def show_message(self, message: str, timeout: int = 5000) -> None:
        self.statusBar().showMessage(message, timeout)

    def is_closed(self) -> bool:
        return self._closed

    def closeEvent(self, event: QtGui.QCloseEvent) -> None:  # noqa: N802 - Qt override
        if not self._closed:
            self._closed = True
            self.notes_editor.release()
            self.pdf_viewer.release()
            self.closed.emit()
        super().closeEvent(event)
