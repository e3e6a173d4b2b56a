"""PDF viewer widget rendering pages with PyMuPDF."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from qtpy import QtCore, QtGui, QtWidgets

from pagenoter.utils.logger import logger


class PdfViewerWidget(QtWidgets.QWidget):
    """Single-page PDF view with selectable page text underneath."""

    page_changed = QtCore.Signal(int, int)
    insert_note_requested = QtCore.Signal(bool)
    closed = QtCore.Signal()

    def __init__(self, parent: Optional[QtWidgets.QWidget] = None, zoom_percent: float = 150) -> None:
        super().__init__(parent)
        self._doc = None
        self._current_page = 0
        self._zoom = max(0.5, min(3.0, float(zoom_percent) / 100.0))
        self._default_zoom = self._zoom
        self._rotation = 0
        self._closed = False
        self._build_ui()

    def _build_ui(self) -> None:
        layout = QtWidgets.QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(6)

        self.image_label = QtWidgets.QLabel(self)
        self.image_label.setAlignment(QtCore.Qt.AlignCenter)
        self.image_label.setBackgroundRole(QtGui.QPalette.Base)
        self.image_label.setSizePolicy(
            QtWidgets.QSizePolicy.Expanding, QtWidgets.QSizePolicy.Expanding
        )
        self.image_label.setMinimumSize(200, 200)

        image_scroll = QtWidgets.QScrollArea(self)
        image_scroll.setWidgetResizable(True)
        image_scroll.setFrameShape(QtWidgets.QFrame.NoFrame)
        image_scroll.setWidget(self.image_label)
        self._image_scroll = image_scroll
        layout.addWidget(image_scroll, 3)

        self.text_view = QtWidgets.QTextEdit(self)
        self.text_view.setReadOnly(True)
        self.text_view.setPlaceholderText("Page text appears here.")
        self.text_view.setContextMenuPolicy(QtCore.Qt.CustomContextMenu)
        self.text_view.customContextMenuRequested.connect(self._show_context_menu)
        layout.addWidget(self.text_view, 1)

        self.setFocusPolicy(QtCore.Qt.StrongFocus)

    def load_pdf(self, pdf_path: str) -> None:
        """Load a PDF file and render the first page."""
        try:
            import fitz  # type: ignore[import]
        except ImportError as exc:  # pragma: no cover - user-facing dialog
            raise RuntimeError(
                "PyMuPDF (pymupdf) is required to view PDF files."
            ) from exc

        path = Path(pdf_path).expanduser()
        if self._doc is not None:
            self._doc.close()
            self._doc = None

        self._doc = fitz.open(str(path))
        if self._doc.page_count == 0:
            self._doc.close()
            self._doc = None
            raise ValueError("The selected PDF does not contain any pages.")

        self._current_page = 0
        logger.info("Opened %s (%s pages)", path.name, self._doc.page_count)
        self._render_current_page()

    def _render_current_page(self) -> None:
        """Render the current page and update text/labels."""
        if self._doc is None:
            return

        page = self._doc.load_page(self._current_page)
        import fitz  # type: ignore[import]

        matrix = fitz.Matrix(self._zoom, self._zoom)
        if self._rotation:
            matrix = matrix.prerotate(self._rotation)
        pix = page.get_pixmap(matrix=matrix)

        fmt = QtGui.QImage.Format_RGBA8888 if pix.alpha else QtGui.QImage.Format_RGB888
        image = QtGui.QImage(pix.samples, pix.width, pix.height, pix.stride, fmt).copy()
        self.image_label.setPixmap(QtGui.QPixmap.fromImage(image))

        text = (page.get_text("text") or "").strip()
        self.text_view.setPlainText(text)
        self.text_view.moveCursor(QtGui.QTextCursor.Start)

    def go_to_page(self, index: int) -> None:
        """Show page ``index`` (0-based) and announce it when it changed."""
        if self._doc is None:
            return
        if index < 0 or index >= self._doc.page_count:
            return
        if index == self._current_page:
            return
        self._current_page = index
        self._render_current_page()
        self.page_changed.emit(self._current_page, self._doc.page_count)

    def _change_page(self, delta: int) -> None:
        self.go_to_page(self._current_page + delta)

    def _set_zoom_factor(self, factor: float) -> None:
        self._zoom = max(0.5, min(3.0, factor))
        self._render_current_page()

    def _show_context_menu(self, position: QtCore.QPoint) -> None:
        menu = self.text_view.createStandardContextMenu()
        note_action = QtWidgets.QAction("Insert note for this page", self)
        note_action.triggered.connect(lambda: self.insert_note_requested.emit(False))
        titled_action = QtWidgets.QAction("Insert note with title…", self)
        titled_action.triggered.connect(lambda: self.insert_note_requested.emit(True))
        first = menu.actions()[0] if menu.actions() else None
        menu.insertAction(first, note_action)
        menu.insertAction(first, titled_action)
        menu.insertSeparator(first)
        menu.exec_(self.text_view.mapToGlobal(position))

    def wheelEvent(self, event: QtGui.QWheelEvent) -> None:  # noqa: N802 - Qt override
        if event.modifiers() & QtCore.Qt.ControlModifier:
            step = 0.1 if event.angleDelta().y() > 0 else -0.1
            self._set_zoom_factor(self._zoom + step)
            event.accept()
            return
        super().wheelEvent(event)

    # ---- Public helpers for external controls ---------------------------------
    def next_page(self) -> None:
        self._change_page(1)

    def previous_page(self) -> None:
        self._change_page(-1)

    def page_count(self) -> int:
        if self._doc is None:
            return 0
        return int(self._doc.page_count)

    def current_page_index(self) -> int:
        return int(self._current_page)

    def set_zoom_percent(self, percent: float) -> None:
        self._set_zoom_factor(float(percent) / 100.0)

    def current_zoom_percent(self) -> int:
        return int(round(self._zoom * 100))

    def reset_zoom(self) -> None:
        self._set_zoom_factor(self._default_zoom)

    def rotate_clockwise(self) -> None:
        if self._doc is None:
            return
        self._rotation = (self._rotation + 90) % 360
        self._render_current_page()

    def is_closed(self) -> bool:
        return self._closed

    def release(self) -> None:
        """Close the PDF and mark the viewer dead; safe to call twice."""
        if self._closed:
            return
        self._closed = True
        if self._doc is not None:
            self._doc.close()
        self._doc = None
        self.closed.emit()

    def closeEvent(
        self, event: QtGui.QCloseEvent
    ) -> None:  # pragma: no cover - GUI cleanup
        self.release()
        super().closeEvent(event)
