from __future__ import annotations

from typing import Optional, Tuple

from qtpy import QtCore, QtGui, QtWidgets

from pagenoter.outline.document import HEADING_RE, PROPERTY_RE, OutlineDocument, ReadOnlyError
from pagenoter.utils.logger import logger


class OutlineHighlighter(QtGui.QSyntaxHighlighter):
    """Bold headings, dim property drawers."""

    def __init__(self, document: QtGui.QTextDocument) -> None:
        super().__init__(document)
        self._heading = QtGui.QTextCharFormat()
        self._heading.setFontWeight(QtGui.QFont.Bold)
        self._heading.setForeground(QtGui.QColor("#1f4e79"))
        self._drawer = QtGui.QTextCharFormat()
        self._drawer.setForeground(QtGui.QColor("#7f7f7f"))

    def highlightBlock(self, text: str) -> None:  # noqa: N802 - Qt override
        if HEADING_RE.match(text):
            self.setFormat(0, len(text), self._heading)
        elif PROPERTY_RE.match(text):
            self.setFormat(0, len(text), self._drawer)


def _common_edit(old: str, new: str) -> Tuple[int, int, str]:
    """Smallest ``(start, end, replacement)`` turning ``old`` into ``new``."""
    limit = min(len(old), len(new))
    start = 0
    while start < limit and old[start] == new[start]:
        start += 1
    old_end, new_end = len(old), len(new)
    while old_end > start and new_end > start and old[old_end - 1] == new[new_end - 1]:
        old_end -= 1
        new_end -= 1
    return start, old_end, new[start:new_end]


class NotesEditor(QtWidgets.QPlainTextEdit):
    """Plain-text view of an ``OutlineDocument`` that honours its read-only marks.

    Edits typed here are applied to the model; edits made on the model (by
    the noter or another view of the same document) are replayed here.
    """

    closed = QtCore.Signal()

    def __init__(self, document: OutlineDocument, parent: Optional[QtWidgets.QWidget] = None) -> None:
        super().__init__(parent)
        self._model = document
        self._syncing = False
        self._closed = False
        self.setLineWrapMode(QtWidgets.QPlainTextEdit.WidgetWidth)
        self.setTabChangesFocus(False)
        self._highlighter = OutlineHighlighter(self.document())
        self._syncing = True
        try:
            self.setPlainText(document.text)
        finally:
            self._syncing = False
        self.document().contentsChanged.connect(self._on_widget_changed)
        document.add_change_listener(self._on_model_changed)

    @property
    def model(self) -> OutlineDocument:
        return self._model

    # ------------------------------------------------------------------ model sync
    def _on_widget_changed(self) -> None:
        if self._syncing:
            return
        start, end, inserted = _common_edit(self._model.text, self.toPlainText())
        if start == end and not inserted:
            return
        self._syncing = True
        try:
            self._model.replace(start, end, inserted)
        except ReadOnlyError as exc:
            logger.debug("Reverting edit on read-only text: %s", exc)
            QtCore.QTimer.singleShot(0, self.reload_from_model)
        finally:
            self._syncing = False

    def _on_model_changed(self, position: int, removed: int, inserted: str) -> None:
        if self._syncing:
            return
        self._syncing = True
        try:
            cursor = QtGui.QTextCursor(self.document())
            cursor.setPosition(position)
            cursor.setPosition(position + removed, QtGui.QTextCursor.KeepAnchor)
            cursor.insertText(inserted)
        finally:
            self._syncing = False

    def reload_from_model(self) -> None:
        point = self.textCursor().position()
        self._syncing = True
        try:
            self.setPlainText(self._model.text)
        finally:
            self._syncing = False
        self.set_point(point)

    # ------------------------------------------------------------------ read-only guard
    def _pending_range(self, event: QtGui.QKeyEvent) -> Optional[Tuple[int, int, bool]]:
        cursor = self.textCursor()
        start, end = cursor.selectionStart(), cursor.selectionEnd()
        has_selection = start != end
        if event.matches(QtGui.QKeySequence.Cut):
            return (start, end, False) if has_selection else None
        if event.matches(QtGui.QKeySequence.Paste):
            return start, end, True
        if event.matches(QtGui.QKeySequence.DeleteStartOfWord) or event.matches(
            QtGui.QKeySequence.DeleteEndOfWord
        ):
            probe = QtGui.QTextCursor(cursor)
            if event.matches(QtGui.QKeySequence.DeleteStartOfWord):
                probe.movePosition(QtGui.QTextCursor.PreviousWord, QtGui.QTextCursor.KeepAnchor)
            else:
                probe.movePosition(QtGui.QTextCursor.NextWord, QtGui.QTextCursor.KeepAnchor)
            return probe.selectionStart(), probe.selectionEnd(), False
        key = event.key()
        if key == QtCore.Qt.Key_Backspace:
            if has_selection:
                return start, end, False
            return (start - 1, start, False) if start > 0 else None
        if key == QtCore.Qt.Key_Delete:
            if has_selection:
                return start, end, False
            return (start, start + 1, False) if start < len(self._model) else None
        if key in (QtCore.Qt.Key_Return, QtCore.Qt.Key_Enter):
            return start, end, True
        if event.text() and event.text().isprintable():
            return start, end, True
        return None

    def keyPressEvent(self, event: QtGui.QKeyEvent) -> None:  # noqa: N802 - Qt override
        if event.key() == QtCore.Qt.Key_Tab and not event.modifiers():
            if self.toggle_fold_at(self.textCursor().position()):
                event.accept()
                return
        pending = self._pending_range(event)
        if pending is not None and not self._model.can_replace(*pending):
            QtWidgets.QApplication.beep()
            event.accept()
            return
        super().keyPressEvent(event)

    def insertFromMimeData(self, source: QtCore.QMimeData) -> None:  # noqa: N802 - Qt override
        cursor = self.textCursor()
        if not self._model.can_replace(cursor.selectionStart(), cursor.selectionEnd()):
            QtWidgets.QApplication.beep()
            return
        super().insertFromMimeData(source)

    # ------------------------------------------------------------------ cursor + folding
    def get_point(self) -> int:
        return self.textCursor().position()

    def set_point(self, offset: int) -> None:
        offset = max(0, min(int(offset), len(self._model)))
        cursor = self.textCursor()
        cursor.setPosition(offset)
        self.setTextCursor(cursor)
        self.ensureCursorVisible()

    def _set_range_visible(self, begin: int, end: int, visible: bool) -> None:
        doc = self.document()
        block = doc.findBlock(begin)
        first = block.position()
        last = first
        while block.isValid() and block.position() < end:
            block.setVisible(visible)
            last = block.position() + block.length()
            block = block.next()
        doc.markContentsDirty(first, max(0, last - first))
        self.viewport().update()

    def toggle_fold_at(self, offset: int) -> bool:
        """Fold or unfold the body of the heading on the line at ``offset``."""
        heading = self._model.heading_at(offset)
        if heading is None or offset > heading.line_end:
            return False
        body = heading.line_end + 1
        if body >= heading.end:
            return False
        folded = not self.document().findBlock(body).isVisible()
        self._set_range_visible(body, heading.end, folded)
        return True

    def is_offset_visible(self, offset: int) -> bool:
        return self.document().findBlock(offset).isVisible()

    def show_context(self, offset: int) -> None:
        heading = self._model.heading_at(offset)
        if heading is not None:
            for ancestor in self._model.iter_ancestors(heading):
                self._set_range_visible(ancestor.begin, ancestor.line_end, True)
            self._set_range_visible(heading.begin, heading.line_end, True)
        self._set_range_visible(offset, offset + 1, True)

    def show_subtree(self, begin: int, end: int) -> None:
        self._set_range_visible(begin, end, True)
        block = self.document().findBlock(begin)
        if block.isValid():
            bar = self.verticalScrollBar()
            bar.setValue(min(bar.maximum(), block.firstLineNumber()))

    # ------------------------------------------------------------------ lifecycle
    def is_closed(self) -> bool:
        return self._closed

    def release(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._model.remove_change_listener(self._on_model_changed)
        self.closed.emit()

    def closeEvent(self, event: QtGui.QCloseEvent) -> None:  # noqa: N802 - Qt override
        self.release()
        super().closeEvent(event)
