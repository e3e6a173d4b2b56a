from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Mapping, Optional

from qtpy import QtGui, QtWidgets

from pagenoter import __appname__, __version__
from pagenoter.core.controller import CURRENT_HEADING_ONLY, SyncController
from pagenoter.core.errors import PageNoterError
from pagenoter.gui.application import create_qapp
from pagenoter.gui.cli import parse_cli
from pagenoter.gui.platform import QtNotesSurface, QtPlatform
from pagenoter.gui.widgets.notes_editor import NotesEditor
from pagenoter.outline.document import OutlineDocument
from pagenoter.utils.logger import logger


class NotesWindow(QtWidgets.QMainWindow):
    """Editor for one notes file; noter sessions are started from here."""

    def __init__(
        self,
        config: Optional[Mapping[str, Any]] = None,
        notes_path: Optional[Path] = None,
        parent: Optional[QtWidgets.QWidget] = None,
    ) -> None:
        super().__init__(parent)
        self.config = dict(config or {})
        self.platform = QtPlatform(self.config, parent=self)
        self.controller = SyncController(self.platform, self.config)
        self.platform.controller = self.controller
        self.editor: Optional[NotesEditor] = None
        self.surface: Optional[QtNotesSurface] = None
        self.document: Optional[OutlineDocument] = None

        self.setStatusBar(QtWidgets.QStatusBar(self))
        self._create_menus()
        self.resize(900, 1000)
        self.open_notes(notes_path)

    def _action(self, text, slot, shortcut_name=None, tip=None) -> QtWidgets.QAction:
        action = QtWidgets.QAction(text, self)
        sequence = (self.config.get("shortcuts") or {}).get(shortcut_name) if shortcut_name else None
        if sequence:
            action.setShortcut(QtGui.QKeySequence(sequence))
        if tip:
            action.setStatusTip(tip)
        action.triggered.connect(slot)
        return action

    def _create_menus(self) -> None:
        file_menu = self.menuBar().addMenu("&File")
        file_menu.addAction(self._action("&Open...", self.open_dialog))
        file_menu.addAction(self._action("&Save", self.save, "save"))
        file_menu.addAction(self._action("Save &As...", self.save_as))
        file_menu.addSeparator()
        file_menu.addAction(self._action("&Quit", self.close))

        noter_menu = self.menuBar().addMenu("&Noter")
        noter_menu.addAction(
            self._action(
                "&Start session",
                self.start_session,
                "start_session",
                "Start a session for the document of the heading at the cursor",
            )
        )
        noter_menu.addAction(
            self._action(
                "Start on &current heading only",
                lambda: self.start_session(CURRENT_HEADING_ONLY),
            )
        )
        noter_menu.addAction(
            self._action("Start from &document...", self.start_from_document_dialog)
        )
        noter_menu.addSeparator()
        noter_menu.addAction(
            self._action(
                "&Insert note",
                lambda: self.run(lambda: self.controller.insert_note()),
            )
        )
        noter_menu.addAction(
            self._action(
                "Insert note with &title",
                lambda: self.run(lambda: self.controller.insert_note(prompt_for_title=True)),
            )
        )
        noter_menu.addAction(
            self._action(
                "&Kill session",
                lambda: self.run(lambda: self.controller.kill_session(disambiguate=True)),
            )
        )

    # ------------------------------------------------------------------ files
    def open_notes(self, path: Optional[Path]) -> None:
        self.controller.shutdown()
        document = OutlineDocument.load(path) if path else OutlineDocument()
        editor = NotesEditor(document, self)
        font = editor.font()
        font.setPointSize(int(self.config.get("notes_font_size") or font.pointSize()))
        editor.setFont(font)
        if self.editor is not None:
            self.editor.release()
            self.editor.deleteLater()
        self.editor = editor
        self.surface = QtNotesSurface(editor)
        self.document = document
        document.add_change_listener(self._on_document_changed)
        self.setCentralWidget(editor)
        self._update_title()
        logger.info("Opened notes: %s", path or "<unsaved notes>")

    def open_dialog(self) -> None:
        if not self.may_continue():
            return
        filename, _ = QtWidgets.QFileDialog.getOpenFileName(
            self,
            f"{__appname__} - Open notes",
            str(self._notes_dir() or ""),
            "Org files (*.org);;All files (*)",
        )
        if filename:
            self.open_notes(Path(filename))

    def save(self) -> bool:
        if self.document.path is None:
            return self.save_as()
        self.document.save()
        self._update_title()
        self.statusBar().showMessage(f"Saved {self.document.path}", 3000)
        return True

    def save_as(self) -> bool:
        filename, _ = QtWidgets.QFileDialog.getSaveFileName(
            self,
            f"{__appname__} - Save notes",
            str(self._notes_dir() or ""),
            "Org files (*.org);;All files (*)",
        )
        if not filename:
            return False
        self.document.save(filename)
        self._update_title()
        return True

    def may_continue(self) -> bool:
        if self.document is None or not self.document.modified:
            return True
        response = QtWidgets.QMessageBox.warning(
            self,
            "Unsaved Changes",
            "The notes have unsaved changes. Save before continuing?",
            QtWidgets.QMessageBox.Save
            | QtWidgets.QMessageBox.Discard
            | QtWidgets.QMessageBox.Cancel,
            QtWidgets.QMessageBox.Save,
        )
        if response == QtWidgets.QMessageBox.Cancel:
            return False
        if response == QtWidgets.QMessageBox.Save:
            return self.save()
        return True

    def _notes_dir(self) -> Optional[Path]:
        if self.document is not None and self.document.path is not None:
            return self.document.path.parent
        return None

    def _on_document_changed(self, *_args) -> None:
        self._update_title()

    def _update_title(self) -> None:
        name = self.document.path.name if self.document.path else "untitled"
        marker = "*" if self.document.modified else ""
        self.setWindowTitle(f"{name}{marker} - {__appname__}")

    # ------------------------------------------------------------------ noter
    def run(self, command):
        return self.platform.run_command(self, command)

    def show_message(self, message: str, timeout: int = 5000) -> None:
        self.statusBar().showMessage(message, timeout)

    def start_session(self, mode: Optional[str] = None) -> None:
        self.run(lambda: self.controller.start(self.surface, mode=mode))

    def start_from_document(self, document_path: Path) -> None:
        self.run(lambda: self.controller.start_from_document(self.surface, document_path))

    def start_from_document_dialog(self) -> None:
        filename = self.platform.prompter.read_file("Document to annotate", self._notes_dir())
        if filename:
            self.start_from_document(Path(filename))

    def closeEvent(self, event: QtGui.QCloseEvent) -> None:  # noqa: N802 - Qt override
        if not self.may_continue():
            event.ignore()
            return
        try:
            self.controller.shutdown()
        except PageNoterError as exc:
            logger.warning("Failed to close sessions cleanly: %s", exc)
        super().closeEvent(event)


def main(argv=None):
    config, namespace, version_requested = parse_cli(argv)
    if version_requested:
        print(__version__)
        return 0

    qt_args = sys.argv if argv is None else [sys.argv[0], *argv]
    app = create_qapp(qt_args)

    win = NotesWindow(config=config, notes_path=namespace.notes)
    win.show()
    win.raise_()
    if namespace.document:
        win.start_from_document(namespace.document)
    return app.exec_()


if __name__ == "__main__":
    sys.exit(main())
