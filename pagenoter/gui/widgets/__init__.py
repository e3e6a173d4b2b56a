from pagenoter.gui.widgets.notes_editor import NotesEditor
from pagenoter.gui.widgets.pdf_controls import PdfControlsWidget
from pagenoter.gui.widgets.pdf_viewer import PdfViewerWidget
from pagenoter.gui.widgets.noter_window import NoterWindow
