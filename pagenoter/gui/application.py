from typing import Optional, Sequence

from qtpy import QtWidgets

from pagenoter import __appname__, __version__


def create_qapp(argv: Optional[Sequence[str]] = None) -> QtWidgets.QApplication:
    """Return the running QApplication, creating and naming it on first use."""
    app = QtWidgets.QApplication.instance()
    if app is None:
        app = QtWidgets.QApplication(list(argv) if argv is not None else [])
        app.setApplicationName(__appname__)
        app.setApplicationVersion(__version__)
        app.setQuitOnLastWindowClosed(True)
    return app
