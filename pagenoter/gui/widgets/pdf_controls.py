from __future__ import annotations

from qtpy import QtCore, QtWidgets


class PdfControlsWidget(QtWidgets.QWidget):
    """Page navigation and zoom strip shown above the PDF viewer."""

    previous_requested = QtCore.Signal()
    next_requested = QtCore.Signal()
    page_requested = QtCore.Signal(int)
    rotation_requested = QtCore.Signal()
    reset_zoom_requested = QtCore.Signal()
    zoom_changed = QtCore.Signal(float)

    def __init__(self, parent: QtWidgets.QWidget | None = None) -> None:
        super().__init__(parent)
        self._ignore_signals = False
        self._build_ui()

    def _build_ui(self) -> None:
        row = QtWidgets.QHBoxLayout(self)
        row.setContentsMargins(4, 4, 4, 4)
        row.setSpacing(6)

        self.prev_button = QtWidgets.QToolButton(self)
        self.prev_button.setText("◀")
        self.prev_button.clicked.connect(self.previous_requested.emit)

        self.page_spin = QtWidgets.QSpinBox(self)
        self.page_spin.setRange(1, 1)
        self.page_spin.setKeyboardTracking(False)
        self.page_spin.valueChanged.connect(self._on_page_spin_changed)
        self.page_total = QtWidgets.QLabel("/ -", self)

        self.next_button = QtWidgets.QToolButton(self)
        self.next_button.setText("▶")
        self.next_button.clicked.connect(self.next_requested.emit)

        self.rotate_button = QtWidgets.QToolButton(self)
        self.rotate_button.setText("⟳")
        self.rotate_button.setToolTip("Rotate 90° clockwise")
        self.rotate_button.clicked.connect(self.rotation_requested.emit)

        self.zoom_slider = QtWidgets.QSlider(QtCore.Qt.Horizontal, self)
        self.zoom_slider.setRange(50, 300)
        self.zoom_slider.setSingleStep(10)
        self.zoom_slider.setPageStep(25)
        self.zoom_slider.setValue(150)
        self.zoom_slider.valueChanged.connect(self._on_zoom_changed)
        self.zoom_value = QtWidgets.QLabel("150%", self)
        self.reset_button = QtWidgets.QToolButton(self)
        self.reset_button.setText("Reset")
        self.reset_button.clicked.connect(self.reset_zoom_requested.emit)

        row.addWidget(self.prev_button)
        row.addWidget(self.page_spin)
        row.addWidget(self.page_total)
        row.addWidget(self.next_button)
        row.addWidget(self.rotate_button)
        row.addSpacing(12)
        row.addWidget(self.zoom_slider, 1)
        row.addWidget(self.zoom_value)
        row.addWidget(self.reset_button)

        self.setSizePolicy(
            QtWidgets.QSizePolicy.Preferred,
            QtWidgets.QSizePolicy.Maximum,
        )

    def set_page_info(self, current_index: int, total: int) -> None:
        """Update the page box and navigation button states."""
        self._ignore_signals = True
        try:
            if total <= 0:
                self.page_spin.setRange(1, 1)
                self.page_total.setText("/ -")
                self.prev_button.setEnabled(False)
                self.next_button.setEnabled(False)
                return
            current = max(0, min(current_index, total - 1))
            self.page_spin.setRange(1, total)
            self.page_spin.setValue(current + 1)
            self.page_total.setText(f"/ {total}")
            self.prev_button.setEnabled(current > 0)
            self.next_button.setEnabled(current + 1 < total)
        finally:
            self._ignore_signals = False

    def set_zoom_percent(self, percent: float) -> None:
        """Sync the slider/value label without emitting a new signal."""
        value = int(round(percent))
        value = max(self.zoom_slider.minimum(),
                    min(self.zoom_slider.maximum(), value))
        self._ignore_signals = True
        try:
            self.zoom_slider.setValue(value)
            self.zoom_value.setText(f"{value}%")
        finally:
            self._ignore_signals = False

    def _on_page_spin_changed(self, value: int) -> None:
        if self._ignore_signals:
            return
        self.page_requested.emit(int(value) - 1)

    def _on_zoom_changed(self, value: int) -> None:
        if self._ignore_signals:
            return
        self.zoom_value.setText(f"{value}%")
        self.zoom_changed.emit(float(value))
