"""
Alignment UI Module for the Battle Screenshot Reader

Provides a PyQt5 window where the user drags, zooms and resizes a screenshot
until the character cards sit inside the reference-frame guide boxes, then
confirms to resample it into reference-frame pixels.
"""

import logging
from typing import List, Optional

import numpy as np
from PyQt5.QtCore import QRectF, Qt, pyqtSignal
from PyQt5.QtGui import QBrush, QColor, QFont, QImage, QPainter, QPen
from PyQt5.QtWidgets import (
    QComboBox, QHBoxLayout, QLabel, QMainWindow, QPlainTextEdit, QProgressBar,
    QPushButton, QVBoxLayout, QWidget
)

from src.alignment.gestures import (
    AlignmentSession, Handle, PointerDown, PointerMove, PointerUp, Wheel, handle_positions
)
from src.alignment.transform import CANVAS_HEIGHT, CANVAS_WIDTH
from src.character import CharacterRecord
from src.ocr.debug import get_confidence_color
from src.ocr.rois import LAYOUTS, REFERENCE_FRAME

logger = logging.getLogger(__name__)

# Drawing constants
FRAME_BORDER = QColor(100, 100, 100, 128)    # Reference frame outline
GUIDE_BORDER = QColor(255, 0, 0, 204)        # Card outlines and field boxes
HANDLE_FILL = QColor(33, 150, 243)           # Resize handles
HANDLE_SIZE = 12                             # Drawn handle side (hit box is larger)

_CURSORS = {
    Handle.NW: Qt.SizeFDiagCursor,
    Handle.SE: Qt.SizeFDiagCursor,
    Handle.NE: Qt.SizeBDiagCursor,
    Handle.SW: Qt.SizeBDiagCursor,
    Handle.N: Qt.SizeVerCursor,
    Handle.S: Qt.SizeVerCursor,
    Handle.E: Qt.SizeHorCursor,
    Handle.W: Qt.SizeHorCursor,
}


def _to_qimage(image: np.ndarray) -> QImage:
    """Copy an RGB array into a QImage."""
    rgb = np.ascontiguousarray(image[..., :3])
    height, width = rgb.shape[:2]
    return QImage(rgb.data, width, height, 3 * width, QImage.Format_RGB888).copy()


class AlignmentCanvas(QWidget):
    """
    Fixed-size canvas that paints the screenshot through the session transform
    with the layout's guide boxes on top.
    """

    transform_changed = pyqtSignal(object)  # Transform

    def __init__(self, image: np.ndarray, layout: str = "overworld", parent: Optional[QWidget] = None):
        super().__init__(parent)
        self.setFixedSize(CANVAS_WIDTH, CANVAS_HEIGHT)
        self.setMouseTracking(True)

        self._image = image
        self._qimage = _to_qimage(image)
        self._layout = layout
        self.session = AlignmentSession((image.shape[1], image.shape[0]), (CANVAS_WIDTH, CANVAS_HEIGHT))

    def set_layout(self, layout: str) -> None:
        self._layout = layout
        self.update()

    def reset(self) -> None:
        self.session.reset()
        self.transform_changed.emit(self.session.transform)
        self.update()

    def commit(self) -> np.ndarray:
        return self.session.commit(self._image)

    def _dispatch(self, event) -> None:
        before = self.session.transform
        after = self.session.dispatch(event)
        if after != before:
            self.transform_changed.emit(after)
            self.update()

    def mousePressEvent(self, event):
        if event.button() == Qt.LeftButton:
            self._dispatch(PointerDown(event.x(), event.y()))

    def mouseMoveEvent(self, event):
        if not self.session.active:
            handle = self.session.hover(event.x(), event.y())
            self.setCursor(_CURSORS.get(handle, Qt.OpenHandCursor))
        self._dispatch(PointerMove(event.x(), event.y()))

    def mouseReleaseEvent(self, event):
        self._dispatch(PointerUp(event.x(), event.y()))

    def leaveEvent(self, event):
        self._dispatch(PointerUp())

    def wheelEvent(self, event):
        # Qt reports scrolling up as positive; the session expects > 0 to zoom out
        pos = event.pos()
        self._dispatch(Wheel(pos.x(), pos.y(), -event.angleDelta().y()))
        event.accept()

    def paintEvent(self, event):
        """Paint screenshot, reference frame, guide boxes and handles."""
        transform = self.session.transform
        guide = self.session.guide

        painter = QPainter(self)
        painter.setRenderHint(QPainter.SmoothPixmapTransform)
        painter.fillRect(self.rect(), QColor(30, 30, 30))

        # Screenshot
        painter.save()
        painter.translate(transform.offset_x, transform.offset_y)
        painter.scale(transform.scale, transform.scale)
        painter.drawImage(0, 0, self._qimage)
        painter.restore()

        # Reference frame border
        frame_pen = QPen(FRAME_BORDER)
        frame_pen.setWidth(2)
        painter.setPen(frame_pen)
        painter.setBrush(Qt.NoBrush)
        painter.drawRect(QRectF(*guide.map_rect(0, 0, REFERENCE_FRAME.width, REFERENCE_FRAME.height)))

        # Guide boxes
        guide_pen = QPen(GUIDE_BORDER)
        guide_pen.setWidth(2)
        painter.setPen(guide_pen)
        painter.setFont(QFont("", 7))
        for label, rect in REFERENCE_FRAME.guide_boxes(self._layout).items():
            x, y, w, h = guide.map_rect(rect.x, rect.y, rect.w, rect.h)
            painter.drawRect(QRectF(x, y, w, h))
            painter.drawText(int(x) + 2, int(y) - 2, label)

        # Resize handles
        painter.setPen(QPen(Qt.white))
        painter.setBrush(QBrush(HANDLE_FILL))
        half = HANDLE_SIZE / 2
        for hx, hy in handle_positions(transform, self.session.image_size).values():
            painter.drawRect(QRectF(hx - half, hy - half, HANDLE_SIZE, HANDLE_SIZE))

        painter.end()


class AlignmentWindow(QMainWindow):
    """
    Alignment window: canvas, layout selector, and confirm/reset controls,
    plus a results panel filled in after extraction.
    """

    alignment_confirmed = pyqtSignal(object, str)  # (aligned image, layout)
    cancel_requested = pyqtSignal()
    shutdown_requested = pyqtSignal()

    def __init__(self, image: np.ndarray, layout: str = "overworld"):
        super().__init__()
        self.canvas = AlignmentCanvas(image, layout)
        self._init_ui(layout)

    def _init_ui(self, layout_name: str):
        """Initialize the user interface components."""
        self.setWindowTitle("Align Screenshot")

        central_widget = QWidget()
        self.setCentralWidget(central_widget)
        layout = QVBoxLayout()
        layout.setSpacing(8)
        layout.setContentsMargins(12, 12, 12, 12)
        central_widget.setLayout(layout)

        help_label = QLabel(
            "Drag the blue handles to resize, or drag the image to move it. "
            "Use the mouse wheel to zoom. Align the character cards with the red boxes."
        )
        help_label.setWordWrap(True)
        layout.addWidget(help_label)

        layout.addWidget(self.canvas)

        # Controls row
        controls = QHBoxLayout()
        controls.addWidget(QLabel("Layout:"))
        self.layout_combo = QComboBox()
        for name in LAYOUTS:
            self.layout_combo.addItem(name.capitalize(), name)
        self.layout_combo.setCurrentIndex(max(0, self.layout_combo.findData(layout_name)))
        self.layout_combo.currentIndexChanged.connect(self._on_layout_changed)
        controls.addWidget(self.layout_combo)
        controls.addStretch()

        self.reset_button = QPushButton("Reset")
        self.reset_button.clicked.connect(self.canvas.reset)
        controls.addWidget(self.reset_button)

        self.cancel_button = QPushButton("Cancel Extraction")
        self.cancel_button.setEnabled(False)
        self.cancel_button.clicked.connect(self.cancel_requested.emit)
        controls.addWidget(self.cancel_button)

        self.confirm_button = QPushButton("Confirm Alignment")
        self.confirm_button.setMinimumHeight(35)
        self.confirm_button.clicked.connect(self._on_confirm)
        controls.addWidget(self.confirm_button)
        layout.addLayout(controls)

        self.progress_bar = QProgressBar()
        self.progress_bar.setRange(0, 100)
        self.progress_bar.setValue(0)
        layout.addWidget(self.progress_bar)

        self.status_label = QLabel("Status: Aligning")
        layout.addWidget(self.status_label)

        self.results_view = QPlainTextEdit()
        self.results_view.setReadOnly(True)
        self.results_view.setFixedHeight(160)
        layout.addWidget(self.results_view)

    @property
    def layout_name(self) -> str:
        return self.layout_combo.currentData()

    def _on_layout_changed(self, index: int):
        """Handle layout dropdown selection change."""
        layout = self.layout_combo.itemData(index)
        if layout:
            self.canvas.set_layout(layout)

    def _on_confirm(self):
        """Handle Confirm button click."""
        aligned = self.canvas.commit()
        logger.info(f"Alignment confirmed ({self.layout_name})")
        self.alignment_confirmed.emit(aligned, self.layout_name)

    def set_busy(self, busy: bool):
        """Disable alignment controls while an extraction runs."""
        self.confirm_button.setEnabled(not busy)
        self.reset_button.setEnabled(not busy)
        self.layout_combo.setEnabled(not busy)
        self.cancel_button.setEnabled(busy)
        if busy:
            self.progress_bar.setValue(0)

    def set_status(self, status: str):
        """
        Update the status label.

        Args:
            status: Status text to display (e.g., "Reading", "Error: message")
        """
        self.status_label.setText(f"Status: {status}")
        if status.lower().startswith("error"):
            self.status_label.setStyleSheet("color: #d32f2f;")
        else:
            self.status_label.setStyleSheet("color: #333333;")

    def set_progress(self, percent: float, message: str):
        self.progress_bar.setValue(int(percent * 100))
        self.set_status(f"Reading {message}")

    def show_records(self, left: CharacterRecord, right: CharacterRecord):
        """Display both records and their warnings in the results panel."""
        lines: List[str] = []
        for side, record in (("Left", left), ("Right", right)):
            lines.append(
                f"{side}: {record.job or '?'} HP {record.hp_current}/{record.hp_max} "
                f"AT {record.at} DF {record.df} MG {record.mg} SP {record.sp} | "
                f"{record.weapon or '?'} | {record.offensive_magic} / {record.defensive_magic}"
            )
            for warning in record.warnings:
                lines.append(f"    ! {warning.message}")
        self.results_view.setPlainText("\n".join(lines))

        warnings = len(left.warnings) + len(right.warnings)
        color = get_confidence_color(1.0 if warnings == 0 else 0.0)
        self.status_label.setText(f"Status: Done ({warnings} fields to check)")
        self.status_label.setStyleSheet(f"color: {color};")

    def closeEvent(self, event):
        """
        Handle window close event.

        Emits shutdown_requested signal before closing to allow
        graceful cleanup of worker threads.
        """
        self.shutdown_requested.emit()
        event.accept()
