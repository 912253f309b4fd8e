"""Grayscale image viewer with zoom, pan and drag-and-drop."""

import numpy as np
from PySide6.QtWidgets import QGraphicsView, QGraphicsScene
from PySide6.QtGui import (
    QPixmap, QImage, QColor, QWheelEvent, QDragEnterEvent, QDropEvent,
    QDragMoveEvent, QPainter, QFont
)
from PySide6.QtCore import Qt, Signal, QRectF

IMAGE_SUFFIXES = ('.png', '.jpg', '.jpeg', '.bmp', '.tif', '.tiff', '.pgm')


def to_qimage(image: np.ndarray) -> QImage:
    """Wrap an 8-bit single-channel array; the copy detaches it from numpy memory."""
    image = np.ascontiguousarray(image)
    h, w = image.shape
    return QImage(image.data, w, h, w, QImage.Format.Format_Grayscale8).copy()


class ImageViewer(QGraphicsView):
    """QGraphicsView with zoom/pan for 8-bit grayscale images."""

    viewChanged = Signal()
    imageDropped = Signal(str)

    def __init__(self, parent=None, label: str = ""):
        super().__init__(parent)

        self._scene = QGraphicsScene(self)
        self.setScene(self._scene)

        self._pixmap_item = None
        self._image_array = None
        self._label = label

        self.setDragMode(QGraphicsView.DragMode.ScrollHandDrag)
        self.setTransformationAnchor(QGraphicsView.ViewportAnchor.AnchorUnderMouse)
        self.setResizeAnchor(QGraphicsView.ViewportAnchor.AnchorUnderMouse)
        self.setBackgroundBrush(QColor(40, 40, 40))
        self.setMinimumSize(200, 200)

        self.setAcceptDrops(True)
        self.viewport().setAcceptDrops(True)

        self._zoom_factor = 1.0
        self._min_zoom = 0.1
        self._max_zoom = 20.0

    def set_image(self, image: np.ndarray):
        """Display a uint8 grayscale numpy array."""
        self._image_array = image
        pixmap = QPixmap.fromImage(to_qimage(image))

        self._scene.clear()
        self._pixmap_item = self._scene.addPixmap(pixmap)

        self.setSceneRect(QRectF(pixmap.rect()))
        self.fitInView(self._pixmap_item, Qt.AspectRatioMode.KeepAspectRatio)
        self._zoom_factor = self.transform().m11()

    def clear_image(self):
        self._scene.clear()
        self._pixmap_item = None
        self._image_array = None
        self.resetTransform()
        self.viewport().update()

    def has_image(self) -> bool:
        return self._image_array is not None

    def paintEvent(self, event):
        super().paintEvent(event)

        if self._pixmap_item is None:
            painter = QPainter(self.viewport())
            rect = self.viewport().rect()
            painter.setFont(QFont("Segoe UI", 11))
            painter.setPen(QColor(100, 100, 100))
            text = self._label or "Drop an image here"
            tw = painter.fontMetrics().horizontalAdvance(text)
            painter.drawText(rect.width() // 2 - tw // 2, rect.height() // 2, text)
            painter.end()

    def reset_view(self):
        if self._pixmap_item:
            self.fitInView(self._pixmap_item, Qt.AspectRatioMode.KeepAspectRatio)
            self._zoom_factor = self.transform().m11()
            self.viewChanged.emit()

    def wheelEvent(self, event: QWheelEvent):
        if self._image_array is None:
            event.ignore()
            return

        factor = 1.15 if event.angleDelta().y() > 0 else 1 / 1.15
        new_zoom = self._zoom_factor * factor

        if self._min_zoom <= new_zoom <= self._max_zoom:
            self._zoom_factor = new_zoom
            self.scale(factor, factor)
            self.viewChanged.emit()
        event.accept()

    def sync_view(self, other: 'ImageViewer'):
        self.setTransform(other.transform())
        self._zoom_factor = other._zoom_factor
        self.horizontalScrollBar().setValue(other.horizontalScrollBar().value())
        self.verticalScrollBar().setValue(other.verticalScrollBar().value())

    def _is_valid_image_drop(self, mime_data) -> str | None:
        if mime_data.hasUrls():
            urls = mime_data.urls()
            if urls:
                path = urls[0].toLocalFile()
                if path.lower().endswith(IMAGE_SUFFIXES):
                    return path
        return None

    def dragEnterEvent(self, event: QDragEnterEvent):
        if self._is_valid_image_drop(event.mimeData()):
            event.setDropAction(Qt.DropAction.CopyAction)
            event.accept()
        else:
            event.ignore()

    def dragMoveEvent(self, event: QDragMoveEvent):
        if self._is_valid_image_drop(event.mimeData()):
            event.setDropAction(Qt.DropAction.CopyAction)
            event.accept()
        else:
            event.ignore()

    def dropEvent(self, event: QDropEvent):
        path = self._is_valid_image_drop(event.mimeData())
        if path:
            self.imageDropped.emit(path)
            event.setDropAction(Qt.DropAction.CopyAction)
            event.accept()
        else:
            event.ignore()
