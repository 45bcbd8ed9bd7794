"""
Editor canvas widget for SiteMark.

The EditorCanvas displays:
- The survey photo, fitted to the widget
- All committed annotations on top
- The pending annotation and the first point of a two-point gesture

Annotation coordinates live in the overlay frame: the rectangle the photo
was rendered into when it was loaded. The frame is fixed for the whole
session; when the widget is resized the photo is refitted and the frame is
scaled along with it, so annotations stay on the same spot of the photo.

Supports:
- Tool-based placement (left click, forwarded to the session)
- Removal of the annotation under the cursor (right click)
"""

from typing import Optional, Tuple

from PySide6.QtCore import QPointF, QRectF, Qt, Signal
from PySide6.QtGui import QColor, QImage, QKeyEvent, QMouseEvent, QPainter
from PySide6.QtWidgets import QWidget

from sitemark.editor.overlay import paint_annotations, paint_first_point, paint_pending
from sitemark.editor.session import AnnotationSession
from sitemark.editor.tools import TapResult, ToolType
from sitemark.services.logging_service import get_logger


class EditorCanvas(QWidget):
    """
    Canvas widget for annotating one photo.

    Signals:
        tapped: Emitted with the TapResult of every left click.
        image_changed: Emitted when a photo is loaded.
    """

    tapped = Signal(object)
    image_changed = Signal()

    PADDING = 40

    def __init__(self, session: AnnotationSession, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._session = session

        self._image: Optional[QImage] = None

        # Overlay frame: size (in overlay px) and image px per overlay px
        self._frame_size: Tuple[float, float] = (0.0, 0.0)
        self._frame_zoom: float = 1.0

        # Current view transform (image px -> widget px)
        self._zoom: float = 1.0
        self._offset: QPointF = QPointF(0, 0)

        self._setup_widget()
        self._connect_session()

    def _setup_widget(self) -> None:
        """Configure widget properties."""
        self.setMouseTracking(True)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setMinimumSize(200, 200)
        self.setStyleSheet("background-color: #1a1a1a;")

    def _connect_session(self) -> None:
        self._session.annotations_changed.connect(self.update)
        self._session.pending_requested.connect(lambda _a: self.update())
        self._session.pending_resolved.connect(lambda _a: self.update())
        self._session.tool_changed.connect(self._on_tool_changed)

    # ─── Image Management ─────────────────────────────────────────────────

    def set_image(self, image: QImage) -> None:
        """
        Load a new photo into the canvas.

        Fixes the overlay frame to the photo's fitted size at this moment.
        """
        self._image = image
        self._recalculate_fit()
        self._frame_zoom = self._zoom
        self._frame_size = (image.width() * self._zoom, image.height() * self._zoom)

        self.image_changed.emit()
        self.update()
        self._logger.info(
            f"Photo loaded: {image.width()}x{image.height()}, "
            f"overlay frame {self._frame_size[0]:.0f}x{self._frame_size[1]:.0f}"
        )

    def clear_image(self) -> None:
        self._image = None
        self._frame_size = (0.0, 0.0)
        self.update()

    @property
    def image(self) -> Optional[QImage]:
        return self._image

    @property
    def frame_size(self) -> Tuple[float, float]:
        """Overlay frame (width, height); annotation coordinates are in this space."""
        return self._frame_size

    # ─── Fit ──────────────────────────────────────────────────────────────

    def _recalculate_fit(self) -> None:
        """Fit the photo in the widget, never beyond 100%, and center it."""
        if not self._image:
            self._zoom = 1.0
            return

        img_w = self._image.width()
        img_h = self._image.height()
        widget_w = self.width()
        widget_h = self.height()
        if img_w == 0 or img_h == 0 or widget_w == 0 or widget_h == 0:
            return

        zoom_x = (widget_w - self.PADDING) / img_w
        zoom_y = (widget_h - self.PADDING) / img_h
        self._zoom = max(min(zoom_x, zoom_y, 1.0), 0.01)

        self._offset = QPointF(
            (widget_w - img_w * self._zoom) / 2,
            (widget_h - img_h * self._zoom) / 2,
        )

    @property
    def _scale(self) -> float:
        """Widget px per overlay px."""
        return self._zoom / self._frame_zoom if self._frame_zoom else 1.0

    # ─── Coordinate Conversion ────────────────────────────────────────────

    def widget_to_overlay(self, pos: QPointF) -> QPointF:
        """Convert widget coordinates to overlay coordinates."""
        scale = self._scale
        return QPointF(
            (pos.x() - self._offset.x()) / scale,
            (pos.y() - self._offset.y()) / scale,
        )

    def overlay_to_widget(self, pos: QPointF) -> QPointF:
        """Convert overlay coordinates to widget coordinates."""
        scale = self._scale
        return QPointF(
            pos.x() * scale + self._offset.x(),
            pos.y() * scale + self._offset.y(),
        )

    def contains_overlay_point(self, pos: QPointF) -> bool:
        width, height = self._frame_size
        return 0 <= pos.x() <= width and 0 <= pos.y() <= height

    # ─── Session Hooks ────────────────────────────────────────────────────

    def _on_tool_changed(self, tool_type: ToolType) -> None:
        if tool_type == ToolType.NONE:
            self.setCursor(Qt.CursorShape.ArrowCursor)
        else:
            tool = self._session.active_tool
            self.setCursor(tool.cursor if tool else Qt.CursorShape.ArrowCursor)
        self.update()

    # ─── Rendering ────────────────────────────────────────────────────────

    def paintEvent(self, event) -> None:
        """Paint the canvas."""
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)

        painter.fillRect(self.rect(), QColor(26, 26, 26))

        if not self._image:
            painter.setPen(QColor(100, 100, 100))
            painter.drawText(self.rect(), Qt.AlignmentFlag.AlignCenter, "No photo loaded")
            painter.end()
            return

        painter.translate(self._offset)
        painter.save()
        painter.scale(self._zoom, self._zoom)
        painter.drawImage(0, 0, self._image)
        painter.restore()

        # Everything below is in overlay coordinates
        scale = self._scale
        painter.scale(scale, scale)
        painter.setClipRect(QRectF(0, 0, *self._frame_size))

        paint_annotations(painter, self._session.annotations)
        paint_pending(painter, self._session.pending.annotation)
        paint_first_point(painter, self._session.first_point, self._session.color)

        painter.end()

    # ─── Event Handlers ───────────────────────────────────────────────────

    def mousePressEvent(self, event: QMouseEvent) -> None:
        """Left click places, right click removes."""
        if not self._image:
            return

        pos = self.widget_to_overlay(event.position())
        if not self.contains_overlay_point(pos):
            return

        if event.button() == Qt.MouseButton.LeftButton:
            result = self._session.tap(pos.x(), pos.y())
            if result != TapResult.IGNORED:
                self.update()
            self.tapped.emit(result)
        elif event.button() == Qt.MouseButton.RightButton:
            if self._session.pending.is_active:
                return
            removed = self._session.remove_annotation_at(pos.x(), pos.y())
            if removed is not None:
                self._logger.debug(f"Removed {removed.type.value} {removed.id}")

    def keyPressEvent(self, event: QKeyEvent) -> None:
        """Escape drops the active tool (and any half-drawn gesture)."""
        if event.key() == Qt.Key.Key_Escape and self._session.active_tool_type != ToolType.NONE:
            self._session.select_tool(ToolType.NONE)
            return
        super().keyPressEvent(event)

    def resizeEvent(self, event) -> None:
        """Refit the photo; the overlay frame scales with it."""
        super().resizeEvent(event)
        if not self._image:
            return
        if self._frame_size == (0.0, 0.0) or self._frame_zoom <= 0:
            return
        self._recalculate_fit()
        self.update()
