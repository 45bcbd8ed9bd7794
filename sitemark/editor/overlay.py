"""
Painting of annotations over a photo.

All functions draw in overlay coordinates; the caller sets up the painter
transform that maps the overlay frame onto the widget.
"""

import math
from typing import Iterable, Optional, Tuple

from PySide6.QtCore import QPointF, QRectF, Qt
from PySide6.QtGui import QColor, QFont, QFontMetrics, QPainter, QPen, QPolygonF

from sitemark.editor.annotations import CIRCLE_RADIUS, Annotation, AnnotationType


STROKE_WIDTH = 3
MARKER_RADIUS = 10
ARROW_END_RADIUS = 6
MEASUREMENT_END_RADIUS = 4
ARROWHEAD_SIZE = 14
TEXT_PIXEL_SIZE = 16
LABEL_PIXEL_SIZE = 13
PREVIEW_RADIUS = 6


def _pen(color: str, width: float = STROKE_WIDTH, style=Qt.PenStyle.SolidLine) -> QPen:
    pen = QPen(QColor(color))
    pen.setWidthF(width)
    pen.setStyle(style)
    pen.setCapStyle(Qt.PenCapStyle.RoundCap)
    pen.setJoinStyle(Qt.PenJoinStyle.RoundJoin)
    return pen


def _draw_label(painter: QPainter, center: QPointF, text: str, color: str) -> None:
    """Text on a dark rounded plate, centered on `center`."""
    font = QFont()
    font.setPixelSize(LABEL_PIXEL_SIZE)
    font.setBold(True)
    painter.setFont(font)

    metrics = QFontMetrics(font)
    text_rect = metrics.boundingRect(text)
    bg_rect = QRectF(
        center.x() - text_rect.width() / 2 - 4,
        center.y() - text_rect.height() / 2 - 2,
        text_rect.width() + 8,
        text_rect.height() + 4,
    )

    painter.setPen(Qt.PenStyle.NoPen)
    painter.setBrush(QColor(0, 0, 0, 180))
    painter.drawRoundedRect(bg_rect, 3, 3)

    painter.setPen(QColor(color))
    painter.drawText(bg_rect, Qt.AlignmentFlag.AlignCenter, text)


def _draw_arrowhead(painter: QPainter, start: QPointF, end: QPointF, color: str) -> None:
    dx = end.x() - start.x()
    dy = end.y() - start.y()
    length = math.hypot(dx, dy)
    if length < 1:
        return

    dx /= length
    dy /= length
    px, py = -dy, dx
    size = ARROWHEAD_SIZE

    left = QPointF(
        end.x() - size * dx + size * 0.5 * px,
        end.y() - size * dy + size * 0.5 * py,
    )
    right = QPointF(
        end.x() - size * dx - size * 0.5 * px,
        end.y() - size * dy - size * 0.5 * py,
    )
    painter.setPen(_pen(color, 1))
    painter.setBrush(QColor(color))
    painter.drawPolygon(QPolygonF([end, left, right]))


def paint_annotation(painter: QPainter, annotation: Annotation) -> None:
    """Draw one committed (or pending) annotation."""
    color = annotation.color
    origin = QPointF(annotation.x, annotation.y)

    if annotation.type == AnnotationType.MARKER:
        painter.setPen(_pen("#ffffff", 2))
        painter.setBrush(QColor(color))
        painter.drawEllipse(origin, MARKER_RADIUS, MARKER_RADIUS)

    elif annotation.type == AnnotationType.CIRCLE:
        painter.setPen(_pen(color))
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawEllipse(origin, CIRCLE_RADIUS, CIRCLE_RADIUS)

    elif annotation.type == AnnotationType.TEXT:
        font = QFont()
        font.setPixelSize(TEXT_PIXEL_SIZE)
        font.setBold(True)
        painter.setFont(font)
        painter.setPen(QColor(color))
        painter.drawText(origin, annotation.text or "")

    elif annotation.has_second_point:
        end = QPointF(annotation.x2, annotation.y2)
        if annotation.type == AnnotationType.ARROW:
            painter.setPen(_pen(color))
            painter.drawLine(origin, end)
            _draw_arrowhead(painter, origin, end, color)
            painter.setBrush(QColor(color))
            painter.drawEllipse(origin, ARROW_END_RADIUS, ARROW_END_RADIUS)
        else:
            painter.setPen(_pen(color, 2, Qt.PenStyle.DashLine))
            painter.drawLine(origin, end)
            painter.setPen(_pen(color, 1))
            painter.setBrush(QColor(color))
            painter.drawEllipse(origin, MEASUREMENT_END_RADIUS, MEASUREMENT_END_RADIUS)
            painter.drawEllipse(end, MEASUREMENT_END_RADIUS, MEASUREMENT_END_RADIUS)
            if annotation.text:
                mid_x, mid_y = annotation.midpoint
                _draw_label(painter, QPointF(mid_x, mid_y - 10), annotation.text, color)


def paint_annotations(painter: QPainter, annotations: Iterable[Annotation]) -> None:
    """Draw annotations in list order (later ones on top)."""
    for annotation in annotations:
        paint_annotation(painter, annotation)


def paint_first_point(
    painter: QPainter, point: Optional[Tuple[float, float]], color: str
) -> None:
    """Mark the buffered first tap of a two-point gesture."""
    if point is None:
        return
    painter.setPen(_pen("#ffffff", 2))
    painter.setBrush(QColor(color))
    painter.drawEllipse(QPointF(*point), PREVIEW_RADIUS, PREVIEW_RADIUS)


def paint_pending(painter: QPainter, annotation: Optional[Annotation]) -> None:
    """Draw the annotation waiting for its label, dimmed."""
    if annotation is None:
        return
    painter.save()
    painter.setOpacity(0.5)
    paint_annotation(painter, annotation)
    if annotation.type == AnnotationType.TEXT:
        painter.setPen(_pen(annotation.color, 2))
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawEllipse(QPointF(annotation.x, annotation.y), PREVIEW_RADIUS, PREVIEW_RADIUS)
    painter.restore()
