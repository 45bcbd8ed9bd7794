"""
Annotation models for the SiteMark editor.

An annotation is one mark layered over a survey photo. Coordinates are in
overlay-local pixels: the rendered photo's bounding box at the time the
editing session started, origin at its top-left corner.

Annotation Types:
- MARKER: single point pin
- ARROW: two points, head at the second point
- CIRCLE: single point, fixed radius ring
- TEXT: single point plus a label
- MEASUREMENT: two points plus a label ("12 ft")

Annotations are immutable once built. The editor produces half-built
annotations (no text yet) while waiting for a label; those live in the
pending slot and never reach the committed list.
"""

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Tuple
from uuid import uuid4


PALETTE: Tuple[str, ...] = (
    "#ef4444",  # red
    "#f97316",  # orange
    "#eab308",  # yellow
    "#22c55e",  # green
    "#3b82f6",  # blue
    "#8b5cf6",  # violet
    "#ec4899",  # pink
)
DEFAULT_COLOR = PALETTE[0]

# Implicit radius of a circle annotation, in overlay pixels
CIRCLE_RADIUS = 30.0

# Default hit-test tolerance, in overlay pixels
HIT_TOLERANCE = 8.0


class AnnotationType(Enum):
    """Annotation kinds. Values are the wire names sent to the server."""
    MARKER = "marker"
    ARROW = "arrow"
    CIRCLE = "circle"
    TEXT = "text"
    MEASUREMENT = "measurement"


TWO_POINT_TYPES: FrozenSet[AnnotationType] = frozenset(
    {AnnotationType.ARROW, AnnotationType.MEASUREMENT}
)
TEXT_TYPES: FrozenSet[AnnotationType] = frozenset(
    {AnnotationType.TEXT, AnnotationType.MEASUREMENT}
)


def _new_id() -> str:
    return str(uuid4())


def _distance_to_segment(
    px: float, py: float, x1: float, y1: float, x2: float, y2: float
) -> float:
    """Shortest distance from point (px, py) to the segment (x1, y1)-(x2, y2)."""
    dx = x2 - x1
    dy = y2 - y1
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return math.hypot(px - x1, py - y1)

    # Project onto the segment and clamp to its ends
    t = ((px - x1) * dx + (py - y1) * dy) / length_sq
    t = max(0.0, min(1.0, t))
    return math.hypot(px - (x1 + t * dx), py - (y1 + t * dy))


@dataclass(frozen=True)
class Annotation:
    """
    A single mark on a photo.

    Attributes:
        type: The annotation kind.
        x: Primary X coordinate (overlay pixels).
        y: Primary Y coordinate (overlay pixels).
        x2: Secondary X coordinate, two-point types only.
        y2: Secondary Y coordinate, two-point types only.
        text: Label for text and measurement annotations.
        color: Hex color from PALETTE, fixed at creation.
        id: Unique identifier assigned at creation.
    """
    type: AnnotationType
    x: float
    y: float
    x2: Optional[float] = None
    y2: Optional[float] = None
    text: Optional[str] = None
    color: str = DEFAULT_COLOR
    id: str = field(default_factory=_new_id)

    @property
    def has_second_point(self) -> bool:
        return self.x2 is not None and self.y2 is not None

    def is_complete(self) -> bool:
        """
        Check whether the annotation may be committed.

        Two-point types need both coordinate pairs; text types need a
        non-blank label.
        """
        if self.type in TWO_POINT_TYPES and not self.has_second_point:
            return False
        if self.type in TEXT_TYPES and not (self.text and self.text.strip()):
            return False
        return True

    def with_text(self, text: str) -> "Annotation":
        """Return a copy carrying the given label (same id and color)."""
        return replace(self, text=text)

    def with_second_point(self, x2: float, y2: float) -> "Annotation":
        """Return a copy with the secondary coordinate set."""
        return replace(self, x2=x2, y2=y2)

    @property
    def midpoint(self) -> Tuple[float, float]:
        """Midpoint of a two-point annotation, or the primary point otherwise."""
        if not self.has_second_point:
            return (self.x, self.y)
        return ((self.x + self.x2) / 2, (self.y + self.y2) / 2)

    @property
    def label(self) -> str:
        """Short description shown in the annotation list."""
        if self.type == AnnotationType.MEASUREMENT:
            return f"Measurement: {self.text or ''}"
        if self.type == AnnotationType.TEXT:
            return f"Text: {self.text or ''}"
        return self.type.value.capitalize()

    def hit_test(self, x: float, y: float, tolerance: float = HIT_TOLERANCE) -> bool:
        """
        Test if a point hits this annotation.

        Args:
            x: X coordinate in overlay pixels.
            y: Y coordinate in overlay pixels.
            tolerance: Allowed distance from the drawn shape.

        Returns:
            True if the point is on (or near) the annotation.
        """
        if self.type == AnnotationType.CIRCLE:
            distance = math.hypot(x - self.x, y - self.y)
            return abs(distance - CIRCLE_RADIUS) <= tolerance

        if self.type in TWO_POINT_TYPES and self.has_second_point:
            distance = _distance_to_segment(x, y, self.x, self.y, self.x2, self.y2)
            return distance <= tolerance

        # Markers and text are grabbed by their anchor point
        return math.hypot(x - self.x, y - self.y) <= tolerance * 2

    # ─── Serialization ────────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the wire object sent in annotationsData."""
        data: Dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "x": self.x,
            "y": self.y,
            "color": self.color,
        }
        if self.has_second_point:
            data["x2"] = self.x2
            data["y2"] = self.y2
        if self.text is not None:
            data["text"] = self.text
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Annotation":
        """
        Build an annotation from its wire object.

        Raises:
            ValueError: If the type is unknown or a coordinate is missing.
        """
        try:
            annotation_type = AnnotationType(data["type"])
        except (KeyError, ValueError) as e:
            raise ValueError(f"Unknown annotation type: {data.get('type')!r}") from e

        if "x" not in data or "y" not in data:
            raise ValueError("Annotation is missing its primary coordinate")

        return cls(
            type=annotation_type,
            x=float(data["x"]),
            y=float(data["y"]),
            x2=float(data["x2"]) if data.get("x2") is not None else None,
            y2=float(data["y2"]) if data.get("y2") is not None else None,
            text=data.get("text"),
            color=data.get("color", DEFAULT_COLOR),
            id=str(data.get("id") or _new_id()),
        )
