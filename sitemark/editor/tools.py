"""
Tool framework and implementations for the SiteMark editor.

Each tool turns canvas taps into annotations. Tools never touch the
annotation list directly: they hand finished gestures back to the
session, which commits them or routes them to the pending slot.

Tools:
- MarkerTool: Drop a marker pin (single tap)
- CircleTool: Ring a spot (single tap)
- TextTool: Place a text label (single tap, then label prompt)
- ArrowTool: Two taps, tail then head
- MeasurementTool: Two taps, then a measurement label

Only one tool is active at a time. Selecting another tool (or the same one
again) abandons any two-point gesture in progress.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import TYPE_CHECKING, Dict, FrozenSet, Optional, Tuple, Type

from PySide6.QtCore import Qt

from sitemark.editor.annotations import TEXT_TYPES, Annotation, AnnotationType
from sitemark.services.logging_service import get_logger

if TYPE_CHECKING:
    from sitemark.editor.session import AnnotationSession


class ToolType(Enum):
    """Enum for tool types."""
    NONE = auto()
    MARKER = auto()
    ARROW = auto()
    CIRCLE = auto()
    TEXT = auto()
    MEASUREMENT = auto()


class DrawingPhase(Enum):
    """Progress of a two-point gesture."""
    IDLE = auto()
    AWAITING_SECOND_POINT = auto()


class TapResult(Enum):
    """What a canvas tap did."""
    IGNORED = auto()
    COMMITTED = auto()
    FIRST_POINT = auto()
    PENDING = auto()


TOOL_ANNOTATION_TYPES: Dict[ToolType, AnnotationType] = {
    ToolType.MARKER: AnnotationType.MARKER,
    ToolType.ARROW: AnnotationType.ARROW,
    ToolType.CIRCLE: AnnotationType.CIRCLE,
    ToolType.TEXT: AnnotationType.TEXT,
    ToolType.MEASUREMENT: AnnotationType.MEASUREMENT,
}

DEFAULT_TOOLSET: Tuple[ToolType, ...] = (
    ToolType.MARKER,
    ToolType.ARROW,
    ToolType.CIRCLE,
    ToolType.TEXT,
    ToolType.MEASUREMENT,
)


@dataclass(frozen=True)
class EditorPolicy:
    """
    Behaviour switches for one editor deployment.

    Attributes:
        toolset: Tools offered in the toolbar, in display order.
        requires_text_for: Annotation types that must be labelled before
            they are committed. Always includes text and measurement.
        auto_deselect_single_tap: Drop back to no tool after a marker,
            circle or text placement.
        auto_deselect_two_point: Drop back to no tool after an arrow or
            measurement is finished.
    """
    toolset: Tuple[ToolType, ...] = DEFAULT_TOOLSET
    requires_text_for: FrozenSet[AnnotationType] = field(default_factory=lambda: TEXT_TYPES)
    auto_deselect_single_tap: bool = False
    auto_deselect_two_point: bool = True

    def __post_init__(self) -> None:
        missing = TEXT_TYPES - frozenset(self.requires_text_for)
        if missing:
            names = ", ".join(sorted(t.value for t in missing))
            raise ValueError(f"requires_text_for must include: {names}")
        if ToolType.NONE in self.toolset:
            raise ValueError("ToolType.NONE cannot be offered as a tool")

    def requires_text(self, annotation_type: AnnotationType) -> bool:
        return annotation_type in self.requires_text_for

    @classmethod
    def from_config(cls, config) -> "EditorPolicy":
        """Build a policy from a ConfigService."""
        return cls(
            auto_deselect_single_tap=config.auto_deselect_single_tap,
            auto_deselect_two_point=config.auto_deselect_two_point,
        )


class ToolBase(ABC):
    """
    Base class for all tools.

    Tools receive taps in overlay coordinates and report what happened
    through a TapResult.
    """

    def __init__(self) -> None:
        self._logger = get_logger(__name__)

    @property
    @abstractmethod
    def tool_type(self) -> ToolType:
        """Return the type of this tool."""
        pass

    @property
    def annotation_type(self) -> AnnotationType:
        return TOOL_ANNOTATION_TYPES[self.tool_type]

    @property
    def cursor(self) -> Qt.CursorShape:
        """Return the cursor to use when this tool is active."""
        return Qt.CursorShape.CrossCursor

    @property
    def drawing_phase(self) -> DrawingPhase:
        return DrawingPhase.IDLE

    @property
    def first_point(self) -> Optional[Tuple[float, float]]:
        return None

    @property
    @abstractmethod
    def hint(self) -> str:
        """Instruction shown over the photo while the tool is active."""
        pass

    @abstractmethod
    def on_tap(self, x: float, y: float, session: "AnnotationSession") -> TapResult:
        """Handle a tap at (x, y) in overlay coordinates."""
        pass

    def on_deactivate(self) -> None:
        """Called when tool is deactivated (another tool selected)."""
        pass


class SingleTapTool(ToolBase):
    """Tools whose annotation is fully placed by one tap."""

    def on_tap(self, x: float, y: float, session: "AnnotationSession") -> TapResult:
        annotation = Annotation(
            type=self.annotation_type,
            x=x,
            y=y,
            color=session.color,
        )
        return session.finish_gesture(annotation, two_point=False)


class MarkerTool(SingleTapTool):
    @property
    def tool_type(self) -> ToolType:
        return ToolType.MARKER

    @property
    def hint(self) -> str:
        return "Tap to place marker"


class CircleTool(SingleTapTool):
    @property
    def tool_type(self) -> ToolType:
        return ToolType.CIRCLE

    @property
    def hint(self) -> str:
        return "Tap to place circle"


class TextTool(SingleTapTool):
    """Places a text anchor; the label is asked for afterwards."""

    @property
    def tool_type(self) -> ToolType:
        return ToolType.TEXT

    @property
    def cursor(self) -> Qt.CursorShape:
        return Qt.CursorShape.IBeamCursor

    @property
    def hint(self) -> str:
        return "Tap to add text"


class TwoPointTool(ToolBase):
    """
    Tools drawn with two separate taps.

    The first tap is buffered; nothing is created until the second tap
    arrives. Deactivating the tool throws the buffered point away.
    """

    def __init__(self) -> None:
        super().__init__()
        self._first_point: Optional[Tuple[float, float]] = None

    @property
    def drawing_phase(self) -> DrawingPhase:
        if self._first_point is None:
            return DrawingPhase.IDLE
        return DrawingPhase.AWAITING_SECOND_POINT

    @property
    def first_point(self) -> Optional[Tuple[float, float]]:
        return self._first_point

    @property
    def hint(self) -> str:
        if self._first_point is None:
            return "Tap start point"
        return "Tap end point"

    def on_tap(self, x: float, y: float, session: "AnnotationSession") -> TapResult:
        if self._first_point is None:
            self._first_point = (x, y)
            return TapResult.FIRST_POINT

        start_x, start_y = self._first_point
        self._first_point = None
        annotation = Annotation(
            type=self.annotation_type,
            x=start_x,
            y=start_y,
            color=session.color,
        ).with_second_point(x, y)
        return session.finish_gesture(annotation, two_point=True)

    def on_deactivate(self) -> None:
        if self._first_point is not None:
            self._logger.debug(f"Discarded first point {self._first_point} of {self.tool_type.name}")
        self._first_point = None


class ArrowTool(TwoPointTool):
    @property
    def tool_type(self) -> ToolType:
        return ToolType.ARROW


class MeasurementTool(TwoPointTool):
    @property
    def tool_type(self) -> ToolType:
        return ToolType.MEASUREMENT


def create_tool(tool_type: ToolType) -> ToolBase:
    """
    Factory function to create tools by type.

    Args:
        tool_type: The type of tool to create.

    Returns:
        A new instance of the requested tool.
    """
    tool_classes: Dict[ToolType, Type[ToolBase]] = {
        ToolType.MARKER: MarkerTool,
        ToolType.ARROW: ArrowTool,
        ToolType.CIRCLE: CircleTool,
        ToolType.TEXT: TextTool,
        ToolType.MEASUREMENT: MeasurementTool,
    }

    if tool_type not in tool_classes:
        raise ValueError(f"Unknown tool type: {tool_type}")

    return tool_classes[tool_type]()


class ToolSelection:
    """
    Which tool is active, and how far its gesture has got.

    A fresh tool instance is created on every selection, so no gesture
    state survives a tool change.
    """

    def __init__(self) -> None:
        self._logger = get_logger(__name__)
        self._tool: Optional[ToolBase] = None

    @property
    def active_tool(self) -> Optional[ToolBase]:
        return self._tool

    @property
    def active_tool_type(self) -> ToolType:
        return self._tool.tool_type if self._tool else ToolType.NONE

    @property
    def drawing_phase(self) -> DrawingPhase:
        return self._tool.drawing_phase if self._tool else DrawingPhase.IDLE

    @property
    def first_point(self) -> Optional[Tuple[float, float]]:
        return self._tool.first_point if self._tool else None

    def select(self, tool_type: ToolType) -> ToolType:
        """
        Select a tool.

        Selecting the active tool again, or NONE, deselects. Any other tool
        replaces the active one.

        Returns:
            The tool type active after the call.
        """
        previous = self.active_tool_type
        self.clear()

        if tool_type != ToolType.NONE and tool_type != previous:
            self._tool = create_tool(tool_type)

        self._logger.debug(f"Tool {previous.name} -> {self.active_tool_type.name}")
        return self.active_tool_type

    def clear(self) -> None:
        """Deactivate the current tool, if any."""
        if self._tool:
            self._tool.on_deactivate()
        self._tool = None

    def reset(self) -> None:
        """Back to the initial state: no tool, idle."""
        self.clear()
