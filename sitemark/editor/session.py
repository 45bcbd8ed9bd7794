"""
Annotation editing session for one photo.

The session owns everything the editor mutates while a photo is open:
the active tool, the committed annotations, the pending slot, the tags,
the active color and the photo metadata. None of it is persisted locally;
it is either uploaded or dropped.

Canvas taps arrive one at a time through tap(). The session forwards them
to the active tool, and the tool hands finished annotations back through
finish_gesture(), which either commits them or parks them in the pending
slot until a label is confirmed.
"""

from pathlib import Path
from typing import Optional, Tuple, Union

from PySide6.QtCore import QObject, Signal

from sitemark.editor.annotation_list import AnnotationList
from sitemark.editor.annotations import DEFAULT_COLOR, PALETTE, Annotation
from sitemark.editor.pending import PendingConfirmation
from sitemark.editor.tags import Tag, TagSet
from sitemark.editor.tools import (
    DrawingPhase,
    EditorPolicy,
    TapResult,
    ToolBase,
    ToolSelection,
    ToolType,
)
from sitemark.services.logging_service import get_logger
from sitemark.services.upload_service import PhotoMetadata, UploadForm, build_upload_form


class AnnotationSession(QObject):
    """
    Editing state for a single photo.

    Signals:
        annotations_changed: The committed list changed.
        tool_changed: Emitted with the active ToolType after any change.
        pending_requested: Emitted with an annotation that needs a label.
        pending_resolved: Emitted with the committed annotation, or None
            when the pending annotation was cancelled or discarded.
        tags_changed: The tag set changed.
    """

    annotations_changed = Signal()
    tool_changed = Signal(object)
    pending_requested = Signal(object)
    pending_resolved = Signal(object)
    tags_changed = Signal()

    def __init__(
        self,
        policy: Optional[EditorPolicy] = None,
        color: str = DEFAULT_COLOR,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._policy = policy or EditorPolicy()
        self._tools = ToolSelection()
        self._annotations = AnnotationList()
        self._pending = PendingConfirmation()
        self._tags = TagSet()
        self._color = DEFAULT_COLOR
        self._photo_path: Optional[Path] = None
        self.metadata = PhotoMetadata()

        self.set_color(color)

    # ─── State ────────────────────────────────────────────────────────────

    @property
    def policy(self) -> EditorPolicy:
        return self._policy

    @property
    def annotations(self) -> AnnotationList:
        return self._annotations

    @property
    def tags(self) -> TagSet:
        return self._tags

    @property
    def pending(self) -> PendingConfirmation:
        return self._pending

    @property
    def photo_path(self) -> Optional[Path]:
        return self._photo_path

    @property
    def color(self) -> str:
        return self._color

    @property
    def active_tool_type(self) -> ToolType:
        return self._tools.active_tool_type

    @property
    def drawing_phase(self) -> DrawingPhase:
        return self._tools.drawing_phase

    @property
    def first_point(self) -> Optional[Tuple[float, float]]:
        return self._tools.first_point

    @property
    def active_tool(self) -> Optional[ToolBase]:
        return self._tools.active_tool

    @property
    def hint(self) -> str:
        """Instruction for the active tool, empty when no tool is active."""
        tool = self._tools.active_tool
        return tool.hint if tool else ""

    # ─── Tools and Color ──────────────────────────────────────────────────

    def select_tool(self, tool_type: ToolType) -> ToolType:
        """
        Select (or toggle off) a tool.

        Raises:
            ValueError: If the tool is not part of this editor's toolset.
        """
        if tool_type != ToolType.NONE and tool_type not in self._policy.toolset:
            raise ValueError(f"Tool {tool_type.name} is not available in this editor")

        active = self._tools.select(tool_type)
        self.tool_changed.emit(active)
        return active

    def set_color(self, color: str) -> None:
        """
        Set the color for annotations created from now on.

        Raises:
            ValueError: If the color is not in the palette.
        """
        if color not in PALETTE:
            raise ValueError(f"Color {color!r} is not in the palette")
        self._color = color

    # ─── Canvas Input ─────────────────────────────────────────────────────

    def tap(self, x: float, y: float) -> TapResult:
        """
        Handle one tap at (x, y) in overlay coordinates.

        Taps are ignored while no tool is active or while a label is
        being asked for.
        """
        if self._pending.is_active:
            self._logger.debug("Tap ignored: waiting for pending confirmation")
            return TapResult.IGNORED

        tool = self._tools.active_tool
        if tool is None:
            return TapResult.IGNORED

        result = tool.on_tap(x, y, self)
        if result == TapResult.FIRST_POINT:
            # Phase change only; repaint the first-point preview
            self.tool_changed.emit(self.active_tool_type)
        return result

    def finish_gesture(self, annotation: Annotation, two_point: bool) -> TapResult:
        """
        Commit a finished gesture or send it for labelling.

        Called by tools. Applies the auto-deselect policy afterwards.
        """
        if self._policy.requires_text(annotation.type):
            self._pending.begin(annotation)
            result = TapResult.PENDING
        else:
            self._annotations.append(annotation)
            result = TapResult.COMMITTED

        deselect = (
            self._policy.auto_deselect_two_point
            if two_point
            else self._policy.auto_deselect_single_tap
        )
        if deselect:
            self._tools.clear()
            self.tool_changed.emit(ToolType.NONE)

        if result == TapResult.PENDING:
            self.pending_requested.emit(annotation)
        else:
            self.annotations_changed.emit()
        return result

    # ─── Pending Confirmation ─────────────────────────────────────────────

    def confirm_pending(self, text: Optional[str] = None) -> Optional[Annotation]:
        """
        Confirm the pending annotation with a label.

        A blank label discards the annotation.

        Returns:
            The committed annotation, or None if nothing was committed.
        """
        if not self._pending.is_active:
            return None

        annotation = self._pending.confirm(text)
        if annotation is not None:
            self._annotations.append(annotation)
            self.annotations_changed.emit()
        self.pending_resolved.emit(annotation)
        return annotation

    def cancel_pending(self) -> None:
        """Drop the pending annotation."""
        if not self._pending.is_active:
            return
        self._pending.cancel()
        self.pending_resolved.emit(None)

    # ─── Annotation List ──────────────────────────────────────────────────

    def remove_annotation(self, annotation_id: str) -> bool:
        removed = self._annotations.remove(annotation_id)
        if removed:
            self.annotations_changed.emit()
        return removed

    def remove_annotation_at(self, x: float, y: float) -> Optional[Annotation]:
        """Remove the top-most annotation under (x, y), if any."""
        hit = self._annotations.find_at(x, y)
        if hit is not None:
            self.remove_annotation(hit.id)
        return hit

    def clear_annotations(self) -> None:
        if not self._annotations:
            return
        self._annotations.clear()
        self.annotations_changed.emit()

    # ─── Tags ─────────────────────────────────────────────────────────────

    def add_tag(self, label: str) -> Optional[Tag]:
        tag = self._tags.add(label)
        if tag is not None:
            self.tags_changed.emit()
        return tag

    def remove_tag(self, tag_id: str) -> bool:
        removed = self._tags.remove(tag_id)
        if removed:
            self.tags_changed.emit()
        return removed

    # ─── Session Lifecycle ────────────────────────────────────────────────

    def reset(
        self,
        photo_path: Optional[Union[str, Path]] = None,
        metadata: Optional[PhotoMetadata] = None,
    ) -> None:
        """
        Start over for a (new) photo.

        Tool, pending slot, annotations and tags all return to their
        initial state.
        """
        self._tools.reset()
        self._pending.cancel()
        self._annotations.clear()
        self._tags.clear()
        self._photo_path = Path(photo_path) if photo_path is not None else None
        self.metadata = metadata or PhotoMetadata()

        self._logger.info(f"Annotation session reset for {self._photo_path}")
        self.tool_changed.emit(ToolType.NONE)
        self.annotations_changed.emit()
        self.tags_changed.emit()

    def build_upload_form(self) -> UploadForm:
        """
        Package the photo, annotations, tags and metadata for upload.

        Raises:
            RuntimeError: If no photo is loaded.
            OSError: If the photo cannot be read.
        """
        if self._photo_path is None:
            raise RuntimeError("No photo loaded")
        return build_upload_form(
            self._photo_path,
            self._annotations,
            self._tags.labels(),
            self.metadata,
        )
