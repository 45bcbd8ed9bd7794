"""
Committed annotations for one photo.

Insertion order is the drawing order: later annotations paint on top.
There is no undo stack; removal and clear are final for the session.
"""

from typing import Any, Dict, Iterator, List, Optional

from sitemark.editor.annotations import HIT_TOLERANCE, Annotation
from sitemark.services.logging_service import get_logger


class AnnotationList:
    """Ordered, append-only collection with explicit removal."""

    def __init__(self) -> None:
        self._logger = get_logger(__name__)
        self._items: List[Annotation] = []

    def append(self, annotation: Annotation) -> None:
        """
        Add an annotation to the end of the list.

        Raises:
            ValueError: If the annotation is missing a coordinate or label.
        """
        if not annotation.is_complete():
            raise ValueError(
                f"Refusing to commit incomplete {annotation.type.value} annotation"
            )
        self._items.append(annotation)
        self._logger.debug(f"Annotation added: {annotation.type.value} {annotation.id}")

    def remove(self, annotation_id: str) -> bool:
        """Remove an annotation by ID. Returns True if found and removed."""
        for i, annotation in enumerate(self._items):
            if annotation.id == annotation_id:
                self._items.pop(i)
                self._logger.debug(f"Annotation removed: {annotation_id}")
                return True
        return False

    def clear(self) -> None:
        """Remove every annotation."""
        count = len(self._items)
        self._items.clear()
        self._logger.debug(f"Cleared {count} annotation(s)")

    def find_at(
        self, x: float, y: float, tolerance: float = HIT_TOLERANCE
    ) -> Optional[Annotation]:
        """Find the top-most annotation at the given overlay position."""
        for annotation in reversed(self._items):
            if annotation.hit_test(x, y, tolerance):
                return annotation
        return None

    def to_list(self) -> List[Dict[str, Any]]:
        """Wire representation of every annotation, in order."""
        return [annotation.to_dict() for annotation in self._items]

    def __iter__(self) -> Iterator[Annotation]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, index: int) -> Annotation:
        return self._items[index]

    def __bool__(self) -> bool:
        return bool(self._items)
