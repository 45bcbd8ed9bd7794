"""
Pending-confirmation slot for annotations that need a label.

Text and measurement annotations are placed on the canvas first and
labelled second. Between the two steps the half-built annotation sits in
this slot. Confirming with a blank label drops the annotation without
complaint: no annotation is better than an unlabeled one.
"""

from typing import Optional

from sitemark.editor.annotations import Annotation
from sitemark.services.logging_service import get_logger


class PendingConfirmation:
    """
    Holds at most one annotation waiting for its label.

    Attributes:
        annotation: The half-built annotation, or None when the slot is free.
        text: The label typed so far.
        visible: Whether the label prompt should be shown.
    """

    def __init__(self) -> None:
        self._logger = get_logger(__name__)
        self.annotation: Optional[Annotation] = None
        self.text: str = ""
        self.visible: bool = False

    @property
    def is_active(self) -> bool:
        return self.annotation is not None

    def begin(self, annotation: Annotation) -> None:
        """
        Put an annotation in the slot and show the prompt.

        Raises:
            RuntimeError: If another annotation is already pending.
        """
        if self.annotation is not None:
            raise RuntimeError("An annotation is already waiting for confirmation")

        self.annotation = annotation
        self.text = annotation.text or ""
        self.visible = True
        self._logger.debug(f"Pending {annotation.type.value} annotation {annotation.id}")

    def set_text(self, value: str) -> None:
        self.text = value

    def confirm(self, text: Optional[str] = None) -> Optional[Annotation]:
        """
        Resolve the slot with a label.

        Args:
            text: The label; defaults to the current buffer.

        Returns:
            The completed annotation, or None if there was nothing pending
            or the label was blank.
        """
        if text is not None:
            self.text = text

        annotation = self.annotation
        label = self.text.strip()
        self._clear()

        if annotation is None:
            return None
        if not label:
            self._logger.debug(f"Discarded {annotation.type.value} annotation with empty label")
            return None
        return annotation.with_text(label)

    def cancel(self) -> None:
        """Drop the pending annotation without committing anything."""
        if self.annotation is not None:
            self._logger.debug(f"Cancelled pending annotation {self.annotation.id}")
        self._clear()

    def _clear(self) -> None:
        self.annotation = None
        self.text = ""
        self.visible = False
