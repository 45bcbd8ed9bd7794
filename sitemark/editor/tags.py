"""
Photo tags.

Tags label the whole photo, not individual annotations. Colors come from
the annotation palette, round-robin by the position the tag is inserted
at, and never change afterwards. Only labels are uploaded.
"""

from dataclasses import dataclass, field
from typing import Iterator, List, Optional
from uuid import uuid4

from sitemark.editor.annotations import PALETTE


@dataclass(frozen=True)
class Tag:
    """A short label attached to a photo."""
    label: str
    color: str
    id: str = field(default_factory=lambda: str(uuid4()))


class TagSet:
    """Flat, ordered set of tags. Duplicate labels are allowed."""

    def __init__(self) -> None:
        self._tags: List[Tag] = []

    def add(self, label: str) -> Optional[Tag]:
        """
        Add a tag.

        Args:
            label: Tag text; surrounding whitespace is stripped.

        Returns:
            The new tag, or None if the label was blank.
        """
        label = label.strip()
        if not label:
            return None

        tag = Tag(label=label, color=PALETTE[len(self._tags) % len(PALETTE)])
        self._tags.append(tag)
        return tag

    def remove(self, tag_id: str) -> bool:
        """Remove a tag by ID. Returns True if found and removed."""
        for i, tag in enumerate(self._tags):
            if tag.id == tag_id:
                self._tags.pop(i)
                return True
        return False

    def clear(self) -> None:
        self._tags.clear()

    def labels(self) -> List[str]:
        """Tag labels in insertion order (the upload payload)."""
        return [tag.label for tag in self._tags]

    def __iter__(self) -> Iterator[Tag]:
        return iter(list(self._tags))

    def __len__(self) -> int:
        return len(self._tags)
