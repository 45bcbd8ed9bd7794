"""
Tests for the committed annotation list
"""
import pytest

from sitemark.editor.annotation_list import AnnotationList
from sitemark.editor.annotations import Annotation, AnnotationType


@pytest.fixture
def filled_list(sample_annotations):
    annotations = AnnotationList()
    for annotation in sample_annotations:
        annotations.append(annotation)
    return annotations


class TestAnnotationList:
    """Tests for AnnotationList"""

    def test_append_keeps_order(self, filled_list, sample_annotations):
        assert len(filled_list) == len(sample_annotations)
        assert [a.id for a in filled_list] == [a.id for a in sample_annotations]
        assert filled_list[1].type == AnnotationType.ARROW

    def test_append_rejects_incomplete(self):
        annotations = AnnotationList()
        with pytest.raises(ValueError):
            annotations.append(Annotation(type=AnnotationType.ARROW, x=0, y=0))
        with pytest.raises(ValueError):
            annotations.append(Annotation(type=AnnotationType.TEXT, x=0, y=0, text=""))
        assert len(annotations) == 0

    def test_remove_by_id(self, filled_list, sample_annotations):
        target = sample_annotations[2]
        assert filled_list.remove(target.id) is True
        assert target.id not in [a.id for a in filled_list]
        assert len(filled_list) == len(sample_annotations) - 1

    def test_remove_unknown_id_is_noop(self, filled_list, sample_annotations):
        assert filled_list.remove("missing") is False
        assert len(filled_list) == len(sample_annotations)

    def test_clear(self, filled_list):
        filled_list.clear()
        assert len(filled_list) == 0
        assert not filled_list

    def test_find_at_prefers_topmost(self):
        annotations = AnnotationList()
        lower = Annotation(type=AnnotationType.MARKER, x=50, y=50)
        upper = Annotation(type=AnnotationType.MARKER, x=52, y=50)
        annotations.append(lower)
        annotations.append(upper)

        assert annotations.find_at(51, 50) is upper
        assert annotations.find_at(300, 300) is None

    def test_iteration_is_safe_during_removal(self, filled_list):
        for annotation in filled_list:
            filled_list.remove(annotation.id)
        assert len(filled_list) == 0

    def test_to_list(self, filled_list):
        data = filled_list.to_list()
        assert [item["type"] for item in data] == [
            "marker", "arrow", "circle", "text", "measurement"
        ]
