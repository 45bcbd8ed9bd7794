"""
Tests for tool selection and the editor policy
"""
import pytest

from sitemark.editor.annotations import AnnotationType
from sitemark.editor.tools import (
    ArrowTool,
    DrawingPhase,
    EditorPolicy,
    MarkerTool,
    MeasurementTool,
    ToolSelection,
    ToolType,
    create_tool,
)


ALL_TOOLS = [
    ToolType.MARKER,
    ToolType.ARROW,
    ToolType.CIRCLE,
    ToolType.TEXT,
    ToolType.MEASUREMENT,
]


class TestCreateTool:
    """Tests for the tool factory"""

    def test_creates_matching_types(self):
        assert isinstance(create_tool(ToolType.MARKER), MarkerTool)
        assert isinstance(create_tool(ToolType.ARROW), ArrowTool)
        assert isinstance(create_tool(ToolType.MEASUREMENT), MeasurementTool)

    def test_annotation_types(self):
        assert create_tool(ToolType.CIRCLE).annotation_type == AnnotationType.CIRCLE
        assert create_tool(ToolType.TEXT).annotation_type == AnnotationType.TEXT

    def test_none_is_not_a_tool(self):
        with pytest.raises(ValueError):
            create_tool(ToolType.NONE)


class TestToolSelection:
    """Tests for ToolSelection"""

    def test_starts_with_no_tool(self):
        selection = ToolSelection()
        assert selection.active_tool_type == ToolType.NONE
        assert selection.drawing_phase == DrawingPhase.IDLE
        assert selection.first_point is None

    @pytest.mark.parametrize("tool_type", ALL_TOOLS)
    def test_selecting_twice_toggles_off(self, tool_type):
        selection = ToolSelection()
        assert selection.select(tool_type) == tool_type
        assert selection.select(tool_type) == ToolType.NONE

    def test_switching_replaces_tool(self):
        selection = ToolSelection()
        selection.select(ToolType.MARKER)
        assert selection.select(ToolType.CIRCLE) == ToolType.CIRCLE

    def test_select_none_clears(self):
        selection = ToolSelection()
        selection.select(ToolType.ARROW)
        assert selection.select(ToolType.NONE) == ToolType.NONE

    def test_reset(self):
        selection = ToolSelection()
        selection.select(ToolType.TEXT)
        selection.reset()
        assert selection.active_tool is None


class TestEditorPolicy:
    """Tests for EditorPolicy"""

    def test_defaults(self):
        policy = EditorPolicy()
        assert policy.toolset == tuple(ALL_TOOLS)
        assert policy.requires_text(AnnotationType.TEXT)
        assert policy.requires_text(AnnotationType.MEASUREMENT)
        assert not policy.requires_text(AnnotationType.ARROW)
        assert policy.auto_deselect_single_tap is False
        assert policy.auto_deselect_two_point is True

    def test_text_types_are_mandatory(self):
        with pytest.raises(ValueError):
            EditorPolicy(requires_text_for=frozenset({AnnotationType.TEXT}))

    def test_extra_text_types_allowed(self):
        policy = EditorPolicy(
            requires_text_for=frozenset(
                {AnnotationType.TEXT, AnnotationType.MEASUREMENT, AnnotationType.MARKER}
            )
        )
        assert policy.requires_text(AnnotationType.MARKER)

    def test_none_not_allowed_in_toolset(self):
        with pytest.raises(ValueError):
            EditorPolicy(toolset=(ToolType.NONE, ToolType.MARKER))

    def test_from_config(self, config):
        config.set("auto_deselect_single_tap", True)
        config.set("auto_deselect_two_point", False)

        policy = EditorPolicy.from_config(config)

        assert policy.auto_deselect_single_tap is True
        assert policy.auto_deselect_two_point is False
