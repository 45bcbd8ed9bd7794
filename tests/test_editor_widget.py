"""
Tests for the editor canvas and widget (offscreen Qt)
"""
from unittest.mock import MagicMock

import pytest
from PySide6.QtCore import QPoint, QPointF, Qt
from PySide6.QtGui import QImage
from PySide6.QtTest import QTest
from PySide6.QtWidgets import QMessageBox

from sitemark.editor.annotations import AnnotationType
from sitemark.editor.editor_canvas import EditorCanvas
from sitemark.editor.editor_widget import EditorWidget
from sitemark.editor.tools import TapResult, ToolType
from sitemark.services.upload_service import (
    PhotoMetadata,
    PhotoUploader,
    UploadError,
    UploadResult,
    UploadService,
    UploadTarget,
)


@pytest.fixture
def canvas(session):
    widget = EditorCanvas(session)
    widget.resize(840, 440)
    widget.show()
    image = QImage(800, 400, QImage.Format.Format_RGB32)
    image.fill(Qt.GlobalColor.gray)
    widget.set_image(image)
    yield widget
    widget.close()


@pytest.fixture
def messages(monkeypatch):
    """Capture message boxes instead of showing them"""
    shown = []
    monkeypatch.setattr(
        QMessageBox, "information", lambda parent, title, text, *a: shown.append(("info", title, text))
    )
    monkeypatch.setattr(
        QMessageBox, "critical", lambda parent, title, text, *a: shown.append(("error", title, text))
    )
    return shown


@pytest.fixture
def uploader():
    mock = MagicMock(spec=PhotoUploader)
    mock.upload.return_value = UploadResult(payload={"id": "ph1"})
    return mock


@pytest.fixture
def upload_service(qapp, uploader):
    return UploadService(uploader)


@pytest.fixture
def editor(qapp, config, upload_service, photo_file):
    widget = EditorWidget(config, upload_service)
    widget.resize(1000, 700)
    widget.load_photo(photo_file, PhotoMetadata(caption="Hall"), UploadTarget.mobile("p1"))
    yield widget
    upload_service.wait(5)
    widget.close()


class TestEditorCanvas:
    """Tests for canvas coordinates and mouse routing"""

    def test_frame_fixed_at_load(self, canvas):
        assert canvas.frame_size == (800.0, 400.0)

    def test_round_trip(self, canvas):
        point = QPointF(123.0, 45.0)
        back = canvas.widget_to_overlay(canvas.overlay_to_widget(point))
        assert back.x() == pytest.approx(123.0)
        assert back.y() == pytest.approx(45.0)

    def test_resize_keeps_overlay_coordinates(self, canvas, session):
        session.select_tool(ToolType.MARKER)
        session.tap(400, 200)

        canvas.resize(440, 440)

        assert canvas.frame_size == (800.0, 400.0)
        assert session.annotations[0].x == 400
        corner = canvas.overlay_to_widget(QPointF(800, 400))
        origin = canvas.overlay_to_widget(QPointF(0, 0))
        assert corner.x() - origin.x() == pytest.approx(canvas.width() - canvas.PADDING)

    def test_left_click_taps(self, canvas, session):
        session.select_tool(ToolType.MARKER)
        results = []
        canvas.tapped.connect(lambda r: results.append(r))
        target = canvas.overlay_to_widget(QPointF(100, 50))

        QTest.mouseClick(canvas, Qt.MouseButton.LeftButton, pos=target.toPoint())

        assert results == [TapResult.COMMITTED]
        annotation = session.annotations[0]
        assert annotation.x == pytest.approx(100, abs=1)
        assert annotation.y == pytest.approx(50, abs=1)

    def test_click_outside_photo_ignored(self, canvas, session):
        session.select_tool(ToolType.MARKER)
        QTest.mouseClick(canvas, Qt.MouseButton.LeftButton, pos=QPoint(2, 2))
        assert len(session.annotations) == 0

    def test_right_click_removes(self, canvas, session):
        session.select_tool(ToolType.MARKER)
        session.tap(200, 100)
        target = canvas.overlay_to_widget(QPointF(200, 100))

        QTest.mouseClick(canvas, Qt.MouseButton.RightButton, pos=target.toPoint())

        assert len(session.annotations) == 0

    def test_escape_deselects(self, canvas, session):
        session.select_tool(ToolType.ARROW)
        session.tap(1, 1)

        QTest.keyClick(canvas, Qt.Key.Key_Escape)

        assert session.active_tool_type == ToolType.NONE
        assert session.first_point is None

    def test_paints_without_error(self, canvas, session, sample_annotations):
        for annotation in sample_annotations:
            session.annotations.append(annotation)
        pixmap = canvas.grab()
        assert not pixmap.isNull()


class TestEditorWidget:
    """Tests for the editor screen"""

    def test_load_photo(self, editor, photo_file):
        assert editor.session.photo_path == photo_file
        assert editor.canvas.image.width() == 64

    def test_load_invalid_photo(self, qapp, tmp_path):
        bad = tmp_path / "bad.jpg"
        bad.write_text("nope")
        assert EditorWidget().load_photo(bad) is False

    def test_tool_buttons_follow_session(self, editor):
        button = editor.tool_button(ToolType.ARROW)

        button.click()
        assert editor.session.active_tool_type == ToolType.ARROW
        assert button.isChecked()

        button.click()
        assert editor.session.active_tool_type == ToolType.NONE
        assert not button.isChecked()

    def test_shortcut_selects_tool(self, editor):
        QTest.keyClick(editor, Qt.Key.Key_C)
        assert editor.session.active_tool_type == ToolType.CIRCLE
        assert editor.tool_button(ToolType.CIRCLE).isChecked()

    def test_label_dialog_result_confirms(self, editor, monkeypatch):
        monkeypatch.setattr(editor, "ask_label", lambda annotation: "10 ft")
        editor.session.select_tool(ToolType.MEASUREMENT)
        editor.session.tap(0, 0)
        editor.session.tap(30, 0)

        assert len(editor.session.annotations) == 1
        assert editor.session.annotations[0].text == "10 ft"
        assert editor.details.annotation_list.count() == 1

    def test_label_dialog_cancel_discards(self, editor, monkeypatch):
        monkeypatch.setattr(editor, "ask_label", lambda annotation: None)
        editor.session.select_tool(ToolType.TEXT)
        editor.session.tap(5, 5)

        assert len(editor.session.annotations) == 0
        assert not editor.session.pending.is_active

    def test_tags_listed(self, editor):
        editor.session.add_tag("Leak")
        assert editor.details.tag_list.count() == 1

    def test_save_uploads(self, qapp, editor, uploader, upload_service, messages):
        saved = []
        editor.saved.connect(lambda r: saved.append(r))
        editor.session.select_tool(ToolType.MARKER)
        editor.session.tap(10, 10)

        assert editor.save() is True
        upload_service.wait(5)
        qapp.processEvents()

        target, form = uploader.upload.call_args.args
        assert target.path == "/api/mobile/projects/p1/photos"
        assert form.data["caption"] == "Hall"
        assert '"marker"' in form.data["annotationsData"]
        assert len(saved) == 1
        assert messages == [("info", "Success", "Photo saved to database.")]
        assert editor.save_button.isEnabled()

    def test_failed_save_keeps_state(self, qapp, editor, uploader, upload_service, messages):
        uploader.upload.side_effect = UploadError("Project not found", 404)
        editor.session.select_tool(ToolType.MARKER)
        editor.session.tap(10, 10)

        editor.save()
        upload_service.wait(5)
        qapp.processEvents()

        assert messages == [("error", "Error", "Project not found")]
        assert len(editor.session.annotations) == 1
        assert editor.save_button.text() == "Save"

    def test_save_without_target(self, editor, messages):
        editor.set_target(None)
        assert editor.save() is False
        assert messages[0][0] == "error"

    def test_save_without_photo(self, qapp):
        assert EditorWidget().save() is False

    def test_annotation_types_in_list(self, editor, sample_annotations):
        editor.details.set_annotations(sample_annotations)
        labels = [
            editor.details.annotation_list.item(i).text()
            for i in range(editor.details.annotation_list.count())
        ]
        assert len(labels) == len(AnnotationType)
