"""
Editor widget for SiteMark - the photo annotation screen.

This widget composes the complete editor interface:
- Top toolbar with tool buttons, color palette, Clear All and Save
- Center canvas for the photo and its annotations
- Right panel with photo details, tags and the annotation list
- Bottom status bar with the tool hint and annotation count

Saving uploads the photo in the background. Editing state is kept when an
upload fails so the user can try again.
"""

from dataclasses import replace
from pathlib import Path
from typing import Optional, Union

from PySide6.QtCore import QPoint, QPointF, Qt, Signal, Slot
from PySide6.QtGui import QColor, QIcon, QImageReader, QPainter, QPen, QPixmap, QPolygon
from PySide6.QtWidgets import (
    QButtonGroup,
    QComboBox,
    QDialog,
    QDialogButtonBox,
    QFrame,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QMessageBox,
    QPlainTextEdit,
    QPushButton,
    QSizePolicy,
    QToolBar,
    QToolButton,
    QVBoxLayout,
    QWidget,
)

from sitemark.editor.annotations import PALETTE, Annotation, AnnotationType
from sitemark.editor.editor_canvas import EditorCanvas
from sitemark.editor.session import AnnotationSession
from sitemark.editor.tools import EditorPolicy, ToolType
from sitemark.services.config_service import TRADE_CATEGORIES, ConfigService
from sitemark.services.logging_service import get_logger
from sitemark.services.upload_service import (
    PhotoMetadata,
    UploadResult,
    UploadService,
    UploadTarget,
)


TOOL_BUTTONS = [
    (ToolType.MARKER, "Marker", "marker", "M"),
    (ToolType.ARROW, "Arrow", "arrow", "A"),
    (ToolType.CIRCLE, "Circle", "circle", "C"),
    (ToolType.TEXT, "Text", "text", "T"),
    (ToolType.MEASUREMENT, "Measure", "ruler", "R"),
]

SHORTCUT_TOOLS = {
    Qt.Key.Key_M: ToolType.MARKER,
    Qt.Key.Key_A: ToolType.ARROW,
    Qt.Key.Key_C: ToolType.CIRCLE,
    Qt.Key.Key_T: ToolType.TEXT,
    Qt.Key.Key_R: ToolType.MEASUREMENT,
}


def _color_icon(color: str, size: int = 12) -> QIcon:
    pixmap = QPixmap(size, size)
    pixmap.fill(QColor(color))
    return QIcon(pixmap)


def _create_tool_icon(shape: str, color: QColor = QColor(220, 220, 220)) -> QIcon:
    """Draw a toolbar icon."""
    size = 24
    pixmap = QPixmap(size, size)
    pixmap.fill(Qt.GlobalColor.transparent)

    painter = QPainter(pixmap)
    painter.setRenderHint(QPainter.RenderHint.Antialiasing)
    painter.setPen(QPen(color, 2))

    if shape == "marker":
        painter.setBrush(color)
        painter.drawEllipse(QPointF(12, 10), 5, 5)
        painter.drawLine(12, 15, 12, 21)

    elif shape == "circle":
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawEllipse(4, 4, 16, 16)

    elif shape == "arrow":
        painter.drawLine(6, 18, 18, 6)
        painter.setBrush(color)
        painter.drawPolygon(QPolygon([QPoint(18, 6), QPoint(12, 7), QPoint(17, 12)]))

    elif shape == "text":
        font = painter.font()
        font.setPixelSize(16)
        font.setBold(True)
        painter.setFont(font)
        painter.drawText(pixmap.rect(), Qt.AlignmentFlag.AlignCenter, "T")

    elif shape == "ruler":
        painter.drawLine(4, 18, 20, 6)
        painter.drawLine(8, 14, 10, 16)
        painter.drawLine(12, 12, 14, 14)
        painter.drawLine(16, 9, 18, 11)

    elif shape == "save":
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRect(4, 4, 16, 16)
        painter.drawRect(8, 4, 8, 5)

    painter.end()
    return QIcon(pixmap)


# ─── Label Dialog ─────────────────────────────────────────────────────────────

class LabelDialog(QDialog):
    """
    Modal prompt for the label of a text or measurement annotation.

    Accepting with a blank label is allowed; the session drops the
    annotation in that case.
    """

    def __init__(self, annotation: Annotation, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        is_measurement = annotation.type == AnnotationType.MEASUREMENT
        self.setWindowTitle("Add Measurement" if is_measurement else "Add Text")
        self.setModal(True)
        self.setMinimumWidth(320)

        layout = QVBoxLayout(self)
        prompt = QLabel(
            "Enter the measurement:" if is_measurement else "Enter the label text:"
        )
        layout.addWidget(prompt)

        self._edit = QLineEdit()
        self._edit.setPlaceholderText("e.g. 12 ft" if is_measurement else "Label")
        layout.addWidget(self._edit)

        buttons = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Ok | QDialogButtonBox.StandardButton.Cancel
        )
        buttons.accepted.connect(self.accept)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

        self._edit.setFocus()

    @property
    def line_edit(self) -> QLineEdit:
        return self._edit

    def text(self) -> str:
        return self._edit.text()


# ─── Details Panel ────────────────────────────────────────────────────────────

class DetailsPanel(QFrame):
    """
    Right panel: caption, notes, trade, room/area, tags and annotations.

    Signals:
        tag_add_requested: Emitted with the typed tag label.
        tag_remove_requested: Emitted with a tag id.
        annotation_remove_requested: Emitted with an annotation id.
    """

    tag_add_requested = Signal(str)
    tag_remove_requested = Signal(str)
    annotation_remove_requested = Signal(str)

    def __init__(self, trade_categories=None, parent=None):
        super().__init__(parent)
        self._trade_categories = list(trade_categories or TRADE_CATEGORIES)
        self._setup_ui()

    def _setup_ui(self) -> None:
        self.setFrameStyle(QFrame.Shape.StyledPanel)
        self.setFixedWidth(260)
        self.setStyleSheet("""
            QFrame {
                background-color: #2d2d2d;
                border-left: 1px solid #3a3a3a;
            }
            QLabel {
                color: #ddd;
                font-size: 11px;
            }
            QLineEdit, QPlainTextEdit, QComboBox, QListWidget {
                background-color: #3a3a3a;
                color: #ddd;
                border: 1px solid #555;
                padding: 4px;
            }
        """)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(12, 12, 12, 12)
        layout.setSpacing(8)

        title = QLabel("Photo Details")
        title.setStyleSheet("font-weight: bold; font-size: 13px;")
        layout.addWidget(title)

        layout.addWidget(QLabel("Caption"))
        self._caption = QLineEdit()
        self._caption.setPlaceholderText("Add a caption...")
        layout.addWidget(self._caption)

        layout.addWidget(QLabel("Notes"))
        self._notes = QPlainTextEdit()
        self._notes.setPlaceholderText("Additional notes...")
        self._notes.setFixedHeight(60)
        layout.addWidget(self._notes)

        layout.addWidget(QLabel("Trade Category"))
        self._trade = QComboBox()
        self._trade.addItem("Select trade...", "")
        for category in self._trade_categories:
            self._trade.addItem(category, category)
        layout.addWidget(self._trade)

        layout.addWidget(QLabel("Room / Area"))
        self._room = QLineEdit()
        self._room.setPlaceholderText("e.g. Kitchen")
        layout.addWidget(self._room)

        # Tags
        layout.addWidget(QLabel("Tags"))
        tag_row = QHBoxLayout()
        self._tag_input = QLineEdit()
        self._tag_input.setPlaceholderText("Add tag")
        self._tag_input.returnPressed.connect(self._on_add_tag)
        tag_row.addWidget(self._tag_input, 1)
        add_tag_btn = QPushButton("Add")
        add_tag_btn.clicked.connect(self._on_add_tag)
        tag_row.addWidget(add_tag_btn)
        layout.addLayout(tag_row)

        self._tag_list = QListWidget()
        self._tag_list.setFixedHeight(70)
        self._tag_list.itemDoubleClicked.connect(
            lambda item: self.tag_remove_requested.emit(item.data(Qt.ItemDataRole.UserRole))
        )
        layout.addWidget(self._tag_list)

        # Annotations
        self._annotation_title = QLabel("Annotations (0)")
        layout.addWidget(self._annotation_title)
        self._annotation_list = QListWidget()
        layout.addWidget(self._annotation_list, 1)

        self._delete_btn = QPushButton("Delete Annotation")
        self._delete_btn.clicked.connect(self._on_delete_annotation)
        layout.addWidget(self._delete_btn)

    # ─── Fields ───────────────────────────────────────────────────────────

    def set_metadata(self, metadata: PhotoMetadata) -> None:
        self._caption.setText(metadata.caption)
        self._notes.setPlainText(metadata.notes)
        index = self._trade.findData(metadata.trade_category)
        self._trade.setCurrentIndex(index if index >= 0 else 0)
        self._room.setText(metadata.room_area)
        self._tag_input.clear()

    def apply_to(self, metadata: PhotoMetadata) -> PhotoMetadata:
        """Copy of `metadata` with the panel's field values."""
        return replace(
            metadata,
            caption=self._caption.text().strip(),
            notes=self._notes.toPlainText().strip(),
            trade_category=self._trade.currentData() or "",
            room_area=self._room.text().strip(),
        )

    # ─── Lists ────────────────────────────────────────────────────────────

    def set_tags(self, tags) -> None:
        self._tag_list.clear()
        for tag in tags:
            item = QListWidgetItem(_color_icon(tag.color), tag.label)
            item.setData(Qt.ItemDataRole.UserRole, tag.id)
            item.setToolTip("Double-click to remove")
            self._tag_list.addItem(item)

    def set_annotations(self, annotations) -> None:
        self._annotation_list.clear()
        for annotation in annotations:
            item = QListWidgetItem(_color_icon(annotation.color), annotation.label)
            item.setData(Qt.ItemDataRole.UserRole, annotation.id)
            self._annotation_list.addItem(item)
        self._annotation_title.setText(f"Annotations ({self._annotation_list.count()})")

    @property
    def annotation_list(self) -> QListWidget:
        return self._annotation_list

    @property
    def tag_list(self) -> QListWidget:
        return self._tag_list

    def _on_add_tag(self) -> None:
        label = self._tag_input.text()
        if label.strip():
            self.tag_add_requested.emit(label)
        self._tag_input.clear()

    def _on_delete_annotation(self) -> None:
        item = self._annotation_list.currentItem()
        if item is not None:
            self.annotation_remove_requested.emit(item.data(Qt.ItemDataRole.UserRole))


class StatusBar(QFrame):
    """Bottom status bar showing the tool hint, photo size and annotation count."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self._setup_ui()

    def _setup_ui(self) -> None:
        self.setFrameStyle(QFrame.Shape.StyledPanel)
        self.setFixedHeight(32)
        self.setStyleSheet("""
            QFrame {
                background-color: #2a2a2a;
                border-top: 1px solid #3a3a3a;
            }
            QLabel {
                color: #aaa;
                font-size: 11px;
            }
        """)

        layout = QHBoxLayout(self)
        layout.setContentsMargins(12, 0, 12, 0)
        layout.setSpacing(20)

        self._hint = QLabel("")
        layout.addWidget(self._hint)
        self._dimensions = QLabel("0 × 0")
        layout.addWidget(self._dimensions)
        layout.addStretch()
        self._count = QLabel("0 annotations")
        layout.addWidget(self._count)

    def set_hint(self, text: str) -> None:
        self._hint.setText(text)

    @property
    def hint(self) -> str:
        return self._hint.text()

    def set_dimensions(self, width: int, height: int) -> None:
        self._dimensions.setText(f"{width} × {height}")

    def set_count(self, count: int) -> None:
        self._count.setText(f"{count} annotation{'s' if count != 1 else ''}")


# ─── Editor Widget ────────────────────────────────────────────────────────────

class EditorWidget(QWidget):
    """
    Complete annotation editor for one photo at a time.

    Signals:
        saved: Emitted with the UploadResult after a successful upload.
        closed: Emitted when the user leaves the editor.
    """

    saved = Signal(object)
    closed = Signal()

    def __init__(
        self,
        config_service: Optional[ConfigService] = None,
        upload_service: Optional[UploadService] = None,
        parent=None,
    ):
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._config = config_service
        self._upload = upload_service
        self._target: Optional[UploadTarget] = None

        if config_service is not None:
            policy = EditorPolicy.from_config(config_service)
            color = config_service.default_color
            trades = config_service.trade_categories
        else:
            policy = EditorPolicy()
            color = PALETTE[0]
            trades = TRADE_CATEGORIES

        self._session = AnnotationSession(policy=policy, color=color, parent=self)
        self._trade_categories = trades

        self._setup_ui()
        self._connect_signals()
        self._sync_tool_buttons(ToolType.NONE)

    def _setup_ui(self) -> None:
        """Build the UI layout."""
        main_layout = QVBoxLayout(self)
        main_layout.setContentsMargins(0, 0, 0, 0)
        main_layout.setSpacing(0)

        # ─── Top Toolbar ──────────────────────────────────────────────
        self._toolbar = QToolBar()
        self._toolbar.setMovable(False)
        self._toolbar.setStyleSheet("""
            QToolBar {
                background-color: #2a2a2a;
                border-bottom: 1px solid #3a3a3a;
                padding: 6px 8px;
                spacing: 4px;
            }
            QToolBar::separator {
                background-color: #444;
                width: 1px;
                margin: 4px 6px;
            }
            QToolButton {
                background-color: transparent;
                border: none;
                border-radius: 8px;
                padding: 6px 8px;
                margin: 2px;
                min-width: 32px;
                min-height: 32px;
                color: #ddd;
            }
            QToolButton:hover {
                background-color: rgba(255, 255, 255, 0.1);
            }
            QToolButton:checked {
                background-color: rgba(74, 144, 226, 0.3);
            }
        """)

        self._back_btn = QToolButton()
        self._back_btn.setText("← Back")
        self._back_btn.setToolTip("Back to photos")
        self._back_btn.clicked.connect(self.closed.emit)
        self._toolbar.addWidget(self._back_btn)
        self._toolbar.addSeparator()

        # Tool buttons; non-exclusive so the active tool can be toggled off
        self._tool_buttons = {}
        for tool_type, tooltip, icon_shape, shortcut in TOOL_BUTTONS:
            if tool_type not in self._session.policy.toolset:
                continue
            btn = QToolButton()
            btn.setIcon(_create_tool_icon(icon_shape))
            btn.setText(tooltip)
            btn.setToolTip(f"{tooltip} ({shortcut})")
            btn.setCheckable(True)
            btn.clicked.connect(lambda checked, t=tool_type: self._select_tool(t))
            self._tool_buttons[tool_type] = btn
            self._toolbar.addWidget(btn)

        self._toolbar.addSeparator()

        # Palette
        self._color_group = QButtonGroup(self)
        self._color_group.setExclusive(True)
        self._color_buttons = {}
        for color in PALETTE:
            btn = QToolButton()
            btn.setCheckable(True)
            btn.setFixedSize(24, 24)
            btn.setToolTip(color)
            btn.setStyleSheet(f"""
                QToolButton {{
                    background-color: {color};
                    border: 2px solid #555;
                    border-radius: 12px;
                    min-width: 20px;
                    min-height: 20px;
                }}
                QToolButton:checked {{
                    border-color: #fff;
                }}
            """)
            btn.clicked.connect(lambda checked, c=color: self._set_color(c))
            self._color_group.addButton(btn)
            self._color_buttons[color] = btn
            self._toolbar.addWidget(btn)
        self._color_buttons[self._session.color].setChecked(True)

        spacer = QWidget()
        spacer.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Preferred)
        self._toolbar.addWidget(spacer)

        self._clear_btn = QToolButton()
        self._clear_btn.setText("Clear All")
        self._clear_btn.setToolTip("Remove every annotation")
        self._clear_btn.clicked.connect(self._session.clear_annotations)
        self._toolbar.addWidget(self._clear_btn)

        self._save_btn = QToolButton()
        self._save_btn.setIcon(_create_tool_icon("save"))
        self._save_btn.setText("Save")
        self._save_btn.setToolButtonStyle(Qt.ToolButtonStyle.ToolButtonTextBesideIcon)
        self._save_btn.setToolTip("Upload photo (Ctrl+S)")
        self._save_btn.clicked.connect(self.save)
        self._toolbar.addWidget(self._save_btn)

        main_layout.addWidget(self._toolbar)

        # ─── Center Content ───────────────────────────────────────────
        content = QHBoxLayout()
        content.setContentsMargins(0, 0, 0, 0)
        content.setSpacing(0)

        self._canvas = EditorCanvas(self._session)
        content.addWidget(self._canvas, 1)

        self._details = DetailsPanel(self._trade_categories)
        content.addWidget(self._details)

        main_layout.addLayout(content, 1)

        # ─── Bottom Status Bar ────────────────────────────────────────
        self._status = StatusBar()
        main_layout.addWidget(self._status)

    def _connect_signals(self) -> None:
        """Connect widget signals."""
        self._session.tool_changed.connect(self._on_tool_changed)
        self._session.annotations_changed.connect(self._on_annotations_changed)
        self._session.tags_changed.connect(self._on_tags_changed)
        self._session.pending_requested.connect(self._on_pending_requested)
        self._canvas.image_changed.connect(self._on_image_changed)
        self._details.tag_add_requested.connect(self._session.add_tag)
        self._details.tag_remove_requested.connect(self._session.remove_tag)
        self._details.annotation_remove_requested.connect(self._session.remove_annotation)

        if self._upload is not None:
            self._upload.busy_changed.connect(self._on_busy_changed)
            self._upload.upload_succeeded.connect(self._on_upload_succeeded)
            self._upload.upload_failed.connect(self._on_upload_failed)

    # ─── Accessors ────────────────────────────────────────────────────────

    @property
    def session(self) -> AnnotationSession:
        return self._session

    @property
    def canvas(self) -> EditorCanvas:
        return self._canvas

    @property
    def details(self) -> DetailsPanel:
        return self._details

    @property
    def status_bar(self) -> StatusBar:
        return self._status

    @property
    def save_button(self) -> QToolButton:
        return self._save_btn

    @property
    def back_button(self) -> QToolButton:
        return self._back_btn

    def tool_button(self, tool_type: ToolType) -> QToolButton:
        return self._tool_buttons[tool_type]

    # ─── Photo Management ─────────────────────────────────────────────────

    def load_photo(
        self,
        path: Union[str, Path],
        metadata: Optional[PhotoMetadata] = None,
        target: Optional[UploadTarget] = None,
    ) -> bool:
        """
        Open a photo for annotation, discarding the previous session.

        Args:
            path: Photo file.
            metadata: Initial caption, notes, GPS and capture time.
            target: Endpoint Save uploads to.

        Returns:
            False if the file could not be decoded.
        """
        reader = QImageReader(str(path))
        reader.setAutoTransform(True)
        image = reader.read()
        if image.isNull():
            self._logger.error(f"Could not open photo {path}: {reader.errorString()}")
            return False

        self._target = target
        self._session.reset(path, metadata)
        self._details.set_metadata(self._session.metadata)
        self._canvas.set_image(image)
        self._canvas.setFocus()
        return True

    def set_target(self, target: Optional[UploadTarget]) -> None:
        self._target = target

    # ─── Tools and Color ──────────────────────────────────────────────────

    def _select_tool(self, tool_type: ToolType) -> None:
        self._session.select_tool(tool_type)

    def _set_color(self, color: str) -> None:
        self._session.set_color(color)
        self._canvas.update()

    def _sync_tool_buttons(self, active: ToolType) -> None:
        for tool_type, btn in self._tool_buttons.items():
            btn.blockSignals(True)
            btn.setChecked(tool_type == active)
            btn.blockSignals(False)

    # ─── Signal Handlers ──────────────────────────────────────────────────

    @Slot(object)
    def _on_tool_changed(self, tool_type: ToolType) -> None:
        self._sync_tool_buttons(tool_type)
        self._status.set_hint(self._session.hint)

    @Slot()
    def _on_annotations_changed(self) -> None:
        annotations = self._session.annotations
        self._details.set_annotations(annotations)
        self._status.set_count(len(annotations))

    @Slot()
    def _on_tags_changed(self) -> None:
        self._details.set_tags(self._session.tags)

    @Slot()
    def _on_image_changed(self) -> None:
        image = self._canvas.image
        if image is not None:
            self._status.set_dimensions(image.width(), image.height())

    @Slot(object)
    def _on_pending_requested(self, annotation: Annotation) -> None:
        """Ask for the label, then commit or drop the pending annotation."""
        text = self.ask_label(annotation)
        if text is None:
            self._session.cancel_pending()
        else:
            self._session.confirm_pending(text)
        self._status.set_hint(self._session.hint)

    def ask_label(self, annotation: Annotation) -> Optional[str]:
        """Show the label dialog. Returns None when cancelled."""
        dialog = LabelDialog(annotation, self)
        if dialog.exec() == QDialog.DialogCode.Accepted:
            return dialog.text()
        return None

    # ─── Save ─────────────────────────────────────────────────────────────

    def save(self) -> bool:
        """
        Upload the photo with its annotations, tags and details.

        Returns:
            True if an upload was started.
        """
        if self._session.photo_path is None:
            return False
        if self._upload is None or self._target is None:
            self._logger.warning("Save requested without an upload destination")
            self.show_error("No project selected for this photo.")
            return False
        if self._upload.is_busy:
            return False

        self._session.metadata = self._details.apply_to(self._session.metadata)
        try:
            form = self._session.build_upload_form()
        except (OSError, ValueError) as e:
            self._logger.error(f"Could not prepare upload: {e}")
            self.show_error(f"Could not read photo: {e}")
            return False

        return self._upload.start(self._target, form)

    @Slot(bool)
    def _on_busy_changed(self, busy: bool) -> None:
        # Stay on the photo until its upload has an outcome
        self._back_btn.setEnabled(not busy)
        self._save_btn.setEnabled(not busy)
        self._save_btn.setText("Saving..." if busy else "Save")

    @Slot(object)
    def _on_upload_succeeded(self, result: UploadResult) -> None:
        self._logger.info(f"Photo saved: {result.payload.get('id', '')}")
        QMessageBox.information(self, "Success", result.confirmation_message)
        self.saved.emit(result)

    @Slot(str)
    def _on_upload_failed(self, message: str) -> None:
        self.show_error(message)

    def show_error(self, message: str) -> None:
        QMessageBox.critical(self, "Error", message)

    # ─── Key Events ───────────────────────────────────────────────────────

    def keyPressEvent(self, event) -> None:
        """Handle keyboard shortcuts."""
        key = event.key()
        modifiers = event.modifiers()

        if key == Qt.Key.Key_S and modifiers & Qt.KeyboardModifier.ControlModifier:
            self.save()
            return

        if key in SHORTCUT_TOOLS and not modifiers:
            tool_type = SHORTCUT_TOOLS[key]
            if tool_type in self._tool_buttons:
                self._select_tool(tool_type)
                return

        super().keyPressEvent(event)
