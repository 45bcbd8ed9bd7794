"""
Main window for SiteMark.

Two pages share the window in a QStackedWidget:
- Photos: the capture queue (add, remove, annotate, upload all)
- Editor: the annotation editor for one photo

A photo leaves the queue once the server has it, either from the editor's
Save or from Upload All.
"""

import threading
from pathlib import Path
from typing import Iterable, Optional, Union

from PySide6.QtCore import QObject, Qt, Signal, Slot
from PySide6.QtWidgets import (
    QFileDialog,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QMessageBox,
    QProgressBar,
    QPushButton,
    QStackedWidget,
    QVBoxLayout,
    QWidget,
)

from sitemark.core.photo_service import (
    PHOTO_EXTENSIONS,
    BatchResult,
    CapturedPhoto,
    PhotoQueue,
    UploadStatus,
    upload_batch,
)
from sitemark.editor.editor_widget import EditorWidget
from sitemark.services.config_service import ConfigService
from sitemark.services.logging_service import get_logger
from sitemark.services.upload_service import PhotoUploader, UploadResult, UploadService, UploadTarget


STATUS_LABELS = {
    UploadStatus.PENDING: "",
    UploadStatus.UPLOADING: "  (uploading...)",
    UploadStatus.UPLOADED: "  (uploaded)",
    UploadStatus.FAILED: "  (failed)",
}


class BatchUploader(QObject):
    """
    Runs upload_batch() on a worker thread.

    Signals:
        progress: Emitted with (done, total) after each photo.
        finished: Emitted with the BatchResult.
    """

    progress = Signal(int, int)
    finished = Signal(object)

    def __init__(self, queue: PhotoQueue, uploader: PhotoUploader, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._queue = queue
        self._uploader = uploader
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, target_for) -> bool:
        if self.is_running:
            return False
        self._thread = threading.Thread(
            target=self._run, args=(target_for,), name="sitemark-batch", daemon=True
        )
        self._thread.start()
        return True

    def wait(self, timeout: Optional[float] = None) -> bool:
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def _run(self, target_for) -> None:
        result = upload_batch(self._queue, self._uploader, target_for, self.progress.emit)
        self.finished.emit(result)


class PhotoListPage(QWidget):
    """
    The capture queue page.

    Signals:
        add_requested, remove_requested, annotate_requested, upload_all_requested
    """

    add_requested = Signal()
    remove_requested = Signal(str)
    annotate_requested = Signal(str)
    upload_all_requested = Signal()

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self._setup_ui()

    def _setup_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(16, 16, 16, 16)
        layout.setSpacing(10)

        self._title = QLabel("Photos (0)")
        self._title.setStyleSheet("font-weight: bold; font-size: 15px;")
        layout.addWidget(self._title)

        self._list = QListWidget()
        self._list.itemDoubleClicked.connect(
            lambda item: self.annotate_requested.emit(item.data(Qt.ItemDataRole.UserRole))
        )
        layout.addWidget(self._list, 1)

        self._progress = QProgressBar()
        self._progress.setVisible(False)
        layout.addWidget(self._progress)

        buttons = QHBoxLayout()
        self._add_btn = QPushButton("Add Photos...")
        self._add_btn.clicked.connect(self.add_requested.emit)
        buttons.addWidget(self._add_btn)

        self._remove_btn = QPushButton("Remove")
        self._remove_btn.clicked.connect(lambda: self._emit_for_current(self.remove_requested))
        buttons.addWidget(self._remove_btn)

        self._annotate_btn = QPushButton("Annotate")
        self._annotate_btn.clicked.connect(lambda: self._emit_for_current(self.annotate_requested))
        buttons.addWidget(self._annotate_btn)

        buttons.addStretch()

        self._upload_btn = QPushButton("Upload All")
        self._upload_btn.clicked.connect(self.upload_all_requested.emit)
        buttons.addWidget(self._upload_btn)
        layout.addLayout(buttons)

    @property
    def list_widget(self) -> QListWidget:
        return self._list

    def set_photos(self, photos: Iterable[CapturedPhoto]) -> None:
        self._list.clear()
        for photo in photos:
            text = photo.path.name
            if photo.caption:
                text += f" - {photo.caption}"
            text += STATUS_LABELS[photo.status]
            item = QListWidgetItem(text)
            item.setData(Qt.ItemDataRole.UserRole, photo.id)
            if photo.error:
                item.setToolTip(photo.error)
            self._list.addItem(item)
        self._title.setText(f"Photos ({self._list.count()})")

    def set_busy(self, busy: bool) -> None:
        for btn in (self._add_btn, self._remove_btn, self._annotate_btn, self._upload_btn):
            btn.setEnabled(not busy)
        self._upload_btn.setText("Uploading..." if busy else "Upload All")
        self._progress.setVisible(busy)
        if busy:
            self._progress.setValue(0)

    def set_progress(self, done: int, total: int) -> None:
        self._progress.setMaximum(max(total, 1))
        self._progress.setValue(done)

    def _emit_for_current(self, signal) -> None:
        item = self._list.currentItem()
        if item is not None:
            signal.emit(item.data(Qt.ItemDataRole.UserRole))


class MainWindow(QMainWindow):
    """
    Main application window for SiteMark.

    Features:
    - Dark themed UI
    - Photo queue with batch upload
    - Full annotation editor for a single photo
    """

    def __init__(
        self,
        config_service: Optional[ConfigService] = None,
        uploader: Optional[PhotoUploader] = None,
        project_id: str = "",
        update_id: str = "",
        parent: Optional[QWidget] = None,
    ) -> None:
        """
        Initialize the MainWindow.

        Args:
            config_service: Settings (server, token, policy, trades).
            uploader: HTTP client; built from config when omitted.
            project_id: Project the photos belong to.
            update_id: Project update for site-survey uploads, if any.
            parent: Optional parent widget.
        """
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._config = config_service or ConfigService()
        self._uploader = uploader or PhotoUploader.from_config(self._config)
        self._project_id = project_id or self._config.default_project_id
        self._update_id = update_id

        self._queue = PhotoQueue()
        self._upload_service = UploadService(self._uploader, self)
        self._batch = BatchUploader(self._queue, self._uploader, self)
        self._editing_id: Optional[str] = None
        # Photo the editor's in-flight upload belongs to
        self._saving_id: Optional[str] = None

        self._setup_window()
        self._setup_central_widget()
        self._connect_signals()

        self._logger.info("MainWindow initialized")

    def _setup_window(self) -> None:
        """Configure main window properties."""
        self._update_title()
        self.setMinimumSize(900, 600)
        self.resize(1280, 820)

    def _setup_central_widget(self) -> None:
        self._stack = QStackedWidget(self)
        self._photos_page = PhotoListPage()
        self._editor = EditorWidget(self._config, self._upload_service)
        self._stack.addWidget(self._photos_page)
        self._stack.addWidget(self._editor)
        self.setCentralWidget(self._stack)

    def _connect_signals(self) -> None:
        self._photos_page.add_requested.connect(self._on_add_requested)
        self._photos_page.remove_requested.connect(self.remove_photo)
        self._photos_page.annotate_requested.connect(self.open_editor)
        self._photos_page.upload_all_requested.connect(self.upload_all)

        self._editor.saved.connect(self._on_editor_saved)
        self._editor.closed.connect(self.show_photos)
        self._upload_service.upload_started.connect(self._on_save_started)
        self._upload_service.upload_failed.connect(self._on_save_failed)

        self._batch.progress.connect(self._photos_page.set_progress)
        self._batch.finished.connect(self._on_batch_finished)

    def _update_title(self) -> None:
        project = self._project_id or "no project"
        self.setWindowTitle(f"SiteMark - {project}")

    # ─── Accessors ────────────────────────────────────────────────────────

    @property
    def queue(self) -> PhotoQueue:
        return self._queue

    @property
    def editor(self) -> EditorWidget:
        return self._editor

    @property
    def photos_page(self) -> PhotoListPage:
        return self._photos_page

    @property
    def batch_uploader(self) -> BatchUploader:
        return self._batch

    @property
    def upload_service(self) -> UploadService:
        return self._upload_service

    @property
    def project_id(self) -> str:
        return self._project_id

    def target_for(self, photo: CapturedPhoto) -> UploadTarget:
        """Endpoint for a photo: survey when an update is set, mobile otherwise."""
        if self._update_id:
            return UploadTarget.survey(photo.project_id, self._update_id)
        return UploadTarget.mobile(photo.project_id)

    # ─── Photo Queue ──────────────────────────────────────────────────────

    def add_photos(self, paths: Iterable[Union[str, Path]]) -> int:
        """Queue photo files. Returns the number added."""
        added = self._queue.add_files(paths, self._project_id)
        self._refresh_list()
        return len(added)

    def remove_photo(self, photo_id: str) -> None:
        if self._queue.remove(photo_id):
            self._logger.info(f"Photo {photo_id} discarded")
        self._refresh_list()

    def _refresh_list(self) -> None:
        self._photos_page.set_photos(self._queue)

    @Slot()
    def _on_add_requested(self) -> None:
        patterns = " ".join(f"*{ext}" for ext in PHOTO_EXTENSIONS)
        files, _ = QFileDialog.getOpenFileNames(
            self,
            "Add Photos",
            self._config.photo_folder,
            f"Photos ({patterns})",
        )
        if files:
            self.add_photos(files)

    # ─── Editor ───────────────────────────────────────────────────────────

    @Slot(str)
    def open_editor(self, photo_id: str) -> bool:
        if self._upload_service.is_busy or self._batch.is_running:
            self._logger.warning(f"Upload in progress; not opening photo {photo_id}")
            return False
        photo = self._queue.get(photo_id)
        if photo is None or photo.status == UploadStatus.UPLOADING:
            return False

        target = self._target_or_none(photo)
        if not self._editor.load_photo(photo.path, photo.to_metadata(), target):
            QMessageBox.warning(self, "Error", f"Could not open {photo.path.name}.")
            return False

        self._editing_id = photo_id
        self._stack.setCurrentWidget(self._editor)
        return True

    @Slot()
    def show_photos(self) -> None:
        self._editing_id = None
        self._refresh_list()
        self._stack.setCurrentWidget(self._photos_page)

    def is_editing(self) -> bool:
        return self._stack.currentWidget() is self._editor

    @Slot()
    def _on_save_started(self) -> None:
        self._saving_id = self._editing_id
        if self._saving_id is not None and self._queue.get(self._saving_id):
            self._queue.mark_uploading(self._saving_id)

    @Slot(str)
    def _on_save_failed(self, message: str) -> None:
        photo_id, self._saving_id = self._saving_id, None
        if photo_id is not None and self._queue.get(photo_id):
            self._queue.mark_failed(photo_id, message)
        self._refresh_list()

    @Slot(object)
    def _on_editor_saved(self, result: UploadResult) -> None:
        photo_id, self._saving_id = self._saving_id, None
        if photo_id is not None and self._queue.get(photo_id):
            self._queue.mark_uploaded(photo_id)
        if photo_id is not None and photo_id == self._editing_id:
            self.show_photos()
        else:
            self._refresh_list()

    def _target_or_none(self, photo: CapturedPhoto) -> Optional[UploadTarget]:
        try:
            return self.target_for(photo)
        except ValueError as e:
            self._logger.warning(f"No upload target for {photo.path.name}: {e}")
            return None

    # ─── Batch Upload ─────────────────────────────────────────────────────

    @Slot()
    def upload_all(self) -> bool:
        """Upload every pending photo in the background."""
        if not self._queue.pending():
            QMessageBox.information(self, "Nothing to upload", "All photos are uploaded.")
            return False
        if not self._project_id:
            QMessageBox.critical(self, "Error", "No project selected for these photos.")
            return False
        if self._upload_service.is_busy:
            QMessageBox.information(self, "Upload in progress", "Wait for the current photo to finish uploading.")
            return False
        if not self._batch.start(self.target_for):
            return False

        self._photos_page.set_busy(True)
        self._refresh_list()
        return True

    @Slot(object)
    def _on_batch_finished(self, result: BatchResult) -> None:
        self._photos_page.set_busy(False)
        self._refresh_list()
        if result.failed:
            QMessageBox.warning(self, result.title, result.summary)
        else:
            QMessageBox.information(self, result.title, result.summary)

    # ─── Events ───────────────────────────────────────────────────────────

    def closeEvent(self, event) -> None:
        """Warn before dropping photos that were never uploaded."""
        pending = len(self._queue.pending())
        if pending:
            answer = QMessageBox.question(
                self,
                "Discard photos?",
                f"{pending} photo(s) have not been uploaded and will be lost.",
                QMessageBox.StandardButton.Discard | QMessageBox.StandardButton.Cancel,
            )
            if answer != QMessageBox.StandardButton.Discard:
                event.ignore()
                return
        self._logger.info("MainWindow closing")
        event.accept()
