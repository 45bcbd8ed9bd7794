"""
Application core for SiteMark.

This module contains the AppCore class which is responsible for:
- Initializing services (logging, config, the photo uploader)
- Applying global styling (dark theme)
- Creating the main window and queueing photos given on the command line

This is the central orchestration point for the application.
"""

from pathlib import Path
from typing import Iterable, Optional, Union

from PySide6.QtCore import QObject
from PySide6.QtGui import QColor, QPalette
from PySide6.QtWidgets import QApplication

from sitemark.services.config_service import ConfigService
from sitemark.services.logging_service import get_logger, setup_logging
from sitemark.services.upload_service import PhotoUploader
from sitemark.ui.main_window import MainWindow


DARK_PALETTE = {
    QPalette.ColorRole.Window: (40, 40, 42),
    QPalette.ColorRole.WindowText: (225, 225, 225),
    QPalette.ColorRole.Base: (30, 30, 32),
    QPalette.ColorRole.AlternateBase: (48, 48, 50),
    QPalette.ColorRole.Text: (225, 225, 225),
    QPalette.ColorRole.BrightText: (255, 255, 255),
    QPalette.ColorRole.Button: (52, 52, 55),
    QPalette.ColorRole.ButtonText: (225, 225, 225),
    # Same blue as the annotation palette
    QPalette.ColorRole.Highlight: (59, 130, 246),
    QPalette.ColorRole.HighlightedText: (255, 255, 255),
    QPalette.ColorRole.ToolTipBase: (60, 60, 62),
    QPalette.ColorRole.ToolTipText: (225, 225, 225),
}

DISABLED_ROLES = (
    QPalette.ColorRole.WindowText,
    QPalette.ColorRole.Text,
    QPalette.ColorRole.ButtonText,
)
DISABLED_TEXT = (120, 120, 120)


class AppCore(QObject):
    """
    Central application core that wires together all components.

    Responsibilities:
    - Initialize services
    - Apply global dark theme
    - Create and show the MainWindow
    """

    def __init__(
        self,
        app: QApplication,
        project_id: str = "",
        update_id: str = "",
        photos: Iterable[Union[str, Path]] = (),
        config_service: Optional[ConfigService] = None,
    ) -> None:
        """
        Initialize the application core.

        Args:
            app: The QApplication instance.
            project_id: Project to upload into (falls back to config).
            update_id: Project update for site-survey uploads.
            photos: Photo files to queue at startup.
            config_service: Settings; loaded from disk when omitted.
        """
        super().__init__()
        self._app = app
        self._project_id = project_id
        self._update_id = update_id

        self._config_service: Optional[ConfigService] = config_service
        self._uploader: Optional[PhotoUploader] = None
        self._main_window: Optional[MainWindow] = None

        self._init_services()
        self._apply_dark_theme()
        self._init_ui(list(photos))

    def _init_services(self) -> None:
        """Initialize all application services."""
        setup_logging()
        self._logger = get_logger(__name__)
        self._logger.info("Initializing SiteMark application core...")

        if self._config_service is None:
            self._config_service = ConfigService()

        self._uploader = PhotoUploader.from_config(self._config_service)
        self._logger.info(f"Uploading to {self._uploader.server_url}")
        if not self._config_service.auth_token:
            self._logger.warning("No auth token configured; uploads will be rejected")

    def _apply_dark_theme(self) -> None:
        """Dark palette for every widget; the editor adds its own stylesheets."""
        self._logger.debug("Applying dark theme...")

        palette = QPalette()
        for role, rgb in DARK_PALETTE.items():
            palette.setColor(role, QColor(*rgb))
        for role in DISABLED_ROLES:
            palette.setColor(QPalette.ColorGroup.Disabled, role, QColor(*DISABLED_TEXT))
        self._app.setPalette(palette)

        self._app.setStyleSheet("""
            QToolTip {
                background-color: #3d3d3d;
                color: #dcdcdc;
                border: 1px solid #5a5a5a;
                padding: 4px;
            }
            QPushButton {
                background-color: #3a3a3a;
                color: #ddd;
                border: 1px solid #555;
                border-radius: 4px;
                padding: 6px 12px;
            }
            QPushButton:hover {
                background-color: #4a4a4a;
            }
            QPushButton:disabled {
                color: #777;
            }
        """)

        self._logger.info("Dark theme applied")

    def _init_ui(self, photos) -> None:
        """Create the main window and queue any startup photos."""
        self._main_window = MainWindow(
            self._config_service,
            self._uploader,
            project_id=self._project_id,
            update_id=self._update_id,
        )
        if photos:
            added = self._main_window.add_photos(photos)
            self._logger.info(f"Queued {added} photo(s) from the command line")

    def show(self) -> None:
        self.main_window.show()
        self.main_window.raise_()
        self.main_window.activateWindow()

    # ─── Properties ───────────────────────────────────────────────────────

    @property
    def config(self) -> ConfigService:
        """Get the configuration service."""
        if self._config_service is None:
            raise RuntimeError("ConfigService not initialized")
        return self._config_service

    @property
    def main_window(self) -> MainWindow:
        """Get the main window."""
        if self._main_window is None:
            raise RuntimeError("MainWindow not initialized")
        return self._main_window
