"""
SiteMark - site-survey photo annotation and upload.

This is the main entry point for the application.
Run with: python -m sitemark.app [--project ID] [--update ID] [photos...]
"""

import argparse
import logging
import signal
import sys
from typing import List, Optional

from PySide6.QtCore import QTimer
from PySide6.QtWidgets import QApplication

from sitemark import __version__
from sitemark.core.app_core import AppCore
from sitemark.services.logging_service import get_logger, setup_logging


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="sitemark",
        description="Annotate site-survey photos and upload them to a project.",
    )
    parser.add_argument("--project", default="", help="project ID to upload into")
    parser.add_argument("--update", default="", help="project update ID (site-survey upload)")
    parser.add_argument("--debug", action="store_true", help="verbose logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("photos", nargs="*", help="photo files to queue")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for SiteMark.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    args = parse_args(argv)

    setup_logging(log_level=logging.DEBUG if args.debug else logging.INFO)
    logger = get_logger(__name__)

    try:
        logger.info(f"Starting SiteMark {__version__}...")

        app = QApplication(sys.argv[:1])
        app.setApplicationName("SiteMark")
        app.setOrganizationName("SiteMark")
        app.setApplicationVersion(__version__)

        # Let Ctrl+C reach Python while the Qt loop runs
        signal.signal(signal.SIGINT, lambda signum, frame: app.quit())
        interrupt_timer = QTimer()
        interrupt_timer.timeout.connect(lambda: None)
        interrupt_timer.start(200)

        core = AppCore(
            app,
            project_id=args.project,
            update_id=args.update,
            photos=args.photos,
        )
        core.show()

        logger.info("SiteMark initialization complete. Entering event loop...")
        exit_code = app.exec()

        logger.info(f"SiteMark exiting with code {exit_code}")
        return exit_code

    except Exception as e:
        logger.critical(f"Fatal error during startup: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
