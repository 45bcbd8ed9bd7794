"""
Logging service for SiteMark.

Console output is always on. A dated log file is written under
~/.local/share/sitemark/logs/ unless disabled or the directory is not
writable. SITEMARK_LOG_LEVEL (e.g. "DEBUG") overrides the level chosen by
the caller.
"""

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Optional, Union


DEFAULT_LOG_DIR = Path.home() / ".local" / "share" / "sitemark" / "logs"
ENV_LOG_LEVEL = "SITEMARK_LOG_LEVEL"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# HTTP and imaging libraries log every request/tag at DEBUG
QUIET_LOGGERS = ("urllib3", "requests", "PIL")

_logging_initialized = False


def resolve_level(log_level: Union[int, str]) -> int:
    """Level from SITEMARK_LOG_LEVEL if set and valid, else `log_level`."""
    override = os.environ.get(ENV_LOG_LEVEL, "").strip().upper()
    if override:
        value = logging.getLevelName(override)
        if isinstance(value, int):
            return value
    if isinstance(log_level, str):
        value = logging.getLevelName(log_level.upper())
        return value if isinstance(value, int) else logging.INFO
    return log_level


def _formatter() -> logging.Formatter:
    return logging.Formatter(LOG_FORMAT, DATE_FORMAT)


def _file_handler(log_dir: Path, level: int) -> logging.FileHandler:
    """Handler for today's log file; raises OSError if it cannot be created."""
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / f"sitemark_{datetime.now().strftime('%Y%m%d')}.log"
    handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(_formatter())
    return handler


def setup_logging(
    log_level: Union[int, str] = logging.INFO,
    log_to_file: bool = True,
    log_dir: Optional[Path] = None,
) -> Optional[Path]:
    """
    Configure the root logger once for the application.

    Args:
        log_level: Level as a logging constant or name.
        log_to_file: Also write to a dated file.
        log_dir: Directory for log files. Defaults to ~/.local/share/sitemark/logs/

    Returns:
        The log file in use, or None when logging to the console only (or
        when logging was already configured).
    """
    global _logging_initialized

    if _logging_initialized:
        return None

    level = resolve_level(log_level)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(_formatter())
    root_logger.addHandler(console_handler)

    log_path: Optional[Path] = None
    if log_to_file:
        try:
            file_handler = _file_handler(log_dir or DEFAULT_LOG_DIR, level)
        except OSError as e:
            root_logger.warning(f"Could not create log file: {e}. Logging to console only.")
        else:
            root_logger.addHandler(file_handler)
            log_path = Path(file_handler.baseFilename)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    _logging_initialized = True
    return log_path


def reset_logging() -> None:
    """Close and drop the root handlers so setup_logging() can run again."""
    global _logging_initialized

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        handler.close()
        root_logger.removeHandler(handler)
    _logging_initialized = False


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the specified name.

    Usage:
        from sitemark.services.logging_service import get_logger
        logger = get_logger(__name__)
        logger.info("Photo uploaded")
    """
    return logging.getLogger(name)
